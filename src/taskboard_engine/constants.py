"""Shared constants for the task board engine."""

from __future__ import annotations

STATE_DIR_NAME = ".taskboard"
CONFIG_FILE = "config.yaml"

DEFAULT_LOG_LEVEL = "INFO"

# Task value ranges
VALUE_MIN = 0
VALUE_MAX = 100
DEFAULT_ESTIMATED_DURATION = 30  # minutes
MIN_ESTIMATED_DURATION = 5  # minutes

DEFAULT_BOARD_ID = "default"
DEFAULT_BOARD_ABBREVIATION = "TASK"

# Audit trail kept by the coordinator
MAX_RECENT_EVENTS = 500

# Neutral insights attached to tasks that arrive without any
DEFAULT_AI_INSIGHTS = {
    "completion_probability": 75,
    "estimated_effort_accuracy": 80,
    "similar_tasks": [],
    "optimization_suggestions": [],
    "potential_blockers": [],
    "best_time_to_work": {
        "preferred_time_slots": ["morning"],
        "energy_requirements": "medium",
        "focus_requirements": "medium",
    },
}

# Columns given to a board that arrives without any
DEFAULT_COLUMNS = (
    {"id": "backlog", "name": "Backlog", "color": "gray", "is_completion_column": False},
    {"id": "todo", "name": "To Do", "color": "blue", "is_completion_column": False},
    {"id": "in_progress", "name": "In Progress", "color": "orange", "is_completion_column": False},
    {"id": "done", "name": "Done", "color": "green", "is_completion_column": True},
)
