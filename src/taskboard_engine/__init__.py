"""Provide the public `taskboard_engine` package exports."""

from __future__ import annotations

from .board.coordinator import BoardCoordinator, IngestResult
from .board.errors import (
    BoardEngineError,
    ColumnNotFoundError,
    CrossBoardMoveError,
    CyclicDependencyError,
    MissingRequiredField,
    SubTaskNotFoundError,
    TaskNotFoundError,
)
from .board.model import Board, Column, SubTask, Task
from .config import EngineSettings, load_settings

__all__ = [
    "Board",
    "BoardCoordinator",
    "BoardEngineError",
    "Column",
    "ColumnNotFoundError",
    "CrossBoardMoveError",
    "CyclicDependencyError",
    "EngineSettings",
    "IngestResult",
    "MissingRequiredField",
    "SubTask",
    "SubTaskNotFoundError",
    "Task",
    "TaskNotFoundError",
    "load_settings",
]
