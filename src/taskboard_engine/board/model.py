"""Task board model: boards, columns, tasks and their subtask checklists.

Entities are plain dataclasses that serialize to JSON/YAML-friendly dicts via
``to_dict()`` / ``from_dict()``.  ``from_dict`` trusts its input shape and is
meant for snapshots the engine produced itself; untrusted records go through
:mod:`.validator` instead.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from ..constants import DEFAULT_AI_INSIGHTS, DEFAULT_BOARD_ABBREVIATION, DEFAULT_BOARD_ID
from ..utils import _generate_id, _now_iso
from .errors import ColumnNotFoundError, SubTaskNotFoundError, TaskNotFoundError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def sort_key(self) -> int:
        return {"low": 1, "medium": 2, "high": 3, "urgent": 4}[self.value]


class EnergyLevel(str, Enum):
    """T-shirt size of the focus a task needs."""

    XS = "xs"  # Quick win, 5-15 min
    S = "s"  # Light task, 15-30 min
    M = "m"  # Standard task, 30-60 min
    L = "l"  # Deep work, 1-2 hours
    XL = "xl"  # Major project, 2+ hours

    @property
    def sort_key(self) -> int:
        return {"xs": 0, "s": 1, "m": 2, "l": 3, "xl": 4}[self.value]


class TaskStatus(str, Enum):
    """Workflow state of a task, independent of its dependency status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DependencyStatus(str, Enum):
    """Whether a task's parent currently prevents it from starting."""

    INDEPENDENT = "independent"
    BLOCKED = "blocked"
    READY = "ready"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def _dataclass_dict(obj: Any) -> dict[str, Any]:
    return {f.name: _plain(getattr(obj, f.name)) for f in fields(obj)}


def _enum(enum_cls: type[Enum], raw: Any, default: Enum) -> Any:
    if raw is None:
        return default
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw).lower())
    except ValueError:
        return default


def default_ai_insights() -> dict[str, Any]:
    return copy.deepcopy(DEFAULT_AI_INSIGHTS)


def board_abbreviation(name: str) -> str:
    """Derive a task-number prefix from a board name (``"My Tasks"`` → ``"MT"``)."""
    words = re.findall(r"[A-Za-z0-9]+", name or "")
    if not words:
        return DEFAULT_BOARD_ABBREVIATION
    if len(words) == 1:
        return words[0][:4].upper()
    return "".join(w[0] for w in words[:4]).upper()


# ---------------------------------------------------------------------------
# SubTask
# ---------------------------------------------------------------------------

@dataclass
class SubTask:
    """A checklist item owned by exactly one task."""

    id: str = field(default_factory=lambda: _generate_id("subtask"))
    task_id: str = ""
    title: str = ""
    is_completed: bool = False
    position: int = 0
    description: str = ""
    created_at: str = field(default_factory=_now_iso)
    completed_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _dataclass_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubTask":
        return cls(
            id=str(data["id"]),
            task_id=str(data.get("task_id", "")),
            title=str(data.get("title", "")),
            is_completed=bool(data.get("is_completed", False)),
            position=int(data.get("position", 0) or 0),
            description=str(data.get("description") or ""),
            created_at=str(data.get("created_at") or _now_iso()),
            completed_at=data.get("completed_at"),
        )

    def set_completed(self, completed: bool) -> None:
        self.is_completed = completed
        self.completed_at = _now_iso() if completed else None


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A card on the board.

    ``parent_id`` is ``None`` for a task without a dependency; otherwise it is
    the id of the task that must complete first.  ``has_children`` and
    ``dependency_status`` are derived and kept current by the dependency
    resolver.
    """

    # Identity
    id: str = field(default_factory=lambda: _generate_id("task"))
    title: str = ""
    description: str = ""
    task_number: Optional[str] = None

    # Placement
    board_id: str = DEFAULT_BOARD_ID
    column_id: str = ""
    position: int = 0
    user_id: str = ""

    # Classification
    priority: TaskPriority = TaskPriority.MEDIUM
    energy_level: EnergyLevel = EnergyLevel.M
    tags: list[str] = field(default_factory=list)
    business_value: int = 0
    personal_value: int = 0
    estimated_duration: int = 30
    due_date: Optional[str] = None

    # Dependencies
    parent_id: Optional[str] = None
    has_children: bool = False
    dependency_status: DependencyStatus = DependencyStatus.INDEPENDENT

    # Progress
    sub_tasks: list[SubTask] = field(default_factory=list)
    progress_percentage: int = 0

    # Workflow
    status: TaskStatus = TaskStatus.NOT_STARTED
    completion_date: Optional[str] = None
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    # Carried through untouched for the presentation layer
    dependencies: list[Any] = field(default_factory=list)
    attachments: list[Any] = field(default_factory=list)
    comments: list[Any] = field(default_factory=list)
    time_tracking: list[Any] = field(default_factory=list)
    goal_connections: list[Any] = field(default_factory=list)
    ai_insights: dict[str, Any] = field(default_factory=default_ai_insights)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for the persistence layer."""
        return _dataclass_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize an engine-produced dict, coercing enums gracefully."""
        d = dict(data)
        task_id = str(d.get("id") or _generate_id("task"))
        parent_id = d.get("parent_id") or None
        if parent_id == task_id:
            parent_id = None
        return cls(
            id=task_id,
            title=str(d.get("title", "")),
            description=str(d.get("description") or ""),
            task_number=d.get("task_number"),
            board_id=str(d.get("board_id") or DEFAULT_BOARD_ID),
            column_id=str(d.get("column_id") or ""),
            position=int(d.get("position", 0) or 0),
            user_id=str(d.get("user_id") or ""),
            priority=_enum(TaskPriority, d.get("priority"), TaskPriority.MEDIUM),
            energy_level=_enum(EnergyLevel, d.get("energy_level"), EnergyLevel.M),
            tags=list(d.get("tags") or []),
            business_value=int(d.get("business_value", 0) or 0),
            personal_value=int(d.get("personal_value", 0) or 0),
            estimated_duration=int(d.get("estimated_duration", 30) or 30),
            due_date=d.get("due_date"),
            parent_id=parent_id,
            has_children=bool(d.get("has_children", False)),
            dependency_status=_enum(
                DependencyStatus, d.get("dependency_status"), DependencyStatus.INDEPENDENT
            ),
            sub_tasks=[SubTask.from_dict(s) for s in d.get("sub_tasks") or []],
            progress_percentage=int(d.get("progress_percentage", 0) or 0),
            status=_enum(TaskStatus, d.get("status"), TaskStatus.NOT_STARTED),
            completion_date=d.get("completion_date"),
            created_at=str(d.get("created_at") or _now_iso()),
            updated_at=str(d.get("updated_at") or _now_iso()),
            dependencies=list(d.get("dependencies") or []),
            attachments=list(d.get("attachments") or []),
            comments=list(d.get("comments") or []),
            time_tracking=list(d.get("time_tracking") or []),
            goal_connections=list(d.get("goal_connections") or []),
            ai_insights=dict(d.get("ai_insights") or default_ai_insights()),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = _now_iso()

    @property
    def is_independent(self) -> bool:
        return self.parent_id is None

    def get_sub_task(self, subtask_id: str) -> SubTask:
        for sub in self.sub_tasks:
            if sub.id == subtask_id:
                return sub
        raise SubTaskNotFoundError(self.id, subtask_id)


# ---------------------------------------------------------------------------
# Column
# ---------------------------------------------------------------------------

@dataclass
class Column:
    """An ordered bucket of tasks on a board."""

    id: str = field(default_factory=lambda: _generate_id("col"))
    board_id: str = DEFAULT_BOARD_ID
    name: str = ""
    position: int = 0
    is_completion_column: bool = False
    color: str = "gray"
    description: str = ""
    task_limit: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return _dataclass_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Column":
        limit = data.get("task_limit")
        return cls(
            id=str(data["id"]),
            board_id=str(data.get("board_id") or DEFAULT_BOARD_ID),
            name=str(data.get("name", "")),
            position=int(data.get("position", 0) or 0),
            is_completion_column=bool(data.get("is_completion_column", False)),
            color=str(data.get("color") or "gray"),
            description=str(data.get("description") or ""),
            task_limit=int(limit) if limit is not None else None,
        )


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

@dataclass
class Board:
    """A user's board: columns plus the tasks placed in them."""

    id: str = DEFAULT_BOARD_ID
    name: str = "My Tasks"
    user_id: str = ""
    abbreviation: str = ""
    task_counter: int = 0
    columns: list[Column] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    def __post_init__(self) -> None:
        if not self.abbreviation:
            self.abbreviation = board_abbreviation(self.name)

    def to_dict(self) -> dict[str, Any]:
        return _dataclass_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Board":
        return cls(
            id=str(data.get("id") or DEFAULT_BOARD_ID),
            name=str(data.get("name") or "My Tasks"),
            user_id=str(data.get("user_id") or ""),
            abbreviation=str(data.get("abbreviation") or ""),
            task_counter=int(data.get("task_counter", 0) or 0),
            columns=[Column.from_dict(c) for c in data.get("columns") or []],
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            created_at=str(data.get("created_at") or _now_iso()),
            updated_at=str(data.get("updated_at") or _now_iso()),
        )

    def touch(self) -> None:
        self.updated_at = _now_iso()

    # -- lookups ------------------------------------------------------------

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_task(self, task_id: str) -> Task:
        task = self.find_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def find_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def get_column(self, column_id: str) -> Column:
        column = self.find_column(column_id)
        if column is None:
            raise ColumnNotFoundError(column_id)
        return column

    def ordered_columns(self) -> list[Column]:
        return sorted(self.columns, key=lambda c: c.position)

    def tasks_in_column(self, column_id: str) -> list[Task]:
        """Tasks placed in *column_id*, in board storage order (not sorted)."""
        return [t for t in self.tasks if t.column_id == column_id]

    # -- completion ---------------------------------------------------------

    def is_completed(self, task: Task) -> bool:
        """True if *task* counts as done for dependency purposes."""
        if task.status == TaskStatus.COMPLETED:
            return True
        column = self.find_column(task.column_id)
        return bool(column and column.is_completion_column)

    # -- numbering ----------------------------------------------------------

    def next_task_number(self) -> str:
        self.task_counter += 1
        return f"{self.abbreviation}-{self.task_counter}"
