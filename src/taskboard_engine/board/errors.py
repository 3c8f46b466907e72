"""Exceptions raised by the board engine.

Every error is recoverable: commands that raise leave the coordinator's
snapshot untouched.
"""

from __future__ import annotations

from typing import Any


class BoardEngineError(Exception):
    """Base class for all board engine errors."""


class MissingRequiredField(BoardEngineError, ValueError):
    """A raw record lacks a required, non-empty field."""

    def __init__(self, field: str, record: Any) -> None:
        self.field = field
        self.record = record
        record_id = record.get("id") if isinstance(record, dict) else None
        where = f" (record id={record_id!r})" if record_id else ""
        super().__init__(f"Missing required field '{field}'{where}")


class CyclicDependencyError(BoardEngineError, ValueError):
    """Linking a task to a parent would create a dependency cycle."""

    def __init__(self, task_id: str, parent_id: str) -> None:
        self.task_id = task_id
        self.parent_id = parent_id
        if task_id == parent_id:
            message = f"Task {task_id} cannot depend on itself"
        else:
            message = f"Making {task_id} depend on {parent_id} would create a cycle"
        super().__init__(message)


class CrossBoardMoveError(BoardEngineError, ValueError):
    """A move targets a column that does not belong to the task's board."""

    def __init__(self, task_id: str, column_id: str, board_id: str) -> None:
        self.task_id = task_id
        self.column_id = column_id
        self.board_id = board_id
        super().__init__(
            f"Cannot move task {task_id} to column {column_id}: column is not on board {board_id}"
        )


class TaskNotFoundError(BoardEngineError, KeyError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(task_id)

    def __str__(self) -> str:
        return f"Task {self.task_id} not found"


class ColumnNotFoundError(BoardEngineError, KeyError):
    def __init__(self, column_id: str) -> None:
        self.column_id = column_id
        super().__init__(column_id)

    def __str__(self) -> str:
        return f"Column {self.column_id} not found"


class SubTaskNotFoundError(BoardEngineError, KeyError):
    def __init__(self, task_id: str, subtask_id: str) -> None:
        self.task_id = task_id
        self.subtask_id = subtask_id
        super().__init__(subtask_id)

    def __str__(self) -> str:
        return f"Subtask {self.subtask_id} not found on task {self.task_id}"
