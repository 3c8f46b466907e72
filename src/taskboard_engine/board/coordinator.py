"""Board coordinator: the single entry point for board commands.

The coordinator owns one board snapshot.  Every command runs inside
:meth:`BoardCoordinator.transaction`, which hands out a deep working copy and
only swaps it in when the command finishes; a command that raises leaves the
snapshot exactly as it was.  Everything returned to callers is a detached
copy, so holding on to a result never aliases engine state.
"""

from __future__ import annotations

import copy
import re
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from loguru import logger

from ..config import EngineSettings
from ..constants import DEFAULT_COLUMNS, MAX_RECENT_EVENTS
from ..logging_utils import pretty, summarize_task
from ..utils import _now_iso
from . import progress
from .dependencies import DependencyResolver
from .filters import TaskFilters, TaskSort, apply_view
from .model import Board, Column, Task, TaskStatus
from .ordering import OrderingEngine
from .validator import RejectedRecord, TaskDataValidator


def default_columns(board_id: str) -> list[Column]:
    return [
        Column(board_id=board_id, position=position, **fields)
        for position, fields in enumerate(DEFAULT_COLUMNS)
    ]


@dataclass
class IngestResult:
    """Outcome of :meth:`BoardCoordinator.ingest`."""

    board: Board
    accepted: list[str] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)


class BoardCoordinator:
    """Apply board commands to a snapshot while keeping every invariant.

    Parameters
    ----------
    board:
        Initial snapshot; copied, never mutated.  An empty board with the
        default columns is used when omitted.
    settings:
        Validation defaults; see :class:`~taskboard_engine.config.EngineSettings`.
    """

    def __init__(self, board: Optional[Board] = None, *, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or EngineSettings()
        self.validator = TaskDataValidator(self.settings)
        self.ordering = OrderingEngine()
        self.dependencies = DependencyResolver()
        self._board = copy.deepcopy(board) if board is not None else Board()
        self._events: deque[dict[str, Any]] = deque(maxlen=MAX_RECENT_EVENTS)
        self._repair(self._board)

    @classmethod
    def from_snapshot(cls, data: dict[str, Any], *, settings: Optional[EngineSettings] = None) -> "BoardCoordinator":
        """Rebuild a coordinator from a dict produced by ``Board.to_dict()``."""
        return cls(Board.from_dict(data), settings=settings)

    # ------------------------------------------------------------------
    # Snapshot handling
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[Board]:
        """Yield a working copy of the board and commit it on clean exit.

        Usage::

            with coordinator.transaction() as board:
                board.get_task("task-1").title = "Renamed"
                # committed on exit; discarded if the block raises
        """
        working = copy.deepcopy(self._board)
        yield working
        working.touch()
        self._board = working

    def snapshot(self) -> Board:
        return copy.deepcopy(self._board)

    def get_task(self, task_id: str) -> Task:
        return copy.deepcopy(self._board.get_task(task_id))

    def _emit_event(self, event_type: str, task_id: Optional[str], **details: Any) -> None:
        payload: dict[str, Any] = {
            "ts": _now_iso(),
            "type": event_type,
            "board_id": self._board.id,
            "task_id": task_id,
        }
        if details:
            payload["details"] = details
        self._events.append(payload)

    def recent_events(self, limit: int = 100) -> list[dict[str, Any]]:
        if limit < 1:
            return []
        return copy.deepcopy(list(self._events)[-limit:])

    def task_events(self, task_id: str, limit: int = 100) -> list[dict[str, Any]]:
        events = [e for e in self._events if e.get("task_id") == task_id]
        return copy.deepcopy(events[-limit:]) if limit > 0 else []

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def ingest(self, raw_tasks: Any, raw_columns: Any = None) -> IngestResult:
        """Validate raw records and load them onto the board.

        Columns, when given, replace the board's columns.  Tasks are upserted
        by id.  Invalid records are dropped and reported in the result; the
        rest of the batch is loaded regardless.
        """
        rejected: list[RejectedRecord] = []
        accepted: list[str] = []
        with self.transaction() as board:
            if raw_columns is not None:
                report = self.validator.validate_columns(raw_columns, board_id=board.id)
                rejected.extend(report.rejected)
                columns: list[Column] = []
                for column in report.valid:
                    if column.board_id != board.id:
                        rejected.append(self._foreign(column.id, column.board_id, board.id, column.to_dict()))
                        continue
                    columns.append(column)
                if columns:
                    board.columns = columns
                else:
                    logger.warning("No valid columns supplied for board {}; keeping existing columns", board.id)

            report = self.validator.validate_tasks(raw_tasks, board_id=board.id)
            rejected.extend(report.rejected)
            for task in report.valid:
                if task.board_id != board.id:
                    rejected.append(self._foreign(task.id, task.board_id, board.id, task.to_dict()))
                    continue
                existing = board.find_task(task.id)
                if existing is not None:
                    board.tasks[board.tasks.index(existing)] = task
                else:
                    board.tasks.append(task)
                accepted.append(task.id)

            self._repair(board)

        self._emit_event("board.ingested", None, accepted=len(accepted), rejected=len(rejected))
        if rejected:
            logger.info("Ingested {} tasks into board {}, dropped {}", len(accepted), self._board.id, len(rejected))
        else:
            logger.info("Ingested {} tasks into board {}", len(accepted), self._board.id)
        return IngestResult(board=self.snapshot(), accepted=accepted, rejected=rejected)

    @staticmethod
    def _foreign(record_id: str, record_board: str, board_id: str, record: Any) -> RejectedRecord:
        message = f"Record {record_id!r} belongs to board {record_board!r}, not {board_id!r}"
        logger.warning("Data validation: {}", message)
        return RejectedRecord(index=-1, field="board_id", message=message, record=record)

    def _repair(self, board: Board) -> None:
        """Restore every board invariant on a freshly loaded board."""
        if not board.columns:
            board.columns = default_columns(board.id)
        for column in board.columns:
            column.board_id = board.id
        for task in board.tasks:
            task.board_id = board.id
            if board.find_column(task.column_id) is None:
                fallback = self._fallback_column(board, task)
                logger.warning(
                    "Task {} references unknown column {}; placing it in {}", task.id, task.column_id, fallback.id
                )
                task.column_id = fallback.id
        self._assign_numbers(board)
        progress.refresh_board_progress(board)
        self.dependencies.refresh_all(board)
        self.ordering.normalize_board(board)

    @staticmethod
    def _fallback_column(board: Board, task: Task) -> Column:
        columns = board.ordered_columns()
        if task.status == TaskStatus.COMPLETED:
            for column in columns:
                if column.is_completion_column:
                    return column
        return columns[0]

    @staticmethod
    def _assign_numbers(board: Board) -> None:
        pattern = re.compile(rf"^{re.escape(board.abbreviation)}-(\d+)$")
        for task in board.tasks:
            match = pattern.match(task.task_number or "")
            if match:
                board.task_counter = max(board.task_counter, int(match.group(1)))
        for task in board.tasks:
            if not task.task_number:
                task.task_number = board.next_task_number()

    # ------------------------------------------------------------------
    # Ordering commands
    # ------------------------------------------------------------------

    def move_task(self, task_id: str, column_id: str, index: int) -> Board:
        """Move a task to *index* in *column_id* (same or another column).

        Crossing into or out of a completion column re-evaluates the
        dependency status of the task's children.
        """
        with self.transaction() as board:
            task = board.get_task(task_id)
            source = task.column_id
            was_done = board.is_completed(task)
            self.ordering.move_across_columns(board, task_id, column_id, index)
            if board.is_completed(task) != was_done:
                self.dependencies.on_parent_status_changed(board, task.id)
            logger.debug("Moved task: {}", pretty(summarize_task(task)))

        if source == column_id:
            self._emit_event("task.reordered", task_id, column_id=column_id, index=index)
        else:
            self._emit_event("task.moved", task_id, source=source, destination=column_id, index=index)
        return self.snapshot()

    def reorder_task(self, task_id: str, index: int) -> Board:
        """Move a task to *index* within its current column."""
        return self.move_task(task_id, self._board.get_task(task_id).column_id, index)

    # ------------------------------------------------------------------
    # Subtask commands
    # ------------------------------------------------------------------

    def toggle_subtask(self, task_id: str, subtask_id: str) -> Task:
        with self.transaction() as board:
            task = board.get_task(task_id)
            sub = progress.toggle_subtask(task, subtask_id)
        self._emit_event("subtask.toggled", task_id, subtask_id=subtask_id, completed=sub.is_completed)
        return self.get_task(task_id)

    def add_subtask(self, task_id: str, title: str, *, subtask_id: Optional[str] = None) -> Task:
        with self.transaction() as board:
            task = board.get_task(task_id)
            if subtask_id and any(s.id == subtask_id for s in task.sub_tasks):
                raise ValueError(f"Subtask {subtask_id} already exists on task {task_id}")
            sub = progress.add_subtask(task, title, subtask_id=subtask_id)
        self._emit_event("subtask.added", task_id, subtask_id=sub.id)
        return self.get_task(task_id)

    def delete_subtask(self, task_id: str, subtask_id: str) -> Task:
        with self.transaction() as board:
            progress.delete_subtask(board.get_task(task_id), subtask_id)
        self._emit_event("subtask.deleted", task_id, subtask_id=subtask_id)
        return self.get_task(task_id)

    # ------------------------------------------------------------------
    # Dependency commands
    # ------------------------------------------------------------------

    def set_dependency(self, task_id: str, parent_id: str) -> Task:
        with self.transaction() as board:
            task = self.dependencies.set_dependency(board, task_id, parent_id)
        self._emit_event("dependency.set", task_id, parent_id=parent_id, status=task.dependency_status.value)
        return self.get_task(task_id)

    def remove_dependency(self, task_id: str) -> Task:
        with self.transaction() as board:
            previous = board.get_task(task_id).parent_id
            self.dependencies.remove_dependency(board, task_id)
        self._emit_event("dependency.removed", task_id, parent_id=previous)
        return self.get_task(task_id)

    def get_children(self, task_id: str) -> list[Task]:
        self._board.get_task(task_id)
        return copy.deepcopy(self.dependencies.get_children(self._board, task_id))

    def get_descendants(self, task_id: str) -> list[tuple[Task, int]]:
        return copy.deepcopy(self.dependencies.get_descendants(self._board, task_id))

    def can_start(self, task_id: str) -> bool:
        return self.dependencies.can_start(self._board, task_id)

    # ------------------------------------------------------------------
    # Task lifecycle commands
    # ------------------------------------------------------------------

    def set_status(self, task_id: str, status: str) -> Task:
        """Change a task's workflow status, propagating completion to its children."""
        target = status if isinstance(status, TaskStatus) else TaskStatus(str(status).strip().lower())
        with self.transaction() as board:
            task = board.get_task(task_id)
            previous = task.status
            was_done = board.is_completed(task)
            task.status = target
            task.completion_date = _now_iso() if target == TaskStatus.COMPLETED else None
            task.touch()
            if board.is_completed(task) != was_done:
                self.dependencies.on_parent_status_changed(board, task.id)
        self._emit_event("task.status_changed", task_id, source=previous.value, target=target.value)
        return self.get_task(task_id)

    def create_task(self, raw: Any) -> Task:
        """Validate a single record and append it to the end of its column.

        Raises:
            MissingRequiredField: The record lacks ``id`` or ``title``.
            ValueError: A task with the same id already exists.
        """
        task = self.validator.validate_task(raw, board_id=self._board.id)
        with self.transaction() as board:
            if board.find_task(task.id) is not None:
                raise ValueError(f"Task {task.id} already exists")
            if task.board_id != board.id:
                raise ValueError(f"Task {task.id} belongs to board {task.board_id}, not {board.id}")
            if board.find_column(task.column_id) is None:
                task.column_id = self._fallback_column(board, task).id
            if not task.task_number:
                task.task_number = board.next_task_number()
            parent_id = task.parent_id
            task.parent_id = None
            task.has_children = False
            task.dependency_status = self.dependencies.derive_status(board, task)
            board.tasks.append(task)
            self.ordering.append_to_column(board, task)
            progress.apply_progress(task)
            if parent_id is not None:
                self.dependencies.set_dependency(board, task.id, parent_id)
        self._emit_event("task.created", task.id, column_id=task.column_id, number=task.task_number)
        logger.info("Created task {} ({}): {}", task.id, task.task_number, task.title)
        return self.get_task(task.id)

    def delete_task(self, task_id: str) -> Board:
        """Remove a task; its column is renumbered and its children become independent."""
        with self.transaction() as board:
            task = board.get_task(task_id)
            detached = self.dependencies.detach_children(board, task_id)
            self.ordering.remove_from_column(board, task)
            board.tasks = [t for t in board.tasks if t is not task]
            self.dependencies.refresh_has_children(board, task.parent_id)
        self._emit_event("task.deleted", task_id, detached=[c.id for c in detached])
        return self.snapshot()

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def add_column(self, raw: Any) -> Board:
        """Validate a column record and append it after the existing columns."""
        with self.transaction() as board:
            column = self.validator.validate_column(raw, board_id=board.id, index=len(board.columns))
            if board.find_column(column.id) is not None:
                raise ValueError(f"Column {column.id} already exists")
            if column.board_id != board.id:
                raise ValueError(f"Column {column.id} belongs to board {column.board_id}, not {board.id}")
            column.position = len(board.columns)
            board.columns.append(column)
        self._emit_event("column.added", None, column_id=column.id)
        return self.snapshot()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def board_progress(self) -> int:
        return progress.board_progress(self._board)

    def column_tasks(self, column_id: str) -> list[Task]:
        self._board.get_column(column_id)
        return copy.deepcopy(self.ordering.column_sequence(self._board, column_id))

    def view(self, filters: Optional[TaskFilters] = None, sort: Optional[TaskSort] = None) -> list[Task]:
        return copy.deepcopy(apply_view(self._board.tasks, filters, sort))
