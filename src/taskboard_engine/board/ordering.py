"""Dense per-column task ordering.

Within every column the task positions are exactly ``0..n-1``.  Reorders and
cross-column moves work on the column's position-sorted sequence and then
renumber every task in the affected columns.  Destination indices are clamped,
never rejected.
"""

from __future__ import annotations

from loguru import logger

from ..utils import _timestamp_key
from .errors import CrossBoardMoveError
from .model import Board, Column, Task


def _clamp(index: int, upper: int) -> int:
    return max(0, min(int(index), upper))


class OrderingEngine:
    """Assign and maintain dense task positions per column."""

    @staticmethod
    def column_sequence(board: Board, column_id: str) -> list[Task]:
        """Tasks in *column_id* in display order.

        Equal positions (only possible with malformed inbound data) resolve by
        ``created_at``, oldest first.
        """
        tasks = board.tasks_in_column(column_id)
        tasks.sort(key=lambda t: (t.position, _timestamp_key(t.created_at)))
        return tasks

    @staticmethod
    def _renumber(sequence: list[Task]) -> list[Task]:
        changed: list[Task] = []
        for index, task in enumerate(sequence):
            if task.position != index:
                task.position = index
                task.touch()
                changed.append(task)
        return changed

    def normalize_column(self, board: Board, column_id: str) -> list[Task]:
        """Renumber *column_id* densely; return the tasks whose position changed."""
        return self._renumber(self.column_sequence(board, column_id))

    def normalize_board(self, board: Board) -> None:
        """Renumber every column, and the columns themselves, densely."""
        for position, column in enumerate(board.ordered_columns()):
            column.position = position
        for column_id in {t.column_id for t in board.tasks}:
            changed = self.normalize_column(board, column_id)
            if changed:
                logger.debug("Normalized {} task positions in column {}", len(changed), column_id)

    def positions(self, board: Board, column_id: str) -> list[int]:
        return [t.position for t in self.column_sequence(board, column_id)]

    def is_dense(self, board: Board, column_id: str) -> bool:
        return self.positions(board, column_id) == list(range(len(board.tasks_in_column(column_id))))

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def _check_column(self, board: Board, task: Task, column_id: str) -> Column:
        column = board.find_column(column_id)
        if column is None or column.board_id != board.id:
            raise CrossBoardMoveError(task.id, column_id, task.board_id)
        return column

    def reorder_within_column(self, board: Board, column_id: str, task_id: str, destination_index: int) -> list[Task]:
        """Move *task_id* to *destination_index* inside its column.

        Returns the column's tasks in their new order.
        """
        task = board.get_task(task_id)
        self._check_column(board, task, column_id)
        if task.column_id != column_id:
            self.move_across_columns(board, task_id, column_id, destination_index)
            return self.column_sequence(board, column_id)

        sequence = [t for t in self.column_sequence(board, column_id) if t is not task]
        sequence.insert(_clamp(destination_index, len(sequence)), task)
        self._renumber(sequence)
        return sequence

    def move_across_columns(self, board: Board, task_id: str, destination_column_id: str, destination_index: int) -> Task:
        """Move *task_id* into another column at *destination_index*.

        Both the source and the destination column end up densely numbered.

        Raises:
            CrossBoardMoveError: The destination column is not on the task's board.
        """
        task = board.get_task(task_id)
        self._check_column(board, task, destination_column_id)
        source_column_id = task.column_id
        if source_column_id == destination_column_id:
            self.reorder_within_column(board, source_column_id, task_id, destination_index)
            return task

        source = [t for t in self.column_sequence(board, source_column_id) if t is not task]
        self._renumber(source)

        destination = self.column_sequence(board, destination_column_id)
        task.column_id = destination_column_id
        destination.insert(_clamp(destination_index, len(destination)), task)
        self._renumber(destination)
        task.touch()
        logger.debug(
            "Moved task {} from {} to {}@{}", task.id, source_column_id, destination_column_id, task.position
        )
        return task

    def append_to_column(self, board: Board, task: Task) -> Task:
        """Place *task* (already on the board) at the end of its column."""
        sequence = [t for t in self.column_sequence(board, task.column_id) if t is not task]
        sequence.append(task)
        self._renumber(sequence)
        return task

    def remove_from_column(self, board: Board, task: Task) -> None:
        """Renumber *task*'s column as if the task were gone (it stays on the board)."""
        sequence = [t for t in self.column_sequence(board, task.column_id) if t is not task]
        self._renumber(sequence)
