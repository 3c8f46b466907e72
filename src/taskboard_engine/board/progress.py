"""Subtask checklist mutations and the progress percentages derived from them."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from ..utils import _generate_id, _now_iso
from .model import Board, SubTask, Task


def _percent(part: int, whole: int) -> int:
    """``round(100 * part / whole)`` rounding halves up, on exact integers."""
    return (200 * part + whole) // (2 * whole)


def compute_progress(task: Task) -> int:
    """Return the task's completion percentage.

    With no subtasks, progress is driven externally and the stored value is
    returned unchanged.
    """
    if not task.sub_tasks:
        return task.progress_percentage
    done = sum(1 for sub in task.sub_tasks if sub.is_completed)
    return _percent(done, len(task.sub_tasks))


def apply_progress(task: Task) -> Task:
    task.progress_percentage = compute_progress(task)
    return task


def _renumber(task: Task) -> None:
    for position, sub in enumerate(task.sub_tasks):
        sub.position = position


def add_subtask(task: Task, title: str, *, subtask_id: Optional[str] = None, description: str = "") -> SubTask:
    """Append a new, incomplete subtask to *task* and refresh its progress."""
    title = (title or "").strip()
    if not title:
        raise ValueError("Subtask title must be non-empty")
    sub = SubTask(
        id=subtask_id or _generate_id("subtask"),
        task_id=task.id,
        title=title,
        description=description.strip(),
        position=len(task.sub_tasks),
    )
    task.sub_tasks.append(sub)
    apply_progress(task)
    task.touch()
    logger.debug("Added subtask {} to task {}", sub.id, task.id)
    return sub


def toggle_subtask(task: Task, subtask_id: str) -> SubTask:
    """Flip a subtask's completion and refresh the task's progress."""
    sub = task.get_sub_task(subtask_id)
    sub.set_completed(not sub.is_completed)
    apply_progress(task)
    task.touch()
    return sub


def delete_subtask(task: Task, subtask_id: str) -> SubTask:
    """Remove a subtask; siblings keep their relative order with dense positions.

    Deleting the last subtask leaves the last computed percentage in place,
    since progress is externally driven again from then on.
    """
    sub = task.get_sub_task(subtask_id)
    task.sub_tasks.remove(sub)
    _renumber(task)
    apply_progress(task)
    task.touch()
    return sub


def board_progress(board: Board) -> int:
    """Share of the board's tasks that count as completed, as a rounded percentage."""
    if not board.tasks:
        return 0
    done = sum(1 for task in board.tasks if board.is_completed(task))
    return _percent(done, len(board.tasks))


def refresh_board_progress(board: Board) -> None:
    """Re-derive progress on every task that has subtasks."""
    for task in board.tasks:
        if task.sub_tasks:
            before = task.progress_percentage
            apply_progress(task)
            if before != task.progress_percentage:
                logger.debug(
                    "Corrected progress on task {}: {} -> {}", task.id, before, task.progress_percentage
                )
    board.updated_at = _now_iso()
