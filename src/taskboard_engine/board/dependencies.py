"""Parent/child task dependencies and the derived dependency status.

A task has at most one parent.  While the parent is not completed the child is
``blocked``; once the parent completes (status ``completed`` or placed in a
completion column) the child becomes ``ready``.  Tasks without a parent are
``independent``.  The parent graph is kept acyclic.
"""

from __future__ import annotations

from collections import deque
from typing import Optional

from loguru import logger

from ..utils import _timestamp_key
from .errors import CyclicDependencyError
from .model import Board, DependencyStatus, Task


class DependencyResolver:
    """Maintain parent links and keep ``dependency_status`` from drifting."""

    # ------------------------------------------------------------------
    # Status derivation
    # ------------------------------------------------------------------

    @staticmethod
    def derive_status(board: Board, task: Task) -> DependencyStatus:
        if task.parent_id is None:
            return DependencyStatus.INDEPENDENT
        parent = board.find_task(task.parent_id)
        if parent is None:
            return DependencyStatus.INDEPENDENT
        if board.is_completed(parent):
            return DependencyStatus.READY
        return DependencyStatus.BLOCKED

    def recompute(self, board: Board, task: Task) -> bool:
        """Refresh *task*'s dependency status; return True if it changed."""
        status = self.derive_status(board, task)
        if status == task.dependency_status:
            return False
        task.dependency_status = status
        task.touch()
        return True

    @staticmethod
    def refresh_has_children(board: Board, task_id: Optional[str]) -> None:
        if task_id is None:
            return
        task = board.find_task(task_id)
        if task is None:
            return
        task.has_children = any(t.parent_id == task_id and t.id != task_id for t in board.tasks)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def set_dependency(self, board: Board, task_id: str, parent_id: str) -> Task:
        """Make *task_id* depend on *parent_id*.

        Raises:
            CyclicDependencyError: The parent is the task itself or already
                (transitively) depends on it.
        """
        task = board.get_task(task_id)
        parent = board.get_task(parent_id)
        if task.id == parent.id or self._would_cycle(board, task.id, parent.id):
            raise CyclicDependencyError(task.id, parent.id)

        previous = task.parent_id
        task.parent_id = parent.id
        task.dependency_status = self.derive_status(board, task)
        task.touch()
        self.refresh_has_children(board, previous)
        self.refresh_has_children(board, parent.id)
        logger.debug("Task {} now depends on {} ({})", task.id, parent.id, task.dependency_status.value)
        return task

    def remove_dependency(self, board: Board, task_id: str) -> Task:
        task = board.get_task(task_id)
        previous = task.parent_id
        task.parent_id = None
        task.dependency_status = DependencyStatus.INDEPENDENT
        task.touch()
        self.refresh_has_children(board, previous)
        return task

    def on_parent_status_changed(self, board: Board, parent_id: str) -> list[Task]:
        """Recompute the status of the direct children of *parent_id*.

        Only one level is touched: a grandchild depends on its own parent's
        completion, which this change does not alter.
        """
        changed = [child for child in self.get_children(board, parent_id) if self.recompute(board, child)]
        if changed:
            logger.debug(
                "Parent {} changed completion; updated children {}",
                parent_id,
                [c.id for c in changed],
            )
        return changed

    def detach_children(self, board: Board, parent_id: str) -> list[Task]:
        """Make every child of *parent_id* independent (used when it is deleted)."""
        children = self.get_children(board, parent_id)
        for child in children:
            self.remove_dependency(board, child.id)
        return children

    def refresh_all(self, board: Board) -> None:
        """Repair parent links on an ingested board and derive every status.

        Links to tasks that are not on the board are cleared, and a link that
        closes a cycle is dropped from the task that closes it.
        """
        known = {t.id for t in board.tasks}
        for task in board.tasks:
            if task.parent_id is None:
                continue
            if task.parent_id not in known:
                logger.warning("Task {} references missing parent {}; making it independent", task.id, task.parent_id)
                task.parent_id = None
            elif self._would_cycle(board, task.id, task.parent_id):
                logger.warning("Task {} closes a dependency cycle via {}; making it independent", task.id, task.parent_id)
                task.parent_id = None
        for task in board.tasks:
            task.has_children = False
        for task in board.tasks:
            if task.parent_id is not None:
                board.get_task(task.parent_id).has_children = True
        for task in board.tasks:
            task.dependency_status = self.derive_status(board, task)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_children(board: Board, task_id: str) -> list[Task]:
        """Direct children of *task_id*, oldest first."""
        children = [t for t in board.tasks if t.parent_id == task_id and t.id != task_id]
        children.sort(key=lambda t: _timestamp_key(t.created_at))
        return children

    def get_descendants(self, board: Board, task_id: str) -> list[tuple[Task, int]]:
        """All tasks below *task_id* with their depth (1 = direct child), breadth-first."""
        board.get_task(task_id)
        out: list[tuple[Task, int]] = []
        visited: set[str] = {task_id}
        queue: deque[tuple[str, int]] = deque([(task_id, 0)])
        while queue:
            current, level = queue.popleft()
            for child in self.get_children(board, current):
                if child.id in visited:
                    continue
                visited.add(child.id)
                out.append((child, level + 1))
                queue.append((child.id, level + 1))
        return out

    def can_start(self, board: Board, task_id: str) -> bool:
        """True if the task has no parent or its parent is completed."""
        task = board.get_task(task_id)
        return self.derive_status(board, task) != DependencyStatus.BLOCKED

    def get_dependency_graph(self, board: Board) -> dict[str, Optional[str]]:
        """Return ``{task_id: parent_id}`` for every task on the board."""
        return {t.id: t.parent_id for t in board.tasks}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _would_cycle(board: Board, task_id: str, new_parent_id: str) -> bool:
        """Return True if linking task_id→new_parent_id creates a cycle.

        We walk up from the proposed parent; reaching *task_id* means the
        parent already depends on the task.
        """
        visited: set[str] = set()
        current: Optional[str] = new_parent_id
        while current is not None:
            if current == task_id:
                return True
            if current in visited:
                # Pre-existing loop above the parent that does not include task_id.
                return False
            visited.add(current)
            node = board.find_task(current)
            current = node.parent_id if node else None
        return False
