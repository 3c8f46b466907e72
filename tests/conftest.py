"""Shared fixtures for the board engine tests."""

from __future__ import annotations

from typing import Any, Iterator

import pytest
from loguru import logger

from taskboard_engine.board.coordinator import default_columns
from taskboard_engine.board.model import Board, Task


@pytest.fixture
def log_warnings() -> Iterator[list[str]]:
    """Collect loguru WARNING+ messages emitted during the test."""
    messages: list[str] = []
    handler = logger.add(lambda m: messages.append(str(m).rstrip("\n")), level="WARNING", format="{message}")
    yield messages
    logger.remove(handler)


def make_board(*tasks: Task, **kwargs: Any) -> Board:
    board = Board(**kwargs)
    board.columns = default_columns(board.id)
    board.tasks = list(tasks)
    return board


def make_task(task_id: str, column_id: str = "todo", position: int = 0, **kwargs: Any) -> Task:
    return Task(id=task_id, title=f"Task {task_id}", column_id=column_id, position=position, **kwargs)


@pytest.fixture
def board() -> Board:
    return make_board(
        make_task("t1", "todo", 0, created_at="2024-01-01T00:00:00+00:00"),
        make_task("t2", "todo", 1, created_at="2024-01-02T00:00:00+00:00"),
        make_task("t3", "todo", 2, created_at="2024-01-03T00:00:00+00:00"),
        make_task("t4", "todo", 3, created_at="2024-01-04T00:00:00+00:00"),
    )
