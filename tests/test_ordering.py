"""Tests for dense column ordering (board/ordering.py)."""

from __future__ import annotations

import pytest

from taskboard_engine.board.errors import CrossBoardMoveError
from taskboard_engine.board.model import Board, Column
from taskboard_engine.board.ordering import OrderingEngine

from conftest import make_board, make_task


@pytest.fixture
def ordering() -> OrderingEngine:
    return OrderingEngine()


def _ids(ordering: OrderingEngine, board: Board, column_id: str) -> list[str]:
    return [t.id for t in ordering.column_sequence(board, column_id)]


class TestReorderWithinColumn:
    def test_move_to_front(self, ordering: OrderingEngine) -> None:
        board = make_board(make_task("T1", "a", 0), make_task("T2", "a", 1), make_task("T3", "a", 2))
        board.columns.append(Column(id="a", name="A", position=9))
        ordering.reorder_within_column(board, "a", "T3", 0)
        assert [(t.id, t.position) for t in ordering.column_sequence(board, "a")] == [
            ("T3", 0),
            ("T1", 1),
            ("T2", 2),
        ]

    def test_move_to_end(self, ordering: OrderingEngine, board: Board) -> None:
        ordering.reorder_within_column(board, "todo", "t1", 3)
        assert _ids(ordering, board, "todo") == ["t2", "t3", "t4", "t1"]
        assert ordering.is_dense(board, "todo")

    def test_index_is_clamped(self, ordering: OrderingEngine, board: Board) -> None:
        ordering.reorder_within_column(board, "todo", "t2", 99)
        assert _ids(ordering, board, "todo") == ["t1", "t3", "t4", "t2"]
        ordering.reorder_within_column(board, "todo", "t2", -4)
        assert _ids(ordering, board, "todo") == ["t2", "t1", "t3", "t4"]

    def test_same_index_is_noop(self, ordering: OrderingEngine, board: Board) -> None:
        before = {t.id: t.updated_at for t in board.tasks}
        ordering.reorder_within_column(board, "todo", "t2", 1)
        assert _ids(ordering, board, "todo") == ["t1", "t2", "t3", "t4"]
        assert {t.id: t.updated_at for t in board.tasks} == before


class TestMoveAcrossColumns:
    def test_move_to_empty_column(self, ordering: OrderingEngine, board: Board) -> None:
        task = ordering.move_across_columns(board, "t2", "done", 0)
        assert task.column_id == "done"
        assert task.position == 0
        assert ordering.positions(board, "todo") == [0, 1, 2]
        assert _ids(ordering, board, "todo") == ["t1", "t3", "t4"]
        assert _ids(ordering, board, "done") == ["t2"]

    def test_insert_in_middle(self, ordering: OrderingEngine, board: Board) -> None:
        ordering.move_across_columns(board, "t1", "done", 0)
        ordering.move_across_columns(board, "t2", "done", 5)
        ordering.move_across_columns(board, "t3", "done", 1)
        assert _ids(ordering, board, "done") == ["t1", "t3", "t2"]
        assert ordering.is_dense(board, "done")
        assert _ids(ordering, board, "todo") == ["t4"]
        assert ordering.positions(board, "todo") == [0]

    def test_foreign_column_rejected(self, ordering: OrderingEngine, board: Board) -> None:
        board.columns.append(Column(id="elsewhere", board_id="other", name="Other"))
        with pytest.raises(CrossBoardMoveError):
            ordering.move_across_columns(board, "t1", "elsewhere", 0)
        assert board.get_task("t1").column_id == "todo"

    def test_unknown_column_rejected(self, ordering: OrderingEngine, board: Board) -> None:
        with pytest.raises(CrossBoardMoveError):
            ordering.move_across_columns(board, "t1", "missing", 0)


class TestNormalize:
    def test_gaps_and_duplicates_collapse(self, ordering: OrderingEngine) -> None:
        board = make_board(
            make_task("late", "todo", 4, created_at="2024-03-01T00:00:00+00:00"),
            make_task("early", "todo", 4, created_at="2024-01-01T00:00:00+00:00"),
            make_task("first", "todo", 0),
            make_task("gap", "todo", 10),
        )
        ordering.normalize_board(board)
        assert _ids(ordering, board, "todo") == ["first", "early", "late", "gap"]
        assert ordering.positions(board, "todo") == [0, 1, 2, 3]

    def test_idempotent(self, ordering: OrderingEngine, board: Board) -> None:
        ordering.normalize_board(board)
        assert ordering.normalize_column(board, "todo") == []

    def test_column_positions_renumbered(self, ordering: OrderingEngine) -> None:
        board = make_board()
        for position, column in zip((3, 7, 9, 20), board.columns):
            column.position = position
        ordering.normalize_board(board)
        assert [c.position for c in board.ordered_columns()] == [0, 1, 2, 3]

    def test_append_and_remove(self, ordering: OrderingEngine, board: Board) -> None:
        new = make_task("t5", "todo", 0)
        board.tasks.append(new)
        ordering.append_to_column(board, new)
        assert new.position == 4

        ordering.remove_from_column(board, board.get_task("t2"))
        board.tasks = [t for t in board.tasks if t.id != "t2"]
        assert _ids(ordering, board, "todo") == ["t1", "t3", "t4", "t5"]
        assert ordering.is_dense(board, "todo")
