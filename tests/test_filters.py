"""Tests for filtered and sorted task views (board/filters.py)."""

from __future__ import annotations

from taskboard_engine.board.filters import SortField, TaskFilters, TaskSort, apply_view
from taskboard_engine.board.model import EnergyLevel, Task, TaskPriority, TaskStatus


def _tasks() -> list[Task]:
    return [
        Task(id="a", title="Write docs", priority=TaskPriority.LOW, tags=["docs"], due_date="2024-05-01",
             business_value=10, column_id="todo", position=1),
        Task(id="b", title="Fix login", description="OAuth callback fails", priority=TaskPriority.URGENT,
             energy_level=EnergyLevel.XS, tags=["auth", "bug"], business_value=90, column_id="todo", position=0),
        Task(id="c", title="Plan sprint", status=TaskStatus.COMPLETED, due_date="2024-04-01",
             business_value=50, column_id="done"),
    ]


class TestFilters:
    def test_empty_filters_match_all(self) -> None:
        assert len(apply_view(_tasks())) == 3

    def test_search_covers_description_and_tags(self) -> None:
        assert [t.id for t in apply_view(_tasks(), TaskFilters(search="oauth"))] == ["b"]
        assert [t.id for t in apply_view(_tasks(), TaskFilters(search="DOCS"))] == ["a"]

    def test_combined_criteria(self) -> None:
        filters = TaskFilters(priorities=[TaskPriority.URGENT, TaskPriority.LOW], column_id="todo", tags=["bug"])
        assert [t.id for t in apply_view(_tasks(), filters)] == ["b"]

    def test_status_and_energy(self) -> None:
        assert [t.id for t in apply_view(_tasks(), TaskFilters(statuses=[TaskStatus.COMPLETED]))] == ["c"]
        assert [t.id for t in apply_view(_tasks(), TaskFilters(energy_levels=[EnergyLevel.XS]))] == ["b"]


class TestSort:
    def test_priority_descending(self) -> None:
        view = apply_view(_tasks(), sort=TaskSort(SortField.PRIORITY, descending=True))
        assert [t.id for t in view] == ["b", "c", "a"]

    def test_due_date_undated_last(self) -> None:
        view = apply_view(_tasks(), sort=TaskSort(SortField.DUE_DATE))
        assert [t.id for t in view] == ["c", "a", "b"]
        view = apply_view(_tasks(), sort=TaskSort(SortField.DUE_DATE, descending=True))
        assert [t.id for t in view] == ["a", "c", "b"]

    def test_business_value(self) -> None:
        view = apply_view(_tasks(), sort=TaskSort(SortField.BUSINESS_VALUE))
        assert [t.id for t in view] == ["a", "c", "b"]

    def test_view_does_not_reposition(self) -> None:
        tasks = _tasks()
        apply_view(tasks, sort=TaskSort(SortField.PRIORITY))
        assert [t.position for t in tasks] == [1, 0, 0]
