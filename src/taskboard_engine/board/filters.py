"""Read-only board views: filter and sort tasks without touching their positions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from ..utils import _timestamp_key
from .model import EnergyLevel, Task, TaskPriority, TaskStatus


class SortField(str, Enum):
    POSITION = "position"
    PRIORITY = "priority"
    DUE_DATE = "due_date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    BUSINESS_VALUE = "business_value"
    PERSONAL_VALUE = "personal_value"
    ESTIMATED_DURATION = "estimated_duration"


@dataclass
class TaskFilters:
    """Criteria a task must all satisfy to stay in the view.

    Empty criteria match everything.
    """

    search: Optional[str] = None
    priorities: list[TaskPriority] = field(default_factory=list)
    energy_levels: list[EnergyLevel] = field(default_factory=list)
    statuses: list[TaskStatus] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    column_id: Optional[str] = None

    def matches(self, task: Task) -> bool:
        if self.column_id is not None and task.column_id != self.column_id:
            return False
        if self.priorities and task.priority not in self.priorities:
            return False
        if self.energy_levels and task.energy_level not in self.energy_levels:
            return False
        if self.statuses and task.status not in self.statuses:
            return False
        if self.tags and not set(self.tags) & set(task.tags):
            return False
        if self.search:
            q = self.search.lower()
            haystack = [task.title.lower(), task.description.lower()]
            haystack.extend(tag.lower() for tag in task.tags)
            if not any(q in text for text in haystack):
                return False
        return True


@dataclass
class TaskSort:
    field: SortField = SortField.POSITION
    descending: bool = False


def _sort_value(task: Task, sort_field: SortField) -> Any:
    if sort_field == SortField.PRIORITY:
        return task.priority.sort_key
    if sort_field in (SortField.CREATED_AT, SortField.UPDATED_AT):
        return _timestamp_key(getattr(task, sort_field.value))
    return getattr(task, sort_field.value)


def apply_view(tasks: Iterable[Task], filters: Optional[TaskFilters] = None, sort: Optional[TaskSort] = None) -> list[Task]:
    """Return the tasks matching *filters*, ordered by *sort*.

    Tasks without a due date always sort last, whichever the direction.
    """
    filters = filters or TaskFilters()
    sort = sort or TaskSort()
    selected = [t for t in tasks if filters.matches(t)]

    if sort.field == SortField.DUE_DATE:
        dated = [t for t in selected if t.due_date]
        undated = [t for t in selected if not t.due_date]
        dated.sort(key=lambda t: _timestamp_key(t.due_date), reverse=sort.descending)
        return dated + undated

    selected.sort(key=lambda t: _sort_value(t, sort.field), reverse=sort.descending)
    return selected
