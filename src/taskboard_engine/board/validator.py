"""Normalize untrusted task and column records into board entities.

Raw records (arbitrary JSON-like data from storage) are parsed into the
permissive :class:`RawTaskRecord` first; :class:`TaskDataValidator` then builds
the strict :class:`~.model.Task`.  Bad enum values and out-of-range numbers are
corrected with a logged warning; only a missing ``id`` or ``title`` rejects a
record.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict

from ..config import EngineSettings
from ..constants import DEFAULT_BOARD_ID, VALUE_MAX, VALUE_MIN
from ..utils import _now_iso
from .errors import MissingRequiredField
from .model import (
    Column,
    DependencyStatus,
    EnergyLevel,
    SubTask,
    Task,
    TaskPriority,
    TaskStatus,
    default_ai_insights,
)


class RawTaskRecord(BaseModel):
    """Loose view of an inbound task row; every field may be absent or malformed."""

    model_config = ConfigDict(extra="allow")

    id: Any = None
    title: Any = None
    description: Any = None
    task_number: Any = None
    board_id: Any = None
    column_id: Any = None
    user_id: Any = None
    position: Any = None
    priority: Any = None
    energy_level: Any = None
    status: Any = None
    business_value: Any = None
    personal_value: Any = None
    estimated_duration: Any = None
    progress_percentage: Any = None
    due_date: Any = None
    parent_id: Any = None
    has_children: Any = None
    dependency_status: Any = None
    tags: Any = None
    sub_tasks: Any = None
    dependencies: Any = None
    attachments: Any = None
    comments: Any = None
    time_tracking: Any = None
    goal_connections: Any = None
    ai_insights: Any = None
    completion_date: Any = None
    created_at: Any = None
    updated_at: Any = None


class RawColumnRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Any = None
    board_id: Any = None
    name: Any = None
    position: Any = None
    is_completion_column: Any = None
    color: Any = None
    description: Any = None
    task_limit: Any = None


@dataclass
class RejectedRecord:
    """A record dropped from a batch, with the reason it was dropped."""

    index: int
    field: str
    message: str
    record: Any = None


@dataclass
class ValidationReport:
    """Outcome of a batch validation: survivors in input order plus rejections."""

    valid: list[Any] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _required_text(raw: Any, field_name: str, record: Any) -> str:
    if raw is None or isinstance(raw, (dict, list)):
        raise MissingRequiredField(field_name, record)
    text = str(raw).strip()
    if not text:
        raise MissingRequiredField(field_name, record)
    return text


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y", "t"}
    return bool(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class TaskDataValidator:
    """Validate and normalize task data so the board never sees malformed tasks."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or EngineSettings()

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    @staticmethod
    def _warn(record_id: str, field_name: str, value: Any, fallback: Any) -> None:
        if value is None:
            logger.warning(
                "Data validation: missing {} on task {}, using fallback {!r}", field_name, record_id, fallback
            )
            return
        logger.warning(
            "Data validation: invalid {} {!r} on task {}, using fallback {!r}",
            field_name,
            value,
            record_id,
            fallback,
        )

    # ------------------------------------------------------------------
    # Field coercion
    # ------------------------------------------------------------------

    def _enum_field(
        self, record_id: str, field_name: str, raw: Any, enum_cls: type, default: str
    ) -> Any:
        if isinstance(raw, enum_cls):
            return raw
        if isinstance(raw, str):
            candidate = raw.strip().lower()
            if candidate in {e.value for e in enum_cls}:
                return enum_cls(candidate)
        self._warn(record_id, field_name, raw, default)
        return enum_cls(default)

    def _ranged_field(self, record_id: str, field_name: str, raw: Any) -> int:
        number = _to_number(raw)
        if number is None:
            if raw is not None:
                self._warn(record_id, field_name, raw, VALUE_MIN)
            return VALUE_MIN
        clamped = max(VALUE_MIN, min(VALUE_MAX, number))
        if clamped != number:
            self._warn(record_id, field_name, raw, int(clamped))
        return int(round(clamped))

    def _duration_field(self, record_id: str, raw: Any) -> int:
        default = self.settings.default_estimated_duration
        minimum = self.settings.min_estimated_duration
        number = _to_number(raw)
        if number is None or number == 0 or math.isinf(number):
            if raw is not None and number != 0:
                self._warn(record_id, "estimated_duration", raw, default)
            return default
        if number < minimum:
            self._warn(record_id, "estimated_duration", raw, minimum)
            return minimum
        return int(round(number))

    def _position_field(self, record_id: str, raw: Any) -> int:
        number = _to_number(raw)
        if number is None or math.isinf(number):
            if raw is not None:
                self._warn(record_id, "position", raw, 0)
            return 0
        if number < 0:
            self._warn(record_id, "position", raw, 0)
            return 0
        return int(number)

    def _list_field(self, record_id: str, field_name: str, raw: Any) -> list[Any]:
        if isinstance(raw, (list, tuple)):
            return list(raw)
        if raw is not None:
            self._warn(record_id, field_name, raw, [])
        return []

    def _tags_field(self, record_id: str, raw: Any) -> list[str]:
        tags: list[str] = []
        for tag in self._list_field(record_id, "tags", raw):
            if tag is None:
                continue
            text = str(tag).strip()
            if text and text not in tags:
                tags.append(text)
        return tags

    def _sub_tasks_field(self, record_id: str, raw: Any) -> list[SubTask]:
        entries: list[tuple[float, int, SubTask]] = []
        for index, item in enumerate(self._list_field(record_id, "sub_tasks", raw)):
            if not isinstance(item, Mapping):
                logger.warning("Data validation: dropping non-object subtask #{} on task {}", index, record_id)
                continue
            sub_id = _optional_text(item.get("id"))
            title = _optional_text(item.get("title"))
            if not sub_id or not title or not title.strip():
                logger.warning(
                    "Data validation: dropping subtask #{} on task {} without id/title", index, record_id
                )
                continue
            completed_raw = item.get("is_completed", item.get("completed", False))
            order = _to_number(item.get("position"))
            sub = SubTask(
                id=sub_id,
                task_id=record_id,
                title=title.strip(),
                is_completed=_to_bool(completed_raw),
                description=str(item.get("description") or ""),
                created_at=str(item.get("created_at") or _now_iso()),
                completed_at=_optional_text(item.get("completed_at")),
            )
            entries.append((order if order is not None else float(index), index, sub))
        entries.sort(key=lambda e: (e[0], e[1]))
        subs: list[SubTask] = []
        for position, (_, _, sub) in enumerate(entries):
            sub.position = position
            subs.append(sub)
        return subs

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def parse(raw: Any) -> RawTaskRecord:
        """Parse *raw* into the permissive intermediate record."""
        if isinstance(raw, RawTaskRecord):
            return raw
        if not isinstance(raw, Mapping):
            raise MissingRequiredField("id", raw)
        return RawTaskRecord.model_validate({str(k): v for k, v in raw.items()})

    def validate_task(self, raw: Any, *, board_id: Optional[str] = None) -> Task:
        """Validate and normalize a single task record.

        Raises:
            MissingRequiredField: The record has no usable ``id`` or ``title``.
        """
        rec = self.parse(raw)
        task_id = _required_text(rec.id, "id", raw)
        title = _required_text(rec.title, "title", raw)

        priority = self._enum_field(task_id, "priority", rec.priority, TaskPriority, self.settings.default_priority)
        energy = self._enum_field(
            task_id, "energy_level", rec.energy_level, EnergyLevel, self.settings.default_energy_level
        )
        status = self._enum_field(task_id, "status", rec.status, TaskStatus, self.settings.default_status)

        dependency_status = DependencyStatus.INDEPENDENT
        if rec.dependency_status is not None:
            dependency_status = self._enum_field(
                task_id, "dependency_status", rec.dependency_status, DependencyStatus, "independent"
            )

        parent_id = _optional_text(rec.parent_id)
        if parent_id == task_id:
            parent_id = None

        ai_insights = rec.ai_insights
        if isinstance(ai_insights, Mapping):
            ai_insights = dict(ai_insights)
        else:
            if ai_insights is not None:
                self._warn(task_id, "ai_insights", ai_insights, "default insights")
            ai_insights = default_ai_insights()

        now = _now_iso()
        return Task(
            id=task_id,
            title=title,
            description=str(rec.description or ""),
            task_number=_optional_text(rec.task_number),
            board_id=_optional_text(rec.board_id) or board_id or DEFAULT_BOARD_ID,
            column_id=_optional_text(rec.column_id) or status.value,
            position=self._position_field(task_id, rec.position),
            user_id=str(rec.user_id or ""),
            priority=priority,
            energy_level=energy,
            tags=self._tags_field(task_id, rec.tags),
            business_value=self._ranged_field(task_id, "business_value", rec.business_value),
            personal_value=self._ranged_field(task_id, "personal_value", rec.personal_value),
            estimated_duration=self._duration_field(task_id, rec.estimated_duration),
            due_date=_optional_text(rec.due_date),
            parent_id=parent_id,
            has_children=_to_bool(rec.has_children),
            dependency_status=dependency_status,
            sub_tasks=self._sub_tasks_field(task_id, rec.sub_tasks),
            progress_percentage=self._ranged_field(task_id, "progress_percentage", rec.progress_percentage),
            status=status,
            completion_date=_optional_text(rec.completion_date),
            created_at=_optional_text(rec.created_at) or now,
            updated_at=_optional_text(rec.updated_at) or now,
            dependencies=self._list_field(task_id, "dependencies", rec.dependencies),
            attachments=self._list_field(task_id, "attachments", rec.attachments),
            comments=self._list_field(task_id, "comments", rec.comments),
            time_tracking=self._list_field(task_id, "time_tracking", rec.time_tracking),
            goal_connections=self._list_field(task_id, "goal_connections", rec.goal_connections),
            ai_insights=ai_insights,
        )

    def validate_tasks(self, raws: Any, *, board_id: Optional[str] = None) -> ValidationReport:
        """Validate a batch; bad records are dropped and reported, never fatal."""
        report = ValidationReport()
        if not isinstance(raws, (list, tuple)):
            logger.warning("Data validation: tasks is not a sequence ({}), returning empty batch", type(raws).__name__)
            return report

        seen: set[str] = set()
        for index, raw in enumerate(raws):
            try:
                task = self.validate_task(raw, board_id=board_id)
            except MissingRequiredField as exc:
                logger.warning("Data validation: failed to validate task at index {}: {}", index, exc)
                report.rejected.append(RejectedRecord(index, exc.field, str(exc), raw))
                continue
            if task.id in seen:
                message = f"Duplicate task id {task.id!r}"
                logger.warning("Data validation: dropping task at index {}: {}", index, message)
                report.rejected.append(RejectedRecord(index, "id", message, raw))
                continue
            seen.add(task.id)
            report.valid.append(task)
        return report

    def validate_column(self, raw: Any, *, board_id: Optional[str] = None, index: int = 0) -> Column:
        """Validate a single column record; ``position`` falls back to *index*."""
        if not isinstance(raw, Mapping):
            raise MissingRequiredField("id", raw)
        rec = RawColumnRecord.model_validate({str(k): v for k, v in raw.items()})
        column_id = _required_text(rec.id, "id", raw)
        name = _required_text(rec.name, "name", raw)

        position = _to_number(rec.position)
        if position is None or math.isinf(position) or position < 0:
            position = float(index)
        limit = _to_number(rec.task_limit)
        task_limit = int(limit) if limit is not None and not math.isinf(limit) and limit > 0 else None
        return Column(
            id=column_id,
            board_id=_optional_text(rec.board_id) or board_id or DEFAULT_BOARD_ID,
            name=name,
            position=int(position),
            is_completion_column=_to_bool(rec.is_completion_column),
            color=str(rec.color or "gray"),
            description=str(rec.description or ""),
            task_limit=task_limit,
        )

    def validate_columns(self, raws: Any, *, board_id: Optional[str] = None) -> ValidationReport:
        report = ValidationReport()
        if not isinstance(raws, (list, tuple)):
            logger.warning("Data validation: columns is not a sequence ({}), returning empty batch", type(raws).__name__)
            return report
        seen: set[str] = set()
        for index, raw in enumerate(raws):
            try:
                column = self.validate_column(raw, board_id=board_id, index=index)
            except MissingRequiredField as exc:
                logger.warning("Data validation: failed to validate column at index {}: {}", index, exc)
                report.rejected.append(RejectedRecord(index, exc.field, str(exc), raw))
                continue
            if column.id in seen:
                message = f"Duplicate column id {column.id!r}"
                logger.warning("Data validation: dropping column at index {}: {}", index, message)
                report.rejected.append(RejectedRecord(index, "id", message, raw))
                continue
            seen.add(column.id)
            report.valid.append(column)
        return report
