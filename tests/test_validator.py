"""Tests for raw record validation (board/validator.py)."""

from __future__ import annotations

import pytest

from taskboard_engine.board.errors import MissingRequiredField
from taskboard_engine.board.model import DependencyStatus, EnergyLevel, TaskPriority, TaskStatus
from taskboard_engine.board.validator import RawTaskRecord, TaskDataValidator
from taskboard_engine.config import EngineSettings


@pytest.fixture
def validator() -> TaskDataValidator:
    return TaskDataValidator()


class TestRequiredFields:
    def test_missing_id(self, validator: TaskDataValidator) -> None:
        with pytest.raises(MissingRequiredField) as exc:
            validator.validate_task({"title": "x"})
        assert exc.value.field == "id"

    def test_missing_title(self, validator: TaskDataValidator) -> None:
        with pytest.raises(MissingRequiredField) as exc:
            validator.validate_task({"id": "t1", "title": "   "})
        assert exc.value.field == "title"
        assert "t1" in str(exc.value)

    def test_non_mapping(self, validator: TaskDataValidator) -> None:
        with pytest.raises(MissingRequiredField):
            validator.validate_task(["not", "a", "record"])

    def test_numeric_id_is_stringified(self, validator: TaskDataValidator) -> None:
        assert validator.validate_task({"id": 7, "title": "x"}).id == "7"


class TestCoercion:
    def test_unknown_priority_falls_back_with_warning(
        self, validator: TaskDataValidator, log_warnings: list[str]
    ) -> None:
        task = validator.validate_task({"id": "x", "title": "y", "priority": "SUPER-HIGH"})
        assert task.priority == TaskPriority.MEDIUM
        assert any("priority" in m and "SUPER-HIGH" in m for m in log_warnings)

    def test_enum_case_insensitive(self, validator: TaskDataValidator, log_warnings: list[str]) -> None:
        task = validator.validate_task(
            {"id": "x", "title": "y", "priority": "HIGH", "energy_level": " XL ", "status": "In_Progress"}
        )
        assert task.priority == TaskPriority.HIGH
        assert task.energy_level == EnergyLevel.XL
        assert task.status == TaskStatus.IN_PROGRESS
        assert log_warnings == []

    def test_missing_field_warning_says_missing(
        self, validator: TaskDataValidator, log_warnings: list[str]
    ) -> None:
        validator.validate_task({"id": "x", "title": "y", "energy_level": "m", "status": "not_started"})
        assert log_warnings == ["Data validation: missing priority on task x, using fallback 'medium'"]

    def test_missing_enums_use_defaults(self, validator: TaskDataValidator) -> None:
        task = validator.validate_task({"id": "x", "title": "y"})
        assert task.priority == TaskPriority.MEDIUM
        assert task.energy_level == EnergyLevel.M
        assert task.status == TaskStatus.NOT_STARTED
        assert task.dependency_status == DependencyStatus.INDEPENDENT

    @pytest.mark.parametrize(
        "raw, expected",
        [(150, 100), (-5, 0), ("42", 42), (None, 0), ("abc", 0), (49.6, 50), (True, 0)],
    )
    def test_value_clamping(self, validator: TaskDataValidator, raw: object, expected: int) -> None:
        task = validator.validate_task({"id": "x", "title": "y", "business_value": raw, "personal_value": raw})
        assert task.business_value == expected
        assert task.personal_value == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [(None, 30), (0, 30), (2, 5), (45, 45), ("90", 90), ("soon", 30), (float("inf"), 30)],
    )
    def test_estimated_duration(self, validator: TaskDataValidator, raw: object, expected: int) -> None:
        assert validator.validate_task({"id": "x", "title": "y", "estimated_duration": raw}).estimated_duration == expected

    def test_settings_override_defaults(self) -> None:
        settings = EngineSettings(default_priority="low", default_estimated_duration=60, min_estimated_duration=10)
        task = TaskDataValidator(settings).validate_task(
            {"id": "x", "title": "y", "priority": "nope", "estimated_duration": 3}
        )
        assert task.priority == TaskPriority.LOW
        assert task.estimated_duration == 10

    def test_negative_position(self, validator: TaskDataValidator) -> None:
        assert validator.validate_task({"id": "x", "title": "y", "position": -3}).position == 0

    def test_collections_normalized(self, validator: TaskDataValidator, log_warnings: list[str]) -> None:
        task = validator.validate_task(
            {"id": "x", "title": "y", "tags": ["a", "a", " b ", None, ""], "comments": "oops"}
        )
        assert task.tags == ["a", "b"]
        assert task.comments == []
        assert any("comments" in m for m in log_warnings)

    def test_self_parent_becomes_none(self, validator: TaskDataValidator) -> None:
        assert validator.validate_task({"id": "x", "title": "y", "parent_id": "x"}).parent_id is None

    def test_column_falls_back_to_status(self, validator: TaskDataValidator) -> None:
        task = validator.validate_task({"id": "x", "title": "y", "status": "in_progress"})
        assert task.column_id == "in_progress"

    def test_ai_insights_default(self, validator: TaskDataValidator) -> None:
        task = validator.validate_task({"id": "x", "title": "y", "ai_insights": "junk"})
        assert task.ai_insights["completion_probability"] == 75

    def test_extra_fields_tolerated(self) -> None:
        rec = TaskDataValidator.parse({"id": "x", "title": "y", "legacy_flag": True})
        assert isinstance(rec, RawTaskRecord)
        assert rec.id == "x"


class TestSubTasks:
    def test_subtasks_sorted_and_renumbered(self, validator: TaskDataValidator, log_warnings: list[str]) -> None:
        task = validator.validate_task(
            {
                "id": "x",
                "title": "y",
                "priority": "high",
                "energy_level": "s",
                "status": "in_progress",
                "sub_tasks": [
                    {"id": "s2", "title": "second", "position": 5},
                    {"id": "s1", "title": "first", "position": 1, "completed": True},
                    {"id": "bad"},
                    "junk",
                ],
            }
        )
        assert [s.id for s in task.sub_tasks] == ["s1", "s2"]
        assert [s.position for s in task.sub_tasks] == [0, 1]
        assert task.sub_tasks[0].is_completed
        assert all(s.task_id == "x" for s in task.sub_tasks)
        assert len(log_warnings) == 2


class TestBatch:
    def test_bad_records_reported_not_fatal(self, validator: TaskDataValidator) -> None:
        report = validator.validate_tasks(
            [
                {"id": "a", "title": "ok"},
                {"title": "no id"},
                {"id": "a", "title": "dup"},
                {"id": "b", "title": "also ok"},
            ]
        )
        assert [t.id for t in report.valid] == ["a", "b"]
        assert [(r.index, r.field) for r in report.rejected] == [(1, "id"), (2, "id")]
        assert not report.ok

    def test_non_sequence(self, validator: TaskDataValidator, log_warnings: list[str]) -> None:
        report = validator.validate_tasks({"id": "a"})
        assert report.valid == []
        assert report.ok
        assert log_warnings

    def test_board_id_default(self, validator: TaskDataValidator) -> None:
        report = validator.validate_tasks([{"id": "a", "title": "ok"}], board_id="b1")
        assert report.valid[0].board_id == "b1"


class TestColumns:
    def test_validate_column(self, validator: TaskDataValidator) -> None:
        column = validator.validate_column(
            {"id": "review", "name": "Review", "is_completion_column": "true", "task_limit": 0}, index=3
        )
        assert column.position == 3
        assert column.is_completion_column
        assert column.task_limit is None

    def test_column_requires_name(self, validator: TaskDataValidator) -> None:
        report = validator.validate_columns([{"id": "c1"}, {"id": "c2", "name": "Two"}])
        assert [c.id for c in report.valid] == ["c2"]
        assert report.rejected[0].field == "name"
