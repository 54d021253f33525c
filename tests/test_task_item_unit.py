"""Unit tests for the task record model and field validation."""

from datetime import datetime, timezone

import pytest

from core import TaskItem, TaskPriority, TaskStatus, ValidationError, new_task_item, now_iso, take_snapshot
from core.status import normalize_priority, normalize_status
from core.task_item import validate_fields


NOW = "2024-01-01T12:00:00.000000+00:00"
LATER = "2024-01-01T12:00:05.000000+00:00"


class TestNormalize:
    def test_status_accepts_common_spellings(self):
        assert normalize_status("in_progress") is TaskStatus.IN_PROGRESS
        assert normalize_status("In-Progress") is TaskStatus.IN_PROGRESS
        assert normalize_status("not started") is TaskStatus.NOT_STARTED
        assert normalize_status(TaskStatus.COMPLETED) is TaskStatus.COMPLETED

    def test_priority_is_case_insensitive(self):
        assert normalize_priority("URGENT") is TaskPriority.URGENT

    def test_unknown_values_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_status("blocked")
        assert exc.value.field == "status"
        with pytest.raises(ValidationError):
            normalize_priority(3)


class TestValidateFields:
    def test_create_requires_title(self):
        with pytest.raises(ValidationError) as exc:
            validate_fields({"description": "x"}, partial=False)
        assert exc.value.field == "title"

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            validate_fields({"title": "   "}, partial=False)

    def test_title_is_trimmed_and_defaults_filled(self):
        clean = validate_fields({"title": "  Write spec  "}, partial=False)
        assert clean["title"] == "Write spec"
        assert clean["status"] is TaskStatus.NOT_STARTED
        assert clean["priority"] is TaskPriority.NONE
        assert clean["custom_fields"] == {}

    def test_partial_leaves_missing_fields_out(self):
        assert validate_fields({"status": "completed"}, partial=True) == {"status": TaskStatus.COMPLETED}

    def test_system_fields_rejected(self):
        for key in ("id", "created_at", "updatedAt"):
            with pytest.raises(ValidationError):
                validate_fields({key: "x"}, partial=True)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            validate_fields({"colour": "red"}, partial=True)

    def test_position_must_be_non_negative_int(self):
        with pytest.raises(ValidationError):
            validate_fields({"position": -1}, partial=True)
        with pytest.raises(ValidationError):
            validate_fields({"position": True}, partial=True)
        assert validate_fields({"position": 0}, partial=True) == {"position": 0}

    def test_custom_fields_must_be_scalar_and_unique(self):
        assert validate_fields({"customFields": {"estimate": 3}}, partial=True) == {"custom_fields": {"estimate": 3}}
        with pytest.raises(ValidationError):
            validate_fields({"custom_fields": {"tags": ["a"]}}, partial=True)
        with pytest.raises(ValidationError):
            validate_fields({"custom_fields": {"a": 1, " a ": 2}}, partial=True)


class TestTaskItem:
    def test_new_item_stamps_both_timestamps(self):
        item = new_task_item({"title": "A"}, task_id="t1", now=NOW)
        assert item.created_at == item.updated_at == NOW
        assert item.position is None

    def test_touched_refreshes_updated_at_only(self):
        item = new_task_item({"title": "A"}, task_id="t1", now=NOW)
        changed = item.touched(LATER, title="B")
        assert changed.title == "B"
        assert changed.created_at == NOW
        assert changed.updated_at == LATER
        assert item.title == "A"

    def test_touched_never_moves_updated_at_backwards(self):
        item = new_task_item({"title": "A"}, task_id="t1", now=LATER)
        assert item.touched(NOW, title="B").updated_at == LATER

    def test_touched_copies_custom_fields(self):
        item = new_task_item({"title": "A", "custom_fields": {"k": "v"}}, task_id="t1", now=NOW)
        changed = item.touched(LATER)
        changed.custom_fields["k"] = "other"
        assert item.custom_fields == {"k": "v"}

    def test_dict_roundtrip_uses_plain_values(self):
        item = new_task_item({"title": "A", "priority": "high"}, task_id="t1", now=NOW)
        data = item.to_dict()
        assert data["priority"] == "high"
        assert type(data["priority"]) is str
        assert TaskItem.from_dict(data) == item

    def test_from_dict_accepts_legacy_keys_and_z_suffix(self):
        item = TaskItem.from_dict(
            {"id": "x", "title": "Old", "createdAt": "2024-01-01T00:00:00Z", "updatedAt": "2024-01-02T00:00:00Z"}
        )
        assert item.created_at == "2024-01-01T00:00:00.000000+00:00"
        assert item.updated_at == "2024-01-02T00:00:00.000000+00:00"

    def test_from_dict_requires_id(self):
        with pytest.raises(ValidationError):
            TaskItem.from_dict({"title": "No id"})

    def test_from_dict_clamps_updated_before_created(self):
        item = TaskItem.from_dict(
            {"id": "x", "title": "T", "created_at": "2024-01-02T00:00:00+00:00", "updated_at": "2024-01-01T00:00:00+00:00"}
        )
        assert item.updated_at == item.created_at


def test_now_iso_has_fixed_width():
    stamp = now_iso(datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc))
    assert stamp == "2024-05-06T07:08:09.000000+00:00"


def test_snapshot_is_independent_of_source_records():
    item = new_task_item({"title": "A", "custom_fields": {"k": 1}}, task_id="t1", now=NOW)
    snapshot = take_snapshot([item])
    item.title = "mutated"
    item.custom_fields["k"] = 2
    assert snapshot[0].title == "A"
    assert snapshot[0].custom_fields == {"k": 1}
