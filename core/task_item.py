"""Task record model.

A TaskItem is immutable by convention: the store never edits a record in
place, it swaps in a `touched()` copy. Snapshots taken for history are deep
copies so callers poking at a record object can never rewrite the past.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .errors import ValidationError
from .status import TaskPriority, TaskStatus, normalize_priority, normalize_status

CustomValue = Union[str, int, float, bool]
Snapshot = Tuple["TaskItem", ...]

EDITABLE_FIELDS = frozenset({"title", "description", "status", "priority", "position", "custom_fields"})
SYSTEM_FIELDS = frozenset({"id", "created_at", "updated_at"})

# Older exports used camelCase keys.
_LEGACY_KEYS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "customFields": "custom_fields",
}


def now_iso(moment: Optional[datetime] = None) -> str:
    """Return a UTC ISO-8601 timestamp with fixed microsecond precision.

    The fixed width keeps string order identical to time order, so timestamps
    can be compared without parsing.
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Any, *, field_name: str = "timestamp") -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        raw = str(value or "").strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"invalid timestamp: {value!r}", field_name) from None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TaskItem:
    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: TaskPriority = TaskPriority.NONE
    created_at: str = ""
    updated_at: str = ""
    position: Optional[int] = None  # Manual order inside a priority column (set by reorder)
    custom_fields: Dict[str, CustomValue] = field(default_factory=dict)

    def touched(self, now: str, **changes: Any) -> "TaskItem":
        """Return a copy with `changes` applied and updated_at refreshed.

        updated_at never moves backwards, even if the clock does.
        """
        updated = now if now > self.updated_at else self.updated_at
        if "custom_fields" in changes:
            changes["custom_fields"] = dict(changes["custom_fields"])
        else:
            changes["custom_fields"] = dict(self.custom_fields)
        return replace(self, updated_at=updated, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "position": self.position,
            "custom_fields": dict(self.custom_fields),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskItem":
        """Rebuild a record from its plain-dict form (persisted or exported)."""
        if not isinstance(data, Mapping):
            raise ValidationError("task entry must be a mapping")
        payload: Dict[str, Any] = {}
        for key, value in data.items():
            payload[_LEGACY_KEYS.get(key, key)] = value

        task_id = str(payload.get("id") or "").strip()
        if not task_id:
            raise ValidationError("id is required", "id")

        editable = {k: v for k, v in payload.items() if k in EDITABLE_FIELDS and v is not None}
        clean = validate_fields(editable, partial=False)

        created_raw = payload.get("created_at")
        created = now_iso(parse_timestamp(created_raw, field_name="created_at")) if created_raw else now_iso()
        updated_raw = payload.get("updated_at")
        updated = now_iso(parse_timestamp(updated_raw, field_name="updated_at")) if updated_raw else created
        if updated < created:
            updated = created
        return cls(id=task_id, created_at=created, updated_at=updated, **clean)


def _clean_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("title must be a non-empty string", "title")
    return value.strip()


def _clean_position(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"position must be an integer, got {value!r}", "position")
    if value < 0:
        raise ValidationError("position must be >= 0", "position")
    return value


def _clean_custom_fields(value: Any) -> Dict[str, CustomValue]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError("custom_fields must be a mapping", "custom_fields")
    out: Dict[str, CustomValue] = {}
    for key, raw in value.items():
        if not isinstance(key, str) or not key.strip():
            raise ValidationError(f"custom field name must be a non-empty string, got {key!r}", "custom_fields")
        if not isinstance(raw, (str, int, float, bool)):
            raise ValidationError(
                f"custom field {key!r} must be a string, number or boolean",
                "custom_fields",
            )
        name = key.strip()
        if name in out:
            raise ValidationError(f"duplicate custom field {name!r}", "custom_fields")
        out[name] = raw
    return out


def validate_fields(fields: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
    """Normalize a create (partial=False) or update (partial=True) payload.

    Raises ValidationError on the first problem; nothing is applied by the
    caller in that case. Store-managed fields (id, timestamps) are rejected.
    """
    if not isinstance(fields, Mapping):
        raise ValidationError("fields must be a mapping")
    data = {_LEGACY_KEYS.get(k, k): v for k, v in fields.items()}
    for key in data:
        if key in SYSTEM_FIELDS:
            raise ValidationError(f"{key} is managed by the store", key)
        if key not in EDITABLE_FIELDS:
            raise ValidationError(f"unknown field {key!r}", key)

    clean: Dict[str, Any] = {}
    if "title" in data:
        clean["title"] = _clean_title(data["title"])
    elif not partial:
        raise ValidationError("title is required", "title")

    if "description" in data:
        description = data["description"]
        if description is None:
            description = ""
        if not isinstance(description, str):
            raise ValidationError("description must be a string", "description")
        clean["description"] = description
    if "status" in data:
        clean["status"] = normalize_status(data["status"])
    if "priority" in data:
        clean["priority"] = normalize_priority(data["priority"])
    if "position" in data:
        clean["position"] = _clean_position(data["position"])
    if "custom_fields" in data:
        clean["custom_fields"] = _clean_custom_fields(data["custom_fields"])

    if not partial:
        clean.setdefault("description", "")
        clean.setdefault("status", TaskStatus.NOT_STARTED)
        clean.setdefault("priority", TaskPriority.NONE)
        clean.setdefault("position", None)
        clean.setdefault("custom_fields", {})
    return clean


def new_task_item(fields: Mapping[str, Any], *, task_id: str, now: str) -> TaskItem:
    clean = validate_fields(fields, partial=False)
    return TaskItem(id=task_id, created_at=now, updated_at=now, **clean)


def take_snapshot(items: Iterable[TaskItem]) -> Snapshot:
    """Deep, independent copy of a collection."""
    return tuple(copy.deepcopy(list(items)))


__all__ = [
    "CustomValue",
    "Snapshot",
    "TaskItem",
    "EDITABLE_FIELDS",
    "SYSTEM_FIELDS",
    "now_iso",
    "parse_timestamp",
    "new_task_id",
    "new_task_item",
    "take_snapshot",
    "validate_fields",
]
