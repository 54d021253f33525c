from enum import Enum
from typing import Final, Tuple, Union

from .errors import ValidationError


class TaskStatus(str, Enum):
    NOT_STARTED = "not started"
    IN_PROGRESS = "in progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Board columns are laid out in this order, lowest priority first.
PRIORITY_ORDER: Final[Tuple[TaskPriority, ...]] = (
    TaskPriority.NONE,
    TaskPriority.LOW,
    TaskPriority.MEDIUM,
    TaskPriority.HIGH,
    TaskPriority.URGENT,
)


def _token(value: str) -> str:
    return " ".join((value or "").strip().lower().replace("_", " ").replace("-", " ").split())


def normalize_status(value: Union[str, TaskStatus], *, field: str = "status") -> TaskStatus:
    """Normalize status input to TaskStatus.

    Accepts members or strings; "in_progress", "In-Progress" and "in progress"
    all map to IN_PROGRESS.
    """
    if isinstance(value, TaskStatus):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"invalid status: {value!r}", field)
    token = _token(value)
    for status in TaskStatus:
        if status.value == token:
            return status
    raise ValidationError(f"invalid status: {value!r}", field)


def normalize_priority(value: Union[str, TaskPriority], *, field: str = "priority") -> TaskPriority:
    """Normalize priority input to TaskPriority (case-insensitive)."""
    if isinstance(value, TaskPriority):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"invalid priority: {value!r}", field)
    token = _token(value)
    for priority in TaskPriority:
        if priority.value == token:
            return priority
    raise ValidationError(f"invalid priority: {value!r}", field)


__all__ = [
    "TaskStatus",
    "TaskPriority",
    "PRIORITY_ORDER",
    "normalize_status",
    "normalize_priority",
]
