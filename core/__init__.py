from .errors import ValidationError
from .status import (
    PRIORITY_ORDER,
    TaskPriority,
    TaskStatus,
    normalize_priority,
    normalize_status,
)
from .task_item import (
    Snapshot,
    TaskItem,
    new_task_id,
    new_task_item,
    now_iso,
    take_snapshot,
    validate_fields,
)

__all__ = [
    "ValidationError",
    "TaskStatus",
    "TaskPriority",
    "PRIORITY_ORDER",
    "normalize_status",
    "normalize_priority",
    "Snapshot",
    "TaskItem",
    "new_task_id",
    "new_task_item",
    "now_iso",
    "take_snapshot",
    "validate_fields",
]
