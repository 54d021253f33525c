"""Read-only list/board projections of the task collection.

Nothing here mutates or caches: every call derives the view from the items it
is given.
"""

from __future__ import annotations

import locale
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from core import PRIORITY_ORDER, TaskItem, TaskPriority, normalize_priority, normalize_status
from core.task_item import parse_timestamp

ALL = "all"


class ViewMode(str, Enum):
    LIST = "list"
    BOARD = "board"

    @classmethod
    def parse(cls, value: Union[str, "ViewMode", None]) -> "ViewMode":
        if isinstance(value, ViewMode):
            return value
        token = str(value or cls.LIST.value).strip().lower()
        if token == "kanban":
            return cls.BOARD
        return cls(token)


class SortField(str, Enum):
    TITLE = "title"
    STATUS = "status"
    PRIORITY = "priority"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"

    @classmethod
    def parse(cls, value: Union[str, "SortField"]) -> "SortField":
        if isinstance(value, SortField):
            return value
        token = str(value or "").strip()
        return cls(_SORT_FIELD_ALIASES.get(token, token.lower()))


_SORT_FIELD_ALIASES = {"createdAt": "created_at", "updatedAt": "updated_at"}
_DATE_FIELDS = frozenset({SortField.CREATED_AT, SortField.UPDATED_AT})


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Union[str, "SortDirection"]) -> "SortDirection":
        if isinstance(value, SortDirection):
            return value
        return cls(str(value or "").strip().lower())

    def flipped(self) -> "SortDirection":
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC


@dataclass(frozen=True)
class FilterConfig:
    status: str = ALL
    priority: str = ALL
    search_term: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FilterConfig":
        """Build from request data; concrete values are normalized (ValidationError on junk)."""
        data = dict(data or {})
        status = str(data.get("status") or ALL)
        priority = str(data.get("priority") or ALL)
        if status.strip().lower() != ALL:
            status = normalize_status(status).value
        else:
            status = ALL
        if priority.strip().lower() != ALL:
            priority = normalize_priority(priority).value
        else:
            priority = ALL
        search = data.get("search_term", data.get("searchTerm", "")) or ""
        return cls(status=status, priority=priority, search_term=str(search))


@dataclass(frozen=True)
class SortConfig:
    field: SortField = SortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC

    def with_field(
        self,
        field: Union[str, SortField],
        direction: Union[str, SortDirection, None] = None,
    ) -> "SortConfig":
        """Pick a sort column the way a clickable table header does.

        Re-selecting the current field without a direction toggles the
        direction; a new field keeps the current direction unless one is given.
        """
        target = SortField.parse(field)
        if direction is not None:
            return SortConfig(target, SortDirection.parse(direction))
        if target is self.field:
            return SortConfig(target, self.direction.flipped())
        return SortConfig(target, self.direction)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SortConfig":
        data = dict(data or {})
        default = cls()
        sort_field = SortField.parse(data["field"]) if data.get("field") else default.field
        direction = SortDirection.parse(data["direction"]) if data.get("direction") else default.direction
        return cls(sort_field, direction)


# ---- filtering ----


def matches_filter(item: TaskItem, config: FilterConfig, *, view: ViewMode = ViewMode.LIST) -> bool:
    """Status AND priority (list view only) AND case-insensitive title search."""
    if config.status != ALL and item.status.value != config.status:
        return False
    # Board columns already split by priority; the priority filter would empty them.
    if view is ViewMode.LIST and config.priority != ALL and item.priority.value != config.priority:
        return False
    term = config.search_term.casefold()
    if term and term not in item.title.casefold():
        return False
    return True


def filter_items(
    items: Iterable[TaskItem],
    config: FilterConfig,
    *,
    view: ViewMode = ViewMode.LIST,
) -> List[TaskItem]:
    return [item for item in items if matches_filter(item, config, view=view)]


# ---- sorting ----


def _sort_value(item: TaskItem, sort_field: SortField) -> Optional[Any]:
    """Comparable key for one record, or None when the value cannot be ordered."""
    raw = getattr(item, sort_field.value, None)
    if sort_field in _DATE_FIELDS:
        if not raw:
            return None
        try:
            return parse_timestamp(raw, field_name=sort_field.value)
        except ValueError:
            return None
    if isinstance(raw, Enum):
        raw = raw.value
    if not isinstance(raw, str):
        return None
    return locale.strxfrm(raw.casefold())


def sort_items(items: Iterable[TaskItem], config: SortConfig) -> List[TaskItem]:
    """Stable sort; records without a usable value go last in either direction."""
    keyed: List[Tuple[Any, TaskItem]] = []
    invalid: List[TaskItem] = []
    for item in items:
        value = _sort_value(item, config.field)
        if value is None:
            invalid.append(item)
        else:
            keyed.append((value, item))
    reverse = config.direction is SortDirection.DESC
    # reverse=True keeps equal keys in input order
    keyed.sort(key=lambda pair: pair[0], reverse=reverse)
    return [item for _, item in keyed] + invalid


# ---- board grouping ----


def group_by_priority(items: Iterable[TaskItem]) -> Dict[TaskPriority, List[TaskItem]]:
    """Bucket records into board columns in PRIORITY_ORDER.

    Inside a column, manually positioned records come first by position,
    the rest follow in collection order.
    """
    columns: Dict[TaskPriority, List[TaskItem]] = {priority: [] for priority in PRIORITY_ORDER}
    for item in items:
        columns[item.priority].append(item)
    for priority, bucket in columns.items():
        positioned = sorted((it for it in bucket if it.position is not None), key=lambda it: it.position)
        loose = [it for it in bucket if it.position is None]
        columns[priority] = positioned + loose
    return columns


@dataclass
class Projection:
    view: ViewMode
    items: List[TaskItem] = field(default_factory=list)
    columns: Dict[TaskPriority, List[TaskItem]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"view": self.view.value}
        if self.view is ViewMode.BOARD:
            out["columns"] = [
                {"priority": priority.value, "items": [it.to_dict() for it in bucket]}
                for priority, bucket in self.columns.items()
            ]
            out["total"] = sum(len(bucket) for bucket in self.columns.values())
        else:
            out["items"] = [it.to_dict() for it in self.items]
            out["total"] = len(self.items)
        return out


def project(
    items: Sequence[TaskItem],
    filter_config: Optional[FilterConfig] = None,
    sort_config: Optional[SortConfig] = None,
    *,
    view: Union[ViewMode, str] = ViewMode.LIST,
) -> Projection:
    mode = ViewMode.parse(view)
    filter_config = filter_config or FilterConfig()
    sort_config = sort_config or SortConfig()
    visible = filter_items(items, filter_config, view=mode)
    if mode is ViewMode.BOARD:
        return Projection(view=mode, columns=group_by_priority(visible))
    return Projection(view=mode, items=sort_items(visible, sort_config))


__all__ = [
    "ALL",
    "ViewMode",
    "SortField",
    "SortDirection",
    "FilterConfig",
    "SortConfig",
    "Projection",
    "matches_filter",
    "filter_items",
    "sort_items",
    "group_by_priority",
    "project",
]
