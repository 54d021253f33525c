"""Versioned task store: mutation actions, pure reducers and the live collection.

Every change to the collection goes through `TaskStore.dispatch`, which swaps
in the reducer's result and then notifies subscribers synchronously. History
capture and persistence are subscribers; they never touch the collection
directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core import (
    TaskItem,
    TaskPriority,
    new_task_id,
    new_task_item,
    normalize_priority,
    now_iso,
    validate_fields,
)

logger = logging.getLogger("taskboard.store")

# Recordable mutations
ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"
ACTION_DELETE_BATCH = "delete_batch"
ACTION_REASSIGN_PRIORITY = "reassign_priority"
ACTION_REORDER = "reorder"
ACTION_BATCH_UPDATE = "batch_update"

# Whole-collection replacements (never recorded)
ACTION_HYDRATE = "hydrate"  # state restored from persistence
ACTION_RESTORE = "restore"  # snapshot applied by undo/redo

RECORDABLE_ACTIONS = frozenset(
    {
        ACTION_CREATE,
        ACTION_UPDATE,
        ACTION_DELETE,
        ACTION_DELETE_BATCH,
        ACTION_REASSIGN_PRIORITY,
        ACTION_REORDER,
        ACTION_BATCH_UPDATE,
    }
)

Items = Tuple[TaskItem, ...]


@dataclass(frozen=True)
class Action:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def recordable(self) -> bool:
        return self.type in RECORDABLE_ACTIONS


@dataclass(frozen=True)
class StoreEvent:
    """Outcome of one dispatch, handed to every subscriber."""

    action: Action
    before: Items
    after: Items

    @property
    def changed(self) -> bool:
        return self.before != self.after


Listener = Callable[[StoreEvent], None]


# ---- reducers (pure: never mutate the input sequence or its records) ----


def _reduce_create(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    item: TaskItem = payload["item"]
    if any(existing.id == item.id for existing in items):
        raise ValueError(f"duplicate task id: {item.id}")
    return [*items, item]


def _reduce_update(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    task_id, changes, now = payload["id"], payload["changes"], payload["now"]
    return [it.touched(now, **changes) if it.id == task_id else it for it in items]


def _reduce_delete(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    return [it for it in items if it.id != payload["id"]]


def _reduce_delete_batch(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    doomed = set(payload["ids"])
    return [it for it in items if it.id not in doomed]


def _reduce_reassign_priority(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    task_id, priority, now = payload["id"], payload["priority"], payload["now"]
    out: List[TaskItem] = []
    for it in items:
        if it.id != task_id:
            out.append(it)
        elif it.priority == priority:
            out.append(it.touched(now))
        else:
            # Manual order belongs to the old column
            out.append(it.touched(now, priority=priority, position=None))
    return out


def _reduce_reorder(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    priority, now = payload["priority"], payload["now"]
    order: Dict[str, int] = {}
    for idx, task_id in enumerate(payload["ids"]):
        order.setdefault(task_id, idx)
    return [
        it.touched(now, position=order[it.id]) if it.priority == priority and it.id in order else it
        for it in items
    ]


def _reduce_batch_update(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    targets = set(payload["ids"])
    changes, now = payload["changes"], payload["now"]
    return [it.touched(now, **changes) if it.id in targets else it for it in items]


def _reduce_replace(items: Sequence[TaskItem], payload: Mapping[str, Any]) -> List[TaskItem]:
    return list(payload["items"])


_REDUCERS: Dict[str, Callable[[Sequence[TaskItem], Mapping[str, Any]], List[TaskItem]]] = {
    ACTION_CREATE: _reduce_create,
    ACTION_UPDATE: _reduce_update,
    ACTION_DELETE: _reduce_delete,
    ACTION_DELETE_BATCH: _reduce_delete_batch,
    ACTION_REASSIGN_PRIORITY: _reduce_reassign_priority,
    ACTION_REORDER: _reduce_reorder,
    ACTION_BATCH_UPDATE: _reduce_batch_update,
    ACTION_HYDRATE: _reduce_replace,
    ACTION_RESTORE: _reduce_replace,
}


def reduce_items(items: Sequence[TaskItem], action: Action) -> List[TaskItem]:
    """Apply one action to a collection and return the new collection."""
    reducer = _REDUCERS.get(action.type)
    if reducer is None:
        raise ValueError(f"unknown action type: {action.type!r}")
    return reducer(items, action.payload)


def _dedupe_by_id(items: Iterable[TaskItem]) -> List[TaskItem]:
    seen: set[str] = set()
    out: List[TaskItem] = []
    for item in items:
        if item.id in seen:
            logger.warning("Dropping duplicate task id=%s", item.id)
            continue
        seen.add(item.id)
        out.append(item)
    return out


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStore:
    """Holds the authoritative ordered collection of task records."""

    def __init__(
        self,
        items: Optional[Iterable[TaskItem]] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._clock = clock or _utc_now
        self._id_factory = id_factory or new_task_id
        self._items: Items = tuple(_dedupe_by_id(items or []))
        self._listeners: List[Listener] = []

    # ---- queries ----

    @property
    def items(self) -> List[TaskItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, task_id: str) -> Optional[TaskItem]:
        for item in self._items:
            if item.id == task_id:
                return item
        return None

    # ---- subscription / dispatch ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> StoreEvent:
        before = self._items
        after = tuple(reduce_items(before, action))
        self._items = after
        event = StoreEvent(action=action, before=before, after=after)
        logger.debug("dispatch %s changed=%s size=%d", action.type, event.changed, len(after))
        for listener in list(self._listeners):
            listener(event)
        return event

    def _now(self) -> str:
        return now_iso(self._clock())

    def _allocate_id(self) -> str:
        existing = {it.id for it in self._items}
        task_id = self._id_factory()
        while task_id in existing:
            task_id = self._id_factory()
        return task_id

    # ---- mutations ----

    def create(self, fields: Mapping[str, Any]) -> TaskItem:
        """Append a new record; raises ValidationError before anything changes."""
        item = new_task_item(fields, task_id=self._allocate_id(), now=self._now())
        self.dispatch(Action(ACTION_CREATE, {"item": item}))
        return item

    def update(self, task_id: str, fields: Mapping[str, Any]) -> bool:
        """Merge fields into a record. Unknown id is a silent no-op (returns False)."""
        changes = validate_fields(fields, partial=True)
        found = self.get(task_id) is not None
        self.dispatch(Action(ACTION_UPDATE, {"id": task_id, "changes": changes, "now": self._now()}))
        return found

    def delete(self, task_id: str) -> int:
        event = self.dispatch(Action(ACTION_DELETE, {"id": task_id}))
        return len(event.before) - len(event.after)

    def delete_batch(self, task_ids: Iterable[str]) -> int:
        event = self.dispatch(Action(ACTION_DELETE_BATCH, {"ids": tuple(task_ids)}))
        return len(event.before) - len(event.after)

    def reassign_priority(self, task_id: str, priority: Any) -> bool:
        """Move a record to another priority column (board drag and drop)."""
        target = normalize_priority(priority)
        found = self.get(task_id) is not None
        self.dispatch(
            Action(ACTION_REASSIGN_PRIORITY, {"id": task_id, "priority": target, "now": self._now()})
        )
        return found

    def reorder(self, priority: Any, ordered_ids: Iterable[str]) -> int:
        """Persist manual order inside one priority column.

        Each listed id in that column gets position = its index in
        `ordered_ids`; ids outside the column are left untouched.
        """
        group: TaskPriority = normalize_priority(priority)
        ids = tuple(ordered_ids)
        members = {it.id for it in self._items if it.priority == group}
        touched = len(members.intersection(ids))
        self.dispatch(Action(ACTION_REORDER, {"priority": group, "ids": ids, "now": self._now()}))
        return touched

    def batch_update(self, task_ids: Iterable[str], fields: Mapping[str, Any]) -> int:
        changes = validate_fields(fields, partial=True)
        ids = tuple(task_ids)
        targets = set(ids)
        touched = sum(1 for it in self._items if it.id in targets)
        self.dispatch(Action(ACTION_BATCH_UPDATE, {"ids": ids, "changes": changes, "now": self._now()}))
        return touched

    # ---- whole-collection replacement ----

    def hydrate(self, items: Iterable[TaskItem]) -> StoreEvent:
        """Replace the collection with state restored from persistence."""
        return self.dispatch(Action(ACTION_HYDRATE, {"items": tuple(_dedupe_by_id(items))}))

    def restore(self, snapshot: Sequence[TaskItem]) -> StoreEvent:
        """Replace the collection with a history snapshot (undo/redo only)."""
        return self.dispatch(Action(ACTION_RESTORE, {"items": tuple(snapshot)}))


__all__ = [
    "Action",
    "StoreEvent",
    "TaskStore",
    "RECORDABLE_ACTIONS",
    "reduce_items",
    "ACTION_CREATE",
    "ACTION_UPDATE",
    "ACTION_DELETE",
    "ACTION_DELETE_BATCH",
    "ACTION_REASSIGN_PRIORITY",
    "ACTION_REORDER",
    "ACTION_BATCH_UPDATE",
    "ACTION_HYDRATE",
    "ACTION_RESTORE",
]
