"""Bounded undo/redo history over a TaskStore.

The manager listens to every store event. Every recordable mutation
invalidates `future`; one that changed the collection also pushes a deep
snapshot of the *pre-mutation* collection onto `past`. Undo and redo replace the collection through
`TaskStore.restore`; the single-slot suppress flag makes the history skip
exactly that replacement event.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from core import Snapshot, take_snapshot

from application.task_store import StoreEvent, TaskStore

logger = logging.getLogger("taskboard.history")

DEFAULT_HISTORY_LIMIT = 20


class HistoryManager:
    """Undo/redo stacks for one store."""

    def __init__(self, store: TaskStore, *, limit: int = DEFAULT_HISTORY_LIMIT):
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError(f"history limit must be a positive integer, got {limit!r}")
        self._store = store
        self._limit = limit
        self._past: List[Snapshot] = []
        self._future: List[Snapshot] = []
        self.suppress_next_capture = False
        self._unsubscribe: Optional[Callable[[], None]] = store.subscribe(self._on_event)

    # ---- inspection ----

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def past(self) -> Tuple[Snapshot, ...]:
        """Oldest first."""
        return tuple(self._past)

    @property
    def future(self) -> Tuple[Snapshot, ...]:
        """Next redo target last."""
        return tuple(self._future)

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    # ---- capture ----

    def _on_event(self, event: StoreEvent) -> None:
        if self.suppress_next_capture:
            self.suppress_next_capture = False
            logger.debug("skip capture for %s (suppressed)", event.action.type)
            return
        if not event.action.recordable:
            return
        if self._future:
            logger.debug("new %s invalidates %d redo entries", event.action.type, len(self._future))
        self._future.clear()
        # A no-op leaves nothing to undo
        if event.changed:
            self._push_past(take_snapshot(event.before))

    # ---- undo / redo ----

    def undo(self) -> bool:
        """Restore the newest past snapshot. Returns False when there is none."""
        if not self._past:
            return False
        target = self._past.pop()
        self._future.append(take_snapshot(self._store.items))
        self._apply(target)
        logger.debug("undo: past=%d future=%d", len(self._past), len(self._future))
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone snapshot. Returns False when there is none."""
        if not self._future:
            return False
        target = self._future.pop()
        self._push_past(take_snapshot(self._store.items))
        self._apply(target)
        logger.debug("redo: past=%d future=%d", len(self._past), len(self._future))
        return True

    def _push_past(self, snapshot: Snapshot) -> None:
        self._past.append(snapshot)
        # Trim oldest entries beyond capacity
        if len(self._past) > self._limit:
            logger.debug("history full (%d), evicting oldest snapshot", self._limit)
            self._past = self._past[-self._limit:]

    def _apply(self, snapshot: Snapshot) -> None:
        self.suppress_next_capture = True
        try:
            self._store.restore(snapshot)
        finally:
            self.suppress_next_capture = False

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()
        self.suppress_next_capture = False

    def close(self) -> None:
        """Stop listening to the store."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


__all__ = ["HistoryManager", "DEFAULT_HISTORY_LIMIT"]
