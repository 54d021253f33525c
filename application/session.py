"""Task session: store + history + persistence wired in a fixed order.

Startup is strictly sequential: load, hydrate, clear history, and only then
start persisting. Restored state therefore never shows up as something that
can be undone.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from core import TaskItem

from application.history import DEFAULT_HISTORY_LIMIT, HistoryManager
from application.ports import TaskRepository
from application.projector import FilterConfig, Projection, SortConfig, ViewMode, project
from application.task_store import StoreEvent, TaskStore

logger = logging.getLogger("taskboard.session")


class TaskSession:
    def __init__(
        self,
        repository: Optional[TaskRepository] = None,
        *,
        history_limit: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        if repository is None:
            from infrastructure.file_repository import InMemoryTaskRepository

            repository = InMemoryTaskRepository()
        self.repository = repository
        self.store = TaskStore(clock=clock, id_factory=id_factory)
        self.history = HistoryManager(
            self.store,
            limit=DEFAULT_HISTORY_LIMIT if history_limit is None else history_limit,
        )
        self._load()
        self._unsubscribe_persistence = self.store.subscribe(self._persist)
        logger.info("session ready: %d task(s), history limit %d", len(self.store), self.history.limit)

    def _load(self) -> None:
        items = self.repository.load_items()
        self.store.hydrate(items)
        self.history.clear()

    def reload(self) -> None:
        """Re-read persisted state; history is discarded."""
        self._unsubscribe_persistence()
        try:
            self._load()
        finally:
            self._unsubscribe_persistence = self.store.subscribe(self._persist)
        logger.info("reloaded %d task(s)", len(self.store))

    def _persist(self, event: StoreEvent) -> None:
        if not event.changed:
            return
        try:
            self.repository.save_items(event.after)
        except Exception:
            logger.exception("failed to persist %d task(s) after %s", len(event.after), event.action.type)
            raise

    def close(self) -> None:
        self._unsubscribe_persistence()
        self.history.close()

    # ---- queries ----

    @property
    def items(self) -> List[TaskItem]:
        return self.store.items

    def get(self, task_id: str) -> Optional[TaskItem]:
        return self.store.get(task_id)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def project(
        self,
        filter_config: Optional[FilterConfig] = None,
        sort_config: Optional[SortConfig] = None,
        view: Union[ViewMode, str] = ViewMode.LIST,
    ) -> Projection:
        return project(self.store.items, filter_config, sort_config, view=view)

    # ---- mutations ----

    def create(self, fields: Mapping[str, Any]) -> TaskItem:
        return self.store.create(fields)

    def update(self, task_id: str, fields: Mapping[str, Any]) -> bool:
        return self.store.update(task_id, fields)

    def delete(self, task_id: str) -> int:
        return self.store.delete(task_id)

    def delete_batch(self, task_ids: Iterable[str]) -> int:
        return self.store.delete_batch(task_ids)

    def reassign_priority(self, task_id: str, priority: Any) -> bool:
        return self.store.reassign_priority(task_id, priority)

    def reorder(self, priority: Any, ordered_ids: Iterable[str]) -> int:
        return self.store.reorder(priority, ordered_ids)

    def batch_update(self, task_ids: Iterable[str], fields: Mapping[str, Any]) -> int:
        return self.store.batch_update(task_ids, fields)

    # ---- history ----

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    def clear_history(self) -> None:
        self.history.clear()


__all__ = ["TaskSession"]
