import copy
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from core import TaskItem, ValidationError
from application.ports import TaskRepository

logger = logging.getLogger("taskboard.repository")

DOCUMENT_VERSION = 1


class InMemoryTaskRepository(TaskRepository):
    """Repository kept in process memory (tests, scratch sessions)."""

    def __init__(self, items: Optional[Sequence[TaskItem]] = None):
        self._items: List[TaskItem] = copy.deepcopy(list(items or []))
        self.save_count = 0

    def load_items(self) -> List[TaskItem]:
        return copy.deepcopy(self._items)

    def save_items(self, items: Sequence[TaskItem]) -> None:
        self._items = copy.deepcopy(list(items))
        self.save_count += 1

    @property
    def items(self) -> List[TaskItem]:
        return copy.deepcopy(self._items)


class YamlTaskRepository(TaskRepository):
    """Single YAML document holding the whole collection.

    Layout: {"version": 1, "items": [<task dict>, ...]}. Undo/redo history is
    never written here.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            logger.warning("Cannot parse %s, starting empty: %s", self.path, exc)
            return {}
        if data is None:
            return {}
        if isinstance(data, list):
            # Bare list of items (hand-written or older export)
            return {"items": data}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a mapping, got %s", self.path, type(data).__name__)
            return {}
        return data

    def load_items(self) -> List[TaskItem]:
        document = self._read_document()
        version = document.get("version", DOCUMENT_VERSION)
        if version != DOCUMENT_VERSION:
            logger.warning("Unknown document version %r in %s, reading anyway", version, self.path)
        raw_items = document.get("items") or []
        if not isinstance(raw_items, list):
            logger.warning("Ignoring %s: 'items' must be a list", self.path)
            return []
        items: List[TaskItem] = []
        for idx, entry in enumerate(raw_items):
            try:
                items.append(TaskItem.from_dict(entry))
            except ValidationError as exc:
                logger.warning("Skipping malformed task #%d in %s: %s", idx, self.path, exc)
        return items

    def save_items(self, items: Sequence[TaskItem]) -> None:
        document = {"version": DOCUMENT_VERSION, "items": [item.to_dict() for item in items]}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                delete=False,
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            ) as tmp:
                tmp_path = Path(tmp.name)
                yaml.safe_dump(document, tmp, allow_unicode=True, sort_keys=False)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(str(tmp_path), str(self.path))
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
        logger.debug("Saved %d task(s) to %s", len(items), self.path)


__all__ = ["InMemoryTaskRepository", "YamlTaskRepository", "DOCUMENT_VERSION"]
