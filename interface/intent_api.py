"""JSON intent API for the task board.

Each request is a JSON object with an `intent` field; the rest of the object
is the handler's payload. Every response has the same envelope (see
`IntentResponse.to_dict`). Mutations aimed at unknown task ids are not errors:
they succeed with `meta.no_op = true` and leave history untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from core import ValidationError
from application.projector import FilterConfig, SortConfig, ViewMode
from application.session import TaskSession

logger = logging.getLogger("taskboard.intent")

MAX_BATCH_SIZE = 500


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class IntentResponse:
    success: bool
    intent: str
    result: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    timestamp: str = field(default_factory=_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "intent": self.intent,
            "result": self.result or {},
            "meta": self.meta or {},
            "error": None,
            "timestamp": self.timestamp,
        }
        if not self.success:
            payload["error"] = {
                "code": self.error_code or "ERROR",
                "message": self.error_message or "Unknown error",
            }
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def error_response(intent: str, code: str, message: str, *, result: Optional[Dict[str, Any]] = None) -> IntentResponse:
    return IntentResponse(
        success=False,
        intent=intent,
        result=result or {},
        error_code=code,
        error_message=message,
    )


def _ok(intent: str, result: Dict[str, Any], *, no_op: bool = False) -> IntentResponse:
    meta: Dict[str, Any] = {"no_op": True} if no_op else {}
    return IntentResponse(success=True, intent=intent, result=result, meta=meta)


# ---- payload parsing ----


def _task_id(data: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    raw = data.get("task", data.get("id"))
    if not isinstance(raw, str) or not raw.strip():
        return None, "task must be a non-empty string"
    return raw.strip(), None


def _task_ids(data: Dict[str, Any]) -> Tuple[Optional[List[str]], Optional[str]]:
    raw = data.get("tasks", data.get("ids"))
    if not isinstance(raw, list):
        return None, "tasks must be a list of task ids"
    if len(raw) > MAX_BATCH_SIZE:
        return None, f"tasks is too long (max {MAX_BATCH_SIZE})"
    ids: List[str] = []
    for value in raw:
        if not isinstance(value, str) or not value.strip():
            return None, f"invalid task id in tasks: {value!r}"
        ids.append(value.strip())
    return ids, None


def _fields(data: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    raw = data.get("fields")
    if not isinstance(raw, dict):
        return None, "fields must be an object"
    return raw, None


# ---- mutation handlers ----


def handle_create(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    fields, err = _fields(data)
    if err:
        return error_response("create", "INVALID_REQUEST", err)
    item = session.create(fields)
    return _ok("create", {"task": item.to_dict()})


def handle_update(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    task_id, err = _task_id(data)
    fields, fields_err = _fields(data)
    if err or fields_err:
        return error_response("update", "INVALID_REQUEST", err or fields_err)
    found = session.update(task_id, fields)
    item = session.get(task_id)
    return _ok("update", {"task": item.to_dict() if item else None, "updated": found}, no_op=not found)


def handle_delete(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    task_id, err = _task_id(data)
    if err:
        return error_response("delete", "INVALID_REQUEST", err)
    removed = session.delete(task_id)
    return _ok("delete", {"task_id": task_id, "removed": removed}, no_op=removed == 0)


def handle_delete_batch(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    task_ids, err = _task_ids(data)
    if err:
        return error_response("delete_batch", "INVALID_REQUEST", err)
    removed = session.delete_batch(task_ids)
    return _ok("delete_batch", {"requested": len(task_ids), "removed": removed}, no_op=removed == 0)


def handle_reassign_priority(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    task_id, err = _task_id(data)
    if err:
        return error_response("reassign_priority", "INVALID_REQUEST", err)
    found = session.reassign_priority(task_id, data.get("priority"))
    item = session.get(task_id)
    return _ok(
        "reassign_priority",
        {"task": item.to_dict() if item else None, "updated": found},
        no_op=not found,
    )


def handle_reorder(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    task_ids, err = _task_ids(data)
    if err:
        return error_response("reorder", "INVALID_REQUEST", err)
    touched = session.reorder(data.get("priority"), task_ids)
    return _ok("reorder", {"priority": str(data.get("priority")), "reordered": touched}, no_op=touched == 0)


def handle_batch_update(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    task_ids, err = _task_ids(data)
    fields, fields_err = _fields(data)
    if err or fields_err:
        return error_response("batch_update", "INVALID_REQUEST", err or fields_err)
    updated = session.batch_update(task_ids, fields)
    return _ok("batch_update", {"requested": len(task_ids), "updated": updated}, no_op=updated == 0)


# ---- history handlers ----


def handle_undo(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    if not session.undo():
        return error_response("undo", "NOTHING_TO_UNDO", "nothing to undo")
    return _ok("undo", {"total": len(session.items)})


def handle_redo(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    if not session.redo():
        return error_response("redo", "NOTHING_TO_REDO", "nothing to redo")
    return _ok("redo", {"total": len(session.items)})


def handle_clear_history(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    session.clear_history()
    return _ok("clear_history", {"cleared": True})


def handle_history(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    history = session.history
    return _ok(
        "history",
        {
            "can_undo": history.can_undo,
            "can_redo": history.can_redo,
            "undo_depth": len(history.past),
            "redo_depth": len(history.future),
            "limit": history.limit,
        },
    )


# ---- read handlers ----


def handle_list(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    raw_filter = data.get("filter") or {}
    raw_sort = data.get("sort") or {}
    if not isinstance(raw_filter, dict) or not isinstance(raw_sort, dict):
        return error_response("list", "INVALID_REQUEST", "filter and sort must be objects")
    try:
        filter_config = FilterConfig.from_dict(raw_filter)
        sort_config = SortConfig.from_dict(raw_sort)
        # Column header click: same field flips direction, a new field keeps it
        if raw_sort.get("toggle"):
            sort_config = sort_config.with_field(raw_sort["toggle"])
        view = ViewMode.parse(data.get("view"))
    except ValidationError:
        raise
    except ValueError as exc:
        return error_response("list", "VALIDATION_ERROR", str(exc))
    projection = session.project(filter_config, sort_config, view)
    result = projection.to_dict()
    result["sort"] = {"field": sort_config.field.value, "direction": sort_config.direction.value}
    return _ok("list", result)


def handle_get(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    task_id, err = _task_id(data)
    if err:
        return error_response("get", "INVALID_REQUEST", err)
    item = session.get(task_id)
    return _ok("get", {"task": item.to_dict() if item else None}, no_op=item is None)


INTENT_HANDLERS: Dict[str, Callable[[TaskSession, Dict[str, Any]], IntentResponse]] = {
    "create": handle_create,
    "update": handle_update,
    "delete": handle_delete,
    "delete_batch": handle_delete_batch,
    "reassign_priority": handle_reassign_priority,
    "reorder": handle_reorder,
    "batch_update": handle_batch_update,
    "undo": handle_undo,
    "redo": handle_redo,
    "clear_history": handle_clear_history,
    "history": handle_history,
    "list": handle_list,
    "get": handle_get,
}


def process_intent(session: TaskSession, data: Dict[str, Any]) -> IntentResponse:
    if not isinstance(data, dict):
        return error_response("unknown", "INVALID_REQUEST", "payload must be a JSON object")
    intent = str(data.get("intent", "") or "").strip().lower()
    if not intent:
        return error_response("unknown", "MISSING_INTENT", "intent is required")
    handler = INTENT_HANDLERS.get(intent)
    if not handler:
        return error_response(intent, "UNKNOWN_INTENT", f"unknown intent: {intent}")

    try:
        resp = handler(session, data)
    except ValidationError as exc:
        return error_response(intent, "VALIDATION_ERROR", str(exc), result={"field": exc.field})
    except Exception as exc:
        logger.exception("intent %s failed", intent)
        return error_response(intent, "INTERNAL_ERROR", f"internal error: {exc}")

    if resp.success:
        resp.meta = dict(resp.meta or {})
        resp.meta["can_undo"] = session.can_undo
        resp.meta["can_redo"] = session.can_redo
    return resp


__all__ = [
    "IntentResponse",
    "INTENT_HANDLERS",
    "error_response",
    "process_intent",
]
