from __future__ import annotations

import os
import yaml
from pathlib import Path
from typing import Any, Dict

USER_CONFIG_PATH = Path.home() / ".taskboard_config.yaml"
DEFAULT_STORE_PATH = Path.home() / ".taskboard" / "tasks.yaml"
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_LOG_LEVEL = "WARNING"


def _config_path() -> Path:
    override = os.environ.get("TASKBOARD_CONFIG", "").strip()
    return Path(override).expanduser() if override else USER_CONFIG_PATH


def _load_config() -> Dict[str, Any]:
    path = _config_path()
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def _save_config(data: Dict[str, Any]) -> None:
    path = _config_path()
    if not data:
        if path.exists():
            path.unlink()
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")


def _setting(env_name: str, key: str) -> Any:
    """Environment variable first, then the user config file."""
    value = os.environ.get(env_name, "").strip()
    if value:
        return value
    return _load_config().get(key)


def get_history_limit() -> int:
    raw = _setting("TASKBOARD_HISTORY_LIMIT", "history_limit")
    if isinstance(raw, bool):
        return DEFAULT_HISTORY_LIMIT
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_HISTORY_LIMIT
    return limit if limit > 0 else DEFAULT_HISTORY_LIMIT


def get_store_path() -> Path:
    raw = _setting("TASKBOARD_STORE", "store_path")
    if not raw or not isinstance(raw, str):
        return DEFAULT_STORE_PATH
    return Path(raw).expanduser()


def get_log_level() -> str:
    raw = _setting("TASKBOARD_LOG_LEVEL", "log_level")
    return str(raw).strip().upper() if raw else DEFAULT_LOG_LEVEL


def set_user_value(key: str, value: Any) -> None:
    """Persist one setting; an empty value removes the key."""
    data = _load_config()
    if isinstance(value, str):
        value = value.strip()
    if value not in (None, ""):
        data[key] = value
    else:
        data.pop(key, None)
    _save_config(data)
