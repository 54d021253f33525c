"""Newline-delimited JSON runner for the intent API.

One request object per stdin line, one response object per stdout line.
Logs go to stderr so stdout carries nothing but responses.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

import config
from application.session import TaskSession
from infrastructure.file_repository import YamlTaskRepository
from interface.intent_api import error_response, process_intent

logger = logging.getLogger("taskboard.intent")


def _write(stdout: TextIO, payload: str) -> None:
    stdout.write(payload + "\n")
    stdout.flush()


def run_stdio(session: TaskSession, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    """Serve requests until stdin is exhausted.

    Undecodable bytes are replaced rather than raised, so a bad line is
    answered with INVALID_REQUEST like any other malformed request.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    if hasattr(stdin, "reconfigure"):
        stdin.reconfigure(errors="replace")
    for line in stdin:
        raw = line.strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            _write(stdout, error_response("unknown", "INVALID_REQUEST", f"parse error: {exc}").to_json())
            continue
        resp = process_intent(session, data)
        _write(stdout, resp.to_json())
    return 0


def _positive_int(value: str) -> int:
    import argparse

    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def _save_defaults(args) -> int:
    if args.store:
        config.set_user_value("store_path", str(Path(args.store).expanduser()))
    if args.history_limit:
        config.set_user_value("history_limit", args.history_limit)
    if args.log_level:
        config.set_user_value("log_level", args.log_level.upper())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for `python tasks.py` and `python -m interface.stdio_server`."""
    import argparse

    parser = argparse.ArgumentParser(prog="taskboard", add_help=True)
    parser.add_argument("--store", type=str, help="YAML file holding the task collection.")
    parser.add_argument("--history-limit", type=_positive_int, help="Maximum number of undo steps.")
    parser.add_argument("--log-level", type=str, help="Logging level written to stderr (e.g. DEBUG, INFO).")
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Store the given --store/--history-limit/--log-level as user defaults and exit.",
    )
    args = parser.parse_args(argv)

    if args.save_config:
        return _save_defaults(args)

    logging.basicConfig(
        level=(args.log_level or config.get_log_level()).upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store_path = Path(args.store).expanduser() if args.store else config.get_store_path()
    history_limit = args.history_limit or config.get_history_limit()
    session = TaskSession(YamlTaskRepository(store_path), history_limit=history_limit)
    logger.info("serving intents on stdio, store=%s", store_path)
    try:
        return run_stdio(session)
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
