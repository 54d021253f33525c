import io
import json

import yaml

from application.session import TaskSession
from interface import stdio_server
from interface.stdio_server import run_stdio


def _run(session, *lines):
    stdin = io.StringIO("".join(line + "\n" for line in lines))
    stdout = io.StringIO()
    assert run_stdio(session, stdin, stdout) == 0
    return [json.loads(line) for line in stdout.getvalue().splitlines()]


def test_one_response_per_request(clock, id_factory):
    session = TaskSession(clock=clock, id_factory=id_factory)
    out = _run(
        session,
        json.dumps({"intent": "create", "fields": {"title": "A"}}),
        "",
        json.dumps({"intent": "undo"}),
        json.dumps({"intent": "history"}),
    )
    assert [resp["intent"] for resp in out] == ["create", "undo", "history"]
    assert out[2]["result"]["can_redo"] is True


def test_invalid_json_yields_invalid_request():
    out = _run(TaskSession(), "{not json", json.dumps({"intent": "list"}))
    assert out[0]["success"] is False
    assert out[0]["error"]["code"] == "INVALID_REQUEST"
    assert out[1]["success"] is True


def test_deeply_nested_line_yields_invalid_request():
    out = _run(TaskSession(), "[" * 100000, json.dumps({"intent": "history"}))
    assert out[0]["error"]["code"] == "INVALID_REQUEST"
    assert out[1]["success"] is True


def test_undecodable_bytes_yield_invalid_request():
    raw = b"\xff\xfe\n" + json.dumps({"intent": "history"}).encode("utf-8") + b"\n"
    stdin = io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8")
    stdout = io.StringIO()
    assert run_stdio(TaskSession(), stdin, stdout) == 0
    out = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert [resp["success"] for resp in out] == [False, True]
    assert out[0]["error"]["code"] == "INVALID_REQUEST"


def test_main_uses_store_and_history_limit(tmp_path, monkeypatch):
    store = tmp_path / "tasks.yaml"
    requests = "\n".join(
        [
            json.dumps({"intent": "create", "fields": {"title": "Persisted"}}),
            json.dumps({"intent": "history"}),
        ]
    )
    stdout = io.StringIO()
    monkeypatch.setattr("sys.stdin", io.StringIO(requests + "\n"))
    monkeypatch.setattr("sys.stdout", stdout)
    monkeypatch.setenv("TASKBOARD_CONFIG", str(tmp_path / "missing_config.yaml"))

    assert stdio_server.main(["--store", str(store), "--history-limit", "3", "--log-level", "debug"]) == 0

    out = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert out[1]["result"]["limit"] == 3
    document = yaml.safe_load(store.read_text(encoding="utf-8"))
    assert [item["title"] for item in document["items"]] == ["Persisted"]


def test_save_config_persists_defaults_without_serving(tmp_path, monkeypatch):
    config_path = tmp_path / "taskboard_config.yaml"
    monkeypatch.setenv("TASKBOARD_CONFIG", str(config_path))
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps({"intent": "list"}) + "\n"))
    stdout = io.StringIO()
    monkeypatch.setattr("sys.stdout", stdout)

    argv = ["--save-config", "--store", str(tmp_path / "board.yaml"), "--history-limit", "5", "--log-level", "info"]
    assert stdio_server.main(argv) == 0

    assert stdout.getvalue() == ""
    assert yaml.safe_load(config_path.read_text(encoding="utf-8")) == {
        "store_path": str(tmp_path / "board.yaml"),
        "history_limit": 5,
        "log_level": "INFO",
    }
