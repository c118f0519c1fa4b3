from __future__ import annotations

import json
import logging
import sys
from typing import Any

import pytest

from todogame.observability import (
    ConsoleLogFormatter,
    JsonLogFormatter,
    Metrics,
    get_json_logger,
    get_metrics,
    get_request_context,
    reset_metrics,
    use_request_context,
)


def _parse_json_lines(output: str) -> list[dict[str, Any]]:
    return [json.loads(line) for line in output.strip().splitlines() if line.strip()]


def test_json_logger_redacts_and_formats(capsys: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "json")
    logger = get_json_logger("obs-test-json")
    logger.setLevel(logging.INFO)
    logger.info(
        "hello",
        extra={
            "event": "task_created",
            "task_id": 7,
            "attributes": {"redis_url": "redis://secret", "token": "XYZ", "safe": "ok"},
        },
    )

    lines = _parse_json_lines(capsys.readouterr().out)
    assert len(lines) == 1
    rec = lines[0]
    assert rec["msg"] == "hello"
    assert rec["level"] == "info"
    assert rec["event"] == "task_created"
    assert rec["task_id"] == 7
    assert rec["attributes"] == {
        "redis_url": "[REDACTED]",
        "token": "[REDACTED]",
        "safe": "ok",
    }


def test_request_context_is_attached(capsys: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "json")
    logger = get_json_logger("obs-test-ctx")
    assert get_request_context() is None
    with use_request_context("req-1") as rid:
        assert rid == "req-1"
        logger.info("inside")
    with use_request_context() as generated:
        assert generated
    assert get_request_context() is None

    [rec] = _parse_json_lines(capsys.readouterr().out)
    assert rec["request_id"] == "req-1"


def test_console_formatter_line() -> None:
    record = logging.LogRecord("todogame.gateway", logging.INFO, __file__, 1, "done", None, None)
    record.event = "http_request"
    record.method = "GET"
    record.path = "/todos"
    record.status = 200
    line = ConsoleLogFormatter().format(record)
    assert "INFO" in line
    assert "http_request" in line
    assert "GET /todos" in line
    assert "status=200" in line
    assert line.endswith("- done")


def test_json_formatter_keeps_exception_on_one_line() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "todogame", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )
    out = JsonLogFormatter().format(record)
    assert "\n" not in out
    payload = json.loads(out)
    assert payload["err_type"] == "RuntimeError"
    assert payload["err"] == "boom"


def test_module_levels(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LOG_MODULE_LEVELS", "obs-quiet.store=ERROR")
    assert get_json_logger("obs-quiet.store.sqlite").level == logging.ERROR
    assert get_json_logger("obs-quiet.gateway").level == logging.WARNING


def test_metrics_counters() -> None:
    m = Metrics()
    m.increment("http_requests", {"method": "GET", "status": "200"})
    m.increment("http_requests", {"status": "200", "method": "GET"}, amount=2)
    m.increment("tasks_created")
    assert m.value("http_requests", {"method": "GET", "status": "200"}) == 3
    assert m.snapshot() == [
        {"name": "http_requests", "labels": {"method": "GET", "status": "200"}, "value": 3},
        {"name": "tasks_created", "labels": {}, "value": 1},
    ]


def test_metrics_singleton_reset() -> None:
    first = get_metrics()
    assert get_metrics() is first
    reset_metrics()
    assert get_metrics() is not first
