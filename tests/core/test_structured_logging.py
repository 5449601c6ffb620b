"""JSON log output: the shape a log pipeline depends on."""

from __future__ import annotations

import json
import logging
import sys

from progress_service.core.logging import _ContainerFormatter, _JsonFormatter
from progress_service.middleware.request_context import RequestContextFilter, request_id_var


def _record(msg: str = "Module completed user=%s", args: tuple = ("u-1",)) -> logging.LogRecord:
    return logging.LogRecord(
        name="progress_service.services.learning",
        level=logging.INFO,
        pathname="learning.py",
        lineno=10,
        msg=msg,
        args=args,
        exc_info=None,
    )


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "progress_service.services.learning"
    assert parsed["message"] == "Module completed user=u-1"
    assert "timestamp" in parsed


def test_json_formatter_promotes_context_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.path = "/v1/progress/module"  # type: ignore[attr-defined]
    record.user_id = "u-1"  # type: ignore[attr-defined]
    record.course_id = "c-9"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["request_id"] == "abc-123"
    assert parsed["path"] == "/v1/progress/module"
    assert parsed["user_id"] == "u-1"
    assert parsed["course_id"] == "c-9"
    assert parsed["duration_ms"] == 12.5
    assert "method" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("bad score")
    except ValueError:
        record = logging.LogRecord(
            name="test",
            level=logging.ERROR,
            pathname="test.py",
            lineno=1,
            msg="Quiz failed",
            args=(),
            exc_info=sys.exc_info(),
        )
    parsed = json.loads(_JsonFormatter().format(record))
    assert "ValueError: bad score" in parsed["exception"]


def test_context_filter_stamps_current_request_id() -> None:
    record = _record()
    token = request_id_var.set("req-77")
    try:
        assert RequestContextFilter().filter(record) is True
    finally:
        request_id_var.reset(token)
    assert record.request_id == "req-77"  # type: ignore[attr-defined]


def test_context_filter_keeps_explicit_request_id() -> None:
    record = _record()
    record.request_id = "explicit"  # type: ignore[attr-defined]
    RequestContextFilter().filter(record)
    assert record.request_id == "explicit"  # type: ignore[attr-defined]


def test_container_formatter_is_plain_text() -> None:
    output = _ContainerFormatter().format(_record())
    assert "INFO" in output
    assert "Module completed user=u-1" in output
    assert not output.startswith("{")
