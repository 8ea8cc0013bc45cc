from __future__ import annotations

import json
import logging

from endpoint_scout.logging import JsonFormatter, configure_logging


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        name="endpoint_scout.inference.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="dominant endpoint %s seen %d times",
        args=("203.0.113.7:4550", 4),
        exc_info=None,
    )
    record.ticks = 4

    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["message"] == "dominant endpoint 203.0.113.7:4550 seen 4 times"
    assert payload["ticks"] == 4
    assert "lineno" not in payload


def test_configure_logging_honours_json_env(monkeypatch) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    monkeypatch.setenv("ENDPOINT_SCOUT_LOG_FORMAT", "json")
    try:
        configure_logging(verbose=True)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

        monkeypatch.delenv("ENDPOINT_SCOUT_LOG_FORMAT")
        configure_logging()
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)
        configure_logging(json_lines=True)
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
