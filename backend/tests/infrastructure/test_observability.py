"""Structured Logging — JSON formatter fields and handler setup."""

import json
import logging

from app.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    logger = logging.getLogger("schoolhub.test")
    return logger.makeRecord(
        logger.name, logging.WARNING, __file__, 1, "Module access denied",
        None, None, extra=extra,
    )


def test_request_identity_fields_are_emitted():
    line = JSONFormatter().format(_record(
        user_id="u-1", role="TEACHER", app_module="library", created_count=3,
    ))
    payload = json.loads(line)
    assert payload["message"] == "Module access denied"
    assert payload["app_module"] == "library"
    assert payload["created_count"] == 3
    assert "module" not in payload


def test_missing_extras_are_omitted():
    payload = json.loads(JSONFormatter().format(_record()))
    assert set(payload) == {"timestamp", "level", "logger", "message"}


def test_setup_logging_replaces_its_own_handler():
    setup_logging("INFO", "text")
    count = len(logging.root.handlers)
    setup_logging("INFO", "json")
    assert len(logging.root.handlers) == count
    assert isinstance(logging.root.handlers[-1].formatter, JSONFormatter)
