# tests/test_monitoring.py
import json
import logging
import warnings

from pythonjsonlogger.json import JsonFormatter

from bulkgpt import monitoring


def test_logger_emits_json(monkeypatch):
    monkeypatch.setattr(monitoring, "LOG_AS_JSON", True)
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        logger = monitoring.setup_logger("bulkgpt-test-json", level=logging.INFO)

    handler = logger.handlers[0]
    assert isinstance(handler.formatter, JsonFormatter)

    record = logger.makeRecord(
        logger.name, logging.WARNING, __file__, 1, "Completion request failed", None, None,
        extra={"mode": "chat", "error": "nope"},
    )
    payload = json.loads(handler.format(record))
    assert payload["message"] == "Completion request failed"
    assert payload["levelname"] == "WARNING"
    assert payload["mode"] == "chat"
    assert payload["error"] == "nope"
