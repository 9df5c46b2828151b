"""
Tests for structured JSON logging.
"""

import io
import json
import logging
import logging.handlers

from kevlar.core.logging_config import CustomJsonFormatter, get_logger, setup_logging


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_json_output_includes_event_fields():
    stream = io.StringIO()
    logger = setup_logging(name="kevlar.test.json", level="DEBUG", stream=stream)

    logger.info("Sync started", extra={"event": "sync.started", "provers": 3})

    [record] = _records(stream)
    assert record["message"] == "Sync started"
    assert record["event"] == "sync.started"
    assert record["provers"] == 3
    assert record["service"] == "kevlar"
    assert record["level"] == "info"
    assert record["timestamp"]
    assert record["source"]["function"] == "test_json_output_includes_event_fields"


def test_level_filters_records():
    stream = io.StringIO()
    logger = setup_logging(name="kevlar.test.level", level="WARNING", stream=stream)

    logger.info("hidden")
    logger.warning("shown")

    assert [r["message"] for r in _records(stream)] == ["shown"]


def test_setup_is_idempotent():
    stream = io.StringIO()
    setup_logging(name="kevlar.test.repeat", stream=stream)
    logger = setup_logging(name="kevlar.test.repeat", stream=stream)

    assert len(logger.handlers) == 1


def test_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "kevlar.log"
    logger = setup_logging(name="kevlar.test.file", log_file=str(log_file), enable_console=False)

    logger.error("Seemingly honest Prover(1) responded incorrectly!", extra={"event": "sync.prover_rejected"})
    for handler in logger.handlers:
        handler.flush()

    assert isinstance(logger.handlers[0], logging.handlers.RotatingFileHandler)
    record = json.loads(log_file.read_text().splitlines()[0])
    assert record["event"] == "sync.prover_rejected"
    assert record["level"] == "error"


def test_get_logger_reuses_configured_logger():
    stream = io.StringIO()
    configured = setup_logging(name="kevlar.test.reuse", stream=stream)
    assert get_logger("kevlar.test.reuse") is configured
    assert len(configured.handlers) == 1


def test_formatter_service_name():
    formatter = CustomJsonFormatter(service_name="prover-monitor")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    assert json.loads(formatter.format(record))["service"] == "prover-monitor"
