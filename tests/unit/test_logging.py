"""Tests for logging setup."""

from __future__ import annotations

import json
import logging
import sys

import structlog

from keygate.config.schema import LoggingConfig
from keygate.core.logging import json_formatter, setup_logging


class TestSetupLogging:
    def test_sets_level(self):
        logger = setup_logging(LoggingConfig(level="debug"))
        assert logger.name == "keygate"
        assert logger.level == logging.DEBUG

    def test_repeat_calls_replace_handlers(self):
        setup_logging(LoggingConfig())
        logger = setup_logging(LoggingConfig())
        assert len(logger.handlers) == 1

    def test_file_handler_writes(self, tmp_path):
        log_file = tmp_path / "logs" / "keygate.log"
        logger = setup_logging(LoggingConfig(file=str(log_file)))
        logging.getLogger("keygate.test").info("hello file")
        for handler in logger.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_structured_uses_structlog(self):
        logger = setup_logging(LoggingConfig(structured=True))
        assert all(
            isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
            for h in logger.handlers
        )

    def test_structured_file_lines_are_json(self, tmp_path):
        log_file = tmp_path / "keygate.jsonl"
        logger = setup_logging(LoggingConfig(structured=True, file=str(log_file)))
        logging.getLogger("keygate.auth.gate").warning(
            "rejected %s", "x", extra={"key_id": "abc"}
        )
        for handler in logger.handlers:
            handler.flush()
        payload = json.loads(log_file.read_text().splitlines()[-1])
        assert payload["event"] == "rejected x"
        assert payload["key_id"] == "abc"


# ─── JSON rendering ───────────────────────────────────────────


class TestJsonFormatter:
    def _record(self, **extra):
        record = logging.LogRecord(
            "keygate.auth.gate", logging.INFO, __file__, 1, "rejected %s", ("x",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_core_fields(self):
        payload = json.loads(json_formatter().format(self._record()))
        assert payload["level"] == "info"
        assert payload["logger"] == "keygate.auth.gate"
        assert payload["event"] == "rejected x"
        assert "timestamp" in payload

    def test_extra_fields_included(self):
        payload = json.loads(json_formatter().format(self._record(key_id="abc")))
        assert payload["key_id"] == "abc"

    def test_exception_rendered(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "keygate", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        payload = json.loads(json_formatter().format(record))
        assert "RuntimeError: boom" in payload["exception"]
