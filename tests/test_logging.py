"""Unit tests for structured logging infrastructure."""

import json
import logging
import sys

import pytest

from image_api.logging_config import (
    ROOT_LOGGER,
    StructuredFormatter,
    TextFormatter,
    configure_logging,
)


def _record(msg="sync_completed", name="image_api.github.sync", **extra):
    record = logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname="sync.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    level, handlers = logger.level, list(logger.handlers)
    formatters = [h.formatter for h in handlers]
    yield
    logger.setLevel(level)
    logger.handlers = handlers
    for handler, formatter in zip(handlers, formatters):
        handler.setFormatter(formatter)


class TestStructuredFormatter:
    def test_required_fields(self):
        data = json.loads(StructuredFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "image_api.github.sync"
        assert data["message"] == "sync_completed"
        assert data["timestamp"].endswith("Z")
        assert "context" not in data

    def test_extras_in_context(self):
        data = json.loads(
            StructuredFormatter().format(_record(images_created=2, repository="acarshub"))
        )
        assert data["context"] == {"images_created": 2, "repository": "acarshub"}

    def test_sensitive_extras_redacted(self):
        data = json.loads(StructuredFormatter().format(_record(token="ghp_secret")))
        assert data["context"]["token"] == "[REDACTED]"
        assert "ghp_secret" not in json.dumps(data)

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        data = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in data["exception"]

    def test_non_serializable_extra(self):
        data = json.loads(StructuredFormatter().format(_record(path=object())))
        assert isinstance(data["context"]["path"], str)


class TestConfigureLogging:
    def test_level_and_json_format(self, restore_root_logger):
        logger = configure_logging("debug", "json")
        assert logger.name == ROOT_LOGGER
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert all(isinstance(h.formatter, StructuredFormatter) for h in logger.handlers)

    def test_text_format(self, restore_root_logger):
        logger = configure_logging("INFO", "text")
        assert all(isinstance(h.formatter, TextFormatter) for h in logger.handlers)

    def test_idempotent(self, restore_root_logger):
        configure_logging("INFO", "json")
        count = len(logging.getLogger(ROOT_LOGGER).handlers)
        configure_logging("WARNING", "text")
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == count

    def test_env_fallback(self, monkeypatch, restore_root_logger):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_FORMAT", "text")
        logger = configure_logging()
        assert logger.level == logging.ERROR
        assert isinstance(logger.handlers[0].formatter, TextFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        assert configure_logging("chatty", "json").level == logging.INFO

    def test_child_loggers_inherit(self, restore_root_logger):
        configure_logging("WARNING", "json")
        child = logging.getLogger("image_api.storage")
        assert child.getEffectiveLevel() == logging.WARNING
