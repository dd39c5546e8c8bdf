"""
Tests for structured JSON logging configuration.

This module tests:
- JSONFormatter (JSON log output)
- setup_logging() (logging configuration)
- get_logger() (logger factory)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import io
import json
import logging

import pytest

from swordfighters_admin.core.logging_config import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def json_logger():
    """Logger writing JSON lines into a StringIO."""
    logger = logging.getLogger("test_json_logger")
    logger.setLevel(logging.INFO)
    logger.handlers = []
    logger.propagate = False

    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers = []


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_basic_message(self, json_logger):
        # Arrange
        logger, stream = json_logger

        # Act
        logger.info("Registration options issued")

        # Assert
        log_data = json.loads(stream.getvalue().strip())
        assert log_data["level"] == "INFO"
        assert log_data["message"] == "Registration options issued"
        assert log_data["logger"] == "test_json_logger"
        assert "timestamp" in log_data

    def test_extra_fields_merged(self, json_logger):
        logger, stream = json_logger

        logger.info("Security key registered", extra={"admin_id": "admin-1", "request_id": "req-1"})

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["admin_id"] == "admin-1"
        assert log_data["request_id"] == "req-1"

    def test_none_extra_fields_omitted(self, json_logger):
        logger, stream = json_logger

        logger.info("Request completed", extra={"request_id": None})

        assert "request_id" not in json.loads(stream.getvalue().strip())

    def test_exception_included(self, json_logger):
        logger, stream = json_logger

        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("Unhandled error", exc_info=True)

        log_data = json.loads(stream.getvalue().strip())
        assert "ValueError: boom" in log_data["exception"]

    def test_non_serializable_extra(self, json_logger):
        logger, stream = json_logger

        logger.info("Janitor started", extra={"task": object()})

        assert "task" in json.loads(stream.getvalue().strip())


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_installs_single_json_handler(self, restore_root_logger):
        setup_logging(level="DEBUG", json_format=True)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_plain_format(self, restore_root_logger):
        setup_logging(level="WARNING", json_format=False)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging(level="chatty")

        assert logging.getLogger().level == logging.INFO

    def test_quiets_sqlalchemy(self, restore_root_logger):
        setup_logging()

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_get_logger_returns_named_logger():
    assert get_logger("swordfighters_admin.test").name == "swordfighters_admin.test"
