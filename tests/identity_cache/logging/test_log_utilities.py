"""Tests for logging context, utilities and setup."""

import logging

import pytest

from identity_cache.errors import MissingCacheKeyError
from identity_cache.logging import (
    clear_log_context,
    get_log_context,
    get_logger,
    log_exception,
    log_with_context,
    set_log_context,
)
from identity_cache.logging.formatters import ConsoleFormatter, JSONFormatter
from identity_cache.logging.setup import NOISY_LOGGERS, setup_logging


@pytest.fixture
def cache_logger():
    return logging.getLogger("tests.identity_cache.logging")


class TestLogContext:
    """Tests for context variables."""

    def test_set_and_get(self):
        set_log_context(correlation_id="corr", client_id="app")
        assert get_log_context() == {"correlation_id": "corr", "client_id": "app", "operation": ""}

    def test_partial_update(self):
        set_log_context(correlation_id="corr")
        set_log_context(operation="write")
        assert get_log_context()["correlation_id"] == "corr"
        assert get_log_context()["operation"] == "write"

    def test_clear(self):
        set_log_context(correlation_id="corr", client_id="app", operation="op")
        clear_log_context()
        assert get_log_context() == {"correlation_id": "", "client_id": "", "operation": ""}


class TestLogWithContext:
    """Tests for log_with_context."""

    def test_extra_fields(self, cache_logger, caplog):
        with caplog.at_level(logging.INFO, logger=cache_logger.name):
            log_with_context(cache_logger, logging.INFO, "hello", realm="tenant")

        assert caplog.records[0].realm == "tenant"

    def test_reserved_keys_dropped(self, cache_logger, caplog):
        """Reserved LogRecord names should not break logging."""
        with caplog.at_level(logging.INFO, logger=cache_logger.name):
            log_with_context(cache_logger, logging.INFO, "hello", name="x", module="y", realm="r")

        assert caplog.records[0].name == cache_logger.name
        assert caplog.records[0].realm == "r"


class TestLogException:
    """Tests for log_exception."""

    def test_category_and_message(self, cache_logger, caplog):
        error = MissingCacheKeyError("keys missing", "op", ["realm"])

        with caplog.at_level(logging.ERROR, logger=cache_logger.name):
            log_exception(cache_logger, error, "lookup failed")

        record = caplog.records[0]
        assert record.error_category == "permanent"
        assert record.error_message == "keys missing"
        assert record.exc_info is not None

    def test_truncates_long_messages(self, cache_logger, caplog):
        with caplog.at_level(logging.ERROR, logger=cache_logger.name):
            log_exception(cache_logger, RuntimeError("x" * 600), "failed", include_traceback=False)

        record = caplog.records[0]
        assert len(record.error_message) == 503
        assert record.exc_info is None


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in list(root.handlers):
            if handler not in handlers:
                handler.close()
                root.removeHandler(handler)
        for handler in handlers:
            if handler not in root.handlers:
                root.addHandler(handler)
        root.setLevel(level)

    def test_console_only(self):
        logger = setup_logging(name="tests.setup")

        assert logger.name == "tests.setup"
        (handler,) = logging.getLogger().handlers
        assert isinstance(handler.formatter, ConsoleFormatter)

    def test_json_console(self):
        setup_logging(json_format=True)
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_file_handler(self, tmp_path):
        setup_logging(log_dir=tmp_path / "logs")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        assert isinstance(handlers[1].formatter, JSONFormatter)
        assert (tmp_path / "logs" / "identity_cache.log").exists()

    def test_suppresses_noisy_loggers(self):
        setup_logging()
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_get_logger(self):
        assert get_logger("identity_cache.manager").name == "identity_cache.manager"
