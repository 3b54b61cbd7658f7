"""
Unit tests for logger utilities.

Tests ContextAwareLogger formatting, correlation ID stamping, and the
configure/get/reset lifecycle.
"""

import logging
from unittest.mock import Mock

import pytest

from content_access_core.exceptions import clear_correlation_id, set_correlation_id
from content_access_core.utils.logger import (
    ContextAwareLogger,
    CorrelationIdFilter,
    configure_logging,
    get_logger,
    reset_logging,
)


class TestContextAwareLogger:
    """Test ContextAwareLogger functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mock_logger = Mock(spec=logging.Logger)
        self.context_logger = ContextAwareLogger(self.mock_logger)

    def test_set_level(self):
        """Test setting log level."""
        self.context_logger.set_level(logging.DEBUG)
        self.mock_logger.setLevel.assert_called_once_with(logging.DEBUG)

    def test_no_extras(self):
        """Test logging without extra data."""
        self.context_logger.info("Test message")

        self.mock_logger.info.assert_called_once_with("Test message", extra={})

    def test_extras_folded_into_message(self):
        """Test logging with extra data."""
        extra_data = {"grant_id": "g-1", "token": "ab12cd34ef56"}

        self.context_logger.warning("Session issued", extra=extra_data)

        self.mock_logger.warning.assert_called_once_with(
            "Session issued | grant_id=g-1 | token=ab12cd34ef56", extra=extra_data
        )

    def test_exc_info_passed_through(self):
        error = ValueError("boom")

        self.context_logger.error("Failed", extra={"stage": "put"}, exc_info=error)

        self.mock_logger.error.assert_called_once_with(
            "Failed | stage=put", extra={"stage": "put"}, exc_info=error
        )

    @pytest.mark.parametrize("level", ["debug", "info", "warning", "error", "exception"])
    def test_all_levels_delegate(self, level):
        getattr(self.context_logger, level)("msg")

        getattr(self.mock_logger, level).assert_called_once_with("msg", extra={})


class TestCorrelationIdFilter:
    """Test correlation ID stamping."""

    def teardown_method(self):
        clear_correlation_id()

    def test_stamps_current_correlation_id(self):
        record = logging.LogRecord("n", logging.INFO, __file__, 1, "msg", None, None)
        set_correlation_id("corr-1")

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "corr-1"

    def test_leaves_record_alone_without_id(self):
        record = logging.LogRecord("n", logging.INFO, __file__, 1, "msg", None, None)
        clear_correlation_id()

        assert CorrelationIdFilter().filter(record) is True
        assert not hasattr(record, "correlation_id")


class TestConfigureLogging:
    """Test logger configuration lifecycle."""

    def teardown_method(self):
        reset_logging()
        logging.getLogger("content_access_test").handlers.clear()

    def test_configure_installs_single_stdout_handler(self):
        logger = configure_logging("content_access_test", "DEBUG")
        configure_logging("content_access_test", "DEBUG")

        underlying = logging.getLogger("content_access_test")
        assert isinstance(logger, ContextAwareLogger)
        assert underlying.level == logging.DEBUG
        assert len(underlying.handlers) == 1
        assert isinstance(underlying.handlers[0].filters[0], CorrelationIdFilter)

    def test_get_logger_returns_configured_logger(self):
        configured = configure_logging("content_access_test", logging.WARNING)

        assert get_logger() is configured

    def test_get_logger_defaults_to_package_logger(self):
        reset_logging()

        logger = get_logger()

        assert logger.logger is logging.getLogger("content_access_core")

    def test_configured_logger_writes_extras(self, capsys):
        logger = configure_logging("content_access_test", "INFO")

        logger.info("Attachment recorded", extra={"size": 10})

        assert "Attachment recorded | size=10" in capsys.readouterr().out
