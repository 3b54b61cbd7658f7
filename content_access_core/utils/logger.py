"""
Console logging for the content access core.

ContextAwareLogger folds ``extra`` values into a pipe-delimited suffix so they
stay visible even when a host application replaces the formatters, while
still attaching them to the record for structured handlers.
"""

import logging
import sys
from typing import Optional, Union

from ..config import get_config

_configured_logger = None


class ContextAwareLogger:
    """Logger wrapper that formats extra attributes in message while preserving them."""

    def __init__(self, logger):
        """Initialize with an existing logger."""
        self.logger = logger

    def _log_with_formatted_extra(self, level, msg, **kwargs):
        """
        Log with extra data formatted into the message.

        Args:
            level: Logging level method to use
            msg: Log message
            **kwargs: Additional arguments including 'extra' and 'exc_info'
        """
        extra = kwargs.pop("extra", {})

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        log_method(full_msg, extra=extra, **kwargs)

    def set_level(self, level):
        """Set the logging level of the underlying logger."""
        self.logger.setLevel(level)

    def info(self, msg, **kwargs):
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg, **kwargs):
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg, **kwargs):
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg, **kwargs):
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg, **kwargs):
        self._log_with_formatted_extra("exception", msg, **kwargs)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that stamps the current correlation ID onto records."""

    def filter(self, record):
        # Lazy import: exceptions imports this module lazily as well
        from ..exceptions import get_correlation_id

        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id
        return True


def _resolve_level(log_level: Optional[Union[int, str]]) -> int:
    if log_level is None:
        log_level = get_config().logging.level
    if isinstance(log_level, str):
        return getattr(logging, log_level.upper(), logging.INFO)
    return log_level


def configure_logging(
    name: str = "content_access_core",
    log_level: Optional[Union[int, str]] = None,
) -> ContextAwareLogger:
    """
    Configure a named stdout logger and make it the package-wide logger.

    Args:
        name: Logger name
        log_level: Logging level (default: from config)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _configured_logger

    level = _resolve_level(log_level)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(get_config().logging.format))
    console_handler.addFilter(CorrelationIdFilter())
    logger.addHandler(console_handler)

    wrapped_logger = ContextAwareLogger(logger)
    wrapped_logger.debug("Logger configured", extra={"logger_name": name})

    _configured_logger = wrapped_logger
    return wrapped_logger


def get_logger(
    log_level: Optional[Union[int, str]] = None,
) -> ContextAwareLogger:
    """
    Get the package logger.

    Returns the logger installed by configure_logging, or wraps the
    ``content_access_core`` stdlib logger when nothing was configured.
    """
    if _configured_logger is not None:
        return _configured_logger

    logger = logging.getLogger("content_access_core")
    if log_level is not None:
        logger.setLevel(_resolve_level(log_level))
    return ContextAwareLogger(logger)


def reset_logging() -> None:
    """Forget the configured logger (used between tests)."""
    global _configured_logger
    _configured_logger = None
