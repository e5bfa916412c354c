"""
Structured logging module.

Provides JSON logging with correlation IDs and context propagation.
"""

from identity_cache.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from identity_cache.logging.formatters import ConsoleFormatter, JSONFormatter
from identity_cache.logging.setup import get_logger, setup_logging
from identity_cache.logging.utilities import log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    # Utilities
    "log_with_context",
    "log_exception",
]
