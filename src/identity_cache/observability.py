"""
Structured cache events.

The cache manager and validity evaluator never log directly. They emit
CacheEvent values through an injected sink; the default sink turns each event
into a structured log record with log_with_context. Tests inject a recording
sink to assert on events without capturing log output.
"""

import logging
from enum import Enum
from typing import Any, Protocol

from identity_cache.logging.utilities import log_exception, log_with_context

logger = logging.getLogger(__name__)


class CacheEvent(Enum):
    """Events emitted by cache operations."""

    CACHE_LOOKUP = "cache_lookup"
    CACHE_LOOKUP_SKIPPED = "cache_lookup_skipped"
    CACHE_LOOKUP_RESULT = "cache_lookup_result"
    ACCESS_TOKEN_INVALID = "access_token_invalid"
    CACHE_WRITE = "cache_write"
    CACHE_WRITE_SKIPPED = "cache_write_skipped"
    ACCESS_TOKEN_NOT_PERSISTED = "access_token_not_persisted"
    REFRESH_TOKEN_DELETE = "refresh_token_delete"
    REFRESH_TOKEN_DELETE_SKIPPED = "refresh_token_delete_skipped"
    REFRESH_TOKEN_DELETE_FAILED = "refresh_token_delete_failed"
    ACCESS_TOKEN_DELETE = "access_token_delete"
    ACCESS_TOKEN_DELETE_SKIPPED = "access_token_delete_skipped"
    ACCESS_TOKEN_DELETE_FAILED = "access_token_delete_failed"


class CacheEventSink(Protocol):
    """Receives cache events. Implementations must not raise."""

    def emit(self, event: CacheEvent, **fields: Any) -> None: ...


# Level and message per event for the logging-backed sink
_EVENT_LOG_LEVELS: dict[CacheEvent, tuple[int, str]] = {
    CacheEvent.CACHE_LOOKUP: (logging.DEBUG, "Querying the token cache"),
    CacheEvent.CACHE_LOOKUP_SKIPPED: (
        logging.WARNING,
        "Skipping the tokens cache lookup, one of the primary keys is empty",
    ),
    CacheEvent.CACHE_LOOKUP_RESULT: (logging.DEBUG, "Token cache lookup complete"),
    CacheEvent.ACCESS_TOKEN_INVALID: (
        logging.INFO,
        "Cached access token is not usable",
    ),
    CacheEvent.CACHE_WRITE: (logging.INFO, "Writing to the token cache"),
    CacheEvent.CACHE_WRITE_SKIPPED: (
        logging.WARNING,
        "Skipping writing data to the tokens cache, one of the primary keys is empty",
    ),
    CacheEvent.ACCESS_TOKEN_NOT_PERSISTED: (
        logging.INFO,
        "Access token in response is already expired, not caching it",
    ),
    CacheEvent.REFRESH_TOKEN_DELETE: (
        logging.INFO,
        "Deleting refresh token from the cache",
    ),
    CacheEvent.REFRESH_TOKEN_DELETE_SKIPPED: (
        logging.WARNING,
        "Failed to delete refresh token from the cache, one of the primary keys is empty",
    ),
    CacheEvent.REFRESH_TOKEN_DELETE_FAILED: (
        logging.WARNING,
        "Error deleting an invalid refresh token from the cache",
    ),
    CacheEvent.ACCESS_TOKEN_DELETE: (
        logging.INFO,
        "Deleting an access token from the cache",
    ),
    CacheEvent.ACCESS_TOKEN_DELETE_SKIPPED: (
        logging.WARNING,
        "Failed to delete access token from the cache, one of the primary keys is empty",
    ),
    CacheEvent.ACCESS_TOKEN_DELETE_FAILED: (
        logging.WARNING,
        "Failure deleting an access token from the cache",
    ),
}


class LoggingEventSink:
    """
    Event sink that writes each event as a structured log record.

    Args:
        target_logger: Logger to write to (default: this module's logger)
    """

    def __init__(self, target_logger: logging.Logger | None = None):
        self._logger = target_logger or logger

    def emit(self, event: CacheEvent, **fields: Any) -> None:
        level, message = _EVENT_LOG_LEVELS.get(event, (logging.INFO, event.value))
        error = fields.pop("error", None)
        if isinstance(error, Exception):
            log_exception(
                self._logger,
                error,
                message,
                level=level,
                include_traceback=False,
                cache_event=event.value,
                error_type=type(error).__name__,
                **fields,
            )
            return
        log_with_context(self._logger, level, message, cache_event=event.value, **fields)


class NullEventSink:
    """Discards every event."""

    def emit(self, event: CacheEvent, **fields: Any) -> None:
        return None


__all__ = [
    "CacheEvent",
    "CacheEventSink",
    "LoggingEventSink",
    "NullEventSink",
]
