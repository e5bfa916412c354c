"""
Exception hierarchy for the token cache.

Provides typed exceptions with retry classification so callers can decide
whether a failed cache operation is worth repeating.
"""

from collections.abc import Sequence

# Import ErrorCategory from canonical source to avoid duplicate enum issues
from identity_cache.types import ErrorCategory


class CacheError(Exception):
    """
    Base exception for all token cache errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.UNKNOWN,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Base Categories
# =============================================================================


class TransientError(CacheError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class PermanentError(CacheError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class AuthError(CacheError):
    """Credential rejected by the authority; the caller must sign in again."""

    category = ErrorCategory.AUTH


# =============================================================================
# Domain-Specific Errors
# =============================================================================


class MissingCacheKeyError(PermanentError):
    """
    One or more identity fields required to address the cache are empty.

    Raised before any storage access is attempted.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        missing_fields: Sequence[str],
    ):
        super().__init__(
            message,
            context={"operation": operation, "missing_fields": list(missing_fields)},
        )
        self.operation = operation
        self.missing_fields = tuple(missing_fields)


class AliasResolutionError(TransientError):
    """Authority alias lookup failed (raised by resolver implementations)."""

    pass


class StorageError(TransientError):
    """Storage port read/write/delete failed (raised by storage implementations)."""

    pass


class InvalidIdTokenError(PermanentError):
    """ID token in a token response could not be decoded."""

    pass


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    # Already classified
    if isinstance(exc, CacheError):
        return exc.category

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return ErrorCategory.TRANSIENT

    connection_markers = (
        "connection refused",
        "connection reset",
        "name resolution",
        "timeout",
        "temporarily unavailable",
        "database is locked",
    )
    if any(m in exc_type or m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "401" in exc_str or "invalid_grant" in exc_str or "unauthorized" in exc_str:
        return ErrorCategory.AUTH

    if isinstance(exc, (ValueError, KeyError, PermissionError)):
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def is_retryable_error(exc: Exception) -> bool:
    """
    Check if exception should be retried.

    Retryable errors include transient and unknown errors. Missing cache keys,
    malformed tokens and auth failures are not retryable.
    """
    if isinstance(exc, CacheError):
        return exc.is_retryable

    return classify_exception(exc) in (
        ErrorCategory.TRANSIENT,
        ErrorCategory.UNKNOWN,
    )


def wrap_exception(
    exc: Exception,
    default_class: type = CacheError,
    context: dict | None = None,
) -> CacheError:
    """Wrap a generic exception in appropriate CacheError subclass."""
    if isinstance(exc, CacheError):
        if context:
            exc.context.update(context)
        return exc

    category = classify_exception(exc)
    context = context or {}

    if category == ErrorCategory.AUTH:
        return AuthError(str(exc), cause=exc, context=context)

    if category == ErrorCategory.TRANSIENT:
        return TransientError(str(exc), cause=exc, context=context)

    if category == ErrorCategory.PERMANENT:
        return PermanentError(str(exc), cause=exc, context=context)

    return default_class(str(exc), cause=exc, context=context)
