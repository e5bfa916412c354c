"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- CacheError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from identity_cache.errors.exceptions import (
    AliasResolutionError,
    AuthError,
    # Base classes
    CacheError,
    InvalidIdTokenError,
    MissingCacheKeyError,
    PermanentError,
    StorageError,
    TransientError,
    # Classification utilities
    classify_exception,
    is_retryable_error,
    wrap_exception,
)
from identity_cache.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "CacheError",
    "TransientError",
    "PermanentError",
    "AuthError",
    # Domain errors
    "MissingCacheKeyError",
    "AliasResolutionError",
    "StorageError",
    "InvalidIdTokenError",
    # Classification utilities
    "classify_exception",
    "is_retryable_error",
    "wrap_exception",
]
