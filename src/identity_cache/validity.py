"""
Access token validity evaluation.

Decides whether a persisted access token may be handed to a caller. Fails
closed: a token whose timestamps do not parse is never usable. Tokens are
rejected EXPIRY_BUFFER_SECONDS before their real expiry so a caller never
receives one that lapses mid-request.
"""

import re
import time
from enum import Enum

from identity_cache.models import AccessTokenCacheItem
from identity_cache.observability import CacheEvent, CacheEventSink, NullEventSink

# Default safety buffer before expiry (5 minutes)
EXPIRY_BUFFER_SECONDS = 300

# Plain decimal epoch seconds; int() alone also takes "1_000" and " 1 "
_EPOCH_PATTERN = re.compile(r"[+-]?[0-9]+")


class InvalidReason(Enum):
    """Why a cached access token was rejected."""

    CACHED_AT_MALFORMED = "cached_at_malformed"
    CACHED_AT_IN_FUTURE = "cached_at_in_future"
    EXPIRES_ON_MALFORMED = "expires_on_malformed"
    EXPIRED = "expired"


def _parse_epoch(value: str) -> int | None:
    if not isinstance(value, str) or _EPOCH_PATTERN.fullmatch(value) is None:
        return None
    return int(value)


def check_access_token(
    access_token: AccessTokenCacheItem,
    now: int | None = None,
    buffer_seconds: int = EXPIRY_BUFFER_SECONDS,
) -> InvalidReason | None:
    """
    Return why an access token is unusable, or None if it is usable.

    Args:
        access_token: Cached access token
        now: Current epoch seconds (default: time.time())
        buffer_seconds: Seconds before expiry at which the token stops being usable

    Returns:
        InvalidReason, or None when valid
    """
    if now is None:
        now = int(time.time())

    cached_at = _parse_epoch(access_token.cached_at)
    if cached_at is None:
        return InvalidReason.CACHED_AT_MALFORMED
    if cached_at > now:
        return InvalidReason.CACHED_AT_IN_FUTURE

    expires_on = _parse_epoch(access_token.expires_on)
    if expires_on is None:
        return InvalidReason.EXPIRES_ON_MALFORMED
    if expires_on <= now + buffer_seconds:
        return InvalidReason.EXPIRED

    return None


def is_access_token_valid(
    access_token: AccessTokenCacheItem,
    now: int | None = None,
    buffer_seconds: int = EXPIRY_BUFFER_SECONDS,
    events: CacheEventSink | None = None,
) -> bool:
    """
    Check if a cached access token may be returned to a caller.

    Valid iff cached_at <= now and expires_on > now + buffer_seconds. The
    rejection reason is emitted as an ACCESS_TOKEN_INVALID event.

    Args:
        access_token: Cached access token
        now: Current epoch seconds (default: time.time())
        buffer_seconds: Safety buffer before expiry (default: 300)
        events: Sink receiving the rejection reason

    Returns:
        True if the token is usable

    Example:
        >>> item = AccessTokenCacheItem.create(
        ...     "uid.utid", "login.contoso.com", "tenant", "app",
        ...     cached_at=1000, expires_on=1400, extended_expires_on=1400,
        ...     target="user.read", secret="at",
        ... )
        >>> is_access_token_valid(item, now=1000)
        True
        >>> is_access_token_valid(item, now=1100)
        False
    """
    reason = check_access_token(access_token, now=now, buffer_seconds=buffer_seconds)
    if reason is None:
        return True

    (events or NullEventSink()).emit(
        CacheEvent.ACCESS_TOKEN_INVALID,
        reason=reason.value,
        client_id=access_token.client_id,
        environment=access_token.environment,
        realm=access_token.realm,
        cached_at=access_token.cached_at,
        expires_on=access_token.expires_on,
    )
    return False


__all__ = [
    "EXPIRY_BUFFER_SECONDS",
    "InvalidReason",
    "check_access_token",
    "is_access_token_valid",
]
