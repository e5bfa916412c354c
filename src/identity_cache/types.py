"""
Core types and protocols used across modules.

This module provides the enums and protocol definitions shared by the cache
manager and its collaborators. The Storage Port and the Authority Alias
Resolver are consumed only through the protocols defined here; concrete
implementations live outside the core (see storage/ for the in-memory one).
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncContextManager, Protocol, Sequence

if TYPE_CHECKING:
    from identity_cache.models import (
        AccessTokenCacheItem,
        Account,
        AppMetadata,
        AuthorityInfo,
        CacheAccessContext,
        IDTokenCacheItem,
        InstanceDiscoveryMetadata,
        OperationStatus,
        RefreshTokenCacheItem,
    )


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed on retry
                   (e.g., storage backend busy, discovery endpoint timeout)
        AUTH: Credential problems that need a fresh sign-in
        PERMANENT: Non-retriable failures (e.g., missing cache keys,
                   malformed ID tokens)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class CredentialType(Enum):
    """Kinds of credential stored in the token cache."""

    OAUTH2_ACCESS_TOKEN = "accesstoken"
    OAUTH2_REFRESH_TOKEN = "refreshtoken"
    OIDC_ID_TOKEN = "idtoken"


class AuthorityType(Enum):
    """Authority flavours recorded on cached accounts."""

    AAD = "MSSTS"
    ADFS = "ADFS"


class OperationStatusType(Enum):
    """Outcome reported by the storage layer for a deletion."""

    SUCCESS = "success"
    FAILURE = "failure"


class StorageManager(Protocol):
    """
    Storage Port consumed by the cache manager.

    Owns physical persistence, serialization and any encryption at rest.
    Every read returns None for "not found"; errors are raised, never returned.
    Scope matching for access tokens is the implementation's concern: the
    manager passes the requested scopes through unmodified.
    """

    async def read_access_token(
        self,
        home_account_id: str,
        aliases: Sequence[str],
        realm: str,
        client_id: str,
        scopes: Sequence[str],
    ) -> "AccessTokenCacheItem | None": ...

    async def read_refresh_token(
        self,
        home_account_id: str,
        aliases: Sequence[str],
        family_id: str,
        client_id: str,
    ) -> "RefreshTokenCacheItem | None": ...

    async def read_id_token(
        self,
        home_account_id: str,
        aliases: Sequence[str],
        realm: str,
        client_id: str,
    ) -> "IDTokenCacheItem | None": ...

    async def read_account(
        self, home_account_id: str, aliases: Sequence[str], realm: str
    ) -> "Account | None": ...

    async def read_all_accounts(self) -> "list[Account]": ...

    async def read_app_metadata(
        self, aliases: Sequence[str], client_id: str
    ) -> "AppMetadata | None": ...

    async def write_access_token(self, item: "AccessTokenCacheItem") -> None: ...

    async def write_refresh_token(self, item: "RefreshTokenCacheItem") -> None: ...

    async def write_id_token(self, item: "IDTokenCacheItem") -> None: ...

    async def write_account(self, account: "Account") -> None: ...

    async def write_app_metadata(self, app_metadata: "AppMetadata") -> None: ...

    async def delete_credentials(
        self,
        correlation_id: str,
        home_account_id: str,
        environment: str,
        realm: str,
        client_id: str,
        family_id: str,
        target: str,
        credential_types: "set[CredentialType]",
    ) -> "OperationStatus": ...


class TransactionalStorageManager(StorageManager, Protocol):
    """
    Storage Port that can group several writes into one atomic unit.

    The cache manager only uses transaction() when supports_transactions is
    True; otherwise writes run as an independent best-effort sequence.
    """

    supports_transactions: bool

    def transaction(self) -> AsyncContextManager[Any]: ...


class AuthorityAliasResolver(Protocol):
    """
    Authority Alias Resolver consumed by the read path.

    Returns the current canonical set of host aliases equivalent to the
    given authority. Failures propagate to the caller unmodified.
    """

    async def get_metadata_entry(
        self, authority_info: "AuthorityInfo"
    ) -> "InstanceDiscoveryMetadata": ...


class CacheAccessAspect(Protocol):
    """Optional hook invoked around every cache access."""

    async def before_cache_access(self, context: "CacheAccessContext") -> None: ...

    async def after_cache_access(self, context: "CacheAccessContext") -> None: ...


__all__ = [
    "ErrorCategory",
    "CredentialType",
    "AuthorityType",
    "OperationStatusType",
    "StorageManager",
    "TransactionalStorageManager",
    "AuthorityAliasResolver",
    "CacheAccessAspect",
]
