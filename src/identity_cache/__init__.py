"""
Identity cache: token-cache management for an OAuth2 / OpenID Connect client.

Decides which cached credentials may be returned for a request, persists the
credentials of a completed token issuance, and invalidates them. Storage is
pluggable through the StorageManager protocol.

Modules:
    manager        - CacheManager: read, write and delete paths
    validity       - Access token validity evaluation
    keys           - Composite cache keys and required-key checks
    models         - Immutable cache entities and request/result records
    tokens         - Token endpoint responses, ID token and client_info parsing
    authority      - Static authority alias resolution
    storage        - In-memory StorageManager implementation
    observability  - Cache events and the logging-backed event sink
    errors         - Exception hierarchy and classification
    logging        - Structured JSON logging with correlation IDs
    config         - YAML / environment configuration

Usage:
    manager = CacheManager(InMemoryStorageManager())
    account = await manager.cache_token_response(params, TokenResponse.from_response(body))
    cached = await manager.try_read_cache(params, StaticAliasResolver())
"""

from identity_cache.authority import PUBLIC_CLOUD_ALIASES, StaticAliasResolver
from identity_cache.config import CacheConfig, load_config
from identity_cache.errors import (
    AliasResolutionError,
    CacheError,
    InvalidIdTokenError,
    MissingCacheKeyError,
    StorageError,
)
from identity_cache.manager import CacheManager
from identity_cache.models import (
    AccessTokenCacheItem,
    Account,
    AppMetadata,
    AuthorityInfo,
    AuthParameters,
    CacheAccessContext,
    IDTokenCacheItem,
    InstanceDiscoveryMetadata,
    OperationStatus,
    RefreshTokenCacheItem,
    StorageTokenResponse,
)
from identity_cache.observability import (
    CacheEvent,
    CacheEventSink,
    LoggingEventSink,
    NullEventSink,
)
from identity_cache.storage import InMemoryStorageManager
from identity_cache.tokens import ClientInfo, IDToken, TokenResponse
from identity_cache.types import (
    AuthorityAliasResolver,
    AuthorityType,
    CacheAccessAspect,
    CredentialType,
    OperationStatusType,
    StorageManager,
)
from identity_cache.validity import EXPIRY_BUFFER_SECONDS, is_access_token_valid

__version__ = "0.1.0"

__all__ = [
    # Manager
    "CacheManager",
    "EXPIRY_BUFFER_SECONDS",
    "is_access_token_valid",
    # Entities
    "AccessTokenCacheItem",
    "RefreshTokenCacheItem",
    "IDTokenCacheItem",
    "Account",
    "AppMetadata",
    "StorageTokenResponse",
    "OperationStatus",
    "AuthorityInfo",
    "InstanceDiscoveryMetadata",
    "AuthParameters",
    "CacheAccessContext",
    # Token responses
    "TokenResponse",
    "IDToken",
    "ClientInfo",
    # Ports
    "StorageManager",
    "AuthorityAliasResolver",
    "CacheAccessAspect",
    "InMemoryStorageManager",
    "StaticAliasResolver",
    "PUBLIC_CLOUD_ALIASES",
    # Enums
    "CredentialType",
    "AuthorityType",
    "OperationStatusType",
    # Observability
    "CacheEvent",
    "CacheEventSink",
    "LoggingEventSink",
    "NullEventSink",
    # Errors
    "CacheError",
    "MissingCacheKeyError",
    "AliasResolutionError",
    "StorageError",
    "InvalidIdTokenError",
    # Config
    "CacheConfig",
    "load_config",
]
