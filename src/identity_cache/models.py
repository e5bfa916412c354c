"""Token cache data models.

Every record here is immutable once constructed. The cache manager never
updates a record in place; a new write replaces the stored one.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from identity_cache.types import AuthorityType, OperationStatusType


@dataclass(frozen=True)
class AccessTokenCacheItem:
    """
    Cached access token.

    Timestamps are decimal strings of epoch seconds, the form a storage engine
    persists them in. They are parsed on every validity check and a value that
    does not parse makes the token unusable.

    Attributes:
        home_account_id: Stable user identifier ("<uid>.<utid>")
        environment: Authority host the token was issued by
        realm: Tenant the token was issued for
        client_id: Application the token was issued to
        cached_at: When the token was written
        expires_on: When the token expires
        extended_expires_on: Extended lifetime used during outages
        target: Space-joined granted scopes
        secret: The access token itself
    """

    home_account_id: str
    environment: str
    realm: str
    client_id: str
    cached_at: str
    expires_on: str
    extended_expires_on: str
    target: str
    secret: str

    @classmethod
    def create(
        cls,
        home_account_id: str,
        environment: str,
        realm: str,
        client_id: str,
        cached_at: int,
        expires_on: int,
        extended_expires_on: int,
        target: str,
        secret: str,
    ) -> "AccessTokenCacheItem":
        """Build an item from integer epoch timestamps."""
        return cls(
            home_account_id=home_account_id,
            environment=environment,
            realm=realm,
            client_id=client_id,
            cached_at=str(cached_at),
            expires_on=str(expires_on),
            extended_expires_on=str(extended_expires_on),
            target=target,
            secret=secret,
        )

    def __repr__(self) -> str:
        # secret omitted
        return (
            f"AccessTokenCacheItem(home_account_id={self.home_account_id!r}, "
            f"environment={self.environment!r}, realm={self.realm!r}, "
            f"client_id={self.client_id!r}, target={self.target!r}, "
            f"expires_on={self.expires_on!r})"
        )


@dataclass(frozen=True)
class RefreshTokenCacheItem:
    """
    Cached refresh token.

    A token without a family_id belongs to exactly one client. A token with a
    family_id is shared by every client registered in that family.
    """

    home_account_id: str
    environment: str
    client_id: str
    secret: str
    family_id: str = ""

    def __repr__(self) -> str:
        return (
            f"RefreshTokenCacheItem(home_account_id={self.home_account_id!r}, "
            f"environment={self.environment!r}, client_id={self.client_id!r}, "
            f"family_id={self.family_id!r})"
        )


@dataclass(frozen=True)
class IDTokenCacheItem:
    """Cached raw ID token (JWT)."""

    home_account_id: str
    environment: str
    realm: str
    client_id: str
    secret: str

    def __repr__(self) -> str:
        return (
            f"IDTokenCacheItem(home_account_id={self.home_account_id!r}, "
            f"environment={self.environment!r}, realm={self.realm!r}, "
            f"client_id={self.client_id!r})"
        )


@dataclass(frozen=True)
class Account:
    """
    Signed-in account. One per (home_account_id, environment, realm).

    Attributes:
        home_account_id: Stable user identifier
        environment: Authority host
        realm: Tenant
        local_account_id: Object id of the user inside the tenant
        authority_type: Kind of authority that issued the account
        username: Preferred username from the ID token
    """

    home_account_id: str
    environment: str
    realm: str
    local_account_id: str
    authority_type: AuthorityType
    username: str


@dataclass(frozen=True)
class AppMetadata:
    """Maps a client id to the family it belongs to ("" when none)."""

    client_id: str
    environment: str
    family_id: str = ""


@dataclass(frozen=True)
class StorageTokenResponse:
    """Result of a cache lookup. Any part may be absent."""

    access_token: AccessTokenCacheItem | None = None
    refresh_token: RefreshTokenCacheItem | None = None
    id_token: IDTokenCacheItem | None = None
    account: Account | None = None


@dataclass(frozen=True)
class OperationStatus:
    """Outcome of a storage deletion."""

    status_type: OperationStatusType
    code: int = 0
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status_type == OperationStatusType.SUCCESS

    @classmethod
    def success(cls) -> "OperationStatus":
        return cls(OperationStatusType.SUCCESS)

    @classmethod
    def failure(cls, message: str = "", code: int = 1) -> "OperationStatus":
        return cls(OperationStatusType.FAILURE, code=code, message=message)


@dataclass(frozen=True)
class AuthorityInfo:
    """
    Authority a request is made against.

    Attributes:
        host: Authority host, e.g. "login.microsoftonline.com"
        tenant: Tenant segment of the authority URI, used as the cache realm
        authority_type: Kind of authority
        canonical_authority_uri: "https://<host>/<tenant>/"
    """

    host: str
    tenant: str
    authority_type: AuthorityType = AuthorityType.AAD
    canonical_authority_uri: str = ""

    @classmethod
    def from_uri(
        cls, authority_uri: str, authority_type: AuthorityType = AuthorityType.AAD
    ) -> "AuthorityInfo":
        """
        Parse an authority URI.

        Args:
            authority_uri: e.g. "https://login.microsoftonline.com/common/"
            authority_type: Kind of authority

        Returns:
            AuthorityInfo instance

        Raises:
            ValueError: If the URI is not https or has no tenant segment
        """
        parsed = urlparse(authority_uri)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValueError(f"Authority must be an https URL: {authority_uri!r}")

        segments = [s for s in parsed.path.split("/") if s]
        if not segments:
            raise ValueError(f"Authority has no tenant segment: {authority_uri!r}")

        host = parsed.netloc.lower()
        tenant = segments[0]
        return cls(
            host=host,
            tenant=tenant,
            authority_type=authority_type,
            canonical_authority_uri=f"https://{host}/{tenant}/",
        )


@dataclass(frozen=True)
class InstanceDiscoveryMetadata:
    """Alias group for one authority, as returned by instance discovery."""

    aliases: tuple[str, ...]
    preferred_network: str = ""
    preferred_cache: str = ""


@dataclass(frozen=True)
class AuthParameters:
    """
    Description of an in-flight authentication request.

    Attributes:
        client_id: Application making the request
        authority_info: Authority the request targets
        scopes: Requested scopes
        home_account_id: Account to look up ("" when not yet known)
        correlation_id: Request correlation id for diagnostics
    """

    client_id: str
    authority_info: AuthorityInfo
    scopes: tuple[str, ...] = ()
    home_account_id: str = ""
    correlation_id: str = ""

    @property
    def realm(self) -> str:
        return self.authority_info.tenant

    @property
    def environment(self) -> str:
        return self.authority_info.host


@dataclass(frozen=True)
class CacheAccessContext:
    """Passed to a cache access aspect around each cache operation."""

    client_id: str
    operation: str
    has_state_changed: bool = False


__all__ = [
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
]
