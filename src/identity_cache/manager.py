"""
Token cache manager.

Implements the cache read/write protocol on top of a storage port:

- try_read_cache: resolve cached credentials for a request
- cache_token_response: persist a completed token issuance
- delete_cached_refresh_token / _delete_cached_access_token: invalidation

The manager holds no cache or lock of its own; every call goes to the
storage port. Writes are a best-effort sequence: a failing step aborts the
remaining ones and leaves earlier ones committed, unless the storage port
advertises supports_transactions, in which case the sequence runs inside
storage.transaction().
"""

import contextlib
import time
from collections.abc import AsyncIterator, Callable, Sequence
from typing import cast

from identity_cache.config import CacheConfig
from identity_cache.errors import MissingCacheKeyError
from identity_cache.keys import concatenate_scopes, require_keys
from identity_cache.models import (
    AccessTokenCacheItem,
    Account,
    AppMetadata,
    AuthParameters,
    CacheAccessContext,
    IDTokenCacheItem,
    RefreshTokenCacheItem,
    StorageTokenResponse,
)
from identity_cache.observability import CacheEvent, CacheEventSink, LoggingEventSink
from identity_cache.tokens import TokenResponse
from identity_cache.types import (
    AuthorityAliasResolver,
    CacheAccessAspect,
    CredentialType,
    StorageManager,
    TransactionalStorageManager,
)
from identity_cache.validity import EXPIRY_BUFFER_SECONDS, is_access_token_valid

READ_KEYS_MISSING = "Skipping the tokens cache lookup, one of the primary keys is empty"
WRITE_KEYS_MISSING = "Skipping writing data to the tokens cache, one of the primary keys is empty"
REFRESH_DELETE_KEYS_MISSING = (
    "Failed to delete refresh token from the cache, one of the primary keys is empty"
)
ACCESS_DELETE_KEYS_MISSING = (
    "Failed to delete access token from the cache, one of the primary keys is empty"
)


class CacheManager:
    """
    Reads and writes identity credentials through a storage port.

    Usage:
        manager = CacheManager(InMemoryStorageManager())

        account = await manager.cache_token_response(params, token_response)
        cached = await manager.try_read_cache(params_with_account, resolver)
        if cached.access_token:
            headers = {"Authorization": f"Bearer {cached.access_token.secret}"}
    """

    def __init__(
        self,
        storage: StorageManager,
        events: CacheEventSink | None = None,
        cache_access_aspect: CacheAccessAspect | None = None,
        expiry_buffer_seconds: int = EXPIRY_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache manager.

        Args:
            storage: Storage port
            events: Sink for cache events (default: LoggingEventSink)
            cache_access_aspect: Optional hook called around each cache access
            expiry_buffer_seconds: Access tokens expiring within this window are unusable
            clock: Returns current epoch seconds
        """
        self.storage = storage
        self.events = events or LoggingEventSink()
        self.cache_access_aspect = cache_access_aspect
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        storage: StorageManager,
        config: CacheConfig,
        events: CacheEventSink | None = None,
        cache_access_aspect: CacheAccessAspect | None = None,
    ) -> "CacheManager":
        """Build a manager from a CacheConfig."""
        return cls(
            storage,
            events=events,
            cache_access_aspect=cache_access_aspect,
            expiry_buffer_seconds=config.expiry_buffer_seconds,
        )

    def _now(self) -> int:
        return int(self._clock())

    @contextlib.asynccontextmanager
    async def _cache_access(
        self, operation: str, client_id: str, has_state_changed: bool
    ) -> AsyncIterator[None]:
        if self.cache_access_aspect is None:
            yield
            return

        await self.cache_access_aspect.before_cache_access(
            CacheAccessContext(client_id=client_id, operation=operation)
        )
        try:
            yield
        finally:
            await self.cache_access_aspect.after_cache_access(
                CacheAccessContext(
                    client_id=client_id,
                    operation=operation,
                    has_state_changed=has_state_changed,
                )
            )

    def _require_keys(
        self, skipped_event: CacheEvent, operation: str, message: str, **fields: object
    ) -> None:
        try:
            require_keys(operation, message, **fields)
        except MissingCacheKeyError as e:
            self.events.emit(
                skipped_event,
                client_id=fields.get("client_id", ""),
                missing_fields=list(e.missing_fields),
            )
            raise

    def _write_scope(self) -> contextlib.AbstractAsyncContextManager:
        if getattr(self.storage, "supports_transactions", False):
            return cast(TransactionalStorageManager, self.storage).transaction()
        return contextlib.nullcontext()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def get_all_accounts(self) -> list[Account]:
        """Return every cached account, in storage order."""
        return await self.storage.read_all_accounts()

    async def resolve_family_id(self, aliases: Sequence[str], client_id: str) -> str:
        """
        Look up the family a client belongs to.

        Returns "" when the client has no app metadata or is in no family.
        """
        app_metadata = await self.storage.read_app_metadata(aliases, client_id)
        if app_metadata is None:
            return ""
        return app_metadata.family_id

    async def try_read_cache(
        self,
        auth_parameters: AuthParameters,
        alias_resolver: AuthorityAliasResolver,
    ) -> StorageTokenResponse:
        """
        Resolve cached credentials for a request.

        Each entity is looked up across every alias of the request's
        authority. An access token that fails validation is reported as
        absent. Absent entities never fail the call.

        Args:
            auth_parameters: Request description
            alias_resolver: Supplies the authority's alias set

        Returns:
            StorageTokenResponse with whatever was found

        Raises:
            MissingCacheKeyError: If a required key field is empty (no storage access)
            Exception: Whatever alias_resolver raises, unmodified
        """
        home_account_id = auth_parameters.home_account_id
        realm = auth_parameters.realm
        client_id = auth_parameters.client_id
        scopes = tuple(auth_parameters.scopes)

        metadata = await alias_resolver.get_metadata_entry(auth_parameters.authority_info)
        aliases = tuple(alias for alias in metadata.aliases if alias)

        self._require_keys(
            CacheEvent.CACHE_LOOKUP_SKIPPED,
            "try_read_cache",
            READ_KEYS_MISSING,
            home_account_id=home_account_id,
            aliases=aliases,
            realm=realm,
            client_id=client_id,
            scopes=scopes,
        )

        self.events.emit(
            CacheEvent.CACHE_LOOKUP,
            home_account_id=home_account_id,
            aliases=list(aliases),
            realm=realm,
            client_id=client_id,
            scopes=list(scopes),
        )

        start_time = time.perf_counter()
        async with self._cache_access("try_read_cache", client_id, has_state_changed=False):
            access_token = await self.storage.read_access_token(
                home_account_id, aliases, realm, client_id, scopes
            )
            if access_token is not None and not is_access_token_valid(
                access_token,
                now=self._now(),
                buffer_seconds=self.expiry_buffer_seconds,
                events=self.events,
            ):
                access_token = None

            id_token = await self.storage.read_id_token(
                home_account_id, aliases, realm, client_id
            )

            family_id = await self.resolve_family_id(aliases, client_id)
            refresh_token = await self.storage.read_refresh_token(
                home_account_id, aliases, family_id, client_id
            )

            account = await self.storage.read_account(home_account_id, aliases, realm)

        self.events.emit(
            CacheEvent.CACHE_LOOKUP_RESULT,
            client_id=client_id,
            family_id=family_id,
            found_access_token=access_token is not None,
            found_refresh_token=refresh_token is not None,
            found_id_token=id_token is not None,
            found_account=account is not None,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )

        return StorageTokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            id_token=id_token,
            account=account,
        )

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def cache_token_response(
        self,
        auth_parameters: AuthParameters,
        token_response: TokenResponse,
    ) -> Account:
        """
        Persist a completed token issuance.

        Writes, in order: refresh token (if any), access token (if any and
        not already expired), ID token, account, app metadata. A storage
        error aborts the remaining writes and propagates; earlier writes stay
        committed unless the storage port supports transactions.

        Args:
            auth_parameters: Request the response answers
            token_response: Completed token issuance

        Returns:
            The cached Account

        Raises:
            MissingCacheKeyError: If a required key field is empty (nothing written)
            Exception: Whatever the storage port raises, unmodified
        """
        home_account_id = token_response.home_account_id
        environment = auth_parameters.environment
        realm = auth_parameters.realm
        client_id = auth_parameters.client_id
        target = concatenate_scopes(token_response.granted_scopes)

        self.events.emit(
            CacheEvent.CACHE_WRITE,
            home_account_id=home_account_id,
            environment=environment,
            realm=realm,
            client_id=client_id,
            target=target,
        )

        self._require_keys(
            CacheEvent.CACHE_WRITE_SKIPPED,
            "cache_token_response",
            WRITE_KEYS_MISSING,
            home_account_id=home_account_id,
            environment=environment,
            realm=realm,
            client_id=client_id,
            target=target,
        )

        async with self._cache_access("cache_token_response", client_id, has_state_changed=True):
            async with self._write_scope():
                return await self._write_entities(
                    auth_parameters,
                    token_response,
                    home_account_id=home_account_id,
                    environment=environment,
                    realm=realm,
                    client_id=client_id,
                    target=target,
                )

    async def _write_entities(
        self,
        auth_parameters: AuthParameters,
        token_response: TokenResponse,
        home_account_id: str,
        environment: str,
        realm: str,
        client_id: str,
        target: str,
    ) -> Account:
        cached_at = self._now()

        if token_response.has_refresh_token():
            await self.storage.write_refresh_token(
                RefreshTokenCacheItem(
                    home_account_id=home_account_id,
                    environment=environment,
                    client_id=client_id,
                    secret=token_response.refresh_token,
                    family_id=token_response.family_id,
                )
            )

        if token_response.has_access_token():
            access_token = AccessTokenCacheItem.create(
                home_account_id=home_account_id,
                environment=environment,
                realm=realm,
                client_id=client_id,
                cached_at=cached_at,
                expires_on=int(token_response.expires_on.timestamp()),
                extended_expires_on=int(token_response.ext_expires_on.timestamp()),
                target=target,
                secret=token_response.access_token,
            )
            if is_access_token_valid(
                access_token,
                now=cached_at,
                buffer_seconds=self.expiry_buffer_seconds,
                events=self.events,
            ):
                await self.storage.write_access_token(access_token)
            else:
                self.events.emit(
                    CacheEvent.ACCESS_TOKEN_NOT_PERSISTED,
                    client_id=client_id,
                    target=target,
                    expires_on=access_token.expires_on,
                )

        id_token = token_response.id_token
        await self.storage.write_id_token(
            IDTokenCacheItem(
                home_account_id=home_account_id,
                environment=environment,
                realm=realm,
                client_id=client_id,
                secret=id_token.raw_token,
            )
        )

        account = Account(
            home_account_id=home_account_id,
            environment=environment,
            realm=realm,
            local_account_id=id_token.local_account_id,
            authority_type=auth_parameters.authority_info.authority_type,
            username=id_token.preferred_username,
        )
        await self.storage.write_account(account)

        await self.storage.write_app_metadata(
            AppMetadata(
                client_id=client_id,
                environment=environment,
                family_id=token_response.family_id,
            )
        )

        return account

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_cached_refresh_token(self, auth_parameters: AuthParameters) -> None:
        """
        Remove the refresh token of a request's account and client.

        Best-effort: a failure reported by the storage port, or raised by it,
        is emitted as REFRESH_TOKEN_DELETE_FAILED and not propagated.

        Raises:
            MissingCacheKeyError: If home account id, environment or client id is empty
        """
        home_account_id = auth_parameters.home_account_id
        environment = auth_parameters.environment
        client_id = auth_parameters.client_id

        self.events.emit(
            CacheEvent.REFRESH_TOKEN_DELETE,
            home_account_id=home_account_id,
            environment=environment,
            client_id=client_id,
        )

        self._require_keys(
            CacheEvent.REFRESH_TOKEN_DELETE_SKIPPED,
            "delete_cached_refresh_token",
            REFRESH_DELETE_KEYS_MISSING,
            home_account_id=home_account_id,
            environment=environment,
            client_id=client_id,
        )

        async with self._cache_access(
            "delete_cached_refresh_token", client_id, has_state_changed=True
        ):
            try:
                status = await self.storage.delete_credentials(
                    auth_parameters.correlation_id,
                    home_account_id,
                    environment,
                    "",
                    client_id,
                    "",
                    "",
                    {CredentialType.OAUTH2_REFRESH_TOKEN},
                )
            except Exception as e:
                self.events.emit(
                    CacheEvent.REFRESH_TOKEN_DELETE_FAILED,
                    error=e,
                    client_id=client_id,
                    environment=environment,
                )
                return None

        if not status.succeeded:
            self.events.emit(
                CacheEvent.REFRESH_TOKEN_DELETE_FAILED,
                client_id=client_id,
                environment=environment,
                status=status.status_type.value,
                status_code=status.code,
            )
        return None

    async def _delete_cached_access_token(
        self,
        home_account_id: str,
        environment: str,
        realm: str,
        client_id: str,
        target: str,
    ) -> None:
        """
        Remove an access token.

        A failure status from the storage port is emitted and absorbed; an
        exception raised by it propagates.

        Raises:
            MissingCacheKeyError: If home account id, environment, realm or client id is empty
            Exception: Whatever the storage port raises, unmodified
        """
        self.events.emit(
            CacheEvent.ACCESS_TOKEN_DELETE,
            home_account_id=home_account_id,
            environment=environment,
            realm=realm,
            client_id=client_id,
            target=target,
        )

        self._require_keys(
            CacheEvent.ACCESS_TOKEN_DELETE_SKIPPED,
            "delete_cached_access_token",
            ACCESS_DELETE_KEYS_MISSING,
            home_account_id=home_account_id,
            environment=environment,
            realm=realm,
            client_id=client_id,
        )

        async with self._cache_access(
            "delete_cached_access_token", client_id, has_state_changed=True
        ):
            status = await self.storage.delete_credentials(
                "",
                home_account_id,
                environment,
                realm,
                client_id,
                "",
                target,
                {CredentialType.OAUTH2_ACCESS_TOKEN},
            )

        if not status.succeeded:
            self.events.emit(
                CacheEvent.ACCESS_TOKEN_DELETE_FAILED,
                client_id=client_id,
                environment=environment,
                status=status.status_type.value,
                status_code=status.code,
            )
        return None


__all__ = ["CacheManager"]
