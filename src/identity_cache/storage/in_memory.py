"""
In-memory storage port.

Reference implementation of the StorageManager protocol for local
development and testing. Entities are held in dicts keyed by the composite
key strings from identity_cache.keys.

Concurrency:
    Each individual read/write/delete holds an asyncio.Lock, so a single
    operation never observes a half-applied write. A sequence of writes from
    one cache_token_response call is not isolated from other callers;
    concurrent writes to the same key are last-write-wins. transaction()
    journals the keys written inside it and, on failure, undoes only those
    keys, leaving other callers' writes in place.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Sequence
from contextvars import ContextVar

from identity_cache.keys import (
    access_token_key,
    account_key,
    app_metadata_key,
    environment_matches,
    id_token_key,
    refresh_token_key,
)
from identity_cache.models import (
    AccessTokenCacheItem,
    Account,
    AppMetadata,
    IDTokenCacheItem,
    OperationStatus,
    RefreshTokenCacheItem,
)
from identity_cache.types import CredentialType

logger = logging.getLogger(__name__)

_MISSING = object()

# (table, key, value before the write, value written) for the active transaction
_journal: ContextVar[list[tuple[dict, str, object, object]] | None] = ContextVar(
    "identity_cache_transaction_journal", default=None
)


def _scopes_match(requested: Sequence[str], target: str) -> bool:
    """Requested scopes are a case-insensitive subset of the cached target."""
    granted = {scope.lower() for scope in target.split()}
    return all(scope.lower() in granted for scope in requested)


class InMemoryStorageManager:
    """
    Dict-backed storage port with optional transactional writes.

    Args:
        supports_transactions: Advertise transaction() to the cache manager

    Example:
        >>> storage = InMemoryStorageManager()
        >>> manager = CacheManager(storage)
    """

    def __init__(self, supports_transactions: bool = False) -> None:
        self.supports_transactions = supports_transactions
        self._access_tokens: dict[str, AccessTokenCacheItem] = {}
        self._refresh_tokens: dict[str, RefreshTokenCacheItem] = {}
        self._id_tokens: dict[str, IDTokenCacheItem] = {}
        self._accounts: dict[str, Account] = {}
        self._app_metadata: dict[str, AppMetadata] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_access_token(
        self,
        home_account_id: str,
        aliases: Sequence[str],
        realm: str,
        client_id: str,
        scopes: Sequence[str],
    ) -> AccessTokenCacheItem | None:
        async with self._lock:
            for item in self._access_tokens.values():
                if (
                    item.home_account_id == home_account_id
                    and environment_matches(item.environment, aliases)
                    and item.realm.lower() == realm.lower()
                    and item.client_id == client_id
                    and _scopes_match(scopes, item.target)
                ):
                    return item
            return None

    async def read_refresh_token(
        self,
        home_account_id: str,
        aliases: Sequence[str],
        family_id: str,
        client_id: str,
    ) -> RefreshTokenCacheItem | None:
        """
        Find a refresh token.

        With a family id, any token of that family matches regardless of the
        client it was issued to. Without one, only the client's own token does.
        """
        async with self._lock:
            for item in self._refresh_tokens.values():
                if item.home_account_id != home_account_id:
                    continue
                if not environment_matches(item.environment, aliases):
                    continue
                if family_id:
                    if item.family_id == family_id:
                        return item
                elif item.client_id == client_id:
                    return item
            return None

    async def read_id_token(
        self,
        home_account_id: str,
        aliases: Sequence[str],
        realm: str,
        client_id: str,
    ) -> IDTokenCacheItem | None:
        async with self._lock:
            for item in self._id_tokens.values():
                if (
                    item.home_account_id == home_account_id
                    and environment_matches(item.environment, aliases)
                    and item.realm.lower() == realm.lower()
                    and item.client_id == client_id
                ):
                    return item
            return None

    async def read_account(
        self, home_account_id: str, aliases: Sequence[str], realm: str
    ) -> Account | None:
        async with self._lock:
            for account in self._accounts.values():
                if (
                    account.home_account_id == home_account_id
                    and environment_matches(account.environment, aliases)
                    and account.realm.lower() == realm.lower()
                ):
                    return account
            return None

    async def read_all_accounts(self) -> list[Account]:
        async with self._lock:
            return list(self._accounts.values())

    async def read_app_metadata(
        self, aliases: Sequence[str], client_id: str
    ) -> AppMetadata | None:
        async with self._lock:
            for app_metadata in self._app_metadata.values():
                if app_metadata.client_id == client_id and environment_matches(
                    app_metadata.environment, aliases
                ):
                    return app_metadata
            return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _put(self, table: dict, key: str, value: object) -> None:
        async with self._lock:
            journal = _journal.get()
            if journal is not None:
                journal.append((table, key, table.get(key, _MISSING), value))
            table[key] = value

    async def write_access_token(self, item: AccessTokenCacheItem) -> None:
        await self._put(self._access_tokens, access_token_key(item), item)

    async def write_refresh_token(self, item: RefreshTokenCacheItem) -> None:
        await self._put(self._refresh_tokens, refresh_token_key(item), item)

    async def write_id_token(self, item: IDTokenCacheItem) -> None:
        await self._put(self._id_tokens, id_token_key(item), item)

    async def write_account(self, account: Account) -> None:
        await self._put(self._accounts, account_key(account), account)

    async def write_app_metadata(self, app_metadata: AppMetadata) -> None:
        await self._put(self._app_metadata, app_metadata_key(app_metadata), app_metadata)

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    async def delete_credentials(
        self,
        correlation_id: str,
        home_account_id: str,
        environment: str,
        realm: str,
        client_id: str,
        family_id: str,
        target: str,
        credential_types: set[CredentialType],
    ) -> OperationStatus:
        """
        Delete credentials matching every non-empty filter field.

        Deleting nothing is a success, so repeated deletes are idempotent.
        """

        def matches(item) -> bool:
            if home_account_id and item.home_account_id != home_account_id:
                return False
            if environment and item.environment.lower() != environment.lower():
                return False
            if realm and getattr(item, "realm", "").lower() != realm.lower():
                return False
            if client_id and item.client_id != client_id:
                return False
            if family_id and getattr(item, "family_id", "") != family_id:
                return False
            if target and getattr(item, "target", "") != target:
                return False
            return True

        tables: list[dict] = []
        if CredentialType.OAUTH2_ACCESS_TOKEN in credential_types:
            tables.append(self._access_tokens)
        if CredentialType.OAUTH2_REFRESH_TOKEN in credential_types:
            tables.append(self._refresh_tokens)
        if CredentialType.OIDC_ID_TOKEN in credential_types:
            tables.append(self._id_tokens)

        removed = 0
        async with self._lock:
            for table in tables:
                for key in [k for k, item in table.items() if matches(item)]:
                    del table[key]
                    removed += 1

        logger.debug(
            f"Deleted {removed} credentials",
            extra={"correlation_id": correlation_id, "credential_types": credential_types},
        )
        return OperationStatus.success()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def _undo(self, journal: list[tuple[dict, str, object, object]]) -> int:
        undone = 0
        async with self._lock:
            for table, key, previous, written in reversed(journal):
                # Another caller has written this key since; theirs wins
                if table.get(key, _MISSING) is not written:
                    continue
                if previous is _MISSING:
                    del table[key]
                else:
                    table[key] = previous
                undone += 1
        return undone

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Group writes so that they all apply or none do.

        Writes made by the current task inside the block are journaled. If the
        block raises, each journaled key gets its previous value back, unless
        another caller has overwritten it in the meantime. Writes from other
        callers are never undone.
        """
        journal: list[tuple[dict, str, object, object]] = []
        token = _journal.set(journal)
        try:
            yield
        except BaseException:
            undone = await self._undo(journal)
            logger.debug(f"Rolled back cache transaction ({undone} writes undone)")
            raise
        finally:
            _journal.reset(token)


__all__ = ["InMemoryStorageManager"]
