"""
Composite key model for cached entities.

Defines which identity fields must be present for each cache operation and
how entities are addressed in storage. Lookups are always made against the
full alias set of an authority, never a single host, since an entry may have
been written under any alias.
"""

from collections.abc import Iterable, Sequence

from identity_cache.errors import MissingCacheKeyError
from identity_cache.types import CredentialType

KEY_SEPARATOR = "-"
APP_METADATA_PREFIX = "appmetadata"


def missing_fields(**fields: object) -> list[str]:
    """
    Return the names of empty fields, in argument order.

    Strings are empty when blank; sequences and sets when they have no items.

    Example:
        >>> missing_fields(home_account_id="", client_id="app", scopes=[])
        ['home_account_id', 'scopes']
    """
    missing = []
    for name, value in fields.items():
        if isinstance(value, str):
            if not value.strip():
                missing.append(name)
        elif not value:
            missing.append(name)
    return missing


def require_keys(operation: str, message: str, **fields: object) -> None:
    """
    Raise MissingCacheKeyError if any of the given fields is empty.

    Args:
        operation: Name of the cache operation, for diagnostics
        message: Error message surfaced to the caller
        **fields: Field name to value

    Raises:
        MissingCacheKeyError: If one or more fields are empty
    """
    missing = missing_fields(**fields)
    if missing:
        raise MissingCacheKeyError(message, operation=operation, missing_fields=missing)


def concatenate_scopes(scopes: Iterable[str]) -> str:
    """Join scopes into a target string, dropping blanks."""
    return " ".join(scope.strip() for scope in scopes if scope and scope.strip())


def split_target(target: str) -> list[str]:
    """Split a target string back into scopes."""
    return target.split()


def environment_matches(environment: str, aliases: Sequence[str]) -> bool:
    """Case-insensitive membership of an entity's environment in an alias set."""
    env = environment.lower()
    return any(env == alias.lower() for alias in aliases)


def credential_key(
    home_account_id: str,
    environment: str,
    credential_type: CredentialType,
    client_id: str,
    realm: str = "",
    target: str = "",
) -> str:
    """
    Storage key for a credential.

    Format: <home>-<environment>-<credentialtype>-<client>-<realm>-<target>,
    lowercased. For family refresh tokens pass the family id as client_id.
    """
    parts = [
        home_account_id,
        environment,
        credential_type.value,
        client_id,
        realm,
        target,
    ]
    return KEY_SEPARATOR.join(parts).lower()


def access_token_key(item) -> str:
    return credential_key(
        item.home_account_id,
        item.environment,
        CredentialType.OAUTH2_ACCESS_TOKEN,
        item.client_id,
        item.realm,
        item.target,
    )


def refresh_token_key(item) -> str:
    # Family tokens are addressed by family, so one entry serves every member
    return credential_key(
        item.home_account_id,
        item.environment,
        CredentialType.OAUTH2_REFRESH_TOKEN,
        item.family_id or item.client_id,
    )


def id_token_key(item) -> str:
    return credential_key(
        item.home_account_id,
        item.environment,
        CredentialType.OIDC_ID_TOKEN,
        item.client_id,
        item.realm,
    )


def account_key(account) -> str:
    """Storage key for an account: <home>-<environment>-<realm>."""
    return KEY_SEPARATOR.join(
        [account.home_account_id, account.environment, account.realm]
    ).lower()


def app_metadata_key(app_metadata) -> str:
    """Storage key for app metadata: appmetadata-<environment>-<client>."""
    return KEY_SEPARATOR.join(
        [APP_METADATA_PREFIX, app_metadata.environment, app_metadata.client_id]
    ).lower()


__all__ = [
    "missing_fields",
    "require_keys",
    "concatenate_scopes",
    "split_target",
    "environment_matches",
    "credential_key",
    "access_token_key",
    "refresh_token_key",
    "id_token_key",
    "account_key",
    "app_metadata_key",
]
