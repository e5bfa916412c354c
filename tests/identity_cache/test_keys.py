"""Tests for composite cache keys."""

import pytest

from identity_cache.errors import MissingCacheKeyError
from identity_cache.keys import (
    access_token_key,
    account_key,
    app_metadata_key,
    concatenate_scopes,
    credential_key,
    environment_matches,
    id_token_key,
    missing_fields,
    refresh_token_key,
    require_keys,
    split_target,
)
from identity_cache.models import (
    AccessTokenCacheItem,
    Account,
    AppMetadata,
    IDTokenCacheItem,
    RefreshTokenCacheItem,
)
from identity_cache.types import AuthorityType, CredentialType


class TestMissingFields:
    """Tests for required-field detection."""

    def test_all_present(self):
        assert missing_fields(home_account_id="h", client_id="c", scopes=["a"]) == []

    def test_blank_strings_are_missing(self):
        """Whitespace-only strings count as empty."""
        assert missing_fields(home_account_id="  ", realm="", client_id="c") == [
            "home_account_id",
            "realm",
        ]

    def test_empty_collections_are_missing(self):
        assert missing_fields(scopes=(), aliases=[]) == ["scopes", "aliases"]

    def test_require_keys_raises(self):
        """Should raise with operation and missing field names."""
        with pytest.raises(MissingCacheKeyError) as exc_info:
            require_keys("try_read_cache", "keys missing", client_id="", realm="r")

        assert exc_info.value.operation == "try_read_cache"
        assert exc_info.value.missing_fields == ("client_id",)
        assert str(exc_info.value) == "keys missing"

    def test_require_keys_passes(self):
        require_keys("op", "msg", client_id="c")


class TestScopes:
    """Tests for scope/target conversion."""

    def test_concatenate(self):
        assert concatenate_scopes(["user.read", "mail.read"]) == "user.read mail.read"

    def test_concatenate_drops_blanks(self):
        assert concatenate_scopes(["", " user.read ", "  "]) == "user.read"

    def test_split_target(self):
        assert split_target("user.read  mail.read") == ["user.read", "mail.read"]


class TestEnvironmentMatches:
    """Tests for alias membership."""

    def test_case_insensitive(self):
        assert environment_matches("Login.Contoso.COM", ["login.contoso.com"])

    def test_not_in_aliases(self):
        assert not environment_matches("login.contoso.org", ["login.contoso.com"])

    def test_empty_aliases(self):
        assert not environment_matches("login.contoso.com", [])


class TestEntityKeys:
    """Tests for storage key construction."""

    def test_credential_key_lowercased(self):
        key = credential_key(
            "UID.UTID", "Login.Contoso.com", CredentialType.OAUTH2_ACCESS_TOKEN, "App", "Tenant", "User.Read"
        )
        assert key == "uid.utid-login.contoso.com-accesstoken-app-tenant-user.read"

    def test_access_token_key(self):
        item = AccessTokenCacheItem.create(
            "uid.utid", "login.contoso.com", "tenant", "app",
            cached_at=1, expires_on=2, extended_expires_on=2, target="user.read", secret="s",
        )
        assert access_token_key(item) == "uid.utid-login.contoso.com-accesstoken-app-tenant-user.read"

    def test_refresh_token_key_uses_family(self):
        """Family tokens should share one key across clients."""
        a = RefreshTokenCacheItem("uid.utid", "login.contoso.com", "client-a", "s", family_id="1")
        b = RefreshTokenCacheItem("uid.utid", "login.contoso.com", "client-b", "s", family_id="1")
        assert refresh_token_key(a) == refresh_token_key(b)
        assert refresh_token_key(a) == "uid.utid-login.contoso.com-refreshtoken-1--"

    def test_refresh_token_key_uses_client_without_family(self):
        item = RefreshTokenCacheItem("uid.utid", "login.contoso.com", "client-a", "s")
        assert refresh_token_key(item) == "uid.utid-login.contoso.com-refreshtoken-client-a--"

    def test_id_token_key(self):
        item = IDTokenCacheItem("uid.utid", "login.contoso.com", "tenant", "app", "jwt")
        assert id_token_key(item) == "uid.utid-login.contoso.com-idtoken-app-tenant-"

    def test_account_key(self):
        account = Account("uid.utid", "login.contoso.com", "Tenant", "oid", AuthorityType.AAD, "u")
        assert account_key(account) == "uid.utid-login.contoso.com-tenant"

    def test_app_metadata_key(self):
        assert app_metadata_key(AppMetadata("App", "login.contoso.com")) == (
            "appmetadata-login.contoso.com-app"
        )
