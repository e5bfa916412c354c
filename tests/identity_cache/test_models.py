"""Tests for cache data models."""

import dataclasses

import pytest

from identity_cache.models import (
    AccessTokenCacheItem,
    AuthorityInfo,
    AuthParameters,
    OperationStatus,
    RefreshTokenCacheItem,
)
from identity_cache.types import AuthorityType, OperationStatusType


class TestAccessTokenCacheItem:
    """Tests for AccessTokenCacheItem."""

    def test_create_stores_decimal_strings(self):
        item = AccessTokenCacheItem.create(
            "uid.utid", "login.contoso.com", "tenant", "app",
            cached_at=100, expires_on=200, extended_expires_on=300, target="user.read", secret="s",
        )
        assert item.cached_at == "100"
        assert item.expires_on == "200"
        assert item.extended_expires_on == "300"

    def test_immutable(self):
        """Items should not be modifiable after construction."""
        item = AccessTokenCacheItem.create(
            "uid.utid", "login.contoso.com", "tenant", "app",
            cached_at=1, expires_on=2, extended_expires_on=2, target="t", secret="s",
        )
        with pytest.raises(dataclasses.FrozenInstanceError):
            item.secret = "other"

    def test_repr_hides_secret(self):
        item = AccessTokenCacheItem.create(
            "uid.utid", "login.contoso.com", "tenant", "app",
            cached_at=1, expires_on=2, extended_expires_on=2, target="t", secret="super-secret",
        )
        assert "super-secret" not in repr(item)

    def test_refresh_token_repr_hides_secret(self):
        item = RefreshTokenCacheItem("uid.utid", "login.contoso.com", "app", "rt-value")
        assert "rt-value" not in repr(item)
        assert item.family_id == ""


class TestOperationStatus:
    """Tests for OperationStatus."""

    def test_success(self):
        status = OperationStatus.success()
        assert status.succeeded
        assert status.status_type == OperationStatusType.SUCCESS

    def test_failure(self):
        status = OperationStatus.failure("locked", code=7)
        assert not status.succeeded
        assert status.code == 7
        assert status.message == "locked"


class TestAuthorityInfo:
    """Tests for AuthorityInfo.from_uri."""

    def test_parses_host_and_tenant(self):
        info = AuthorityInfo.from_uri("https://Login.Contoso.com/tenant-1/oauth2/v2.0")
        assert info.host == "login.contoso.com"
        assert info.tenant == "tenant-1"
        assert info.canonical_authority_uri == "https://login.contoso.com/tenant-1/"
        assert info.authority_type == AuthorityType.AAD

    def test_authority_type(self):
        info = AuthorityInfo.from_uri("https://adfs.contoso.com/adfs/", AuthorityType.ADFS)
        assert info.authority_type == AuthorityType.ADFS

    @pytest.mark.parametrize(
        "uri",
        ["http://login.contoso.com/tenant/", "https://login.contoso.com/", "not a url"],
    )
    def test_rejects_invalid(self, uri):
        with pytest.raises(ValueError):
            AuthorityInfo.from_uri(uri)


class TestAuthParameters:
    """Tests for AuthParameters."""

    def test_realm_and_environment(self):
        params = AuthParameters(
            client_id="app",
            authority_info=AuthorityInfo.from_uri("https://login.contoso.com/tenant-1/"),
        )
        assert params.realm == "tenant-1"
        assert params.environment == "login.contoso.com"
        assert params.scopes == ()
        assert params.home_account_id == ""
