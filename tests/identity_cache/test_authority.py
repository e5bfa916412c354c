"""Tests for static authority alias resolution."""

import pytest

from identity_cache.authority import PUBLIC_CLOUD_ALIASES, StaticAliasResolver
from identity_cache.errors import AliasResolutionError
from identity_cache.models import AuthorityInfo


def _authority(host: str) -> AuthorityInfo:
    return AuthorityInfo.from_uri(f"https://{host}/common/")


class TestStaticAliasResolver:
    """Tests for StaticAliasResolver."""

    @pytest.mark.asyncio
    async def test_returns_group(self):
        """Every host in a group should resolve to the whole group."""
        resolver = StaticAliasResolver([["login.contoso.com", "login.contoso.net"]])

        metadata = await resolver.get_metadata_entry(_authority("login.contoso.net"))

        assert metadata.aliases == ("login.contoso.com", "login.contoso.net")
        assert metadata.preferred_network == "login.contoso.com"
        assert metadata.preferred_cache == "login.contoso.com"

    @pytest.mark.asyncio
    async def test_hosts_are_lowercased(self):
        resolver = StaticAliasResolver([["Login.Contoso.COM"]])

        metadata = await resolver.get_metadata_entry(_authority("login.contoso.com"))

        assert metadata.aliases == ("login.contoso.com",)

    @pytest.mark.asyncio
    async def test_unknown_host_resolves_to_itself(self):
        resolver = StaticAliasResolver([PUBLIC_CLOUD_ALIASES])

        metadata = await resolver.get_metadata_entry(_authority("login.fabrikam.com"))

        assert metadata.aliases == ("login.fabrikam.com",)

    @pytest.mark.asyncio
    async def test_unknown_host_strict(self):
        """Strict resolvers should refuse hosts in no group."""
        resolver = StaticAliasResolver([PUBLIC_CLOUD_ALIASES], strict=True)

        with pytest.raises(AliasResolutionError) as exc_info:
            await resolver.get_metadata_entry(_authority("login.fabrikam.com"))

        assert exc_info.value.is_retryable
        assert exc_info.value.context == {"environment": "login.fabrikam.com"}

    @pytest.mark.asyncio
    async def test_public_cloud(self):
        resolver = StaticAliasResolver([PUBLIC_CLOUD_ALIASES])

        metadata = await resolver.get_metadata_entry(_authority("sts.windows.net"))

        assert "login.microsoftonline.com" in metadata.aliases

    def test_empty_group_rejected(self):
        with pytest.raises(ValueError):
            StaticAliasResolver([[]])

    def test_duplicate_host_rejected(self):
        with pytest.raises(ValueError, match="more than one alias group"):
            StaticAliasResolver([["a.example.com"], ["A.example.com", "b.example.com"]])
