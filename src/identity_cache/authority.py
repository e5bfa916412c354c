"""
Authority alias resolution.

Network instance discovery is owned by the caller; the cache only consumes
the AuthorityAliasResolver protocol. StaticAliasResolver serves alias groups
known ahead of time, which covers well-known clouds and tests.
"""

import logging
from collections.abc import Iterable, Sequence

from identity_cache.errors import AliasResolutionError
from identity_cache.models import AuthorityInfo, InstanceDiscoveryMetadata

logger = logging.getLogger(__name__)


# Public cloud alias group published by instance discovery
PUBLIC_CLOUD_ALIASES = (
    "login.microsoftonline.com",
    "login.windows.net",
    "login.microsoft.com",
    "sts.windows.net",
)


class StaticAliasResolver:
    """
    Resolver backed by fixed alias groups.

    Each group is an ordered sequence of equivalent hosts; the first entry is
    the preferred network and cache host. Hosts in no group resolve to
    themselves unless strict is set.

    Usage:
        resolver = StaticAliasResolver([["login.contoso.com", "login.contoso.net"]])
        metadata = await resolver.get_metadata_entry(authority_info)
        metadata.aliases  # ("login.contoso.com", "login.contoso.net")
    """

    def __init__(self, alias_groups: Iterable[Sequence[str]] = (), strict: bool = False):
        """
        Initialize resolver.

        Args:
            alias_groups: Groups of equivalent authority hosts
            strict: Raise AliasResolutionError for hosts in no group

        Raises:
            ValueError: If a group is empty or a host appears in two groups
        """
        self.strict = strict
        self._entries: dict[str, InstanceDiscoveryMetadata] = {}

        for group in alias_groups:
            aliases = tuple(host.lower() for host in group)
            if not aliases:
                raise ValueError("Alias group must contain at least one host")
            metadata = InstanceDiscoveryMetadata(
                aliases=aliases,
                preferred_network=aliases[0],
                preferred_cache=aliases[0],
            )
            for host in aliases:
                if host in self._entries:
                    raise ValueError(f"Host '{host}' appears in more than one alias group")
                self._entries[host] = metadata

        logger.debug(f"Initialized StaticAliasResolver with {len(self._entries)} hosts")

    async def get_metadata_entry(self, authority_info: AuthorityInfo) -> InstanceDiscoveryMetadata:
        """
        Return the alias group for an authority.

        Raises:
            AliasResolutionError: If strict and the host is in no group
        """
        host = authority_info.host.lower()
        metadata = self._entries.get(host)
        if metadata is not None:
            return metadata

        if self.strict:
            raise AliasResolutionError(
                f"No alias metadata for authority host '{host}'",
                context={"environment": host},
            )

        return InstanceDiscoveryMetadata(
            aliases=(host,), preferred_network=host, preferred_cache=host
        )


__all__ = ["PUBLIC_CLOUD_ALIASES", "StaticAliasResolver"]
