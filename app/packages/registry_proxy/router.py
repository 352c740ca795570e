"""Host based routing to upstream registries."""

from typing import Optional

import structlog

from .types import RegistryConfig

logger = structlog.stdlib.get_logger(__name__)


class UpstreamRouter:
    """Maps a proxy hostname to an upstream registry base URL.

    Lookup is an exact, case-sensitive match against the route table. In
    debug mode an unmatched host resolves to the configured fallback.
    """

    def __init__(self, config: RegistryConfig):
        self.config = config

    def resolve(self, host: str) -> Optional[str]:
        """Return the upstream base URL for ``host`` or None if unrouted."""
        upstream = self.config.routes.get(host)
        if upstream is not None:
            return upstream

        if self.config.debug:
            logger.debug(
                "Unmatched host, using debug fallback",
                host=host,
                upstream=self.config.fallback_upstream,
            )
            return self.config.fallback_upstream

        return None

    def known_hosts(self) -> list[str]:
        return sorted(self.config.routes)
