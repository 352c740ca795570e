"""Registry proxy types and data structures.

This module contains shared types used across the registry proxy package.
No dependencies on app.* modules to maintain independence.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

DOCKER_HUB_URL = "https://registry-1.docker.io"


def _freeze_routes(routes: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(
        {host: upstream.rstrip("/") for host, upstream in routes.items()}
    )


@dataclass(frozen=True)
class RegistryConfig:
    """Routing configuration for the proxy.

    Attributes:
        routes: Proxy hostname to upstream registry base URL
               (e.g., {"docker.example.com": "https://registry-1.docker.io"})
        debug: Debug mode. Unmatched hosts fall back to ``fallback_upstream``
               and challenges advertise an ``http`` realm.
        fallback_upstream: Upstream used for unmatched hosts in debug mode
    """

    routes: Mapping[str, str] = field(default_factory=dict)
    debug: bool = False
    fallback_upstream: str = DOCKER_HUB_URL

    def __post_init__(self):
        object.__setattr__(self, "routes", _freeze_routes(self.routes))
        object.__setattr__(
            self, "fallback_upstream", self.fallback_upstream.rstrip("/")
        )

    @property
    def challenge_scheme(self) -> str:
        return "http" if self.debug else "https"


@dataclass(frozen=True)
class UpstreamRoute:
    """The upstream registry resolved for one inbound request.

    Attributes:
        proxy_host: Host header as received (port included), used to build
                    the proxy's own auth realm
        upstream_url: Base URL of the upstream registry
    """

    proxy_host: str
    upstream_url: str

    @property
    def is_docker_hub(self) -> bool:
        return self.upstream_url.rstrip("/") == DOCKER_HUB_URL


@dataclass(frozen=True)
class AuthChallenge:
    """Bearer challenge parsed from a ``WWW-Authenticate`` header."""

    realm: str
    service: str
