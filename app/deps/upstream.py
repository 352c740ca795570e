"""Upstream resolution dependencies.

The proxy serves several registries from one process, one hostname per
registry. These dependencies turn the inbound Host header into the
upstream registry the request belongs to.
"""

from typing import Annotated

import httpx
import structlog
from fastapi import Depends, Request

from app.factories import registry_config_factory
from app.packages.registry_proxy import (
    RegistryConfig,
    RouteNotFound,
    UpstreamRoute,
    UpstreamRouter,
)

logger = structlog.stdlib.get_logger(__name__)


def get_registry_config() -> RegistryConfig:
    return registry_config_factory()


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Outbound client opened in the application lifespan."""
    return request.app.state.http_client


def strip_port(host: str) -> str:
    """Drop the port from a Host header value, keeping the case as sent.

    ``docker.example.com:443`` -> ``docker.example.com``,
    ``[::1]:8000`` -> ``[::1]``
    """
    if host.startswith("["):
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    return host.split(":", 1)[0]


async def get_upstream(
    request: Request,
    config: Annotated[RegistryConfig, Depends(get_registry_config)],
) -> UpstreamRoute:
    """Resolve the upstream registry for the inbound Host header.

    Raises:
        RouteNotFound: If the host is not configured (and not in debug mode)
    """
    proxy_host = request.headers.get("host", "")
    router = UpstreamRouter(config)
    upstream_url = router.resolve(strip_port(proxy_host))

    if upstream_url is None:
        logger.warning("No route for host", host=proxy_host)
        raise RouteNotFound(proxy_host, router.known_hosts())

    structlog.contextvars.bind_contextvars(upstream=upstream_url)
    return UpstreamRoute(proxy_host=proxy_host, upstream_url=upstream_url)


# Type aliases for dependency injection
Upstream = Annotated[UpstreamRoute, Depends(get_upstream)]
Config = Annotated[RegistryConfig, Depends(get_registry_config)]
HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
