from functools import lru_cache

import httpx

from app.packages.registry_proxy import RegistryConfig
from app.settings import settings


@lru_cache
def registry_config_factory() -> RegistryConfig:
    """Build the immutable routing configuration from settings."""
    return RegistryConfig(
        routes=settings.ROUTES,
        debug=settings.is_debug,
        fallback_upstream=settings.TARGET_UPSTREAM,
    )


def upstream_timeout_factory() -> httpx.Timeout:
    return httpx.Timeout(
        connect=settings.UPSTREAM_CONNECT_TIMEOUT,
        read=settings.UPSTREAM_READ_TIMEOUT,
        write=settings.UPSTREAM_WRITE_TIMEOUT,
        pool=settings.UPSTREAM_POOL_TIMEOUT,
    )


def http_client_factory() -> httpx.AsyncClient:
    """Outbound client shared by all requests for connection pooling.

    Redirect policy is chosen per request, so the client default is off.
    """
    return httpx.AsyncClient(
        timeout=upstream_timeout_factory(),
        follow_redirects=False,
    )
