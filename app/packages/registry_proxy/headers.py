"""Header hygiene for proxied requests and responses."""

from typing import Iterable, Tuple

REGISTRY_API_VERSION = {"Docker-Distribution-API-Version": "registry/2.0"}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type, Docker-Content-Digest",
}

CORS_PREFLIGHT_HEADERS = {
    **CORS_HEADERS,
    "Access-Control-Max-Age": "86400",
}

# RFC 7230 section 6.1
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

# Set by the edge in front of us, never meaningful to the upstream
INFRASTRUCTURE_HEADERS = frozenset(
    {
        "host",
        "x-forwarded-for",
        "x-forwarded-host",
        "x-forwarded-proto",
        "x-forwarded-port",
        "x-real-ip",
        "x-request-id",
    }
)

BODYLESS_METHODS = frozenset({"GET", "HEAD"})


def _is_infrastructure(name: str) -> bool:
    return name in INFRASTRUCTURE_HEADERS or name.startswith("cf-")


def upstream_request_headers(
    headers: Iterable[Tuple[str, str]], method: str
) -> dict[str, str]:
    """Select inbound headers to send upstream.

    Args:
        headers: Inbound (name, value) pairs
        method: Inbound HTTP method

    Returns:
        Headers for the outbound request
    """
    forwarded = {}
    for name, value in headers:
        lower = name.lower()
        if lower in HOP_BY_HOP_HEADERS or _is_infrastructure(lower):
            continue
        if lower == "content-length" and method.upper() in BODYLESS_METHODS:
            continue
        forwarded[name] = value
    return forwarded


def downstream_response_headers(
    headers: Iterable[Tuple[str, str]],
) -> list[Tuple[str, str]]:
    """Select upstream response headers to relay to the client.

    Repeated headers such as Set-Cookie stay separate pairs. Content-Encoding
    and Content-Length are kept because bodies are relayed as raw bytes.
    """
    added = {
        name.lower(): value
        for name, value in {**REGISTRY_API_VERSION, **CORS_HEADERS}.items()
    }
    relayed = [
        (name.lower(), value)
        for name, value in headers
        if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() not in added
    ]
    return relayed + list(added.items())
