"""Generic HTTP proxy utilities for Docker Registry API.

This module issues the outbound calls the proxy makes on behalf of a client:
the ``/v2/`` probe, the token request, the forwarded registry request and
the Docker Hub blob follow-up. Upstream responses are opened in streaming
mode and relayed as raw bytes.
No dependencies on app.* modules to maintain independence and reusability.
"""

from typing import AsyncIterator, Optional

import httpx
import structlog
from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from .challenge import unauthorized_response
from .errors import UpstreamUnreachable
from .headers import (
    BODYLESS_METHODS,
    downstream_response_headers,
    upstream_request_headers,
)
from .types import AuthChallenge, RegistryConfig, UpstreamRoute

logger = structlog.stdlib.get_logger(__name__)

CHUNK_SIZE = 65536


async def stream_request_body(request: Request) -> AsyncIterator[bytes]:
    """Stream request body from client in chunks.

    Args:
        request: FastAPI request object

    Yields:
        Chunks of request body data
    """
    async for chunk in request.stream():
        yield chunk


async def send_upstream(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Optional[dict[str, str]] = None,
    params: Optional[dict[str, str]] = None,
    content: Optional[AsyncIterator[bytes]] = None,
    follow_redirects: bool = True,
) -> httpx.Response:
    """Send one outbound request and return the still-open response.

    The caller owns the response and must close it, either directly or by
    handing it to :func:`relay_response`.

    Raises:
        UpstreamUnreachable: If the request fails at the transport level
    """
    request = client.build_request(
        method, url, headers=headers, params=params, content=content
    )

    try:
        response = await client.send(
            request, stream=True, follow_redirects=follow_redirects
        )
    except httpx.TimeoutException as e:
        logger.error("Timeout contacting upstream", error=str(e), target_url=url)
        raise UpstreamUnreachable(url, "timed out") from e
    except httpx.HTTPError as e:
        logger.error("HTTP error contacting upstream", error=str(e), target_url=url)
        raise UpstreamUnreachable(url, str(e)) from e

    logger.info(
        "Upstream response received",
        method=method,
        target_url=url,
        status_code=response.status_code,
    )
    return response


async def relay_response(
    upstream_response: httpx.Response, head_only: bool = False
) -> Response:
    """Turn an open upstream response into the response for our client.

    Args:
        upstream_response: Streaming response from :func:`send_upstream`
        head_only: Drop the body (the inbound request was HEAD)
    """
    headers = downstream_response_headers(upstream_response.headers.multi_items())

    response: Response
    if head_only:
        await upstream_response.aclose()
        response = Response(status_code=upstream_response.status_code)
    else:
        response = StreamingResponse(
            content=upstream_response.aiter_raw(chunk_size=CHUNK_SIZE),
            status_code=upstream_response.status_code,
            background=BackgroundTask(upstream_response.aclose),
        )

    # Replaces the computed Content-Length, the upstream one describes the body
    response.raw_headers = [
        (name.encode("latin-1"), value.encode("latin-1")) for name, value in headers
    ]
    return response


async def relay_or_challenge(
    upstream_response: httpx.Response,
    route: UpstreamRoute,
    config: RegistryConfig,
    head_only: bool = False,
) -> Response:
    """Relay an upstream response, swapping any 401 for the proxy challenge."""
    if upstream_response.status_code == 401:
        await upstream_response.aclose()
        logger.info(
            "Rewrote upstream challenge",
            proxy_host=route.proxy_host,
            upstream=route.upstream_url,
        )
        return unauthorized_response(route.proxy_host, config.challenge_scheme)

    return await relay_response(upstream_response, head_only=head_only)


async def probe_registry_root(
    client: httpx.AsyncClient,
    upstream_url: str,
    authorization: Optional[str] = None,
) -> httpx.Response:
    """GET ``<upstream>/v2/``, forwarding only the Authorization header."""
    headers = {}
    if authorization:
        headers["Authorization"] = authorization

    return await send_upstream(
        client, "GET", f"{upstream_url}/v2/", headers=headers, follow_redirects=True
    )


async def request_token(
    client: httpx.AsyncClient,
    challenge: AuthChallenge,
    scope: Optional[str] = None,
    authorization: Optional[str] = None,
) -> httpx.Response:
    """Request a token from the upstream realm.

    The token response is never inspected: anonymous and authenticated
    pulls differ only in the forwarded Authorization header.
    """
    params = {"service": challenge.service}
    if scope:
        params["scope"] = scope

    headers = {}
    if authorization:
        headers["Authorization"] = authorization

    logger.info(
        "Requesting upstream token",
        realm=challenge.realm,
        service=challenge.service,
        scope=scope,
        authenticated=bool(authorization),
    )

    response = await send_upstream(
        client, "GET", challenge.realm, headers=headers, params=params
    )

    if response.is_error:
        logger.warning(
            "Upstream token request failed",
            realm=challenge.realm,
            status_code=response.status_code,
        )

    return response


async def forward_request(
    client: httpx.AsyncClient,
    request: Request,
    upstream_url: str,
    follow_redirects: bool = True,
) -> httpx.Response:
    """Forward the inbound request to ``<upstream><path>?<query>``.

    Args:
        client: Outbound HTTP client
        request: Original FastAPI request from the client
        upstream_url: Upstream registry base URL
        follow_redirects: Disabled for Docker Hub so blob redirects can be
                          followed as fresh requests
    """
    target_url = f"{upstream_url}{request.url.path}"
    if request.url.query:
        target_url = f"{target_url}?{request.url.query}"

    method = request.method.upper()
    headers = upstream_request_headers(request.headers.items(), method)

    content = None
    if method not in BODYLESS_METHODS:
        content = stream_request_body(request)

    logger.info(
        "Proxying request",
        method=method,
        target_url=target_url,
        follow_redirects=follow_redirects,
    )

    return await send_upstream(
        client,
        method,
        target_url,
        headers=headers,
        content=content,
        follow_redirects=follow_redirects,
    )


async def follow_blob_redirect(
    client: httpx.AsyncClient,
    redirect_response: httpx.Response,
    method: str = "GET",
) -> Optional[httpx.Response]:
    """Fetch the target of a Docker Hub blob redirect as a new request.

    The redirect points at a pre-signed CDN URL that rejects the registry
    Authorization header, so nothing from the original request is sent.

    Returns:
        The CDN response, or None if the redirect has no Location header
        (the redirect response is then left open for the caller)
    """
    location = redirect_response.headers.get("location")
    if not location:
        logger.warning(
            "Blob redirect without Location header",
            source_url=str(redirect_response.url),
        )
        return None

    target_url = str(redirect_response.url.join(location))
    await redirect_response.aclose()

    logger.info("Following blob redirect", method=method, target_url=target_url)

    return await send_upstream(client, method, target_url, follow_redirects=True)
