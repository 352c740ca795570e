"""Docker Registry v2 API Proxy.

This module implements the pull side of the Docker Registry HTTP API V2,
proxying requests to the upstream registry selected by the Host header.
Upstream bearer challenges are replaced with a challenge pointing at our
own ``/v2/auth`` endpoint, which brokers token requests to the real realm.

See: https://docs.docker.com/registry/spec/api/
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from app.deps.upstream import Config, HttpClient, Upstream, get_upstream
from app.packages.registry_proxy import (
    CORS_PREFLIGHT_HEADERS,
    follow_blob_redirect,
    forward_request,
    library_redirect_path,
    normalize_scope,
    parse_authenticate,
    probe_registry_root,
    relay_or_challenge,
    relay_response,
    request_token,
)

logger = structlog.stdlib.get_logger(__name__)

router = APIRouter(tags=["Docker Proxy"])

PROXIED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


@router.options("/{path:path}")
async def cors_preflight():
    """Answer CORS pre-flight requests locally on every host and path."""
    return Response(status_code=204, headers=CORS_PREFLIGHT_HEADERS)


@router.get("/", dependencies=[Depends(get_upstream)])
async def root_redirect():
    return RedirectResponse(url="/v2/", status_code=301)


@router.api_route("/v2/", methods=["GET", "HEAD"])
async def registry_version_check(
    request: Request,
    upstream: Upstream,
    config: Config,
    client: HttpClient,
):
    """Docker Registry API version check.

    Docker CLI calls this first. The upstream is probed with the caller's
    credentials; a 401 is answered with our own challenge so the client
    fetches its token through ``/v2/auth``.
    """
    logger.debug("Docker registry version check", upstream=upstream.upstream_url)

    response = await probe_registry_root(
        client,
        upstream.upstream_url,
        authorization=request.headers.get("authorization"),
    )
    return await relay_or_challenge(
        response, upstream, config, head_only=request.method == "HEAD"
    )


@router.get("/v2/auth")
async def token_exchange(
    request: Request,
    upstream: Upstream,
    client: HttpClient,
    scope: Optional[str] = None,
):
    """Broker a token request to the upstream's auth realm.

    Args:
        scope: Requested permission, e.g. ``repository:busybox:pull``

    Returns:
        The upstream token response, untouched
    """
    probe = await probe_registry_root(client, upstream.upstream_url)
    challenge_header = probe.headers.get("www-authenticate")

    if probe.status_code != 401 or not challenge_header:
        logger.info(
            "Upstream does not require a token",
            upstream=upstream.upstream_url,
            status_code=probe.status_code,
        )
        return await relay_response(probe)

    await probe.aclose()
    challenge = parse_authenticate(challenge_header)

    if scope:
        normalized = normalize_scope(scope, upstream.is_docker_hub)
        if normalized != scope:
            logger.debug("Normalized scope", scope=scope, normalized=normalized)
        scope = normalized

    token_response = await request_token(
        client,
        challenge,
        scope=scope,
        authorization=request.headers.get("authorization"),
    )
    return await relay_response(token_response)


@router.api_route("/v2/{path:path}", methods=PROXIED_METHODS)
async def registry_request(
    request: Request,
    upstream: Upstream,
    config: Config,
    client: HttpClient,
):
    """Proxy manifests, blobs, tag lists and any other v2 resource.

    Docker Hub gets two extra rules: unqualified image names are redirected
    to ``library/<name>``, and the 307 it answers blob requests with is
    followed here as a fresh, unauthenticated request to the CDN.
    """
    head_only = request.method == "HEAD"

    if upstream.is_docker_hub:
        redirect_path = library_redirect_path(request.url.path)
        if redirect_path is not None:
            location = redirect_path
            if request.url.query:
                location = f"{location}?{request.url.query}"
            logger.info(
                "Redirecting to library namespace",
                path=request.url.path,
                location=location,
            )
            return RedirectResponse(url=location, status_code=301)

    response = await forward_request(
        client,
        request,
        upstream.upstream_url,
        follow_redirects=not upstream.is_docker_hub,
    )

    if upstream.is_docker_hub and response.status_code == 307:
        blob_response = await follow_blob_redirect(
            client, response, method="HEAD" if head_only else "GET"
        )
        if blob_response is not None:
            response = blob_response

    return await relay_or_challenge(response, upstream, config, head_only=head_only)


@router.api_route(
    "/{path:path}", methods=PROXIED_METHODS, dependencies=[Depends(get_upstream)]
)
async def unsupported_path():
    return JSONResponse(
        status_code=404,
        content={"title": "Not found", "description": "Docker Registry API v2 only"},
    )
