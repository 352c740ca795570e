"""Registry proxy package for Docker Registry v2 API.

This package routes inbound registry requests to upstream registries,
translates their bearer challenges so clients authenticate through the
proxy, and applies Docker Hub's ``library/`` and blob redirect rules.
"""

from .challenge import PROXY_SERVICE, parse_authenticate, unauthorized_response
from .errors import (
    ChallengeParseError,
    RegistryProxyError,
    RouteNotFound,
    UpstreamUnreachable,
)
from .headers import CORS_PREFLIGHT_HEADERS
from .proxy import (
    follow_blob_redirect,
    forward_request,
    probe_registry_root,
    relay_or_challenge,
    relay_response,
    request_token,
    stream_request_body,
)
from .rewrite import library_redirect_path, normalize_scope
from .router import UpstreamRouter
from .types import DOCKER_HUB_URL, AuthChallenge, RegistryConfig, UpstreamRoute

__all__ = [
    # Types
    "AuthChallenge",
    "DOCKER_HUB_URL",
    "RegistryConfig",
    "UpstreamRoute",
    # Routing
    "UpstreamRouter",
    # Challenges
    "PROXY_SERVICE",
    "parse_authenticate",
    "unauthorized_response",
    # Rewriting
    "library_redirect_path",
    "normalize_scope",
    # Errors
    "ChallengeParseError",
    "RegistryProxyError",
    "RouteNotFound",
    "UpstreamUnreachable",
    # Utilities
    "CORS_PREFLIGHT_HEADERS",
    "follow_blob_redirect",
    "forward_request",
    "probe_registry_root",
    "relay_or_challenge",
    "relay_response",
    "request_token",
    "stream_request_body",
]
