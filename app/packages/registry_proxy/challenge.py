"""Bearer challenge parsing and the proxy's own 401 challenge.

Registries answer unauthenticated requests with

    WWW-Authenticate: Bearer realm="https://auth.docker.io/token",service="registry.docker.io"

The proxy reads the realm and service from the upstream challenge to request
tokens itself, and hands clients a challenge whose realm is the proxy's
``/v2/auth`` endpoint so every token request comes back through us.
"""

import re

from fastapi.responses import JSONResponse

from .errors import ChallengeParseError
from .headers import CORS_HEADERS, REGISTRY_API_VERSION
from .types import AuthChallenge

PROXY_SERVICE = "cloudflare-docker-proxy"

# A quoted value directly after `="`, backslash escapes kept verbatim
_QUOTED_VALUE = re.compile(r'="((?:[^"\\]|\\.)*)"')


def parse_authenticate(header: str) -> AuthChallenge:
    """Extract realm and service from a ``WWW-Authenticate`` header.

    The first two quoted values are taken as realm and service, in that
    order. Further attributes (``scope``, ``error``...) are ignored.

    Raises:
        ChallengeParseError: If fewer than two quoted values are present
    """
    matches = _QUOTED_VALUE.findall(header)
    if len(matches) < 2:
        raise ChallengeParseError(header)
    return AuthChallenge(realm=matches[0], service=matches[1])


def proxy_challenge(proxy_host: str, scheme: str) -> str:
    return f'Bearer realm="{scheme}://{proxy_host}/v2/auth",service="{PROXY_SERVICE}"'


def unauthorized_response(proxy_host: str, scheme: str) -> JSONResponse:
    """Build the 401 that replaces any upstream 401.

    Args:
        proxy_host: Host the client used to reach the proxy
        scheme: ``http`` in debug mode, ``https`` otherwise
    """
    return JSONResponse(
        status_code=401,
        content={"message": "UNAUTHORIZED"},
        headers={
            "WWW-Authenticate": proxy_challenge(proxy_host, scheme),
            **REGISTRY_API_VERSION,
            **CORS_HEADERS,
        },
    )
