"""Errors raised by the registry proxy.

Each error carries the HTTP status the application answers with. Nothing
here is retried: the caller sees the failure in the same request.
"""

from typing import Iterable


class RegistryProxyError(Exception):
    status_code: int = 500
    title: str = "Registry proxy error"

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description


class RouteNotFound(RegistryProxyError):
    """No upstream registry is configured for the inbound host."""

    status_code = 404
    title = "Route not found"

    def __init__(self, host: str, known_hosts: Iterable[str]):
        super().__init__(f"Registry not configured for {host}")
        self.host = host
        self.known_hosts = sorted(known_hosts)


class ChallengeParseError(RegistryProxyError):
    """The upstream ``WWW-Authenticate`` header has no realm or service."""

    status_code = 502
    title = "Invalid upstream challenge"

    def __init__(self, header: str):
        super().__init__(f"Could not parse WWW-Authenticate header: {header!r}")
        self.header = header


class UpstreamUnreachable(RegistryProxyError):
    """Contacting an upstream registry, token endpoint or CDN failed."""

    status_code = 502
    title = "Upstream unreachable"

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to contact upstream {url}: {reason}")
        self.url = url
        self.reason = reason
