from typing import Callable, Union

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.deps.upstream import get_http_client, get_registry_config
from app.main import app
from app.packages.registry_proxy import DOCKER_HUB_URL, RegistryConfig

DOCKER_HUB_CHALLENGE = (
    'Bearer realm="https://auth.docker.io/token",service="registry.docker.io"'
)
QUAY_CHALLENGE = 'Bearer realm="https://quay.io/v2/auth",service="quay.io"'

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def unread_copy(response: httpx.Response) -> httpx.Response:
    """Return a fresh response whose body has not been read yet.

    Responses built with ``content=`` or ``json=`` are read on construction,
    which a streaming relay cannot consume. The raw bytes are taken from the
    original stream so encoded bodies stay encoded.
    """
    return httpx.Response(
        response.status_code,
        headers=response.headers,
        stream=httpx.ByteStream(b"".join(response.stream)),
    )


class FakeUpstream:
    """In-memory stand-in for upstream registries, token servers and CDNs.

    Responses are registered per method and URL (without query string).
    Every request that reaches the fake is recorded in ``requests``.
    """

    def __init__(self):
        self.responders: dict[tuple[str, str], Responder] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, responder: Responder):
        self.responders[(method, url)] = responder

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, str(request.url).split("?")[0])
        responder = self.responders.get(key)
        if responder is None:
            response = httpx.Response(404, json={"errors": [{"code": "NOT_FOUND"}]})
        elif callable(responder):
            response = responder(request)
        else:
            response = responder
        return unread_copy(response)


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def registry_config() -> RegistryConfig:
    return RegistryConfig(
        routes={
            "docker.example.com": DOCKER_HUB_URL,
            "quay.example.com": "https://quay.io",
        }
    )


@pytest.fixture
async def upstream_client(fake_upstream: FakeUpstream):
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(fake_upstream.handler)
    ) as client:
        yield client


@pytest.fixture
async def dependency_overrides(registry_config, upstream_client):
    app.dependency_overrides[get_registry_config] = lambda: registry_config
    app.dependency_overrides[get_http_client] = lambda: upstream_client
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(dependency_overrides):
    """Client talking to the proxy as docker.example.com (Docker Hub)."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://docker.example.com"
    ) as ac:
        yield ac


@pytest.fixture
async def quay_client(dependency_overrides):
    """Client talking to the proxy as quay.example.com."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://quay.example.com"
    ) as ac:
        yield ac
