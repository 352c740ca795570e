from uuid import uuid4

from httpx import AsyncClient


async def test_responses_carry_request_id_and_timing(client: AsyncClient):
    request_id = uuid4().hex

    response = await client.get("/health", headers={"X-Request-ID": request_id})

    assert response.headers["x-request-id"] == request_id
    assert float(response.headers["x-process-time"]) >= 0


async def test_request_id_is_generated_when_missing(client: AsyncClient):
    response = await client.get("/v2/busybox/manifests/latest")

    assert response.status_code == 301
    assert len(response.headers["x-request-id"]) == 32
