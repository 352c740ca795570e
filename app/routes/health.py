from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from typing_extensions import TypedDict

from app.deps.upstream import Config

router = APIRouter(tags=["Health"])


class HealthResponse(TypedDict):
    status: Literal["pass"]


@router.get("/health", responses={200: {"model": HealthResponse}})
async def health(config: Config):
    """Liveness probe, answered on any host without contacting upstreams."""
    if not config.routes and not config.debug:
        return JSONResponse(
            status_code=500,
            content={"status": "fail", "reason": "no routes configured"},
        )

    return {"status": "pass"}
