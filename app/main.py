from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.factories import http_client_factory, registry_config_factory
from app.packages.registry_proxy import RegistryProxyError, RouteNotFound
from app.packages.registry_proxy.headers import CORS_HEADERS
from app.routes import docker_proxy, health
from app.utils.logging_utils import setup_logger
from app.utils.sentry import init_sentry

logger = structlog.stdlib.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = registry_config_factory()
    logger.info(
        "Starting registry proxy",
        routes=dict(config.routes),
        debug=config.debug,
    )

    async with http_client_factory() as client:
        app.state.http_client = client
        yield


init_sentry()
app = FastAPI(lifespan=lifespan, openapi_url=None)
setup_logger(app)


@app.exception_handler(RegistryProxyError)
async def registry_proxy_exception_handler(request: Request, exc: RegistryProxyError):
    content = {"title": exc.title, "description": exc.description}
    if isinstance(exc, RouteNotFound):
        content["routes"] = exc.known_hosts

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=CORS_HEADERS,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"title": "Validation error", "description": exc.errors()},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"title": "Internal Server Error", "description": str(exc)},
    )


app.include_router(health.router)
app.include_router(docker_proxy.router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, proxy_headers=True)
