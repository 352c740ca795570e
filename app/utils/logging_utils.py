import logging
import time
from enum import Enum

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI, Request, Response
from pydantic_settings import BaseSettings
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.typing import Processor
from uvicorn.protocols.utils import get_path_with_query_string

# Outbound calls are logged by the proxy itself with their target URL
QUIET_LOGGERS = ("httpx", "httpcore", "hpack")

# Endpoints polled by orchestrators, logged at debug level
POLLED_PATHS = frozenset({"/health"})


class LogFormats(str, Enum):
    JSON = "json"
    CONSOLE = "console"


class LogSettings(BaseSettings):
    log_format: LogFormats = LogFormats.JSON
    log_level: str = "INFO"


def _shared_processors(log_format: LogFormats) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_format == LogFormats.JSON:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logger(app: FastAPI):
    """Route structlog and stdlib logging through one renderer.

    Also installs the request id and access log middlewares on ``app``.
    """
    settings = LogSettings()
    processors = _shared_processors(settings.log_format)

    renderer: Processor
    if settings.log_format == LogFormats.CONSOLE:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level.upper())

    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).handlers.clear()
        logging.getLogger(name).propagate = True

    # Replaced by AccessLogMiddleware
    logging.getLogger("uvicorn.access").handlers.clear()
    logging.getLogger("uvicorn.access").propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(CorrelationIdMiddleware)


access_logger = structlog.stdlib.get_logger("registry_proxy.access")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per client request, tagged with the proxy host it hit.

    The request id and proxy host are bound to the structlog context so
    every event logged while serving the request carries them.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        structlog.contextvars.clear_contextvars()
        proxy_host = request.headers.get("host")
        structlog.contextvars.bind_contextvars(
            request_id=correlation_id.get(), proxy_host=proxy_host
        )

        start_time = time.perf_counter()
        status_code = 500
        response_length = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            response_length = response.headers.get("content-length")
        except Exception:
            access_logger.exception("Unhandled error while proxying")
            raise
        finally:
            duration = time.perf_counter() - start_time
            url = get_path_with_query_string(request.scope)  # type: ignore
            log = access_logger.info
            if request.url.path in POLLED_PATHS:
                log = access_logger.debug
            log(
                f"{request.method} {url} {status_code}",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration=round(duration, 6),
                client_agent=request.headers.get("user-agent"),
                response_length=response_length,
            )

        response.headers["X-Process-Time"] = f"{duration:.6f}"
        return response
