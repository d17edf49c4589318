from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from starlette.requests import Request

from directory.api.router import api_router
from directory.core.config import get_settings
from directory.core.telemetry import (
    TelemetryRuntime,
    configure_api_logging,
    setup_api_telemetry,
    shutdown_api_telemetry,
)
from directory.services.errors import DirectoryError
from directory.services.repository import get_repository

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/healthz"})


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("directory api starting environment=%s", settings.environment)
    try:
        yield
    finally:
        if _telemetry_runtime is not None:
            shutdown_api_telemetry(app, _telemetry_runtime)
        await get_repository().close()
        get_repository.cache_clear()
        logger.info("directory api stopped")


configure_api_logging(settings.log_level)
app = FastAPI(title=settings.app_name, lifespan=lifespan)
_telemetry_runtime = setup_api_telemetry(app, settings)


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    # Routes map the known subclasses; anything reaching here escaped that mapping.
    logger.exception("unhandled directory error path=%s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"code": "INTERNAL_ERROR", "message": "directory request failed"}},
    )


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    if request.url.path in _QUIET_PATHS:
        return response
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "directory request method=%s path=%s query=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        request.url.query or "-",
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)
