"""FastAPI application entry point for the tournament settlement API."""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from pokerclub import __version__
from pokerclub.api import pending_actions, points, registrations, tournaments
from pokerclub.config import get_settings
from pokerclub.logging_config import bind_context, clear_context, configure_logging, get_logger
from pokerclub.utils.db import close_db, engine, init_db
from pokerclub.utils.errors import ErrorCode, SettlementError, status_code_for
from pokerclub.utils.json_utils import ORJSONResponse

API_V1_PREFIX = "/api/v1"

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.app_env == "production",
    app_env=settings.app_env,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("application_starting", app_env=settings.app_env, version=__version__)
    # No migrations: outside production the schema comes from model metadata
    await init_db(create_tables=settings.app_env != "production")
    logger.info("database_ready", sqlite=settings.is_sqlite)

    yield

    await close_db()
    logger.info("application_stopped")


app = FastAPI(
    title="Poker Club Tournament API",
    version=__version__,
    description="Registrations, prize pools, payouts and season points for club tournaments",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)


# =============================================================================
# Middleware
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind ``X-Request-ID`` (or a fresh UUID) to the logs and the response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        bind_context(request_id=request_id)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return response
        finally:
            clear_context()


app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# Error Handlers
# =============================================================================


def _trace_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(
        "X-Request-ID", str(uuid.uuid4())
    )


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    """Every error uses ``{"error": {code, message, details}, "traceId"}``."""
    return ORJSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message, "details": details or {}},
            "traceId": _trace_id(request),
        },
        headers=headers,
    )


@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError) -> ORJSONResponse:
    status_code = status_code_for(exc.code)
    logger.warning(
        "settlement_error",
        code=exc.code,
        message=exc.message,
        status_code=status_code,
        path=request.url.path,
    )
    return error_response(request, status_code, exc.code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    errors = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCode.INVALID_REQUEST.value,
        "Request validation failed",
        {"errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    return error_response(
        request,
        exc.status_code,
        "HTTP_ERROR",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        exc_info=True,
    )
    message = f"{type(exc).__name__}: {exc}" if settings.app_debug else "Internal server error"
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR.value,
        message,
    )


# =============================================================================
# Health Check
# =============================================================================


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Liveness plus a ``SELECT 1`` against the database."""
    database = "healthy"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        database = f"unhealthy: {e}"
        logger.error("database_health_check_failed", error=str(e))

    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "services": {"database": database},
    }


app.include_router(tournaments.router, prefix=API_V1_PREFIX)
app.include_router(registrations.router, prefix=API_V1_PREFIX)
app.include_router(points.router, prefix=API_V1_PREFIX)
app.include_router(pending_actions.router, prefix=API_V1_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pokerclub.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        log_level=settings.log_level.lower(),
    )
