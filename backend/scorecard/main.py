"""Scorecard FastAPI application."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from scorecard.core.config import get_settings
from scorecard.api.routes import analytics, health, scorecard
from scorecard.data.mitre_tactics import enterprise_taxonomy
from scorecard.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware

settings = get_settings()
logger = structlog.get_logger()

# Environments where plain-http origins are tolerated
LOCAL_ENVIRONMENTS = ("development", "test")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request with status and timing.

    Bodies are never logged: scorecard requests carry whole exercise
    snapshots, so only their declared size is recorded.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        event = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        }
        if request.method == "POST":
            event["body_bytes"] = request.headers.get("content-length")

        log = structlog.get_logger()
        if response.status_code >= 400:
            log.warning("http_request", **event)
        else:
            log.info("http_request", **event)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the reference data the engine will group against."""
    taxonomy = enterprise_taxonomy()
    logger.info(
        "starting_application",
        environment=settings.environment,
        mitre_attack_version=settings.mitre_attack_version,
        tactics=len(taxonomy.tactics),
        default_actor_scope=settings.default_actor_scope,
    )
    yield
    logger.info("shutting_down_application")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Purple team exercise scorecard and resilience metrics",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log the failure with its request id; the client only sees the id."""
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Scorecard calculation failed", "request_id": request_id},
        headers={REQUEST_ID_HEADER: request_id},
    )


def cors_origin_rejection(origin: str, environment: str) -> Optional[str]:
    """Reason an origin may not be allowed, or None when it is acceptable."""
    if "*" in origin:
        return "wildcard"

    parsed = urlparse(origin)
    if not parsed.scheme or not parsed.netloc:
        return "malformed"

    host = parsed.hostname or ""
    if (
        parsed.scheme != "https"
        and environment not in LOCAL_ENVIRONMENTS
        and host not in ("localhost", "127.0.0.1")
    ):
        return "insecure"
    return None


def validate_cors_origins(origins: list[str], environment: str) -> list[str]:
    """Drop origins that fail cors_origin_rejection, logging each one."""
    accepted = []
    for origin in origins:
        reason = cors_origin_rejection(origin, environment)
        if reason is None:
            accepted.append(origin)
        else:
            logger.error(
                "cors_origin_rejected",
                origin=origin,
                reason=reason,
                environment=environment,
            )

    if not accepted:
        logger.warning("cors_no_valid_origins")
    return accepted


cors_origins = validate_cors_origins(settings.cors_origin_list, settings.environment)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER, "Accept"],
    expose_headers=[REQUEST_ID_HEADER],
)
app.add_middleware(RequestLoggingMiddleware)
# Outermost, so the logging middleware already sees the bound request id
app.add_middleware(RequestIDMiddleware)

app.include_router(health.router, tags=["Health"])
app.include_router(scorecard.router, prefix="/api/v1/scorecard", tags=["Scorecard"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
