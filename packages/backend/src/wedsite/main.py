"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (logging, Redis, database).
Middleware, CORS, exception handlers and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from wedsite import __version__
from wedsite.api import api_router
from wedsite.cache import close_redis, init_redis
from wedsite.config import settings
from wedsite.errors import AppError
from wedsite.logging_config import configure_logging
from wedsite.middleware.rate_limit import RateLimitMiddleware
from wedsite.middleware.request_id import RequestIdMiddleware
from wedsite.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    configure_logging(settings.log_level, settings.log_json)
    logger.info(
        "wedsite.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        master_login_enabled=bool(settings.master_password),
    )

    try:
        await init_redis()
        logger.info("wedsite.redis_connected", url=settings.redis_url)
    except (RedisError, OSError) as e:
        # Redis is optional: only rate limiting depends on it
        logger.warning("wedsite.redis_unavailable", error=str(e))

    yield

    logger.info("wedsite.shutdown")
    await close_redis()

    from wedsite.db.engine import engine
    await engine.dispose()


# ─── Error rendering ────────────────────────────────────


def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "code": code},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", code=exc.code, error=exc.message)
    return _error_response(exc.status_code, exc.message, exc.code)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{field}: {message}" if field else message
    return _error_response(400, detail, "VALIDATION_ERROR")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", error=str(exc))
    return _error_response(500, "Internal server error", "INTERNAL_ERROR")


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Wedsite",
        description="Multi-tenant wedding microsite backend",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: wedsite.main:app)
app = create_app()
