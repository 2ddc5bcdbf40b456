"""FastAPI application factory with lifespan management."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from villagemarket.api.routers import auth as auth_router
from villagemarket.api.routers import line as line_router
from villagemarket.api.routers import orders, products, shops, users
from villagemarket.core.auth import hash_password
from villagemarket.core.config import get_settings
from villagemarket.core.database import close_engine, get_engine, get_session_factory
from villagemarket.core.errors import InternalError, MarketError
from villagemarket.core.limiter import limiter
from villagemarket.core.logging import bind_request, configure_logging, get_logger

logger = get_logger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    configure_logging()
    settings = get_settings()
    logger.info("Starting Village Market", debug=settings.app_debug, env=settings.app_env)

    # Warm up DB connection pool
    get_engine()

    # Bootstrap: create default admin if no users exist
    await _bootstrap_admin(settings)

    yield

    await close_engine()
    logger.info("Village Market stopped")


async def _bootstrap_admin(settings) -> None:
    """Create the default admin account on first start (no users in DB)."""
    from sqlalchemy import func, select

    from villagemarket.models.user import User, UserRole

    factory = get_session_factory()
    async with factory() as session:
        count = (await session.execute(select(func.count()).select_from(User))).scalar_one()
        if count == 0:
            admin = User(
                name=settings.admin_name,
                username=settings.admin_username,
                password_hash=hash_password(settings.admin_password),
                role=UserRole.ADMIN.value,
                is_active=True,
                profile_complete=True,
            )
            session.add(admin)
            await session.commit()
            logger.info(
                "Bootstrap admin created",
                username=settings.admin_username,
                hint="Change the default password immediately!",
            )


# ── Error rendering: every API error is {"error": "..."} ─────────────────────

async def _market_error_handler(request: Request, exc: MarketError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    else:
        logger.info(
            "Request rejected",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=headers)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Invalid request", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        {"error": "Invalid input", "details": jsonable_encoder(exc.errors())},
        status_code=400,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path)
    error = InternalError()
    return JSONResponse({"error": error.message}, status_code=error.status_code)


async def _request_context(request: Request, call_next):
    """Bind a request id to every log line and echo it back as X-Request-ID."""
    request_id = bind_request(
        request.method, request.url.path, request.headers.get("x-request-id")
    )
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.debug(
        "Request handled",
        status=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Village Market",
        description="Village marketplace API: shops, products and accounts",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(MarketError, _market_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    # Credentials (the auth cookie) require explicit origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(_request_context)

    app.include_router(auth_router.router, prefix=API_PREFIX)
    app.include_router(line_router.router, prefix=API_PREFIX)
    app.include_router(users.router, prefix=API_PREFIX)
    app.include_router(shops.router, prefix=API_PREFIX)
    app.include_router(products.router, prefix=API_PREFIX)
    app.include_router(orders.router, prefix=API_PREFIX)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": "0.1.0"}

    return app


app = create_app()
