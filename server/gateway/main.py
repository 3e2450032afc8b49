# FastAPI application factory with lifespan management.
# Entrypoint: uvicorn gateway.main:create_app --factory --host 0.0.0.0 --port 3000


from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gateway import __version__
from gateway.auth import APIKeyMiddleware
from gateway.config import Settings, get_settings
from gateway.db import ConnectionPool, PlayerStore, create_pool
from gateway.exceptions import register_exception_handlers
from gateway.logging_config import configure_logging
from gateway.metrics import GatewayMetrics
from gateway.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from gateway.rate_limit import RateLimiter, RateLimitMiddleware
from gateway.routes import health, players
from gateway.routes import prometheus as prometheus_routes

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the connection pool on startup and close it on shutdown.

    When create_app() was handed a pool, the caller owns it and it is left alone.
    """
    settings: Settings = app.state.settings
    owned_pool = None

    if getattr(app.state, "player_store", None) is None:
        owned_pool = await create_pool(settings)
        app.state.player_store = PlayerStore(owned_pool)

    yield

    if owned_pool is not None:
        await owned_pool.close()
        logger.info("db_pool_closed")


def _parse_origins(allowed_origins: str) -> list[str]:
    """Parse comma-separated CORS origins. Empty string → deny all."""
    if not allowed_origins.strip():
        return []
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app(settings: Settings | None = None, *, pool: ConnectionPool | None = None) -> FastAPI:
    """Application factory. Invoked by: uvicorn gateway.main:create_app --factory

    settings defaults to the environment; pool defaults to an asyncpg pool
    opened in the lifespan. Both are explicit so tests can substitute fakes.
    """
    settings = settings or get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Player Data Gateway",
        description="Authenticated, rate-limited access to per-player game state",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.metrics = GatewayMetrics()
    app.state.player_store = PlayerStore(pool) if pool is not None else None

    api_key_value = settings.api_key.get_secret_value()
    limiter = RateLimiter(settings.rate_limit, storage_uri=settings.rate_limit_storage_uri)

    # Middleware order (Starlette applies in reverse):
    # CORS → RequestContext → SecurityHeaders → RateLimit → APIKey → routes
    if api_key_value:
        app.add_middleware(
            APIKeyMiddleware,
            api_key=api_key_value,
            api_key_header=settings.api_key_header,
        )
        logger.info("api_key_auth_enabled")
    else:
        logger.warning("api_key_auth_disabled", reason="API_KEY env var not set")

    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter,
        api_key=api_key_value,
        api_key_header=settings.api_key_header,
        client_ip_header=settings.client_ip_header,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)

    origins = _parse_origins(settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", settings.api_key_header],
    )

    register_exception_handlers(app, expose_backend_errors=settings.expose_backend_errors)

    app.include_router(health.router, tags=["health"])
    app.include_router(players.router, tags=["player-data"])
    app.include_router(prometheus_routes.router, tags=["prometheus"])

    logger.info(
        "app_created",
        rate_limit=settings.rate_limit,
        expose_backend_errors=settings.expose_backend_errors,
    )
    return app
