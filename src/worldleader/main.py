"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from redis.exceptions import RedisError

from worldleader.auth.router import router as auth_router
from worldleader.config import get_settings
from worldleader.database import close_db, init_db
from worldleader.health.router import router as health_router
from worldleader.ledger.router import router as purchase_router
from worldleader.middleware import setup_middleware
from worldleader.ranking.router import router as leaderboard_router
from worldleader.redis_client import close_redis, get_redis, init_redis
from worldleader.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)

    await init_redis(settings.redis_url)
    try:
        await get_redis().ping()
    except RedisError:
        # Rate limits and email caps are skipped without Redis
        logger.warning("redis_unavailable", url=settings.redis_url)
        await close_redis()

    logger.info("app_started", version=settings.app_version, environment=settings.environment)
    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="WorldLeader.io API",
        description="Pay-to-rank competitive leaderboard: $1 buys one position on your continent",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(leaderboard_router)
    app.include_router(purchase_router)

    return app


app = create_app()
