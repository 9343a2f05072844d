"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from calledit.config import get_settings
from calledit.database import close_db, init_db
from calledit.health.router import router as health_router
from calledit.middleware import setup_middleware
from calledit.predictions.router import router as predictions_router
from calledit.promotions.router import router as promotions_router
from calledit.redis_client import close_redis, init_redis
from calledit.social.router import router as social_router
from calledit.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="CALLED IT! API",
        description="Backend API for CALLED IT!: post predictions, react, follow friends and wager",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(predictions_router)
    app.include_router(social_router)
    app.include_router(promotions_router)
    app.include_router(users_router)

    return app


app = create_app()
