"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from devquest.auth.router import router as auth_router
from devquest.config import get_settings
from devquest.database import close_db, init_db, session_scope
from devquest.gamification.router import router as badge_router
from devquest.gamification.seed import seed_badges
from devquest.health.router import router as health_router
from devquest.middleware import setup_middleware
from devquest.projects.router import router as projects_router
from devquest.redis_client import close_redis, init_redis
from devquest.tasks.router import router as tasks_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.seed_badges:
        try:
            async with session_scope() as db:
                await seed_badges(db)
        except Exception:
            logger.warning("badge_seeding_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="DevQuest API",
        description="Project management backend with XP, badges and levels for delivery work",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(tasks_router)
    app.include_router(badge_router)

    return app


app = create_app()
