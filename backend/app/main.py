"""Youth Organization CMS Backend - FastAPI Entry Point."""
import sys

# asyncpg is incompatible with Windows ProactorEventLoop (default on Windows).
# Must be set before any asyncio usage.
if sys.platform == "win32":
    import asyncio
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import structlog
from fastapi import FastAPI

from app.config import settings
from app.database import engine
from app.middleware.cors import setup_cors
from app.middleware.error_handler import setup_error_handlers
from app.middleware.logging_middleware import LoggingMiddleware
from app.api.v1 import auth as auth_router
from app.api.v1 import contents as contents_router
from app.api.v1 import organizations as organizations_router
from app.api.v1 import palette as palette_router
from app.api.v1 import settings as settings_router
from app.api.v1 import uploads as uploads_router
from app.api.v1 import users as users_router
from app.api import websocket as ws_router
from app.api.websocket import manager as ws_manager
from app.utils.redis_client import close_redis

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if settings.APP_ENV == "development" else structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logger.info("startup", env=settings.APP_ENV)
    # Sentry init
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration

        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1 if settings.APP_ENV == "production" else 1.0,
            environment=settings.APP_ENV,
        )
    # Redis Pub/Sub listener for cross-instance change fan-out
    await ws_manager.start_redis_listener()

    yield

    await ws_manager.stop_redis_listener()
    await close_redis()
    await engine.dispose()
    logger.info("shutdown")


def create_app() -> FastAPI:
    application = FastAPI(
        title="Youth Organization CMS API",
        description="Organizations, content approval workflow and realtime change feed",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Middleware (order matters: last added = first executed)
    setup_cors(application)
    setup_error_handlers(application)
    application.add_middleware(LoggingMiddleware)

    # API Routers
    api = "/api/v1"
    application.include_router(auth_router.router, prefix=f"{api}/auth", tags=["Auth"])
    application.include_router(organizations_router.router, prefix=f"{api}/organizations", tags=["Organizations"])
    application.include_router(users_router.router, prefix=f"{api}/users", tags=["Users"])
    application.include_router(uploads_router.router, prefix=api, tags=["Uploads"])
    application.include_router(
        contents_router.announcements_router, prefix=f"{api}/announcements", tags=["Announcements"],
    )
    application.include_router(contents_router.programs_router, prefix=f"{api}/programs", tags=["Programs"])
    application.include_router(
        contents_router.carousel_items_router, prefix=f"{api}/carousel-items", tags=["Carousel"],
    )
    application.include_router(contents_router.files_router, prefix=f"{api}/files", tags=["Files"])
    application.include_router(palette_router.router, prefix=f"{api}/palette", tags=["Palette"])
    application.include_router(settings_router.router, prefix=f"{api}/settings", tags=["Settings"])
    application.include_router(ws_router.router, tags=["WebSocket"])

    # Health check
    @application.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
