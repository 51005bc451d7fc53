"""Main FastAPI application for Calendar Hub."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import load_config
from .exceptions import CalendarHubError
from .models.database import close_db, init_db
from .routers import auth_router, calendar_router
from .services.oauth import get_oauth_service
from .services.session import get_session_store
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Background tasks
_session_purge_task: asyncio.Task | None = None


async def session_purge_task():
    """Background task dropping expired sessions."""
    logger.info("Session purge task started")

    while True:
        try:
            await asyncio.sleep(3600)

            purged = get_session_store().purge_expired()
            if purged > 0:
                logger.info(f"Purged {purged} expired sessions")

        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"Session purge error: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global _session_purge_task

    # Startup
    config = load_config()
    setup_logging()
    logger.info("Starting Calendar Hub...")

    await init_db()
    logger.info("Database initialized")

    logger.info(f"Server: {config.server.host}:{config.server.port}")
    logger.info(f"Client origin: {config.server.client_url}")
    if not config.google.client_id:
        logger.warning("Google client id is not configured; logins will fail")

    _session_purge_task = asyncio.create_task(session_purge_task())

    yield

    # Shutdown
    logger.info("Shutting down Calendar Hub...")

    if _session_purge_task:
        _session_purge_task.cancel()
        try:
            await _session_purge_task
        except asyncio.CancelledError:
            pass

    await get_oauth_service().aclose()
    await close_db()


async def calendar_hub_error_handler(request: Request, exc: CalendarHubError) -> JSONResponse:
    """Render domain errors as ``{"error": message}``."""
    if exc.__cause__ is not None:
        logger.debug(f"{type(exc).__name__} on {request.url.path}: {exc.__cause__!r}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    config = load_config()

    app = FastAPI(
        title="Calendar Hub",
        description="Google sign-in and calendar proxy for the Calendar Hub UI",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Browser UI calls the API cross-origin with cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.server.client_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CalendarHubError, calendar_hub_error_handler)

    app.include_router(auth_router)
    app.include_router(calendar_router)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "healthy", "service": "calendar-hub"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = load_config()
    uvicorn.run(
        "calendar_hub.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.debug,
    )
