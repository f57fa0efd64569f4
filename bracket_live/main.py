"""FastAPI application entry point.

Serves the tournament snapshot API under /api and the realtime channel
at /ws. Store changes are pushed to every connected client.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status

from bracket_live import __version__
from bracket_live.api import tournament
from bracket_live.config import Settings, get_settings
from bracket_live.logging_config import configure_from_settings, get_logger
from bracket_live.tournament.store import SnapshotStore, build_store
from bracket_live.utils.errors import BracketLiveError, ErrorCode
from bracket_live.utils.json_utils import ORJSONResponse
from bracket_live.ws.events import EventType
from bracket_live.ws.gateway import router as ws_router
from bracket_live.ws.manager import ConnectionManager

settings = get_settings()

configure_from_settings(settings)
logger = get_logger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================


def _broadcast_changes(manager: ConnectionManager):
    async def on_change(key: str, value: Any) -> None:
        if value is None:
            await manager.broadcast(EventType.TOURNAMENT_RESET, {})
        else:
            await manager.broadcast(EventType.TOURNAMENT_UPDATED, value)

    return on_change


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    store: SnapshotStore = app.state.store
    manager: ConnectionManager = app.state.connection_manager
    app_settings: Settings = app.state.settings

    logger.info("Starting application...")
    await store.start()
    unsubscribe = store.subscribe(app_settings.tournament_key, _broadcast_changes(manager))
    logger.info(f"Snapshot store ready ({type(store).__name__})")

    yield

    logger.info("Shutting down application...")
    try:
        unsubscribe()
        await manager.close_all()
        await store.close()
        logger.info("Application shutdown complete")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# =============================================================================
# Error Handlers
# =============================================================================

_STATUS_BY_CODE = {
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_BRACKET_SIZE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SLOT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.MATCH_NOT_READY: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_MESSAGE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TOURNAMENT_NOT_LOADED: status.HTTP_409_CONFLICT,
}


async def bracket_error_handler(request: Request, exc: BracketLiveError) -> ORJSONResponse:
    """Handle domain errors that escape a route."""
    status_code = _STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.warning("bracket_error", code=exc.code, message=exc.message, path=request.url.path)
    return ORJSONResponse(
        status_code=status_code,
        content={"error": exc.message, **exc.to_dict()},
    )


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app(
    app_settings: Settings | None = None,
    store: SnapshotStore | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        app_settings: Settings to use (defaults to environment settings)
        store: Snapshot store (defaults to Redis when configured, else in-memory)
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="Bracket Live API",
        version=__version__,
        description="Live single-elimination tournament bracket",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.settings = app_settings
    app.state.store = store or build_store(app_settings)
    app.state.connection_manager = ConnectionManager()

    app.add_exception_handler(BracketLiveError, bracket_error_handler)

    @app.get("/health", tags=["Health"], summary="Health check endpoint")
    async def health_check() -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "connections": app.state.connection_manager.connection_count,
        }

    app.include_router(tournament.router, prefix="/api")
    app.include_router(ws_router)
    return app


app = create_app()


# =============================================================================
# Development Server
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    # Multiple workers need the Redis store so changes reach every worker's sockets
    uvicorn.run(
        "bracket_live.main:app",
        host=settings.app_host,
        port=settings.app_port,
        workers=1 if settings.redis_url is None else settings.uvicorn_workers,
        log_level=settings.log_level.lower(),
    )
