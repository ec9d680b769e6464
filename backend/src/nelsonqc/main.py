"""nelsonqc FastAPI Application."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nelsonqc.api.deps import get_app_settings, get_coordinator
from nelsonqc.api.schemas import HealthResponse
from nelsonqc.api.v1.data import router as data_router
from nelsonqc.api.v1.websocket import ConnectionManager
from nelsonqc.api.v1.websocket import router as websocket_router
from nelsonqc.core.broadcast import WebSocketBroadcaster
from nelsonqc.core.config import Settings, get_settings
from nelsonqc.core.events import EventBus
from nelsonqc.core.logging import configure_logging
from nelsonqc.core.store import SeriesStore, open_store
from nelsonqc.core.sync import SyncCoordinator
from nelsonqc.core.watcher import FileWatcher

logger = structlog.get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    store: SeriesStore | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Application settings (defaults to environment settings)
        store: Persistence collaborator (defaults to a file store for
            ``settings.data_file``)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    store = store if store is not None else open_store(settings.data_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        configure_logging(settings.log_format, settings.log_level)
        logger.info("Starting nelsonqc application", data_file=str(settings.data_file))

        event_bus = EventBus()
        connection_manager = ConnectionManager(
            heartbeat_interval=settings.heartbeat_interval,
            heartbeat_timeout=settings.heartbeat_timeout,
        )
        await connection_manager.start()

        # Wire series updates to WebSocket viewers
        broadcaster = WebSocketBroadcaster(connection_manager, event_bus)

        coordinator = SyncCoordinator(store, event_bus)
        await coordinator.initialize()

        watcher = None
        if settings.watch_enabled:
            watcher = FileWatcher(
                settings.data_file,
                coordinator.reload_from_store,
                poll_interval=settings.watch_poll_interval,
                stability_threshold=settings.watch_stability_threshold,
            )
            await watcher.start()
        else:
            logger.info("file_watch_disabled")

        app.state.settings = settings
        app.state.store = store
        app.state.event_bus = event_bus
        app.state.connection_manager = connection_manager
        app.state.broadcaster = broadcaster
        app.state.coordinator = coordinator
        app.state.watcher = watcher

        logger.info("nelsonqc application startup complete")

        yield

        # Shutdown
        logger.info("Shutting down nelsonqc application")

        if watcher is not None:
            await watcher.stop()

        # Flush pending writes before closing connections
        await coordinator.shutdown()
        await event_bus.shutdown()

        broadcaster.close()
        await connection_manager.stop()

        logger.info("nelsonqc application shutdown complete")

    app = FastAPI(
        title="nelsonqc",
        description="Real-time Nelson Rules monitoring for shared QC series",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(data_router)
    app.include_router(websocket_router)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(
        coordinator: SyncCoordinator = Depends(get_coordinator),
        app_settings: Settings = Depends(get_app_settings),
    ) -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            samples=len(coordinator.get_current_series()),
            data_file_exists=app_settings.data_file.exists(),
        )

    return app


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "nelsonqc.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )
