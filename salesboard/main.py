"""Salesboard FastAPI application."""

import asyncio
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salesboard.database import init_db
from salesboard.errors import DashboardError, dashboard_error_handler
from salesboard.logging_config import configure_logging, get_logger
from salesboard.middleware.rate_limit import SlidingWindowRateLimiter
from salesboard.realtime.hub import BroadcastHub
from salesboard.redis import close_redis, get_redis, init_redis
from salesboard.routes.auth import router as auth_router
from salesboard.routes.notifications import router as notifications_router
from salesboard.routes.stats import router as stats_router
from salesboard.routes.tl import router as tl_router
from salesboard.routes.ws import router as ws_router
from salesboard.services.mutation_service import MutationGateway
from salesboard.services.notification_service import NotificationManager
from salesboard.services.reset_service import submission_reset_loop
from salesboard.sql_storage import SqlStorage
from salesboard.storage import MemoryStorage, Storage

logger = get_logger(__name__)


def build_storage(backend: str | None = None) -> Storage:
    backend = (backend or os.getenv("STORAGE_BACKEND", "sql")).lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "sql":
        return SqlStorage()
    raise RuntimeError(f"Unknown STORAGE_BACKEND '{backend}' (expected 'sql' or 'memory')")


def create_app(
    storage: Storage | None = None,
    *,
    connect_redis: bool = True,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the application. Tests pass a MemoryStorage and skip Redis."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Wire storage, Redis and the realtime components; tear down in reverse."""
        log_level = os.getenv("LOG_LEVEL", "INFO")
        json_format = os.getenv("LOG_FORMAT", "json") == "json"
        configure_logging(level=log_level, json_format=json_format)

        store = storage or build_storage()
        if isinstance(store, SqlStorage):
            logger.info("starting_database_init")
            await init_db()

        if connect_redis:
            await init_redis(os.getenv("REDIS_URL", "redis://localhost:6379/0"))

        hub = BroadcastHub()
        gateway = MutationGateway(store, hub)
        app.state.storage = store
        app.state.hub = hub
        app.state.gateway = gateway
        app.state.notifications = NotificationManager(store, hub)
        await app.state.notifications.recover()
        app.state.rate_limiter = SlidingWindowRateLimiter(get_redis)

        stop_event = asyncio.Event()
        reset_task = None
        if start_scheduler:
            reset_task = asyncio.create_task(submission_reset_loop(gateway, stop_event))

        logger.info("application_started", storage=type(store).__name__)
        yield

        logger.info("shutting_down")
        stop_event.set()
        if reset_task is not None:
            await reset_task
        await app.state.notifications.shutdown()
        if connect_redis:
            await close_redis()
        await store.close()
        logger.info("shutdown_complete")

    app = FastAPI(
        title="Salesboard",
        description="Live sales leaderboard with realtime dashboard broadcasts",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DashboardError, dashboard_error_handler)

    app.include_router(auth_router)
    app.include_router(stats_router)
    app.include_router(tl_router)
    app.include_router(notifications_router)
    app.include_router(ws_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": "salesboard"}

    return app


app = create_app()
