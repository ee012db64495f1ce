"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ratedeck.config import settings
from ratedeck.db.engine import create_db_engine, create_session_factory, create_tables
from ratedeck.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=settings.json_logs and not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    engine = create_db_engine()
    db_url = settings.effective_database_url

    if settings.should_create_tables:
        await create_tables(engine)
        logger.info("Database tables created")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)

    # Job worker: owned by the supervisor, started on request or at boot
    from ratedeck.workers.supervisor import WorkerSupervisor
    supervisor = WorkerSupervisor(app.state.db_session_factory)
    await supervisor.open()
    app.state.supervisor = supervisor
    if settings.worker_autostart:
        await supervisor.start()

    from ratedeck.workers.maintenance import run_maintenance
    maintenance_task = asyncio.create_task(run_maintenance(app))

    logger.info("RateDeck API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    # Shutdown
    maintenance_task.cancel()
    try:
        await maintenance_task
    except asyncio.CancelledError:
        pass
    await supervisor.close()
    await engine.dispose()
    logger.info("RateDeck API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="RateDeck API",
        version="1.0.0",
        description="Background job queue and A-Z destination management for telecom billing.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from ratedeck.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    from ratedeck.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Prometheus metrics (internal endpoint)
    try:
        from prometheus_fastapi_instrumentator import Instrumentator
        Instrumentator(
            should_group_status_codes=True,
            should_respect_env_var=False,
            excluded_handlers=["/api/health.*", "/metrics"],
        ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    except ImportError:
        logger.debug("prometheus-fastapi-instrumentator not installed, /metrics disabled")

    from ratedeck.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
