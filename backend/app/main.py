"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.api.routes.chat import router as chat_router
from backend.app.api.routes.content import router as content_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.report_builder import router as report_builder_router
from backend.app.config import get_settings
from backend.app.db.engine import get_async_engine
from backend.app.db.models import Base
from backend.app.reports.maintenance import ReportMaintenance, run_maintenance
from backend.app.reports.store import get_report_store
from backend.app.utils.logging import configure_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)

    if settings.database_url and settings.auto_create_tables:
        async with get_async_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Content index tables created")

    store = get_report_store()
    # Jobs left in processing by a previous process will never finish
    run_maintenance(
        store,
        ttl_seconds=settings.report_ttl_seconds,
        stale_after_seconds=settings.report_stale_processing_seconds,
    )

    maintenance = ReportMaintenance(
        store,
        interval_seconds=settings.report_cleanup_interval_seconds,
        ttl_seconds=settings.report_ttl_seconds,
        stale_after_seconds=settings.report_stale_processing_seconds,
    )
    maintenance.start()
    try:
        yield
    finally:
        await maintenance.stop()


app = FastAPI(title="AI Learning Platform API", version=VERSION, lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(chat_router)
app.include_router(report_builder_router)
app.include_router(content_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "AI Learning Platform API", "version": VERSION}
