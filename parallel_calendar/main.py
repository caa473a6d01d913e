"""Parallel Calendar API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CalendarError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - The store handle is created in the lifespan, kept on app.state.db,
      and disposed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - No module-level engine: importing main has no IO side effects
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parallel_calendar.api.error_handlers import register_error_handlers
from parallel_calendar.api.routes import health, tasks, time_slots, users
from parallel_calendar.config import get_settings
from parallel_calendar.infrastructure.database import DatabaseSessionManager
from parallel_calendar.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    app.state.db = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Parallel Calendar API started")
    try:
        yield
    finally:
        logger.info("Parallel Calendar API shutting down")
        await app.state.db.dispose()
        app.state.db = None


app = FastAPI(
    title="Parallel Calendar API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(tasks.router)
app.include_router(time_slots.router)

register_error_handlers(app)
