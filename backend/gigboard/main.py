"""Gigboard API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map GigboardError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan

Design Decisions:
    - Lifespan owns logging setup and engine disposal
    - Error handlers live in api/error_handlers.py, registered once here
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gigboard import __version__
from gigboard.api.error_handlers import register_error_handlers
from gigboard.api.routes import applications, health, jobs, verification_codes
from gigboard.config import get_settings
from gigboard.infrastructure import database
from gigboard.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(settings)
    logger.info("Gigboard API started")
    yield
    logger.info("Gigboard API shutting down")
    await database.close_db()


app = FastAPI(
    title="Gigboard API", version=__version__, lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(jobs.router)
app.include_router(applications.router)
app.include_router(verification_codes.router)

register_error_handlers(app)
