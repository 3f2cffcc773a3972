"""
FastAPI application bootstrap with: \n
- Logging configured from `LOG_LEVEL` \n
- Lifespan-managed initialization of the database tables and shared services \n
  (chat model, result sink, analysis pipeline, event bus, template repository) \n
- CORS configured for the frontend \n

Environment contract (from `settings`): \n
- INIT_MODE: if 'runtime', create missing tables during app startup. \n
- FRONTEND_URL: allowed CORS origin. \n
- LOG_LEVEL: root logging level. \n

Run with: ``uvicorn lexease.main:app``
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lexease.api.fast_api import init_app_state, router
from lexease.database.config.config import settings
from lexease.database.config.connection_engine import connection_engine, create_tables

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    App lifespan manager.

    Notes
    ------------
    - On startup (before yielding):
        * If INIT_MODE == 'runtime': create missing tables.
        * Attach model, sink, pipeline, event bus and template repository to
          `app.state` (services already attached, e.g. by tests, are kept).
    - On shutdown (after yielding):
        * Dispose of the database connection pool.
    """
    if settings.INIT_MODE == "runtime":
        create_tables()
        logger.info("Database tables ready.")
    else:
        logger.info("Skipping table creation (INIT_MODE=%s).", settings.INIT_MODE)

    if getattr(app.state, "pipeline", None) is None:
        init_app_state(app.state)
    logger.info("LexEase services ready (templates from %s).", settings.TEMPLATE_SOURCE)

    try:
        yield
    finally:
        connection_engine.dispose()
        logger.info("App shutting down.")


# Instantiate the FastAPI app with lifespan handler
app = FastAPI(title="LexEase", lifespan=lifespan)
"""Instantiates the FastAPI application object.
    The lifespan=lifespan argument registers the startup/shutdown lifecycle manager that:\n
        - On startup: creates tables (INIT_MODE == 'runtime') and wires the shared services.\n
        - On shutdown: releases the database connection pool. \n
"""

# -----------------------
# CORS configuration
# -----------------------
url = settings.FRONTEND_URL
"""The allowed frontend origin (URL) used for CORS configuration.
This value comes from application settings and represents the domain that is permitted to interact with the backend via cross-origin requests.
"""

app.add_middleware(
    CORSMiddleware,
    allow_origins=[url],      # Frontend origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------
# API routes
# -----------------------
app.include_router(router)
