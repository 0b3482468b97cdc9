"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, table creation, engine cleanup
  2. CORS middleware — allows the frontend origin to make cross-origin requests
  3. Exception handlers — maps domain errors to the JSON envelope
  4. Router registration — mounts the transactions API under /api/transactions

Running locally:
    uvicorn ledger_api.main:app --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import ledger_api.models  # noqa: F401  (registers tables on Base.metadata)
from ledger_api.config import settings
from ledger_api.database import engine, Base
from ledger_api.exceptions import register_exception_handlers
from ledger_api.log import configure_logging
from ledger_api.routers import transactions

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Configures logging and creates the tables if they don't exist.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("startup", app=settings.APP_NAME, version=settings.APP_VERSION)
    yield
    await engine.dispose()
    log.info("shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Personal finance ledger: transactions and recurring series with encrypted amounts",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(transactions.router, prefix="/api/transactions", tags=["Transactions"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for the container orchestrator."""
    return {"status": "ok", "version": settings.APP_VERSION}
