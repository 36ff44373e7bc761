# ============================================================================
# CLIMATE MONITOR - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - FastAPI application entry point
# PURPOSE: Wire the job store, remote client and session manager into the API
# CREATED: 10 OCT 2026
# ============================================================================
"""
Climate Monitor Main Application

FastAPI application that:
1. Exposes monitoring sessions and job history over HTTP
2. Runs session polling as background tasks
3. Manages the job store (in-memory or PostgreSQL) and the remote client

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from __version__ import __version__, BUILD_DATE, EPOCH

from core.config import get_defaults
from repositories import create_job_repository, init_pool, close_pool
from repositories.schema import deploy_schema
from services import ProcessingServiceClient, JobHistoryService
from orchestrator import SessionManager
from api.routes import router, set_services
from health import health_router, get_registry, register_application_checks

from core.logging import configure_logging

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, closes sessions and connections on shutdown.
    """
    defaults = get_defaults()
    backend = defaults.store.backend

    logger.info(f"Starting Climate Monitor v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    pool = None
    if backend == "postgres":
        pool = await init_pool()
        logger.info("Database pool initialized")
        if os.environ.get("AUTO_BOOTSTRAP_SCHEMA", "").lower() == "true":
            await deploy_schema(pool, defaults.store.schema)

    store = create_job_repository(backend, pool)
    client = ProcessingServiceClient(defaults.processing)
    if not defaults.processing.has_payment_config:
        logger.warning("Payment service not configured (MASUMI_PAYMENT_API / MASUMI_API_KEY)")

    manager = SessionManager(
        store,
        client,
        polling=defaults.polling,
        processing=defaults.processing,
        store_config=defaults.store,
    )
    history = JobHistoryService(store, client, defaults.store)

    set_services(session_manager=manager, history_service=history)

    registry = get_registry()
    registry.clear()
    register_application_checks(registry, store, backend, defaults.processing, manager)
    logger.info(f"Health checks initialized ({len(registry)} checks registered)")

    logger.info(
        f"Job store: {backend}; processing service: {defaults.processing.base_url}; "
        f"poll every {defaults.polling.interval_seconds:.0f}s "
        f"up to {defaults.polling.max_attempts} times"
    )

    yield

    logger.info("Shutting down Climate Monitor...")

    await manager.shutdown()
    await client.aclose()
    if pool is not None:
        await close_pool()

    logger.info("Climate Monitor stopped")


# Create FastAPI app
app = FastAPI(
    title="Climate Monitor",
    description="Paid air-quality monitoring jobs: create, pay, poll, report",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health routes (no prefix - /livez, /readyz, /health)
app.include_router(health_router)

# API routes
app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Climate Monitor",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
