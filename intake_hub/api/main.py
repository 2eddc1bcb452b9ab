"""Main FastAPI application for Intake-Hub.

This module sets up the FastAPI application with all routes, middleware,
and configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from intake_hub import __version__
from intake_hub.api.dependencies import get_record_store
from intake_hub.api.logging_config import setup_logging
from intake_hub.api.middleware import setup_middleware
from intake_hub.api.routes import health, patients, websocket
from intake_hub.infrastructure.settings import get_settings

settings = get_settings()
setup_logging(use_json=settings.json_logs, log_level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the record store on startup and close it on shutdown.

    Closing waits for any in-flight create, so a rewrite is never cut short.
    """
    logger.info(f"{settings.app_name} API starting up...")
    store_factory = app.dependency_overrides.get(get_record_store, get_record_store)
    store = await run_in_threadpool(store_factory)
    logger.info(f"Record store backend: {store.backend_name}")
    logger.info(f"Logging level: {settings.log_level}")
    yield
    logger.info(f"{settings.app_name} API shutting down...")
    await run_in_threadpool(store.close)


app = FastAPI(
    title="Intake-Hub API",
    description="Patient intake records with name search and a real-time message relay",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)

setup_middleware(app)

app.include_router(health.router)
app.include_router(patients.router)
app.include_router(websocket.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Intake-Hub API",
        "version": __version__,
        "docs": "/api/docs",
        "health": "/api/health",
        "websocket": "/ws",
    }


def run(host: str = settings.host, port: int = settings.port, reload: bool = False) -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run("intake_hub.api.main:app", host=host, port=port, reload=reload, log_level="info")


if __name__ == "__main__":
    run()
