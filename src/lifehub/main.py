# src/lifehub/main.py
"""Main entry point for the LifeHub messaging API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from lifehub.api.error_handlers import register_error_handlers
from lifehub.api.v1 import chat_router, chat_socket_router
from lifehub.api.v1.dependencies import get_media_storage
from lifehub.core.settings import settings
from lifehub.services.connection_hub import HeartbeatSweeper, get_hub

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Real-time direct messaging for LifeHub",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

register_error_handlers(app)

# Include API routers
app.include_router(chat_router, prefix="/api/v1")
app.include_router(chat_socket_router, prefix="/api/v1")

# Uploaded attachments are served back at the URL stored on the message
app.mount(
    settings.media_url_prefix,
    StaticFiles(directory=settings.media_root, check_dir=False),
    name="chat-media",
)


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    get_media_storage().ensure_root()
    sweeper = HeartbeatSweeper(
        get_hub(),
        interval=settings.chat_sweep_interval_seconds,
        timeout=settings.chat_heartbeat_timeout_seconds,
    )
    await sweeper.start()
    app.state.heartbeat_sweeper = sweeper
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    sweeper: HeartbeatSweeper | None = getattr(app.state, "heartbeat_sweeper", None)
    if sweeper:
        await sweeper.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": "Real-time direct messaging for LifeHub",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("lifehub.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
