"""Main entry point for the AgriCart application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from agricart.api.v1 import (
    auth_router,
    catalog_router,
    lockout_router,
    notifications_router,
    price_review_router,
    profile_router,
    system_router,
)
from agricart.core.settings import settings
from agricart.services.lock_worker import SystemLockWorker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="AgriCart API",
    description="Farm marketplace with a price-review system lock",
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

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(lockout_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")
app.include_router(price_review_router, prefix="/api/v1")
app.include_router(profile_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(catalog_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    if settings.system_lock_worker_enabled:
        worker = SystemLockWorker()
        await worker.start()
        app.state.lock_worker = worker
    else:
        app.state.lock_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: SystemLockWorker | None = getattr(app.state, "lock_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Farm marketplace with a price-review system lock",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("agricart.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
