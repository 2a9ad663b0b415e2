# src/meriter_core/main.py
"""Main entry point for the Meriter core API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from meriter_core.api.v1 import communities_router, invites_router, permissions_router
from meriter_core.core.errors import CoreError
from meriter_core.core.settings import settings
from meriter_core.services.quota_reset import QuotaResetWorker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Role-based permissions and daily quota accounting for Meriter communities",
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
app.include_router(invites_router, prefix="/api/v1")
app.include_router(permissions_router, prefix="/api/v1")
app.include_router(communities_router, prefix="/api/v1")


@app.exception_handler(CoreError)
async def core_error_handler(_request: Request, exc: CoreError) -> JSONResponse:
    """Map domain errors to JSON responses carrying a stable error code."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.quota_reset_enabled:
        worker = QuotaResetWorker()
        await worker.start()
        app.state.quota_reset_worker = worker
        logger.info("Quota reset worker started (timezone %s)", settings.quota_timezone)
    else:
        app.state.quota_reset_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: QuotaResetWorker | None = getattr(app.state, "quota_reset_worker", None)
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
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("meriter_core.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
