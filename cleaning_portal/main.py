"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from cleaning_portal.api.router import api_router
from cleaning_portal.config import get_settings
from cleaning_portal.db.engine import create_all, engine
from cleaning_portal.errors import PortalError

logger = logging.getLogger(__name__)

_settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_all()
    yield
    await engine.dispose()


app = FastAPI(
    title="Touch Cleaning Portal",
    description="Bookings, staff jobs, admin management and CMS for a cleaning business.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, **exc.extra()},
    )


# API routes
app.include_router(api_router)

# Uploaded objects (task photos, CMS images)
_storage_dir = Path(_settings.storage.base_dir)
_storage_dir.mkdir(parents=True, exist_ok=True)
app.mount("/storage", StaticFiles(directory=str(_storage_dir)), name="storage")


@app.get("/health")
async def health():
    return {"ok": True}
