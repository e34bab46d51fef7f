# src/autobet_meter/main.py
"""Main entry point for the Autobet Meter application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from autobet_meter.api.v1 import betting_router, system_router
from autobet_meter.core.errors import MeteringError
from autobet_meter.core.settings import settings
from autobet_meter.db.session import create_tables
from autobet_meter.services.classifier import get_classifier_client
from autobet_meter.services.metering import get_orchestrator

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Autobet Meter API",
    description="Metered betting-window detection backed by a shared cycle timer",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(betting_router, prefix="/api")
app.include_router(system_router, prefix="/api")


@app.exception_handler(MeteringError)
async def metering_error_handler(request: Request, exc: MeteringError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s crashed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.ledger_backend == "sql":
        create_tables()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    orchestrator = get_orchestrator()
    if orchestrator.heartbeat is not None:
        await orchestrator.heartbeat.stop()
    orchestrator.timer.clear()
    await get_classifier_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("autobet_meter.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
