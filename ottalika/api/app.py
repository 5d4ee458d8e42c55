"""Ottalika FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ottalika import __version__
from ottalika.api import analytics, complaints, payments
from ottalika.config import settings
from ottalika.models import Base
from ottalika.services import engine
from ottalika.services.errors import AppError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup: Initialize database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Rent verification and maintenance confirmation service",
    version=settings.api_version,
    lifespan=lifespan,
)

app.include_router(payments.router)
app.include_router(payments.renter_router)
app.include_router(complaints.router)
app.include_router(analytics.reconciliation_router)
app.include_router(analytics.router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render workflow errors in the standard failure envelope."""
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(include_detail=not settings.is_production),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = {
        "success": False,
        "code": "validation_error",
        "message": "Invalid request",
    }
    if not settings.is_production:
        body["detail"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    body = {
        "success": False,
        "code": "internal_error",
        "message": "Internal server error",
    }
    if not settings.is_production:
        body["detail"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"success": True, "message": "ok", "version": __version__}
