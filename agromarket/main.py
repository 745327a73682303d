# File: agromarket/main.py
"""
Main application file for AgroMarket.
"""

import json
import logging
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agromarket import __version__
from agromarket.api.api import api_router
from agromarket.core.config import settings
from agromarket.core.exceptions import (
    BusyException,
    EntityNotFoundException,
    InsufficientStockException,
    InvalidStateException,
    MarketException,
    ValidationException,
)
from agromarket.db.session import init_db

# --- Logging Configuration ---
LOG_LEVEL = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("agromarket")
logger.setLevel(LOG_LEVEL)
# --- END: Logging Configuration ---

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for the AgroMarket catalog, checkout and inventory back-office",
    version=__version__,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)

# Set up CORS
origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS if origin]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def status_code_for(exc: MarketException) -> int:
    """HTTP status for a domain or storage exception."""
    if isinstance(exc, EntityNotFoundException):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (InsufficientStockException, InvalidStateException)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, ValidationException):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, BusyException):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# --- Domain Error Handler ---
@app.exception_handler(MarketException)
async def market_exception_handler(request: Request, exc: MarketException):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    headers = {"Retry-After": "1"} if isinstance(exc, BusyException) else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": jsonable_encoder(exc.to_dict())},
        headers=headers,
    )


# --- Validation Error Handler ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_details = jsonable_encoder(exc.errors())
    logger.warning(f"Request validation failed for {request.method} {request.url.path}")
    logger.debug(f"Validation Errors:\n{json.dumps(error_details, indent=2)}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": error_details},
    )


# Log requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = datetime.now()
    logger.info(f"-> Request: {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        process_time = (datetime.now() - start_time).total_seconds()
        logger.info(f"<- Response: {response.status_code} ({process_time:.4f}s)")
        return response
    except Exception as e:
        process_time = (datetime.now() - start_time).total_seconds()
        logger.exception(
            f"!! Error during request processing for {request.method} {request.url.path} ({process_time:.4f}s): {e}"
        )
        raise


@app.on_event("startup")
def create_schema_on_startup():
    """Create missing tables during application startup."""
    init_db()


# Include the API router
app.include_router(api_router, prefix=settings.API_V1_STR)


# Root and Health Check Endpoints
@app.get("/", tags=["Root"], summary="API Root Endpoint")
def read_root():
    """Provides basic API information and links to documentation."""
    return {
        "message": "Welcome to AgroMarket API",
        "project_name": settings.PROJECT_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "docs_url": app.docs_url,
        "openapi_url": app.openapi_url,
    }


@app.get("/health", tags=["Health"], summary="API Health Check")
def health_check():
    """Returns the operational status of the API."""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}
