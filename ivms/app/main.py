"""
FastAPI Application Entry Point.

This is the main application file for the IVMS Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from ivms.app.core.config import settings
from ivms.app.api.v1.router import router as api_v1_router
from ivms.app.db.session import engine, Base
from ivms.app.core.observability import ObservabilityMiddleware, configure_logging
from ivms.app.core import redis_client as redis_store
from ivms.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from ivms.app.models.user import User
from ivms.app.models.audit_log import AuditLog
from ivms.app.models.car import Car
from ivms.app.models.rental_company import RentalCompany
from ivms.app.models.car_request import CarRequest
from ivms.app.models.maintenance_request import MaintenanceRequest
from ivms.app.models.notification import Notification
from ivms.app.models.car_inventory_request import CarInventoryRequest
from ivms.app.models.purchase_request import PurchaseRequest
from ivms.app.models.part import Part, MaintenancePartUsage

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Closes the Redis connection pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s started (return policy: %s)", settings.app_name, settings.car_return_policy.value)
    yield
    await redis_store.redis_client.aclose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Internal Vehicle Management System: car requests, fleet and maintenance",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await redis_store.ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the IVMS Backend API",
        "docs": "/docs",
        "health": "/health",
    }
