"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from ivms.app.api.v1.endpoints import (
    auth, users, cars, rental_companies,
    car_requests, maintenance, notifications, audit_logs,
    car_inventory_requests, purchase_requests, parts
)

router = APIRouter()

# Authentication and user administration
router.include_router(auth.router)
router.include_router(users.router)

# Fleet
router.include_router(cars.router)
router.include_router(rental_companies.router)
router.include_router(car_inventory_requests.router)
router.include_router(parts.router)

# Workflows
router.include_router(car_requests.router)
router.include_router(maintenance.router)
router.include_router(purchase_requests.router)

# Inbox and audit trail
router.include_router(notifications.router)
router.include_router(audit_logs.router)
