"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, billing, accounting

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Flight charging
router.include_router(billing.router)

# Member accounts and cost center ledgers
router.include_router(accounting.router)
