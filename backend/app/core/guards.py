"""
Security guards for role-based access control.

Provides dependencies for protecting billing and accounting endpoints.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_actor
from backend.app.schemas.auth import Actor


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/billing/batch-charge")
        async def batch_charge(actor: Actor = Depends(require_role([UserRole.BOARD]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates the member role

    Raises:
        HTTPException 403 if member role is not in allowed_roles
    """
    async def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return actor

    return role_checker


# Flight charging is board-only; the books are open to board and treasurer.
require_billing_manager = require_role([UserRole.BOARD])
require_accounting_access = require_role([UserRole.BOARD, UserRole.TREASURER])
