"""
Authentication Pydantic schemas.

The Actor is the authenticated member passed explicitly into every
billing operation.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from backend.app.models.enums import UserRole


class Actor(BaseModel):
    """
    Authenticated member performing an operation.

    Built from a verified JWT payload by get_current_actor.
    """
    user_id: int = Field(..., description="Member ID")
    username: str = Field(..., description="Username")
    role: UserRole = Field(..., description="Member role")


class MemberResponse(BaseModel):
    """
    Schema for member information response.

    Used by GET /auth/me endpoint.
    """
    id: int
    email: str
    username: str
    name: str
    surname: str
    role: UserRole
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
