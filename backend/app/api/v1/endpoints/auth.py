"""
Authentication API endpoints.

Tokens are issued by the club's identity provider; this service only
verifies them. Provides the current member's profile.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.auth import Actor, MemberResponse
from backend.app.core.dependencies import get_current_actor

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=MemberResponse)
async def get_me(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the authenticated member's profile.

    Requires: Valid JWT token in Authorization header
    """
    return await db.get(User, actor.user_id)
