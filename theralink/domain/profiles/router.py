"""Profile router - Current user's profile and session teardown"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_auth_context, get_current_user
from ...database import get_db
from ...models import Profile
from ...services.change_feed import get_subscription_registry
from .schemas import ProfileResponse, ProfileUpdate, SignOutResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["Profiles"])
auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(current_user: Profile = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name and avatar; role and email are owned by the auth provider"""
    update_data = data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)
    logger.info(f"👤 Profile {current_user.id} updated: {', '.join(update_data) or 'no changes'}")
    return current_user


@auth_router.post("/sign-out", response_model=SignOutResponse)
async def sign_out(ctx: AuthContext = Depends(get_auth_context)):
    """Tear down the user's realtime subscriptions; the client discards its token"""
    closed = get_subscription_registry().close_user(ctx.user_id)
    logger.info(f"👋 User {ctx.user_id} signed out, closed {closed} subscription(s)")
    return {"success": True, "closed_subscriptions": closed}
