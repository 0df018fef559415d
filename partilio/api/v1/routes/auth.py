# partilio/api/v1/routes/auth.py
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response, HTTPException, status
from fastapi_users import BaseUserManager, exceptions
from sqlalchemy.ext.asyncio import AsyncSession

from partilio.core.database import get_async_session
from partilio.core.auth import User, UserRead, UserUpdate, get_user_manager
from partilio.api.deps import get_current_user, get_optional_current_user
from partilio.crud.category import get_categories_for_user
from partilio.crud.payer import count_active_payers
from partilio.schemas.user import ChangePassword, OnboardingStatus, ProfileUpdate, TokenStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/jwt/logout", status_code=status.HTTP_200_OK)
async def logout(response: Response, user: Optional[User] = Depends(get_optional_current_user)):
    """
    Logout endpoint that doesn't require authentication.
    Tokens are stateless; this only clears the access token cookie if present.
    """
    if user:
        logger.info(f"User {user.id} logged out")
    response.delete_cookie(key="access_token")
    return {"detail": "Successfully logged out"}

@router.get("/verify-token", response_model=TokenStatus)
async def verify_token(user: User = Depends(get_current_user)):
    return TokenStatus(valid=True, user_id=user.id, email=user.email)

@router.get("/profile", response_model=UserRead)
async def read_profile(user: User = Depends(get_current_user)):
    return user

@router.put("/profile", response_model=UserRead)
async def update_profile(
    profile_in: ProfileUpdate,
    user: User = Depends(get_current_user),
    user_manager: BaseUserManager[User, uuid.UUID] = Depends(get_user_manager),
):
    update_dict = profile_in.model_dump(exclude_unset=True)
    if not update_dict:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided for update")
    try:
        return await user_manager.update(UserUpdate(**update_dict), user, safe=True)
    except exceptions.UserAlreadyExists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")

@router.post("/change-password", status_code=status.HTTP_200_OK)
async def change_password(
    password_in: ChangePassword,
    user: User = Depends(get_current_user),
    user_manager: BaseUserManager[User, uuid.UUID] = Depends(get_user_manager),
):
    verified, _ = user_manager.password_helper.verify_and_update(password_in.current_password, user.hashed_password)
    if not verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    try:
        await user_manager.update(UserUpdate(password=password_in.new_password), user, safe=True)
    except exceptions.InvalidPasswordException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason)
    logger.info(f"User {user.email} changed password")
    return {"detail": "Password updated"}

@router.get("/onboarding-status", response_model=OnboardingStatus)
async def onboarding_status(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    active_payers = await count_active_payers(user.id, db)
    categories = await get_categories_for_user(user.id, db)
    return OnboardingStatus(is_complete=active_payers > 0, active_payers=active_payers, categories=len(categories))
