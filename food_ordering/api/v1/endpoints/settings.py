"""
Account settings endpoints — profile and password for the current user.

Staff accounts are managed by admins; they may only change their password.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.api.v1.deps import get_current_user, get_db
from food_ordering.core.exceptions import (Conflict, Forbidden,
                                           Unauthenticated, ValidationFailed)
from food_ordering.core.security import verify_password
from food_ordering.models.user import Role, User
from food_ordering.schemas.common import ApiResponse
from food_ordering.schemas.user import (PasswordChangeRequest,
                                        ProfileUpdateRequest, UserData,
                                        UserRead)
from food_ordering.services import users as user_store

router = APIRouter(prefix="/settings", tags=["settings"])
logger = logging.getLogger(__name__)


@router.get("/profile", response_model=ApiResponse[UserData])
async def get_profile(user: User = Depends(get_current_user)) -> ApiResponse[UserData]:
    return ApiResponse(data=UserData(user=UserRead.model_validate(user)))


@router.put("/profile", response_model=ApiResponse[UserData])
async def update_profile(
    body: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ApiResponse[UserData]:
    if user.role == Role.STAFF:
        raise Forbidden("Staff can only change password")

    errors: list[str] = []
    if body.nickname is not None and len(body.nickname.strip()) > 100:
        errors.append("Nickname must be 1-100 characters")
    if body.email and "@" not in body.email:
        errors.append("Invalid email format")
    errors += user_store.address_errors(body.delivery_address)
    if errors:
        raise ValidationFailed("Validation failed", errors)

    if body.email and user_store.normalise_email(body.email) != user.email:
        if await user_store.email_taken(db, body.email, exclude_id=user.id):
            raise Conflict("Email already exists")
        user.email = user_store.normalise_email(body.email)

    # Blank values leave the stored nickname untouched.
    if body.nickname and body.nickname.strip():
        user.nickname = body.nickname.strip()
    if body.delivery_address is not None:
        user.delivery_address = body.delivery_address or None

    await db.commit()
    await db.refresh(user)
    logger.info("Profile updated for user %d", user.id)
    return ApiResponse(
        message="Profile updated successfully",
        data=UserData(user=UserRead.model_validate(user)),
    )


@router.put("/password", response_model=ApiResponse[None])
async def update_password(
    body: PasswordChangeRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ApiResponse[None]:
    if not body.current_password or not body.new_password:
        raise ValidationFailed("Current password and new password are required")
    if user_store.password_errors(body.new_password):
        raise ValidationFailed(
            f"New password must be at least {user_store.MIN_PASSWORD_LENGTH} characters"
        )

    if not verify_password(body.current_password, user.hashed_password):
        raise Unauthenticated("Current password is incorrect")

    user_store.set_password(user, body.new_password)
    await db.commit()
    logger.info("Password changed for user %d", user.id)
    return ApiResponse(message="Password updated successfully")
