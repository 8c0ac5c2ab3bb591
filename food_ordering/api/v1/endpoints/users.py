"""
User management endpoints — ADMIN only.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.api.v1.deps import ResourceId, get_db, require_admin
from food_ordering.core.exceptions import Forbidden, NotFound, ValidationFailed
from food_ordering.models.user import Role, User
from food_ordering.schemas.common import ApiResponse
from food_ordering.schemas.user import (StaffCreateRequest, StaffUpdateRequest,
                                        UserData, UserListData, UserRead)
from food_ordering.services import users as user_store
from food_ordering.services.cart import CartStore, get_cart_store

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await user_store.get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.get("", response_model=ApiResponse[UserListData])
async def list_users(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> ApiResponse[UserListData]:
    users = await user_store.list_users(db)
    return ApiResponse(data=UserListData(users=[UserRead.model_validate(u) for u in users]))


@router.post("/staff", response_model=ApiResponse[UserData], status_code=201)
async def create_staff(
    body: StaffCreateRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> ApiResponse[UserData]:
    errors = user_store.validate_account_fields(body.nickname, body.email, body.password)
    if errors:
        raise ValidationFailed("Validation failed", errors)

    user = await user_store.create_user(
        db,
        nickname=body.nickname,  # type: ignore[arg-type]
        email=body.email,  # type: ignore[arg-type]
        password=body.password,  # type: ignore[arg-type]
        role=Role.STAFF,
    )
    return ApiResponse(
        message="Staff account created successfully",
        data=UserData(user=UserRead.model_validate(user)),
    )


@router.put("/staff/{user_id}", response_model=ApiResponse[UserData])
async def update_staff(
    user_id: ResourceId,
    body: StaffUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> ApiResponse[UserData]:
    user = await _get_user_or_404(db, user_id)
    if user.role != Role.STAFF:
        raise Forbidden("Can only update staff accounts")
    if not body.nickname or not body.nickname.strip():
        raise ValidationFailed("Nickname is required")
    if len(body.nickname.strip()) > 100:
        raise ValidationFailed("Nickname must be 1-100 characters")

    user.nickname = body.nickname.strip()
    await db.commit()
    await db.refresh(user)
    logger.info("Renamed staff account %d", user_id)
    return ApiResponse(
        message="Staff account updated",
        data=UserData(user=UserRead.model_validate(user)),
    )


@router.delete("/{user_id}", response_model=ApiResponse[None])
async def delete_user(
    user_id: ResourceId,
    db: AsyncSession = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
    admin: User = Depends(require_admin),
) -> ApiResponse[None]:
    """Delete a customer or staff account. Their orders are kept, their cart is not."""
    user = await _get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise Forbidden("Cannot delete your own account")
    if user.role == Role.ADMIN:
        raise Forbidden("Cannot delete admin accounts")

    await db.delete(user)
    await db.commit()
    logger.info("Admin %d deleted user %d (%s)", admin.id, user_id, user.email)
    try:
        await store.clear(user_id)
    except Exception:
        logger.error("User %d deleted but their cart was not cleared", user_id, exc_info=True)
    return ApiResponse(message="User deleted successfully")
