"""
Auth endpoints — registration, login and logout.
"""

import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.api.v1.deps import get_current_user, get_db
from food_ordering.core.config import settings
from food_ordering.core.exceptions import Unauthenticated, ValidationFailed
from food_ordering.core.security import create_access_token, verify_password
from food_ordering.models.user import Role, User
from food_ordering.schemas.common import ApiResponse
from food_ordering.schemas.user import (LoginData, LoginRequest,
                                        RegisterRequest, UserData, UserRead)
from food_ordering.services import users as user_store

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=ApiResponse[UserData], status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserData]:
    """Create a customer account. The role is always CUSTOMER."""
    errors = user_store.validate_account_fields(body.nickname, body.email, body.password)
    errors += user_store.address_errors(body.delivery_address)
    if errors:
        raise ValidationFailed("Validation failed", errors)

    user = await user_store.create_user(
        db,
        nickname=body.nickname,  # type: ignore[arg-type]
        email=body.email,  # type: ignore[arg-type]
        password=body.password,  # type: ignore[arg-type]
        role=Role.CUSTOMER,
        delivery_address=body.delivery_address,
    )
    return ApiResponse(
        message="Registration successful",
        data=UserData(user=UserRead.model_validate(user)),
    )


@router.post("/login", response_model=ApiResponse[LoginData])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[LoginData]:
    """Exchange email + password for a bearer token."""
    if not body.email or not body.password:
        raise ValidationFailed("Email and password are required")

    user = await user_store.get_by_email(db, body.email)
    # Same message for unknown email and wrong password.
    if user is None or not verify_password(body.password, user.hashed_password):
        raise Unauthenticated("Invalid credentials")

    logger.info("User %d logged in", user.id)
    return ApiResponse(
        message="Login successful",
        data=LoginData(token=create_access_token(user), user=UserRead.model_validate(user)),
    )


@router.post("/logout", response_model=ApiResponse[None])
async def logout(_user: User = Depends(get_current_user)) -> ApiResponse[None]:
    """Tokens are stateless; the client discards its copy."""
    return ApiResponse(message="Logout successful. Please clear your token.")
