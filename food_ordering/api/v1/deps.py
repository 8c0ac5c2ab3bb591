"""
FastAPI dependencies — auth guards, role guards, sessions and stores.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Path, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.core.exceptions import Forbidden, Unauthenticated
from food_ordering.core.security import decode_access_token
from food_ordering.db.session import async_session_factory
from food_ordering.models.user import Role, User
from food_ordering.schemas.cart import INT32_MAX
from food_ordering.services import users as user_store
from food_ordering.services.cart import CartService, CartStore, get_cart_store
from food_ordering.services.orders import OrderService

# auto_error=False so a missing header yields our own 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)

# Row ids in URLs; anything outside INTEGER range is rejected up front.
ResourceId = Annotated[int, Path(ge=1, le=INT32_MAX)]


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Services ────────────────────────────────────────────────────────
def get_cart_service(
    db: AsyncSession = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
) -> CartService:
    return CartService(db, store)


def get_order_service(
    db: AsyncSession = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
) -> OrderService:
    return OrderService(db, store)


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Verify the bearer token and re-load its subject on every request."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Access denied. No token provided.")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise Unauthenticated("Invalid or expired token")

    try:
        user_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token") from None

    user = await user_store.get_user(db, user_id)
    if user is None:
        raise Unauthenticated("User not found")

    request.state.identity = {"id": user.id, "email": user.email, "role": user.role}
    return user


def require_roles(*allowed: Role) -> Callable[..., Awaitable[User]]:
    """Build a dependency admitting only users whose role is in ``allowed``."""
    allowed_roles = frozenset(allowed)

    async def _guard(current_user: User = Depends(get_current_user)) -> User:
        if current_user is None:
            raise Unauthenticated("Access denied. Authentication required.")
        if current_user.role not in allowed_roles:
            raise Forbidden("Access denied. Insufficient permissions.")
        return current_user

    return _guard


require_customer = require_roles(Role.CUSTOMER)
require_staff = require_roles(Role.STAFF)
require_admin = require_roles(Role.ADMIN)
