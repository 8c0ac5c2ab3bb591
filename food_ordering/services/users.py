"""
Credential store — account lookups and writes.

Passwords are hashed inside ``create_user`` and ``set_password`` before
anything reaches the session, so no caller can persist a plaintext password.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.core.exceptions import Conflict
from food_ordering.core.security import get_password_hash
from food_ordering.models.user import Role, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# Matches the users and orders delivery_address columns.
MAX_ADDRESS_LENGTH = 500


def normalise_email(email: str) -> str:
    return email.strip().lower()


def password_errors(password: str | None) -> list[str]:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return [f"Password must be at least {MIN_PASSWORD_LENGTH} characters"]
    return []


def address_errors(address: str | None) -> list[str]:
    if address and len(address) > MAX_ADDRESS_LENGTH:
        return [f"Delivery address must be at most {MAX_ADDRESS_LENGTH} characters"]
    return []


def validate_account_fields(
    nickname: str | None, email: str | None, password: str | None
) -> list[str]:
    """Return every violated rule, not just the first one."""
    errors: list[str] = []
    if not nickname or not nickname.strip():
        errors.append("Nickname is required")
    elif len(nickname.strip()) > 100:
        errors.append("Nickname must be 1-100 characters")
    if not email or not email.strip():
        errors.append("Email is required")
    elif "@" not in email or len(email.strip()) > 255:
        errors.append("Invalid email format")
    errors.extend(password_errors(password))
    return errors


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalise_email(email)))
    return result.scalar_one_or_none()


async def email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    query = select(func.count(User.id)).where(User.email == normalise_email(email))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    return result.scalar_one() > 0


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


def set_password(user: User, plain: str) -> None:
    user.hashed_password = get_password_hash(plain)


async def create_user(
    db: AsyncSession,
    *,
    nickname: str,
    email: str,
    password: str,
    role: Role,
    delivery_address: str | None = None,
) -> User:
    """Insert a user; a duplicate email raises ``Conflict``."""
    if await email_taken(db, email):
        raise Conflict("Email already exists")

    user = User(
        nickname=nickname.strip(),
        email=normalise_email(email),
        hashed_password=get_password_hash(password),
        role=role,
        delivery_address=delivery_address or None,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email.
        await db.rollback()
        raise Conflict("Email already exists") from None
    await db.refresh(user)
    logger.info("Created %s account %d (%s)", user.role.value, user.id, user.email)
    return user
