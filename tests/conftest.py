"""
Shared test fixtures for the Food Ordering test suite.

Async throughout (aiosqlite + AsyncSession); every test gets fresh tables,
a fresh in-memory cart store and a private upload directory.
"""

import os
import sys
import tempfile
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="food-ordering-uploads-")

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from food_ordering.api.v1.deps import get_db
from food_ordering.core.security import create_access_token, get_password_hash
from food_ordering.db.base import Base
from food_ordering.main import app
from food_ordering.models.menu_item import MenuItem
from food_ordering.models.user import Role, User
from food_ordering.services.cart import InMemoryCartStore, get_cart_store
from food_ordering.services.images import LocalImageStorage, get_image_storage

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture(autouse=True)
def cart_store() -> InMemoryCartStore:
    """A fresh cart store per test; user ids restart with every new schema."""
    store = InMemoryCartStore()
    app.dependency_overrides[get_cart_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_cart_store, None)


@pytest.fixture(autouse=True)
def image_storage(tmp_path) -> LocalImageStorage:
    storage = LocalImageStorage(tmp_path / "uploads", "/uploads")
    app.dependency_overrides[get_image_storage] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_image_storage, None)


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Accounts ────────────────────────────────────────────────────────
@dataclass
class Account:
    user: User
    password: str
    headers: dict[str, str]


async def create_account(
    session: AsyncSession,
    role: Role,
    email: str,
    password: str = "password123",
    nickname: str | None = None,
    delivery_address: str | None = None,
) -> Account:
    user = User(
        nickname=nickname or role.value.title(),
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        delivery_address=delivery_address,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    token = create_access_token(user)
    return Account(user=user, password=password, headers={"Authorization": f"Bearer {token}"})


@pytest.fixture
async def customer(db_session: AsyncSession) -> Account:
    return await create_account(
        db_session, Role.CUSTOMER, "customer@test.com", delivery_address="1 Main St"
    )


@pytest.fixture
async def other_customer(db_session: AsyncSession) -> Account:
    return await create_account(db_session, Role.CUSTOMER, "other@test.com")


@pytest.fixture
async def staff(db_session: AsyncSession) -> Account:
    return await create_account(db_session, Role.STAFF, "staff@test.com")


@pytest.fixture
async def admin(db_session: AsyncSession) -> Account:
    return await create_account(db_session, Role.ADMIN, "admin@test.com")


@pytest.fixture
def make_menu_item(db_session: AsyncSession):
    """Factory inserting menu items directly, bypassing the staff endpoints."""

    async def _make(name: str = "Burger", price: str = "9.99", **kwargs) -> MenuItem:
        item = MenuItem(name=name, price=Decimal(price), **kwargs)
        db_session.add(item)
        await db_session.commit()
        await db_session.refresh(item)
        return item

    return _make


@pytest.fixture
def make_account(db_session: AsyncSession):
    """Factory for extra accounts beyond the standard fixtures."""

    async def _make(role: Role, email: str, **kwargs) -> Account:
        return await create_account(db_session, role, email, **kwargs)

    return _make
