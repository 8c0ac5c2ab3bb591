"""
Food Ordering — application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from food_ordering.api.v1.api import api_router
from food_ordering.api.v1.endpoints.auth import limiter
from food_ordering.core.config import settings
from food_ordering.core.exceptions import register_exception_handlers
from food_ordering.db.base import Base
from food_ordering.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from food_ordering.models.menu_item import MenuItem  # noqa: F401
from food_ordering.models.order import Order, OrderItem  # noqa: F401
from food_ordering.models.user import Role
from food_ordering.services import users as user_store
from food_ordering.services.cart import close_cart_store

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_admin() -> None:
    """Create the default admin account on first run."""
    async with async_session_factory() as session:
        if await user_store.get_by_email(session, settings.FIRST_ADMIN_EMAIL) is not None:
            return
        await user_store.create_user(
            session,
            nickname=settings.FIRST_ADMIN_NICKNAME,
            email=settings.FIRST_ADMIN_EMAIL,
            password=settings.FIRST_ADMIN_PASSWORD,
            role=Role.ADMIN,
        )
        logger.info(
            "Default admin created: %s (password: <redacted>)",
            settings.FIRST_ADMIN_EMAIL,
        )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_admin()

    logger.info("Food Ordering v%s started", settings.VERSION)
    yield
    await close_cart_store()
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Role-based food ordering API",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.state.limiter = limiter

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_PREFIX)

    # Uploaded menu images
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    application.mount(
        settings.UPLOAD_URL_PREFIX,
        StaticFiles(directory=str(upload_dir)),
        name="uploads",
    )

    # Frontend static files; catch-all mount, so it goes last
    frontend_dir = Path(__file__).resolve().parent.parent / "frontend"
    if frontend_dir.is_dir():
        application.mount(
            "/",
            StaticFiles(directory=str(frontend_dir), html=True),
            name="frontend",
        )
        logger.info("Frontend mounted from %s", frontend_dir)

    return application


app = create_app()
