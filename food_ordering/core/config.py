"""
Centralised application settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings

_DEFAULT_SECRET = "CHANGE-ME-TO-A-RANDOM-64-CHAR-HEX-STRING-IN-PRODUCTION"


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "Food Ordering"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # ── Database (aiosqlite locally, asyncpg in production) ─────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./food_ordering.db"

    # ── Cart storage ─────────────────────────────────────────────────
    CART_BACKEND: str = "memory"  # memory | redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # ── JWT ──────────────────────────────────────────────────────────
    SECRET_KEY: str = _DEFAULT_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # ── Rate limiting ────────────────────────────────────────────────
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "5/minute"

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1",
        "http://127.0.0.1:8000",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        if isinstance(v, str) and not v.lstrip().startswith("["):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    @field_validator("CART_BACKEND")
    @classmethod
    def _cart_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"memory", "redis"}:
            raise ValueError("CART_BACKEND must be 'memory' or 'redis'")
        return v

    # ── Image uploads ────────────────────────────────────────────────
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024

    # ── Orders ───────────────────────────────────────────────────────
    # When True, status changes must follow ORDER_STATUS_TRANSITIONS.
    ORDER_STATUS_STRICT: bool = False

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── Default admin (seeded on first startup) ─────────────────────
    FIRST_ADMIN_EMAIL: str = "admin@foodorder.com"
    FIRST_ADMIN_PASSWORD: str = "admin123"
    FIRST_ADMIN_NICKNAME: str = "Admin"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()

if settings.SECRET_KEY == _DEFAULT_SECRET:
    import logging

    logging.getLogger("food_ordering.core.config").warning(
        "You are running with the default INSECURE secret key! "
        "Set SECRET_KEY in your .env file."
    )
