"""
Image transfer — stores uploaded menu images and removes stale ones.

Uploads go through an ``ImageStorage`` so the backend (local disk today) can
change without touching the menu endpoints.  Removal of an old image is a
secondary effect: ``delete_image_quietly`` logs failures and never raises.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

from food_ordering.core.config import settings

logger = logging.getLogger(__name__)


class ImageStorage(ABC):
    @abstractmethod
    async def save(self, data: bytes, filename: str, content_type: str) -> str:
        """Persist the image and return the URL it is served from."""

    @abstractmethod
    async def delete(self, url: str) -> None:
        """Remove the image behind ``url``."""


class LocalImageStorage(ImageStorage):
    """Writes images under a directory served as static files."""

    def __init__(self, directory: str | Path, url_prefix: str = "/uploads") -> None:
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    async def save(self, data: bytes, filename: str, content_type: str) -> str:
        ext = PurePosixPath(filename or "").suffix.lower()[:10]
        name = f"{uuid.uuid4()}{ext}"
        self.directory.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread((self.directory / name).write_bytes, data)
        logger.info("Stored image %s (%s, %d bytes)", name, content_type, len(data))
        return f"{self.url_prefix}/{name}"

    async def delete(self, url: str) -> None:
        if not url or not url.startswith(f"{self.url_prefix}/"):
            return
        # Only the basename is trusted; never follow path segments from a URL.
        path = self.directory / PurePosixPath(url).name
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.info("Deleted image %s", path.name)


async def delete_image_quietly(storage: ImageStorage, url: str | None) -> None:
    """Best-effort delete, meant to run as a fire-and-forget background task."""
    if not url:
        return
    try:
        await storage.delete(url)
    except Exception:
        logger.warning("Could not delete image %s", url, exc_info=True)


_image_storage: ImageStorage | None = None


def get_image_storage() -> ImageStorage:
    global _image_storage
    if _image_storage is None:
        _image_storage = LocalImageStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return _image_storage
