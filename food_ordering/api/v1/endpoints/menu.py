"""
Menu endpoints.

- GET operations are public.
- POST / PUT / DELETE require the STAFF role and accept multipart form data
  with an optional ``image`` file.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from fastapi import (APIRouter, BackgroundTasks, Depends, File, Form,
                     UploadFile)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.api.v1.deps import ResourceId, get_db, require_staff
from food_ordering.core.config import settings
from food_ordering.core.exceptions import NotFound, ValidationFailed
from food_ordering.models.menu_item import MenuItem
from food_ordering.models.user import User
from food_ordering.schemas.common import ApiResponse
from food_ordering.schemas.menu import MenuItemData, MenuItemRead, MenuListData
from food_ordering.services.images import (ImageStorage, delete_image_quietly,
                                           get_image_storage)

router = APIRouter(prefix="/menu", tags=["menu"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
def _name_errors(name: str | None) -> list[str]:
    if name is None or not name.strip():
        return ["Name is required"]
    if len(name.strip()) > 255:
        return ["Name must be 1-255 characters"]
    return []


def _parse_price(raw: str | None) -> tuple[Decimal | None, list[str]]:
    if raw is None or not str(raw).strip():
        return None, ["Price is required"]
    try:
        price = Decimal(str(raw).strip())
    except InvalidOperation:
        return None, ["Price must be a valid number"]
    if not price.is_finite():
        return None, ["Price must be a valid number"]
    if price <= 0:
        return None, ["Price must be greater than 0"]
    if price >= Decimal("100000000"):
        return None, ["Price is too large"]
    return price.quantize(Decimal("0.01")), []


async def _read_image(image: UploadFile | None) -> tuple[bytes, str, str] | None:
    """Return (data, filename, content type) for a usable upload, else None."""
    if image is None or not image.filename:
        return None
    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationFailed("Only image files are allowed")
    data = await image.read(settings.MAX_IMAGE_BYTES + 1)
    if len(data) > settings.MAX_IMAGE_BYTES:
        raise ValidationFailed(
            f"Image must not exceed {settings.MAX_IMAGE_BYTES // (1024 * 1024)}MB"
        )
    return data, image.filename, content_type


async def _commit_or_discard(db: AsyncSession, storage: ImageStorage, new_image: str | None) -> None:
    """Commit; on failure roll back and remove the image this request stored."""
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await delete_image_quietly(storage, new_image)
        raise


async def _get_item(db: AsyncSession, item_id: int) -> MenuItem:
    result = await db.execute(select(MenuItem).where(MenuItem.id == item_id))
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFound("Menu item not found")
    return item


# ── Public ──────────────────────────────────────────────────────────
@router.get("", response_model=ApiResponse[MenuListData])
async def list_menu_items(db: AsyncSession = Depends(get_db)) -> ApiResponse[MenuListData]:
    result = await db.execute(
        select(MenuItem).order_by(MenuItem.created_at.desc(), MenuItem.id.desc())
    )
    items = [MenuItemRead.model_validate(i) for i in result.scalars().all()]
    return ApiResponse(data=MenuListData(items=items))


@router.get("/{item_id}", response_model=ApiResponse[MenuItemData])
async def get_menu_item(item_id: ResourceId, db: AsyncSession = Depends(get_db)) -> ApiResponse[MenuItemData]:
    item = await _get_item(db, item_id)
    return ApiResponse(data=MenuItemData(item=MenuItemRead.model_validate(item)))


# ── Staff ───────────────────────────────────────────────────────────
@router.post("", response_model=ApiResponse[MenuItemData], status_code=201)
async def create_menu_item(
    name: str | None = Form(default=None),
    price: str | None = Form(default=None),
    description: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage),
    _staff: User = Depends(require_staff),
) -> ApiResponse[MenuItemData]:
    parsed_price, price_errors = _parse_price(price)
    errors = _name_errors(name) + price_errors
    if errors:
        raise ValidationFailed("Validation failed", errors)

    upload = await _read_image(image)
    image_url = await storage.save(*upload) if upload else None

    item = MenuItem(
        name=name.strip(),  # type: ignore[union-attr]
        description=description or None,
        price=parsed_price,
        image_url=image_url,
    )
    db.add(item)
    await _commit_or_discard(db, storage, image_url)
    await db.refresh(item)
    logger.info("Created menu item %d (%s)", item.id, item.name)
    return ApiResponse(
        message="Menu item created successfully",
        data=MenuItemData(item=MenuItemRead.model_validate(item)),
    )


@router.put("/{item_id}", response_model=ApiResponse[MenuItemData])
async def update_menu_item(
    item_id: ResourceId,
    background_tasks: BackgroundTasks,
    name: str | None = Form(default=None),
    price: str | None = Form(default=None),
    description: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage),
    _staff: User = Depends(require_staff),
) -> ApiResponse[MenuItemData]:
    item = await _get_item(db, item_id)

    errors: list[str] = []
    if name is not None:
        errors += _name_errors(name)
    parsed_price = None
    if price is not None and str(price).strip():
        parsed_price, price_errors = _parse_price(price)
        errors += price_errors
    if errors:
        raise ValidationFailed("Validation failed", errors)

    upload = await _read_image(image)
    old_image = item.image_url
    new_image = await storage.save(*upload) if upload else None
    if new_image:
        item.image_url = new_image

    if name is not None:
        item.name = name.strip()
    if description is not None:
        item.description = description or None
    if parsed_price is not None:
        item.price = parsed_price

    await _commit_or_discard(db, storage, new_image)
    if new_image:
        # Old file cleanup must never block the update.
        background_tasks.add_task(delete_image_quietly, storage, old_image)
    await db.refresh(item)
    logger.info("Updated menu item %d", item_id)
    return ApiResponse(
        message="Menu item updated successfully",
        data=MenuItemData(item=MenuItemRead.model_validate(item)),
    )


@router.delete("/{item_id}", response_model=ApiResponse[None])
async def delete_menu_item(
    item_id: ResourceId,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage),
    _staff: User = Depends(require_staff),
) -> ApiResponse[None]:
    """Remove an item. Past order lines keep their name and price snapshot."""
    item = await _get_item(db, item_id)

    background_tasks.add_task(delete_image_quietly, storage, item.image_url)
    await db.delete(item)
    await db.commit()
    logger.info("Deleted menu item %d (%s)", item_id, item.name)
    return ApiResponse(message="Menu item deleted successfully")
