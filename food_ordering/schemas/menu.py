"""Pydantic schemas for menu items."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class MenuItemRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: float
    image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class MenuItemData(BaseModel):
    item: MenuItemRead


class MenuListData(BaseModel):
    items: list[MenuItemRead]
