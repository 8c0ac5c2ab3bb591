"""Pydantic schemas for the shopping cart."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Largest value a 32-bit INTEGER column holds.
INT32_MAX = 2**31 - 1


def _coerce_quantity(v: object) -> object:
    """Truncate numeric input to an int, the way ``parseInt`` reads it."""
    if isinstance(v, float) and math.isfinite(v):
        return int(v)
    if isinstance(v, str):
        try:
            return int(float(v.strip()))
        except (ValueError, OverflowError):
            return v
    return v


# ``menuItemId`` is still accepted for older clients.
class CartAddRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_item_id: int | None = Field(default=None, alias="menuItemId", le=INT32_MAX)
    quantity: int = Field(default=1, le=INT32_MAX)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v: object) -> object:
        return _coerce_quantity(v)


class CartUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    menu_item_id: int | None = Field(default=None, alias="menuItemId", le=INT32_MAX)
    quantity: int | None = Field(default=None, le=INT32_MAX)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v: object) -> object:
        return _coerce_quantity(v)


class CartItemSnapshot(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: float
    image_url: str | None = None


class CartLineRead(BaseModel):
    menu_item_id: int
    item: CartItemSnapshot
    quantity: int
    subtotal: float


class CartRead(BaseModel):
    items: list[CartLineRead]
    total: float
    item_count: int


class CartSummary(BaseModel):
    total: float
    item_count: int
