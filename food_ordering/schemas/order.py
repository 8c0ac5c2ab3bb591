"""Pydantic schemas for orders and checkout."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from food_ordering.models.order import OrderStatus
from food_ordering.schemas.menu import MenuItemRead
from food_ordering.schemas.user import UserBrief


class OrderItemRead(BaseModel):
    id: int
    menu_item_id: int | None = None
    item_name: str
    quantity: int
    price: float
    menu_item: MenuItemRead | None = None

    model_config = {"from_attributes": True}


class OrderRead(BaseModel):
    id: int
    user_id: int | None = None
    status: OrderStatus
    total_price: float
    delivery_address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[OrderItemRead] = []
    user: UserBrief | None = None

    model_config = {"from_attributes": True}


class CheckoutRequest(BaseModel):
    delivery_address: str | None = None


class StatusUpdateRequest(BaseModel):
    # Left as a plain string so unknown values get the service's message.
    status: str | None = None


class OrderData(BaseModel):
    order: OrderRead


class OrderListData(BaseModel):
    orders: list[OrderRead]
