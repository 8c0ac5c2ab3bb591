"""
Order processing — checkout, listing and status changes.

Checkout turns the caller's cart into one ``Order`` plus an ``OrderItem``
per line inside a single transaction.  The cart is cleared only after the
commit; if that fails the order still stands and the anomaly is logged.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from food_ordering.core.config import settings
from food_ordering.core.exceptions import (Forbidden, InvalidInput,
                                           InvalidState, NotFound,
                                           ValidationFailed)
from food_ordering.models.order import Order, OrderItem, OrderStatus
from food_ordering.models.user import Role, User
from food_ordering.services.cart import MAX_CART_TOTAL, CartStore, cart_total
from food_ordering.services.users import address_errors

logger = logging.getLogger(__name__)

# Forward-only lifecycle; enforced only when ORDER_STATUS_STRICT is on.
ORDER_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

VALID_STATUSES = [s.value for s in OrderStatus]


def parse_status(value: str | None) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidInput(
            f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}"
        ) from None


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return current == new or new in ORDER_STATUS_TRANSITIONS[current]


def _with_details(query):
    return query.options(
        selectinload(Order.items).selectinload(OrderItem.menu_item),
        selectinload(Order.user),
    )


class OrderService:
    """Order operations bound to one request's session."""

    def __init__(self, db: AsyncSession, cart_store: CartStore) -> None:
        self.db = db
        self.cart_store = cart_store

    async def _load(self, order_id: int) -> Order | None:
        result = await self.db.execute(
            _with_details(select(Order).where(Order.id == order_id)).execution_options(
                populate_existing=True
            )
        )
        return result.scalar_one_or_none()

    async def checkout(self, user: User, delivery_address: str | None = None) -> Order:
        lines = await self.cart_store.lines(user.id)
        if not lines:
            raise InvalidState("Cart is empty")
        address_problems = address_errors(delivery_address)
        if address_problems:
            raise ValidationFailed(address_problems[0])
        total = cart_total(lines)
        if total > MAX_CART_TOTAL:
            raise InvalidState("Cart total exceeds the maximum order amount")

        order = Order(
            user_id=user.id,
            status=OrderStatus.PENDING,
            total_price=total,
            delivery_address=delivery_address or user.delivery_address or "",
            items=[
                OrderItem(
                    menu_item_id=line.menu_item_id,
                    item_name=line.name,
                    quantity=line.quantity,
                    price=line.price,
                )
                for line in lines
            ],
        )
        self.db.add(order)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Order %d placed by user %d: %d line(s), total %s",
            order.id, user.id, len(lines), order.total_price,
        )

        try:
            await self.cart_store.clear(user.id)
        except Exception:
            logger.error(
                "Order %d committed but cart for user %d was not cleared",
                order.id, user.id, exc_info=True,
            )

        return await self._load(order.id)  # type: ignore[return-value]

    async def list_orders(self, user: User) -> list[Order]:
        query = _with_details(select(Order)).order_by(Order.created_at.desc(), Order.id.desc())
        if user.role == Role.CUSTOMER:
            query = query.where(Order.user_id == user.id)
        result = await self.db.execute(query)
        return list(result.scalars().unique().all())

    async def get_order(self, order_id: int, user: User) -> Order:
        order = await self._load(order_id)
        if order is None:
            raise NotFound("Order not found")
        if user.role == Role.CUSTOMER and order.user_id != user.id:
            raise Forbidden("Access denied")
        return order

    async def update_status(self, order_id: int, status: str | None) -> Order:
        new_status = parse_status(status)

        order = await self._load(order_id)
        if order is None:
            raise NotFound("Order not found")

        if settings.ORDER_STATUS_STRICT and not can_transition(order.status, new_status):
            raise InvalidState(
                f"Cannot change order status from {order.status.value} to {new_status.value}"
            )

        previous = order.status
        order.status = new_status
        await self.db.commit()
        logger.info("Order %d status %s -> %s", order_id, previous.value, new_status.value)
        return await self._load(order_id)  # type: ignore[return-value]
