"""
Order & OrderItem models — checkout results and their line snapshots.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (Column, DateTime, Enum, ForeignKey, Index, Integer,
                        Numeric, String)
from sqlalchemy.orm import relationship

from food_ordering.db.base import Base


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_user_created", "user_id", "created_at"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: OrderStatus = Column(  # type: ignore[assignment]
        Enum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    total_price: Decimal = Column(Numeric(10, 2), nullable=False)  # type: ignore[assignment]
    delivery_address: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    order_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True
    )
    item_name: str = Column(String(255), nullable=False)  # type: ignore[assignment]
    quantity: int = Column(Integer, nullable=False, default=1)  # type: ignore[assignment]
    price: Decimal = Column(Numeric(10, 2), nullable=False)  # type: ignore[assignment]  # unit price at order time

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", back_populates="order_items")
