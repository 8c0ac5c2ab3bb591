"""
Shopping cart — per-user line items kept outside the relational store.

The cart is not persisted with orders.  ``CartStore`` hides where it lives:
``InMemoryCartStore`` for a single process and ``RedisCartStore`` when
several workers must share carts.  Both make every per-user mutation atomic
so concurrent requests for the same user cannot lose updates.

Totals are never stored.  They are recomputed from the current lines with
``Decimal`` arithmetic on each read.
"""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.core.config import Settings, settings
from food_ordering.core.exceptions import NotFound, ValidationFailed
from food_ordering.models.menu_item import MenuItem
from food_ordering.schemas.cart import (CartItemSnapshot, CartLineRead,
                                        CartRead, CartSummary)

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")

# Per-line cap and the largest total a Numeric(10, 2) column stores.
MAX_LINE_QUANTITY = 999
MAX_CART_TOTAL = Decimal("99999999.99")


def money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass
class CartLine:
    """One menu item in a cart, with the item data captured at add time."""

    menu_item_id: int
    name: str
    price: Decimal
    quantity: int
    description: str | None = None
    image_url: str | None = None

    @property
    def subtotal(self) -> Decimal:
        return money(self.price * self.quantity)

    @classmethod
    def from_menu_item(cls, item: MenuItem, quantity: int) -> CartLine:
        return cls(
            menu_item_id=item.id,
            name=item.name,
            price=Decimal(item.price),
            quantity=quantity,
            description=item.description,
            image_url=item.image_url,
        )

    def snapshot_json(self) -> str:
        data = asdict(self)
        data.pop("quantity")
        data["price"] = str(self.price)
        return json.dumps(data)

    @classmethod
    def from_snapshot_json(cls, raw: str, quantity: int) -> CartLine:
        data = json.loads(raw)
        data["price"] = Decimal(data["price"])
        return cls(quantity=quantity, **data)


def cart_total(lines: list[CartLine]) -> Decimal:
    return money(sum((line.price * line.quantity for line in lines), Decimal("0")))


# ── Stores ──────────────────────────────────────────────────────────
class CartStore(ABC):
    @abstractmethod
    async def lines(self, user_id: int) -> list[CartLine]:
        """Return a copy of the user's lines in insertion order."""

    @abstractmethod
    async def add(self, user_id: int, line: CartLine) -> None:
        """Insert ``line``, or add its quantity to an existing line."""

    @abstractmethod
    async def set_quantity(self, user_id: int, menu_item_id: int, quantity: int) -> bool:
        """Replace a line's quantity (<= 0 removes it); False if absent."""

    @abstractmethod
    async def remove(self, user_id: int, menu_item_id: int) -> bool:
        """Drop a line; False if absent."""

    @abstractmethod
    async def clear(self, user_id: int) -> None:
        ...

    async def close(self) -> None:
        return None


class InMemoryCartStore(CartStore):
    """Process-local carts guarded by one lock per user.

    Locks are held weakly: an entry lives only while some coroutine is using
    it, and empty carts are dropped, so idle users cost nothing.
    """

    def __init__(self) -> None:
        self._carts: dict[int, dict[int, CartLine]] = {}
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def lines(self, user_id: int) -> list[CartLine]:
        async with self._lock(user_id):
            return [replace(line) for line in self._carts.get(user_id, {}).values()]

    async def add(self, user_id: int, line: CartLine) -> None:
        async with self._lock(user_id):
            cart = self._carts.setdefault(user_id, {})
            existing = cart.get(line.menu_item_id)
            if existing is None:
                cart[line.menu_item_id] = replace(line)
            else:
                existing.quantity += line.quantity

    async def set_quantity(self, user_id: int, menu_item_id: int, quantity: int) -> bool:
        async with self._lock(user_id):
            cart = self._carts.get(user_id, {})
            if menu_item_id not in cart:
                return False
            if quantity <= 0:
                del cart[menu_item_id]
                if not cart:
                    del self._carts[user_id]
            else:
                cart[menu_item_id].quantity = quantity
            return True

    async def remove(self, user_id: int, menu_item_id: int) -> bool:
        return await self.set_quantity(user_id, menu_item_id, 0)

    async def clear(self, user_id: int) -> None:
        async with self._lock(user_id):
            self._carts.pop(user_id, None)


class RedisCartStore(CartStore):
    """Carts shared between workers.

    Each cart is two hashes: ``<prefix>:<uid>:qty`` (item id -> quantity,
    changed with HINCRBY) and ``<prefix>:<uid>:items`` (item id -> JSON
    snapshot, written with HSETNX so the first add wins).  Replace and
    remove run as WATCH/MULTI transactions.
    """

    def __init__(self, client: Redis, prefix: str = "cart") -> None:
        self._client = client
        self._prefix = prefix

    def _keys(self, user_id: int) -> tuple[str, str]:
        return f"{self._prefix}:{user_id}:qty", f"{self._prefix}:{user_id}:items"

    async def lines(self, user_id: int) -> list[CartLine]:
        qty_key, items_key = self._keys(user_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hgetall(qty_key)
            pipe.hgetall(items_key)
            quantities, snapshots = await pipe.execute()

        result = []
        for item_id, raw in snapshots.items():
            quantity = int(quantities.get(item_id, 0))
            if quantity > 0:
                result.append(CartLine.from_snapshot_json(raw, quantity))
        # Hashes are unordered; item id order keeps output stable.
        return sorted(result, key=lambda line: line.menu_item_id)

    async def add(self, user_id: int, line: CartLine) -> None:
        qty_key, items_key = self._keys(user_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hsetnx(items_key, str(line.menu_item_id), line.snapshot_json())
            pipe.hincrby(qty_key, str(line.menu_item_id), line.quantity)
            await pipe.execute()

    async def set_quantity(self, user_id: int, menu_item_id: int, quantity: int) -> bool:
        qty_key, items_key = self._keys(user_id)
        field = str(menu_item_id)

        async def _apply(pipe) -> bool:
            if not await pipe.hexists(qty_key, field):
                return False
            pipe.multi()
            if quantity <= 0:
                pipe.hdel(qty_key, field)
                pipe.hdel(items_key, field)
            else:
                pipe.hset(qty_key, field, quantity)
            return True

        return await self._client.transaction(_apply, qty_key, value_from_callable=True)

    async def remove(self, user_id: int, menu_item_id: int) -> bool:
        return await self.set_quantity(user_id, menu_item_id, 0)

    async def clear(self, user_id: int) -> None:
        await self._client.delete(*self._keys(user_id))

    async def close(self) -> None:
        await self._client.aclose()


def build_cart_store(config: Settings) -> CartStore:
    if config.CART_BACKEND == "redis":
        from redis.asyncio import from_url

        logger.info("Using Redis cart store at %s", config.REDIS_URL)
        return RedisCartStore(from_url(config.REDIS_URL, decode_responses=True))
    logger.info("Using in-memory cart store")
    return InMemoryCartStore()


_cart_store: CartStore | None = None


def get_cart_store() -> CartStore:
    global _cart_store
    if _cart_store is None:
        _cart_store = build_cart_store(settings)
    return _cart_store


async def close_cart_store() -> None:
    global _cart_store
    if _cart_store is not None:
        await _cart_store.close()
        _cart_store = None


# ── Service ─────────────────────────────────────────────────────────
class CartService:
    """Cart operations for one request: catalog lookups plus store calls."""

    def __init__(self, db: AsyncSession, store: CartStore) -> None:
        self.db = db
        self.store = store

    async def lines(self, user_id: int) -> list[CartLine]:
        return await self.store.lines(user_id)

    async def _ensure_fits(self, user_id: int, line: CartLine, additive: bool) -> None:
        """Reject a change that would push a line or the cart past what an order can hold."""
        quantity = line.quantity
        others = Decimal("0")
        for existing in await self.store.lines(user_id):
            if existing.menu_item_id != line.menu_item_id:
                others += existing.price * existing.quantity
            elif additive:
                # The first snapshot wins, so its price is what will be charged.
                quantity += existing.quantity
                line = replace(existing, quantity=quantity)
        if quantity > MAX_LINE_QUANTITY:
            raise ValidationFailed(f"Quantity must be at most {MAX_LINE_QUANTITY}")
        if money(others) + line.subtotal > MAX_CART_TOTAL:
            raise ValidationFailed("Cart total exceeds the maximum order amount")

    async def get(self, user_id: int) -> CartRead:
        lines = await self.store.lines(user_id)
        return CartRead(
            items=[
                CartLineRead(
                    menu_item_id=line.menu_item_id,
                    item=CartItemSnapshot(
                        id=line.menu_item_id,
                        name=line.name,
                        description=line.description,
                        price=float(line.price),
                        image_url=line.image_url,
                    ),
                    quantity=line.quantity,
                    subtotal=float(line.subtotal),
                )
                for line in lines
            ],
            total=float(cart_total(lines)),
            item_count=len(lines),
        )

    async def summary(self, user_id: int) -> CartSummary:
        lines = await self.store.lines(user_id)
        return CartSummary(total=float(cart_total(lines)), item_count=len(lines))

    async def add(self, user_id: int, menu_item_id: int | None, quantity: int = 1) -> CartSummary:
        if menu_item_id is None:
            raise ValidationFailed("Menu item ID is required")
        if quantity < 1:
            raise ValidationFailed("Quantity must be at least 1")
        if quantity > MAX_LINE_QUANTITY:
            raise ValidationFailed(f"Quantity must be at most {MAX_LINE_QUANTITY}")

        result = await self.db.execute(select(MenuItem).where(MenuItem.id == menu_item_id))
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFound("Menu item not found")

        line = CartLine.from_menu_item(item, quantity)
        await self._ensure_fits(user_id, line, additive=True)
        await self.store.add(user_id, line)
        return await self.summary(user_id)

    async def update(self, user_id: int, menu_item_id: int | None, quantity: int | None) -> CartSummary:
        if menu_item_id is None or quantity is None:
            raise ValidationFailed("Menu item ID and quantity are required")
        if quantity > 0:
            current = next(
                (line for line in await self.store.lines(user_id) if line.menu_item_id == menu_item_id),
                None,
            )
            if current is not None:
                await self._ensure_fits(user_id, replace(current, quantity=quantity), additive=False)
        if not await self.store.set_quantity(user_id, menu_item_id, quantity):
            raise NotFound("Item not in cart")
        return await self.summary(user_id)

    async def remove(self, user_id: int, menu_item_id: int) -> CartSummary:
        if not await self.store.remove(user_id, menu_item_id):
            raise NotFound("Item not in cart")
        return await self.summary(user_id)

    async def clear(self, user_id: int) -> CartSummary:
        await self.store.clear(user_id)
        return CartSummary(total=0.0, item_count=0)
