"""Tests for checkout, order visibility and status changes."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.core.config import settings
from food_ordering.main import app
from food_ordering.models.order import OrderStatus
from food_ordering.services.cart import CartLine
from food_ordering.services.orders import can_transition, parse_status


async def _fill_cart(client: AsyncClient, account, *lines):
    for item, quantity in lines:
        resp = await client.post(
            "/api/cart/add", json={"menu_item_id": item.id, "quantity": quantity}, headers=account.headers
        )
        assert resp.status_code == 200


async def _place_order(client: AsyncClient, account, item, quantity=1, **body):
    await _fill_cart(client, account, (item, quantity))
    resp = await client.post("/api/orders", json=body or None, headers=account.headers)
    assert resp.status_code == 201
    return resp.json()["data"]["order"]


# ── Checkout ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_checkout_creates_order_and_empties_cart(async_client: AsyncClient, customer, make_menu_item):
    burger = await make_menu_item("Burger", "9.99")
    soup = await make_menu_item("Soup", "4.50")
    await _fill_cart(async_client, customer, (burger, 2), (soup, 1))

    resp = await async_client.post("/api/orders", headers=customer.headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Order placed successfully"
    order = body["data"]["order"]
    assert order["status"] == "Pending"
    assert order["total_price"] == 24.48
    assert order["user_id"] == customer.user.id
    assert order["user"]["email"] == "customer@test.com"
    lines = {i["item_name"]: i for i in order["items"]}
    assert lines["Burger"]["quantity"] == 2
    assert lines["Burger"]["price"] == 9.99
    assert lines["Soup"]["quantity"] == 1

    cart = (await async_client.get("/api/cart", headers=customer.headers)).json()["data"]
    assert cart["item_count"] == 0


@pytest.mark.asyncio
async def test_checkout_empty_cart(async_client: AsyncClient, customer):
    resp = await async_client.post("/api/orders", headers=customer.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cart is empty"
    assert (await async_client.get("/api/orders", headers=customer.headers)).json()["data"]["orders"] == []


@pytest.mark.asyncio
async def test_checkout_delivery_address(async_client: AsyncClient, customer, other_customer, make_menu_item):
    item = await make_menu_item()
    explicit = await _place_order(async_client, customer, item, delivery_address="9 Side Rd")
    assert explicit["delivery_address"] == "9 Side Rd"

    from_profile = await _place_order(async_client, customer, item)
    assert from_profile["delivery_address"] == "1 Main St"

    # No profile address and none supplied
    blank = await _place_order(async_client, other_customer, item)
    assert blank["delivery_address"] == ""


@pytest.mark.asyncio
async def test_checkout_survives_cart_clear_failure(
    async_client: AsyncClient, customer, make_menu_item, cart_store
):
    item = await make_menu_item("Burger", "9.99")
    await _fill_cart(async_client, customer, (item, 1))
    with patch.object(cart_store, "clear", AsyncMock(side_effect=RuntimeError("store down"))):
        resp = await async_client.post("/api/orders", headers=customer.headers)
    assert resp.status_code == 201
    orders = (await async_client.get("/api/orders", headers=customer.headers)).json()["data"]["orders"]
    assert len(orders) == 1


@pytest.mark.asyncio
async def test_checkout_at_maximum_total(async_client: AsyncClient, customer, make_menu_item):
    item = await make_menu_item("Gold Leaf Platter", "99999999.99")
    order = await _place_order(async_client, customer, item)
    assert order["total_price"] == 99999999.99


@pytest.mark.asyncio
async def test_checkout_rejects_total_over_maximum(async_client: AsyncClient, customer, make_menu_item, cart_store):
    item = await make_menu_item("Gold Leaf Platter", "99999999.99")
    # Written straight to the store, past the add-time checks
    await cart_store.add(
        customer.user.id,
        CartLine(menu_item_id=item.id, name=item.name, price=Decimal("99999999.99"), quantity=2),
    )
    resp = await async_client.post("/api/orders", headers=customer.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cart total exceeds the maximum order amount"
    assert (await async_client.get("/api/orders", headers=customer.headers)).json()["data"]["orders"] == []
    assert len(await cart_store.lines(customer.user.id)) == 1


@pytest.mark.asyncio
async def test_checkout_rejects_long_address(async_client: AsyncClient, customer, make_menu_item):
    item = await make_menu_item()
    await _fill_cart(async_client, customer, (item, 1))
    resp = await async_client.post(
        "/api/orders", json={"delivery_address": "x" * 501}, headers=customer.headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Delivery address must be at most 500 characters"

    resp = await async_client.post(
        "/api/orders", json={"delivery_address": "x" * 500}, headers=customer.headers
    )
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_checkout_rolls_back_on_any_commit_error(customer, make_menu_item, cart_store):
    item = await make_menu_item("Burger", "9.99")
    await cart_store.add(customer.user.id, CartLine.from_menu_item(item, 1))

    rollback = AsyncMock()
    # The server-error middleware re-raises after responding; keep the response.
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    with patch.object(AsyncSession, "commit", AsyncMock(side_effect=OverflowError("too big"))), \
            patch.object(AsyncSession, "rollback", rollback):
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/api/orders", headers=customer.headers)
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error"}
    rollback.assert_awaited()
    assert len(await cart_store.lines(customer.user.id)) == 1


@pytest.mark.asyncio
async def test_order_keeps_checkout_prices(async_client: AsyncClient, customer, staff, make_menu_item):
    item = await make_menu_item("Burger", "9.99")
    order = await _place_order(async_client, customer, item, 2)
    await async_client.put(f"/api/menu/{item.id}", data={"price": "20.00"}, headers=staff.headers)

    resp = await async_client.get(f"/api/orders/{order['id']}", headers=customer.headers)
    fetched = resp.json()["data"]["order"]
    assert fetched["total_price"] == 19.98
    assert fetched["items"][0]["price"] == 9.99


# ── Reading ─────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_customers_see_only_their_orders(
    async_client: AsyncClient, customer, other_customer, staff, admin, make_menu_item
):
    item = await make_menu_item()
    first = await _place_order(async_client, customer, item)
    second = await _place_order(async_client, customer, item)
    await _place_order(async_client, other_customer, item)

    mine = (await async_client.get("/api/orders", headers=customer.headers)).json()["data"]["orders"]
    assert [o["id"] for o in mine] == [second["id"], first["id"]]

    for account in (staff, admin):
        everyone = (await async_client.get("/api/orders", headers=account.headers)).json()["data"]["orders"]
        assert len(everyone) == 3


@pytest.mark.asyncio
async def test_get_order_access(async_client: AsyncClient, customer, other_customer, staff, make_menu_item):
    item = await make_menu_item()
    order = await _place_order(async_client, customer, item)

    own = await async_client.get(f"/api/orders/{order['id']}", headers=customer.headers)
    assert own.status_code == 200

    foreign = await async_client.get(f"/api/orders/{order['id']}", headers=other_customer.headers)
    assert foreign.status_code == 403
    assert foreign.json()["message"] == "Access denied"

    assert (await async_client.get(f"/api/orders/{order['id']}", headers=staff.headers)).status_code == 200
    missing = await async_client.get("/api/orders/9999", headers=customer.headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Order not found"


# ── Status ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_staff_updates_status(async_client: AsyncClient, customer, staff, make_menu_item):
    item = await make_menu_item()
    order = await _place_order(async_client, customer, item)

    resp = await async_client.put(
        f"/api/orders/{order['id']}/status", json={"status": "Preparing"}, headers=staff.headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["order"]["status"] == "Preparing"

    seen = await async_client.get(f"/api/orders/{order['id']}", headers=customer.headers)
    assert seen.json()["data"]["order"]["status"] == "Preparing"


@pytest.mark.asyncio
async def test_status_moves_freely_by_default(async_client: AsyncClient, customer, staff, make_menu_item):
    item = await make_menu_item()
    order = await _place_order(async_client, customer, item)
    url = f"/api/orders/{order['id']}/status"
    for status in ("Completed", "Pending", "Cancelled"):
        resp = await async_client.put(url, json={"status": status}, headers=staff.headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["order"]["status"] == status


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["Shipped", "pending", "", None])
async def test_invalid_status_rejected(async_client: AsyncClient, customer, staff, make_menu_item, status):
    item = await make_menu_item()
    order = await _place_order(async_client, customer, item)
    resp = await async_client.put(
        f"/api/orders/{order['id']}/status", json={"status": status}, headers=staff.headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid status. Must be one of: Pending, Preparing")

    seen = await async_client.get(f"/api/orders/{order['id']}", headers=staff.headers)
    assert seen.json()["data"]["order"]["status"] == "Pending"


@pytest.mark.asyncio
async def test_status_update_unknown_order(async_client: AsyncClient, staff):
    resp = await async_client.put("/api/orders/9999/status", json={"status": "Ready"}, headers=staff.headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_strict_status_transitions(async_client: AsyncClient, customer, staff, make_menu_item):
    item = await make_menu_item()
    order = await _place_order(async_client, customer, item)
    url = f"/api/orders/{order['id']}/status"

    with patch.object(settings, "ORDER_STATUS_STRICT", True):
        skip = await async_client.put(url, json={"status": "Completed"}, headers=staff.headers)
        assert skip.status_code == 400
        assert skip.json()["message"] == "Cannot change order status from Pending to Completed"

        for status in ("Preparing", "Ready", "Completed"):
            resp = await async_client.put(url, json={"status": status}, headers=staff.headers)
            assert resp.status_code == 200

        back = await async_client.put(url, json={"status": "Pending"}, headers=staff.headers)
        assert back.status_code == 400


def test_transition_table():
    assert can_transition(OrderStatus.PENDING, OrderStatus.CANCELLED)
    assert can_transition(OrderStatus.READY, OrderStatus.READY)
    assert not can_transition(OrderStatus.CANCELLED, OrderStatus.PENDING)
    assert parse_status("Ready") is OrderStatus.READY


# ── Account deletion ────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_orders_outlive_deleted_customer(async_client: AsyncClient, customer, staff, admin, make_menu_item):
    item = await make_menu_item()
    order = await _place_order(async_client, customer, item)
    assert (await async_client.delete(f"/api/users/{customer.user.id}", headers=admin.headers)).status_code == 200

    resp = await async_client.get(f"/api/orders/{order['id']}", headers=staff.headers)
    assert resp.status_code == 200
    kept = resp.json()["data"]["order"]
    assert kept["user_id"] is None
    assert kept["user"] is None
    assert kept["total_price"] == order["total_price"]
