"""
Order endpoints.

- Listing and reading: any authenticated user (customers see their own).
- Checkout: CUSTOMER only.
- Status changes: STAFF only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from food_ordering.api.v1.deps import (ResourceId, get_current_user,
                                       get_order_service,
                                       require_customer, require_staff)
from food_ordering.models.user import User
from food_ordering.schemas.common import ApiResponse
from food_ordering.schemas.order import (CheckoutRequest, OrderData,
                                         OrderListData, OrderRead,
                                         StatusUpdateRequest)
from food_ordering.services.orders import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=ApiResponse[OrderListData])
async def list_orders(
    orders: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
) -> ApiResponse[OrderListData]:
    found = await orders.list_orders(user)
    return ApiResponse(data=OrderListData(orders=[OrderRead.model_validate(o) for o in found]))


@router.get("/{order_id}", response_model=ApiResponse[OrderData])
async def get_order(
    order_id: ResourceId,
    orders: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
) -> ApiResponse[OrderData]:
    order = await orders.get_order(order_id, user)
    return ApiResponse(data=OrderData(order=OrderRead.model_validate(order)))


@router.post("", response_model=ApiResponse[OrderData], status_code=201)
async def checkout(
    body: CheckoutRequest | None = None,
    orders: OrderService = Depends(get_order_service),
    user: User = Depends(require_customer),
) -> ApiResponse[OrderData]:
    """Turn the caller's cart into an order and empty the cart."""
    address = body.delivery_address if body else None
    order = await orders.checkout(user, address)
    return ApiResponse(
        message="Order placed successfully",
        data=OrderData(order=OrderRead.model_validate(order)),
    )


@router.put("/{order_id}/status", response_model=ApiResponse[OrderData])
async def update_status(
    order_id: ResourceId,
    body: StatusUpdateRequest,
    orders: OrderService = Depends(get_order_service),
    _staff: User = Depends(require_staff),
) -> ApiResponse[OrderData]:
    order = await orders.update_status(order_id, body.status)
    return ApiResponse(
        message="Order status updated",
        data=OrderData(order=OrderRead.model_validate(order)),
    )
