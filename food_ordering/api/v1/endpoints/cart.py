"""
Cart endpoints — all require the CUSTOMER role.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from food_ordering.api.v1.deps import (ResourceId, get_cart_service,
                                       require_customer)
from food_ordering.models.user import User
from food_ordering.schemas.cart import (CartAddRequest, CartRead, CartSummary,
                                        CartUpdateRequest)
from food_ordering.schemas.common import ApiResponse
from food_ordering.services.cart import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=ApiResponse[CartRead])
async def get_cart(
    cart: CartService = Depends(get_cart_service),
    user: User = Depends(require_customer),
) -> ApiResponse[CartRead]:
    return ApiResponse(data=await cart.get(user.id))


@router.post("/add", response_model=ApiResponse[CartSummary])
@router.post("", response_model=ApiResponse[CartSummary], include_in_schema=False)
async def add_item(
    body: CartAddRequest,
    cart: CartService = Depends(get_cart_service),
    user: User = Depends(require_customer),
) -> ApiResponse[CartSummary]:
    summary = await cart.add(user.id, body.menu_item_id, body.quantity)
    return ApiResponse(message="Item added to cart", data=summary)


@router.put("/update", response_model=ApiResponse[CartSummary])
async def update_item(
    body: CartUpdateRequest,
    cart: CartService = Depends(get_cart_service),
    user: User = Depends(require_customer),
) -> ApiResponse[CartSummary]:
    summary = await cart.update(user.id, body.menu_item_id, body.quantity)
    removed = body.quantity is not None and body.quantity <= 0
    return ApiResponse(
        message="Item removed from cart" if removed else "Cart updated",
        data=summary,
    )


@router.delete("/remove/{item_id}", response_model=ApiResponse[CartSummary])
async def remove_item(
    item_id: ResourceId,
    cart: CartService = Depends(get_cart_service),
    user: User = Depends(require_customer),
) -> ApiResponse[CartSummary]:
    summary = await cart.remove(user.id, item_id)
    return ApiResponse(message="Item removed from cart", data=summary)


@router.delete("/clear", response_model=ApiResponse[CartSummary])
async def clear_cart(
    cart: CartService = Depends(get_cart_service),
    user: User = Depends(require_customer),
) -> ApiResponse[CartSummary]:
    return ApiResponse(message="Cart cleared", data=await cart.clear(user.id))
