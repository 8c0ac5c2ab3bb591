"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from food_ordering.api.v1.endpoints import (auth, cart, health, menu, orders,
                                            settings, users)

api_router = APIRouter()

# Public + authentication
api_router.include_router(auth.router)
api_router.include_router(menu.router)
api_router.include_router(health.router)

# Customer shopping flow
api_router.include_router(cart.router)
api_router.include_router(orders.router)

# Account settings & administration
api_router.include_router(settings.router)
api_router.include_router(users.router)
