"""Liveness probe."""

from __future__ import annotations

from fastapi import APIRouter

from food_ordering.schemas.common import ApiResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=ApiResponse[None])
async def health() -> ApiResponse[None]:
    return ApiResponse(message="Server is running")
