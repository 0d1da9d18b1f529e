"""Order pricing and price lock API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from orderdesk.api.dependencies import get_pricing_service
from orderdesk.modules.pricing.schemas import (
    ItemPriceOptionsResponse,
    OrderPricingResponse,
    PriceLockResponse,
    PriceLockUpdate,
)
from orderdesk.modules.pricing.service import PricingService

router = APIRouter(prefix="/orders/{order_id}", tags=["pricing"])


@router.get("/pricing", response_model=OrderPricingResponse)
async def get_order_pricing(
    order_id: uuid.UUID,
    svc: PricingService = Depends(get_pricing_service),
):
    return await svc.get_order_pricing(order_id)


@router.put("/price-lock", response_model=PriceLockResponse)
async def set_price_lock(
    order_id: uuid.UUID,
    body: PriceLockUpdate,
    svc: PricingService = Depends(get_pricing_service),
):
    return await svc.set_price_lock(
        order_id,
        locked=body.locked,
        lock_until=body.lock_until,
        updated_by=body.updated_by,
        quote_prices_honored=body.quote_prices_honored,
    )


@router.get(
    "/products/{product_id}/price-options", response_model=ItemPriceOptionsResponse
)
async def get_item_price_options(
    order_id: uuid.UUID,
    product_id: uuid.UUID,
    svc: PricingService = Depends(get_pricing_service),
):
    return await svc.get_item_price_options(order_id, product_id)
