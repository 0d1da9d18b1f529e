"""Shipment, backorder and fulfillment summary API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from orderdesk.api.dependencies import get_fulfillment_service
from orderdesk.modules.fulfillment.schemas import (
    BackorderCreate,
    BackorderResponse,
    FulfillmentSummaryResponse,
    OrderItemFulfillmentResponse,
    ShipmentCreate,
    ShipmentListResponse,
    ShipmentResponse,
    ShipmentStatusUpdate,
)
from orderdesk.modules.fulfillment.service import FulfillmentService

router = APIRouter(tags=["fulfillment"])


# ---------------------------------------------------------------------------
# Shipments
# ---------------------------------------------------------------------------


@router.post(
    "/orders/{order_id}/shipments", response_model=ShipmentResponse, status_code=201
)
async def create_shipment(
    order_id: uuid.UUID,
    body: ShipmentCreate,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    shipment = await svc.create_shipment(order_id, body)
    return ShipmentResponse.model_validate(shipment)


@router.get("/orders/{order_id}/shipments", response_model=ShipmentListResponse)
async def list_shipments(
    order_id: uuid.UUID,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    shipments = await svc.list_shipments(order_id)
    return ShipmentListResponse(
        items=[ShipmentResponse.model_validate(s) for s in shipments],
        total=len(shipments),
    )


@router.get("/shipments/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: uuid.UUID,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    shipment = await svc.get_shipment(shipment_id)
    return ShipmentResponse.model_validate(shipment)


@router.put("/shipments/{shipment_id}/status", response_model=ShipmentResponse)
async def update_shipment_status(
    shipment_id: uuid.UUID,
    body: ShipmentStatusUpdate,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    shipment = await svc.update_shipment_status(shipment_id, body.new_status, body.updated_by)
    return ShipmentResponse.model_validate(shipment)


# ---------------------------------------------------------------------------
# Backorders and summary
# ---------------------------------------------------------------------------


@router.post("/orders/{order_id}/backorders", response_model=BackorderResponse)
async def mark_backordered(
    order_id: uuid.UUID,
    body: BackorderCreate,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    version, items = await svc.mark_backordered(order_id, body)
    return BackorderResponse(
        order_id=order_id,
        version_number=version.version_number,
        items=[OrderItemFulfillmentResponse.model_validate(i) for i in items],
    )


@router.get("/orders/{order_id}/fulfillment", response_model=FulfillmentSummaryResponse)
async def get_fulfillment_summary(
    order_id: uuid.UUID,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    return await svc.get_fulfillment_summary(order_id)
