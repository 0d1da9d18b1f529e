"""Pydantic v2 schemas for shipments, backorders and fulfillment summaries."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from orderdesk.models.enums import FulfillmentStatus, OrderFulfillmentState, ShipmentStatus
from orderdesk.money import cents_to_decimal, decimal_to_cents

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ShipmentItemCreate(BaseModel):
    order_item_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    serial_numbers: list[str] | None = None

    @model_validator(mode="after")
    def serials_fit_quantity(self) -> ShipmentItemCreate:
        if self.serial_numbers is not None and len(self.serial_numbers) > self.quantity:
            raise ValueError("More serial numbers than shipped units")
        return self


class ShipmentCreate(BaseModel):
    carrier: str | None = Field(None, max_length=100)
    tracking_number: str | None = Field(None, max_length=100)
    tracking_url: str | None = Field(None, max_length=500)
    shipping_cost: Decimal | None = Field(None, ge=0, decimal_places=2)
    estimated_delivery: datetime | None = None
    notes: str | None = None
    created_by: uuid.UUID | None = None
    items: list[ShipmentItemCreate] = Field(..., min_length=1)

    @property
    def shipping_cost_cents(self) -> int | None:
        return decimal_to_cents(self.shipping_cost) if self.shipping_cost is not None else None


class ShipmentStatusUpdate(BaseModel):
    new_status: ShipmentStatus
    updated_by: uuid.UUID | None = None


class BackorderItem(BaseModel):
    order_item_id: uuid.UUID
    quantity: int = Field(..., ge=0)


class BackorderCreate(BaseModel):
    items: list[BackorderItem] = Field(..., min_length=1)
    created_by: uuid.UUID | None = None
    notes: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def require_unique_items(self) -> BackorderCreate:
        ids = [item.order_item_id for item in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("Each order item may appear only once")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ShipmentItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    shipment_id: uuid.UUID
    order_item_id: uuid.UUID
    quantity: int
    serial_numbers: list[str] | None = None


class ShipmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    shipment_number: str
    status: ShipmentStatus
    carrier: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    shipping_cost_cents: int | None = None
    estimated_delivery: datetime | None = None
    notes: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    created_by: uuid.UUID | None = None
    items: list[ShipmentItemResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def shipping_cost(self) -> Decimal | None:
        return cents_to_decimal(self.shipping_cost_cents)


class ShipmentListResponse(BaseModel):
    items: list[ShipmentResponse]
    total: int


class OrderItemFulfillmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_sku: str | None = None
    quantity: int
    quantity_fulfilled: int
    quantity_backordered: int
    quantity_cancelled: int
    fulfillment_status: FulfillmentStatus
    shipped_at: datetime | None = None


class FulfillmentSummaryResponse(BaseModel):
    order_id: uuid.UUID
    total_items: int
    total_quantity: int
    fulfilled: int
    backordered: int
    cancelled: int
    pending: int
    fulfillment_percent: int
    status: OrderFulfillmentState
    items: list[OrderItemFulfillmentResponse] = Field(default_factory=list)


class BackorderResponse(BaseModel):
    order_id: uuid.UUID
    version_number: int
    items: list[OrderItemFulfillmentResponse]
