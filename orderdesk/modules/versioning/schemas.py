"""Pydantic v2 schemas for order versions and version diffs."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from orderdesk.models.enums import FulfillmentStatus, VersionChangeType
from orderdesk.money import cents_to_decimal

# ---------------------------------------------------------------------------
# Snapshot value type (stored as JSON inside order_versions.items_snapshot)
# ---------------------------------------------------------------------------


class SnapshotItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_item_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_sku: str | None = None
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    quantity_fulfilled: int = 0
    quantity_backordered: int = 0
    fulfillment_status: FulfillmentStatus = FulfillmentStatus.PENDING


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class VersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    version_number: int
    amendment_id: uuid.UUID | None = None
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    items_snapshot: list[SnapshotItem]
    change_summary: str | None = None
    order_status: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime

    @computed_field
    @property
    def total(self) -> Decimal:
        return cents_to_decimal(self.total_cents)

    @computed_field
    @property
    def item_count(self) -> int:
        return len(self.items_snapshot)


class VersionListResponse(BaseModel):
    items: list[VersionResponse]
    total: int


class VersionItemChange(BaseModel):
    change_type: VersionChangeType
    product_id: uuid.UUID
    product_name: str
    previous_quantity: int | None = None
    new_quantity: int | None = None
    previous_unit_price_cents: int | None = None
    new_unit_price_cents: int | None = None


class VersionTotals(BaseModel):
    version_number: int
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    item_count: int
    created_at: datetime

    @computed_field
    @property
    def total(self) -> Decimal:
        return cents_to_decimal(self.total_cents)


class VersionDiffResponse(BaseModel):
    order_id: uuid.UUID
    version_1: VersionTotals
    version_2: VersionTotals
    total_difference_cents: int
    changes: list[VersionItemChange] = Field(default_factory=list)

    @computed_field
    @property
    def total_difference(self) -> Decimal:
        return cents_to_decimal(self.total_difference_cents)
