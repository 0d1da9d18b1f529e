"""Pydantic v2 schemas for the order amendment endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from orderdesk.models.enums import AmendmentStatus, AmendmentType, ChangeType, PriceSource
from orderdesk.money import cents_to_decimal, decimal_to_cents

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AddItemChange(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    price_override: Decimal | None = Field(None, ge=0, decimal_places=2)

    @property
    def price_override_cents(self) -> int | None:
        return decimal_to_cents(self.price_override) if self.price_override is not None else None


class RemoveItemChange(BaseModel):
    product_id: uuid.UUID


class ModifyItemChange(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    price_override: Decimal | None = Field(None, ge=0, decimal_places=2)

    @property
    def price_override_cents(self) -> int | None:
        return decimal_to_cents(self.price_override) if self.price_override is not None else None


class AmendmentChanges(BaseModel):
    """A batch of line changes; each product may appear at most once."""

    add_items: list[AddItemChange] = Field(default_factory=list)
    remove_items: list[RemoveItemChange] = Field(default_factory=list)
    modify_items: list[ModifyItemChange] = Field(default_factory=list)
    use_quote_prices: bool = False

    @model_validator(mode="after")
    def require_unique_products(self) -> AmendmentChanges:
        seen: set[uuid.UUID] = set()
        for change in [*self.add_items, *self.remove_items, *self.modify_items]:
            if change.product_id in seen:
                raise ValueError(
                    f"Product {change.product_id} appears in more than one change"
                )
            seen.add(change.product_id)
        return self


class AmendmentCreate(AmendmentChanges):
    amendment_type: AmendmentType | None = None
    reason: str | None = Field(None, max_length=2000)
    requested_by: uuid.UUID | None = None


class AmendmentApprove(BaseModel):
    approved_by: uuid.UUID
    notes: str | None = Field(None, max_length=2000)


class AmendmentReject(BaseModel):
    rejected_by: uuid.UUID
    reason: str = Field(..., min_length=1, max_length=2000)


class AmendmentApply(BaseModel):
    applied_by: uuid.UUID | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ImpactItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    change_type: ChangeType
    product_id: uuid.UUID
    order_item_id: uuid.UUID | None = None
    product_name: str | None = None
    product_sku: str | None = None
    previous_quantity: int | None = None
    new_quantity: int | None = None
    previous_price_cents: int | None = None
    new_price_cents: int | None = None
    line_total_change_cents: int
    price_source: PriceSource | None = None
    quote_price_cents: int | None = None
    catalog_price_cents: int | None = None
    has_price_change: bool = False

    @computed_field
    @property
    def line_total_change(self) -> Decimal:
        return cents_to_decimal(self.line_total_change_cents)

    @computed_field
    @property
    def new_price(self) -> Decimal | None:
        return cents_to_decimal(self.new_price_cents)


class AmendmentPreviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: uuid.UUID
    amendment_type: AmendmentType
    previous_total_cents: int
    new_total_cents: int
    difference_cents: int
    requires_approval: bool
    items: list[ImpactItemResponse]

    @computed_field
    @property
    def previous_total(self) -> Decimal:
        return cents_to_decimal(self.previous_total_cents)

    @computed_field
    @property
    def new_total(self) -> Decimal:
        return cents_to_decimal(self.new_total_cents)

    @computed_field
    @property
    def difference(self) -> Decimal:
        return cents_to_decimal(self.difference_cents)


class AmendmentItemResponse(ImpactItemResponse):
    id: uuid.UUID
    amendment_id: uuid.UUID
    position: int
    created_at: datetime


class AmendmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    amendment_number: str
    amendment_type: AmendmentType
    status: AmendmentStatus
    reason: str | None = None
    previous_total_cents: int
    new_total_cents: int
    difference_cents: int
    use_quote_prices: bool
    requires_approval: bool
    requested_by: uuid.UUID | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    approval_notes: str | None = None
    rejected_by: uuid.UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    applied_by: uuid.UUID | None = None
    applied_at: datetime | None = None
    items: list[AmendmentItemResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def previous_total(self) -> Decimal:
        return cents_to_decimal(self.previous_total_cents)

    @computed_field
    @property
    def new_total(self) -> Decimal:
        return cents_to_decimal(self.new_total_cents)

    @computed_field
    @property
    def difference(self) -> Decimal:
        return cents_to_decimal(self.difference_cents)


class AmendmentListResponse(BaseModel):
    items: list[AmendmentResponse]
    total: int
