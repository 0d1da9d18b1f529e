"""Pydantic v2 schemas for order pricing, price locks and price options."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from orderdesk.models.enums import FulfillmentStatus, OrderStatus, PriceSource
from orderdesk.money import cents_to_decimal

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PriceLockUpdate(BaseModel):
    locked: bool
    lock_until: datetime | None = None
    quote_prices_honored: bool | None = None
    updated_by: uuid.UUID | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PriceLockResponse(BaseModel):
    order_id: uuid.UUID
    price_locked: bool
    price_lock_until: datetime | None = None
    quote_prices_honored: bool
    lock_active: bool


class ItemPriceOptionsResponse(BaseModel):
    order_id: uuid.UUID
    product_id: uuid.UUID
    catalog_price_cents: int | None = None
    quote_price_cents: int | None = None
    order_price_cents: int | None = None
    price_difference_cents: int
    has_price_change: bool
    price_locked: bool
    quote_prices_honored: bool
    recommended_price_cents: int
    recommended_source: PriceSource

    @computed_field
    @property
    def recommended_price(self) -> Decimal:
        return cents_to_decimal(self.recommended_price_cents)

    @computed_field
    @property
    def catalog_price(self) -> Decimal | None:
        return cents_to_decimal(self.catalog_price_cents)

    @computed_field
    @property
    def quote_price(self) -> Decimal | None:
        return cents_to_decimal(self.quote_price_cents)


class QuoteSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    quote_number: str
    total_cents: int
    valid_until: datetime | None = None
    created_at: datetime


class OrderPricingItem(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_sku: str | None = None
    quantity: int
    price_at_order_cents: int
    line_total_cents: int
    quantity_fulfilled: int
    quantity_backordered: int
    quantity_cancelled: int
    fulfillment_status: FulfillmentStatus
    quote_price_cents: int | None = None
    catalog_price_cents: int | None = None
    has_price_change: bool = False

    @computed_field
    @property
    def unit_price(self) -> Decimal:
        return cents_to_decimal(self.price_at_order_cents)


class OrderPricingResponse(BaseModel):
    id: uuid.UUID
    order_number: str
    status: OrderStatus
    version_number: int
    price_locked: bool
    price_lock_until: datetime | None = None
    lock_active: bool
    quote_prices_honored: bool
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int
    currency: str
    quote: QuoteSummary | None = None
    items: list[OrderPricingItem] = Field(default_factory=list)
    last_modified_at: datetime | None = None
    created_at: datetime

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return cents_to_decimal(self.subtotal_cents)

    @computed_field
    @property
    def tax(self) -> Decimal:
        return cents_to_decimal(self.tax_cents)

    @computed_field
    @property
    def total(self) -> Decimal:
        return cents_to_decimal(self.total_cents)
