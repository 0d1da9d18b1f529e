"""Order line values and total recomputation."""

from __future__ import annotations

from dataclasses import dataclass

from orderdesk.models.order import Order
from orderdesk.models.order_item import OrderItem
from orderdesk.modules.catalog.base import TaxCalculatorBase


@dataclass(frozen=True)
class OrderTotals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int


def line_value_cents(item: OrderItem) -> int:
    return item.quantity * item.price_at_order_cents


def active_items(items: list[OrderItem]) -> list[OrderItem]:
    """Lines that still have uncancelled units."""
    return [item for item in items if (item.quantity_cancelled or 0) < item.quantity]


def merchandise_total_cents(items: list[OrderItem]) -> int:
    return sum(line_value_cents(item) for item in active_items(items))


def compute_totals(
    order: Order, items: list[OrderItem], tax_calculator: TaxCalculatorBase
) -> OrderTotals:
    subtotal = merchandise_total_cents(items)
    discount = order.discount_cents or 0
    taxable = max(subtotal - discount, 0)
    tax = tax_calculator.compute_tax(taxable, order.tax_jurisdiction)
    return OrderTotals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        tax_cents=tax,
        total_cents=taxable + tax,
    )


def apply_totals(order: Order, totals: OrderTotals) -> None:
    order.subtotal_cents = totals.subtotal_cents
    order.tax_cents = totals.tax_cents
    order.total_cents = totals.total_cents
