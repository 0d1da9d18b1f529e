"""Fulfillment counters on order lines and the statuses derived from them.

``fulfillment_status`` on an order line is a label computed from its
quantity counters by ``derive_fulfillment_status``; nothing reads it as a
source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from orderdesk.exceptions import ConsistencyViolationException
from orderdesk.models.enums import FulfillmentStatus, OrderFulfillmentState
from orderdesk.models.order_item import OrderItem
from orderdesk.money import round_half_up


@dataclass(frozen=True)
class FulfillmentSummary:
    total_items: int
    total_quantity: int
    fulfilled: int
    backordered: int
    cancelled: int
    pending: int
    fulfillment_percent: int
    status: OrderFulfillmentState


def derive_fulfillment_status(
    quantity: int, fulfilled: int, backordered: int, cancelled: int
) -> FulfillmentStatus:
    if cancelled >= quantity:
        return FulfillmentStatus.CANCELLED
    if fulfilled > 0 and fulfilled >= quantity - cancelled:
        return FulfillmentStatus.SHIPPED
    if backordered > 0:
        return FulfillmentStatus.BACKORDERED
    if fulfilled > 0:
        return FulfillmentStatus.ALLOCATED
    return FulfillmentStatus.PENDING


def item_fulfillment_status(item: OrderItem) -> FulfillmentStatus:
    return derive_fulfillment_status(
        item.quantity,
        item.quantity_fulfilled or 0,
        item.quantity_backordered or 0,
        item.quantity_cancelled or 0,
    )


def refresh_fulfillment_status(item: OrderItem) -> FulfillmentStatus:
    item.fulfillment_status = item_fulfillment_status(item)
    return item.fulfillment_status


def unshipped_quantity(item: OrderItem) -> int:
    return item.quantity - (item.quantity_fulfilled or 0) - (item.quantity_cancelled or 0)


def ensure_shippable(item: OrderItem, quantity: int) -> None:
    remaining = unshipped_quantity(item)
    if quantity > remaining:
        raise ConsistencyViolationException(
            f"Cannot ship {quantity} of {item.product_name}: only {remaining} unit(s) remain unshipped",
            details=[{
                "entity": "order_item",
                "id": str(item.id),
                "quantity": item.quantity,
                "quantity_fulfilled": item.quantity_fulfilled,
                "quantity_cancelled": item.quantity_cancelled,
                "requested_quantity": quantity,
                "attempted_action": "ship",
            }],
        )


def record_shipped_units(item: OrderItem, quantity: int) -> None:
    """Add shipped units to a line.

    Units come out of the free remainder first, then out of the backorder,
    so ``fulfilled + backordered + cancelled <= quantity`` keeps holding.
    """
    ensure_shippable(item, quantity)
    free = unshipped_quantity(item) - (item.quantity_backordered or 0)
    item.quantity_backordered = (item.quantity_backordered or 0) - max(quantity - free, 0)
    item.quantity_fulfilled = (item.quantity_fulfilled or 0) + quantity
    refresh_fulfillment_status(item)


def ensure_backorderable(item: OrderItem, quantity: int) -> None:
    remaining = unshipped_quantity(item)
    if quantity > remaining:
        raise ConsistencyViolationException(
            f"Cannot backorder {quantity} of {item.product_name}: only {remaining} unit(s) remain unshipped",
            details=[{
                "entity": "order_item",
                "id": str(item.id),
                "quantity": item.quantity,
                "quantity_fulfilled": item.quantity_fulfilled,
                "quantity_cancelled": item.quantity_cancelled,
                "requested_quantity": quantity,
                "attempted_action": "backorder",
            }],
        )


def set_backordered_units(item: OrderItem, quantity: int) -> None:
    ensure_backorderable(item, quantity)
    item.quantity_backordered = quantity
    refresh_fulfillment_status(item)


def summarize_fulfillment(items: list[OrderItem]) -> FulfillmentSummary:
    total_quantity = sum(item.quantity for item in items)
    fulfilled = sum(item.quantity_fulfilled or 0 for item in items)
    backordered = sum(item.quantity_backordered or 0 for item in items)
    cancelled = sum(item.quantity_cancelled or 0 for item in items)
    deliverable = total_quantity - cancelled

    if deliverable > 0 and fulfilled >= deliverable:
        status = OrderFulfillmentState.COMPLETE
    elif fulfilled > 0:
        status = OrderFulfillmentState.PARTIAL
    else:
        status = OrderFulfillmentState.PENDING

    percent = round_half_up(Decimal(fulfilled) * 100 / deliverable) if deliverable > 0 else 0

    return FulfillmentSummary(
        total_items=len(items),
        total_quantity=total_quantity,
        fulfilled=fulfilled,
        backordered=backordered,
        cancelled=cancelled,
        pending=sum(unshipped_quantity(item) for item in items),
        fulfillment_percent=percent,
        status=status,
    )
