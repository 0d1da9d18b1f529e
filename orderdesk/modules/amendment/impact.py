"""Impact calculation for proposed amendments.

``compute_impact`` is a pure function: it reads the order, its current lines
and pre-fetched catalog / quote prices, and returns the per-line deltas and
resulting totals without touching the database. Calling it twice with the
same inputs yields the same result, which is what the preview endpoint
relies on.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import assert_never

from orderdesk.exceptions import (
    ConsistencyViolationException,
    NotFoundException,
    ValidationException,
)
from orderdesk.models.enums import AmendmentType, ChangeType, PriceSource
from orderdesk.models.order import Order
from orderdesk.models.order_item import OrderItem
from orderdesk.modules.amendment.schemas import AmendmentChanges
from orderdesk.modules.catalog.base import CatalogProduct
from orderdesk.modules.orders.totals import active_items, line_value_cents
from orderdesk.modules.pricing.resolver import resolve_price


@dataclass(frozen=True)
class ItemChange:
    change_type: ChangeType
    product_id: uuid.UUID
    line_total_change_cents: int
    order_item_id: uuid.UUID | None = None
    product_name: str | None = None
    product_sku: str | None = None
    previous_quantity: int | None = None
    new_quantity: int | None = None
    previous_price_cents: int | None = None
    new_price_cents: int | None = None
    price_source: PriceSource | None = None
    quote_price_cents: int | None = None
    catalog_price_cents: int | None = None
    has_price_change: bool = False


@dataclass(frozen=True)
class ImpactResult:
    previous_total_cents: int
    new_total_cents: int
    item_changes: list[ItemChange] = field(default_factory=list)

    @property
    def difference_cents(self) -> int:
        return self.new_total_cents - self.previous_total_cents


def compute_impact(
    order: Order,
    current_items: list[OrderItem],
    changes: AmendmentChanges,
    products: dict[uuid.UUID, CatalogProduct],
    quote_prices: dict[uuid.UUID, int],
    now: datetime | None = None,
) -> ImpactResult:
    """Compute the effect of ``changes`` on the order's active lines.

    Raises ``NotFoundException`` for unknown products or lines and
    ``ConsistencyViolationException`` for changes that contradict what has
    already shipped.
    """
    working: dict[uuid.UUID, OrderItem] = {
        item.product_id: item for item in active_items(current_items)
    }
    previous_total = sum(line_value_cents(item) for item in working.values())
    item_changes: list[ItemChange] = []
    new_total = 0

    for add in changes.add_items:
        product = products.get(add.product_id)
        if product is None:
            raise NotFoundException.for_entity("product", add.product_id)
        if add.product_id in working:
            raise ConsistencyViolationException(
                f"Product {product.name} is already on order {order.order_number}; "
                "modify the existing line instead",
                details=[{
                    "entity": "order_item",
                    "id": str(working[add.product_id].id),
                    "product_id": str(add.product_id),
                    "attempted_action": "add",
                }],
            )
        resolved = resolve_price(
            order,
            product.price_cents,
            quote_prices.get(add.product_id),
            add.price_override_cents,
            use_quote_prices=changes.use_quote_prices,
            now=now,
        )
        line_total = add.quantity * resolved.price_cents
        new_total += line_total
        item_changes.append(ItemChange(
            change_type=ChangeType.ADD,
            product_id=add.product_id,
            product_name=product.name,
            product_sku=product.sku,
            previous_quantity=0,
            new_quantity=add.quantity,
            new_price_cents=resolved.price_cents,
            line_total_change_cents=line_total,
            price_source=resolved.source,
            quote_price_cents=resolved.quote_price_cents,
            catalog_price_cents=resolved.catalog_price_cents,
            has_price_change=resolved.has_price_change,
        ))

    for remove in changes.remove_items:
        item = working.pop(remove.product_id, None)
        if item is None:
            raise NotFoundException(
                f"Product {remove.product_id} has no active line on order {order.order_number}",
                details=[{"entity": "order_item", "product_id": str(remove.product_id)}],
            )
        ensure_removable(item)
        product = products.get(remove.product_id)
        item_changes.append(ItemChange(
            change_type=ChangeType.REMOVE,
            product_id=remove.product_id,
            order_item_id=item.id,
            product_name=item.product_name,
            product_sku=item.product_sku,
            previous_quantity=item.quantity,
            new_quantity=0,
            previous_price_cents=item.price_at_order_cents,
            line_total_change_cents=-line_value_cents(item),
            quote_price_cents=quote_prices.get(remove.product_id),
            catalog_price_cents=product.price_cents if product else None,
        ))

    for modify in changes.modify_items:
        item = working.pop(modify.product_id, None)
        if item is None:
            raise NotFoundException(
                f"Product {modify.product_id} has no active line on order {order.order_number}",
                details=[{"entity": "order_item", "product_id": str(modify.product_id)}],
            )
        ensure_quantity_covers_shipped(item, modify.quantity)
        product = products.get(modify.product_id)
        resolved = resolve_price(
            order,
            product.price_cents if product else None,
            quote_prices.get(modify.product_id),
            modify.price_override_cents,
            use_quote_prices=changes.use_quote_prices,
            fallback_price_cents=item.price_at_order_cents,
            now=now,
        )
        previous_line = line_value_cents(item)
        new_line = modify.quantity * resolved.price_cents
        new_total += new_line
        if modify.quantity == item.quantity and resolved.price_cents == item.price_at_order_cents:
            continue
        item_changes.append(ItemChange(
            change_type=ChangeType.MODIFY,
            product_id=modify.product_id,
            order_item_id=item.id,
            product_name=item.product_name,
            product_sku=item.product_sku,
            previous_quantity=item.quantity,
            new_quantity=modify.quantity,
            previous_price_cents=item.price_at_order_cents,
            new_price_cents=resolved.price_cents,
            line_total_change_cents=new_line - previous_line,
            price_source=resolved.source,
            quote_price_cents=resolved.quote_price_cents,
            catalog_price_cents=resolved.catalog_price_cents,
            has_price_change=resolved.has_price_change,
        ))

    # Lines nobody touched carry over as-is
    new_total += sum(line_value_cents(item) for item in working.values())

    return ImpactResult(
        previous_total_cents=previous_total,
        new_total_cents=new_total,
        item_changes=item_changes,
    )


def ensure_removable(item: OrderItem) -> None:
    if item.quantity_fulfilled > 0:
        raise ConsistencyViolationException(
            f"Cannot remove {item.product_name}: {item.quantity_fulfilled} unit(s) already shipped",
            details=[{
                "entity": "order_item",
                "id": str(item.id),
                "quantity_fulfilled": item.quantity_fulfilled,
                "attempted_action": "remove",
            }],
        )


def ensure_quantity_covers_shipped(item: OrderItem, new_quantity: int) -> None:
    if new_quantity < item.quantity_fulfilled:
        raise ConsistencyViolationException(
            f"Cannot reduce {item.product_name} to {new_quantity}: "
            f"{item.quantity_fulfilled} unit(s) already shipped",
            details=[{
                "entity": "order_item",
                "id": str(item.id),
                "quantity_fulfilled": item.quantity_fulfilled,
                "requested_quantity": new_quantity,
                "attempted_action": "modify",
            }],
        )


def infer_amendment_type(item_changes: list[ItemChange]) -> AmendmentType:
    """Single change kind maps to its own type; anything else is MIXED."""
    kinds = {change.change_type for change in item_changes}
    if len(kinds) != 1:
        return AmendmentType.MIXED
    kind = kinds.pop()
    if kind is ChangeType.ADD:
        return AmendmentType.ADD
    elif kind is ChangeType.REMOVE:
        return AmendmentType.REMOVE
    elif kind is ChangeType.MODIFY:
        return AmendmentType.MODIFY
    else:
        assert_never(kind)


def resolve_amendment_type(
    requested: AmendmentType | None, item_changes: list[ItemChange]
) -> AmendmentType:
    """Validate a caller-supplied type against the computed changes."""
    if not item_changes:
        raise ValidationException(
            "Amendment contains no effective item changes",
            details=[{"field": "changes", "reason": "empty"}],
        )
    inferred = infer_amendment_type(item_changes)
    if requested is None:
        return inferred
    if requested in (inferred, AmendmentType.MIXED):
        return requested
    raise ValidationException(
        f"Amendment type {requested.value} does not match its changes ({inferred.value})",
        details=[{
            "field": "amendment_type",
            "requested": requested.value,
            "inferred": inferred.value,
        }],
    )
