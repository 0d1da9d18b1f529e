"""Snapshot building and comparison for the version ledger."""

from __future__ import annotations

import uuid

from orderdesk.models.enums import VersionChangeType
from orderdesk.models.order_item import OrderItem
from orderdesk.modules.fulfillment.tracking import item_fulfillment_status
from orderdesk.modules.orders.totals import active_items, line_value_cents
from orderdesk.modules.versioning.schemas import SnapshotItem, VersionItemChange


def build_snapshot(items: list[OrderItem]) -> list[SnapshotItem]:
    """Freeze the order's active lines; cancelled lines are left out."""
    return [
        SnapshotItem(
            order_item_id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            product_sku=item.product_sku,
            quantity=item.quantity,
            unit_price_cents=item.price_at_order_cents,
            line_total_cents=line_value_cents(item),
            quantity_fulfilled=item.quantity_fulfilled,
            quantity_backordered=item.quantity_backordered,
            fulfillment_status=item_fulfillment_status(item),
        )
        for item in active_items(items)
    ]


def load_snapshot(raw: list[dict] | None) -> list[SnapshotItem]:
    return [SnapshotItem.model_validate(entry) for entry in raw or []]


def dump_snapshot(items: list[SnapshotItem]) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


def diff_snapshots(
    before: list[SnapshotItem], after: list[SnapshotItem]
) -> list[VersionItemChange]:
    """Classify products as removed, modified or added between two snapshots.

    Unchanged products are omitted. Removed and modified entries follow the
    order of ``before``; added entries follow the order of ``after``.
    """
    before_by_product: dict[uuid.UUID, SnapshotItem] = {i.product_id: i for i in before}
    after_by_product: dict[uuid.UUID, SnapshotItem] = {i.product_id: i for i in after}
    changes: list[VersionItemChange] = []

    for product_id, old in before_by_product.items():
        new = after_by_product.get(product_id)
        if new is None:
            changes.append(VersionItemChange(
                change_type=VersionChangeType.REMOVED,
                product_id=product_id,
                product_name=old.product_name,
                previous_quantity=old.quantity,
                previous_unit_price_cents=old.unit_price_cents,
            ))
        elif old.quantity != new.quantity or old.unit_price_cents != new.unit_price_cents:
            changes.append(VersionItemChange(
                change_type=VersionChangeType.MODIFIED,
                product_id=product_id,
                product_name=new.product_name,
                previous_quantity=old.quantity,
                new_quantity=new.quantity,
                previous_unit_price_cents=old.unit_price_cents,
                new_unit_price_cents=new.unit_price_cents,
            ))

    for product_id, new in after_by_product.items():
        if product_id not in before_by_product:
            changes.append(VersionItemChange(
                change_type=VersionChangeType.ADDED,
                product_id=product_id,
                product_name=new.product_name,
                new_quantity=new.quantity,
                new_unit_price_cents=new.unit_price_cents,
            ))

    return changes
