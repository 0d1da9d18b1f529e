"""Tests for fulfillment counters, derived statuses and the order summary."""

from __future__ import annotations

import uuid

import pytest

from orderdesk.exceptions import ConsistencyViolationException
from orderdesk.models.enums import FulfillmentStatus, OrderFulfillmentState
from orderdesk.models.order_item import OrderItem
from orderdesk.modules.fulfillment.tracking import (
    derive_fulfillment_status,
    ensure_shippable,
    record_shipped_units,
    set_backordered_units,
    summarize_fulfillment,
)


def _make_item(
    quantity: int = 3,
    fulfilled: int = 0,
    backordered: int = 0,
    cancelled: int = 0,
) -> OrderItem:
    return OrderItem(
        id=uuid.uuid4(),
        order_id=uuid.uuid4(),
        product_id=uuid.uuid4(),
        product_name="Water filter cartridge",
        product_sku="FLT-WTR",
        quantity=quantity,
        price_at_order_cents=1500,
        line_total_cents=quantity * 1500,
        quantity_fulfilled=fulfilled,
        quantity_backordered=backordered,
        quantity_cancelled=cancelled,
        fulfillment_status=FulfillmentStatus.PENDING,
    )


class TestDeriveFulfillmentStatus:
    @pytest.mark.parametrize(
        ("quantity", "fulfilled", "backordered", "cancelled", "expected"),
        [
            (3, 0, 0, 0, FulfillmentStatus.PENDING),
            (3, 1, 0, 0, FulfillmentStatus.ALLOCATED),
            (3, 1, 2, 0, FulfillmentStatus.BACKORDERED),
            (3, 3, 0, 0, FulfillmentStatus.SHIPPED),
            (3, 1, 0, 2, FulfillmentStatus.SHIPPED),
            (3, 0, 0, 3, FulfillmentStatus.CANCELLED),
        ],
    )
    def test_status_from_counters(self, quantity, fulfilled, backordered, cancelled, expected) -> None:
        assert derive_fulfillment_status(quantity, fulfilled, backordered, cancelled) == expected


class TestRecordShippedUnits:
    def test_over_shipment_rejected(self) -> None:
        item = _make_item(quantity=3)
        with pytest.raises(ConsistencyViolationException, match="only 3 unit"):
            ensure_shippable(item, 5)
        assert item.quantity_fulfilled == 0

    def test_partial_then_complete(self) -> None:
        item = _make_item(quantity=3)

        record_shipped_units(item, 2)
        assert item.quantity_fulfilled == 2
        assert item.fulfillment_status == FulfillmentStatus.ALLOCATED

        record_shipped_units(item, 1)
        assert item.quantity_fulfilled == 3
        assert item.fulfillment_status == FulfillmentStatus.SHIPPED

    def test_third_shipment_rejected_once_complete(self) -> None:
        item = _make_item(quantity=3, fulfilled=3)
        with pytest.raises(ConsistencyViolationException):
            record_shipped_units(item, 1)

    def test_free_units_ship_before_backordered_units(self) -> None:
        item = _make_item(quantity=5, backordered=2)

        record_shipped_units(item, 3)
        assert item.quantity_backordered == 2

        record_shipped_units(item, 1)
        assert item.quantity_backordered == 1
        assert item.quantity_fulfilled + item.quantity_backordered <= item.quantity

    def test_cancelled_units_cannot_ship(self) -> None:
        item = _make_item(quantity=4, cancelled=2)
        with pytest.raises(ConsistencyViolationException):
            record_shipped_units(item, 3)


class TestSetBackorderedUnits:
    def test_backorder_sets_status(self) -> None:
        item = _make_item(quantity=4, fulfilled=1)
        set_backordered_units(item, 3)

        assert item.quantity_backordered == 3
        assert item.fulfillment_status == FulfillmentStatus.BACKORDERED

    def test_backorder_beyond_unshipped_rejected(self) -> None:
        item = _make_item(quantity=4, fulfilled=2)
        with pytest.raises(ConsistencyViolationException, match="Cannot backorder"):
            set_backordered_units(item, 3)

    def test_backorder_can_be_cleared(self) -> None:
        item = _make_item(quantity=4, backordered=2)
        set_backordered_units(item, 0)

        assert item.fulfillment_status == FulfillmentStatus.PENDING


class TestSummarizeFulfillment:
    def test_empty_order(self) -> None:
        summary = summarize_fulfillment([])
        assert summary.status == OrderFulfillmentState.PENDING
        assert summary.fulfillment_percent == 0

    def test_partial(self) -> None:
        summary = summarize_fulfillment([
            _make_item(quantity=3, fulfilled=2),
            _make_item(quantity=3, backordered=1),
        ])

        assert summary.status == OrderFulfillmentState.PARTIAL
        assert summary.total_quantity == 6
        assert summary.fulfilled == 2
        assert summary.backordered == 1
        assert summary.pending == 4
        assert summary.fulfillment_percent == 33

    def test_complete_ignores_cancelled_units(self) -> None:
        summary = summarize_fulfillment([
            _make_item(quantity=3, fulfilled=3),
            _make_item(quantity=2, cancelled=2),
        ])

        assert summary.status == OrderFulfillmentState.COMPLETE
        assert summary.fulfillment_percent == 100
        assert summary.cancelled == 2

    def test_percent_rounds_half_up(self) -> None:
        # 1 of 8 deliverable units = 12.5%
        summary = summarize_fulfillment([_make_item(quantity=8, fulfilled=1)])
        assert summary.fulfillment_percent == 13
