"""Tests for order totals and the order status derived from fulfillment."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from orderdesk.models.enums import OrderStatus
from orderdesk.models.order import Order
from orderdesk.models.order_item import OrderItem
from orderdesk.modules.catalog.base import TaxCalculatorBase
from orderdesk.modules.orders.service import OrderService
from orderdesk.modules.orders.totals import active_items, compute_totals


def _make_order(status: OrderStatus = OrderStatus.CONFIRMED) -> Order:
    return Order(
        id=uuid.uuid4(), order_number="ORD-2001", status=status, tax_jurisdiction="ON"
    )


def _make_item(quantity: int, price_cents: int, **counters) -> OrderItem:
    """Build a line the way callers do before flushing; counters stay unset unless given."""
    return OrderItem(
        id=uuid.uuid4(),
        order_id=uuid.uuid4(),
        product_id=uuid.uuid4(),
        product_name="HDMI cable",
        product_sku="CBL-HDMI",
        quantity=quantity,
        price_at_order_cents=price_cents,
        line_total_cents=quantity * price_cents,
        **counters,
    )


def _tax_calculator(tax_cents: int) -> MagicMock:
    calculator = MagicMock(spec=TaxCalculatorBase)
    calculator.compute_tax.return_value = tax_cents
    return calculator


class TestComputeTotals:
    def test_unflushed_lines_count_as_active(self):
        items = [_make_item(4, 2500), _make_item(2, 4000)]

        assert active_items(items) == items

    def test_totals_from_unflushed_lines(self):
        order = _make_order()
        calculator = _tax_calculator(2340)

        totals = compute_totals(order, [_make_item(4, 2500), _make_item(2, 4000)], calculator)

        calculator.compute_tax.assert_called_once_with(18000, "ON")
        assert totals.subtotal_cents == 18000
        assert totals.discount_cents == 0
        assert totals.total_cents == 20340

    def test_cancelled_line_is_excluded(self):
        order = _make_order()
        items = [
            _make_item(4, 2500),
            _make_item(2, 4000, quantity_fulfilled=0, quantity_backordered=0, quantity_cancelled=2),
        ]

        totals = compute_totals(order, items, _tax_calculator(1300))

        assert totals.subtotal_cents == 10000
        assert totals.total_cents == 11300


class TestSyncFulfillmentStatus:
    @pytest.fixture
    def service(self) -> OrderService:
        return OrderService(AsyncMock())

    @staticmethod
    def _shipped(quantity: int, fulfilled: int, cancelled: int = 0) -> OrderItem:
        return _make_item(
            quantity,
            1000,
            quantity_fulfilled=fulfilled,
            quantity_backordered=0,
            quantity_cancelled=cancelled,
        )

    def test_nothing_shipped_keeps_status(self, service):
        order = _make_order()

        assert service.sync_fulfillment_status(order, [self._shipped(3, 0)]) == OrderStatus.CONFIRMED

    def test_partial_shipment(self, service):
        order = _make_order(OrderStatus.PROCESSING)

        service.sync_fulfillment_status(order, [self._shipped(3, 1)])

        assert order.status == OrderStatus.PARTIALLY_FULFILLED

    def test_cancelled_remainder_completes_order(self, service):
        order = _make_order(OrderStatus.PARTIALLY_FULFILLED)

        service.sync_fulfillment_status(order, [self._shipped(4, 4), self._shipped(2, 0, cancelled=2)])

        assert order.status == OrderStatus.FULFILLED

    def test_new_units_reopen_fulfilled_order(self, service):
        order = _make_order(OrderStatus.FULFILLED)

        service.sync_fulfillment_status(order, [self._shipped(4, 4), self._shipped(1, 0)])

        assert order.status == OrderStatus.PARTIALLY_FULFILLED

    @pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_closed_order_is_untouched(self, service, status):
        order = _make_order(status)

        service.sync_fulfillment_status(order, [self._shipped(4, 4)])

        assert order.status == status
