"""Shipment status transitions and event types."""

from __future__ import annotations

from orderdesk.models.enums import OrderFulfillmentState, OrderStatus, ShipmentStatus

# ---------------------------------------------------------------------------
# Valid status transitions: current_status -> set of allowed next statuses
# ---------------------------------------------------------------------------

SHIPMENT_TRANSITIONS: dict[ShipmentStatus, set[ShipmentStatus]] = {
    ShipmentStatus.SHIPPED: {
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.DELIVERED,
    },
    ShipmentStatus.IN_TRANSIT: {
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.DELIVERED,
    },
    ShipmentStatus.OUT_FOR_DELIVERY: {
        ShipmentStatus.DELIVERED,
    },
}

# Order status implied by the fulfillment state of its lines
ORDER_STATUS_BY_FULFILLMENT: dict[OrderFulfillmentState, OrderStatus] = {
    OrderFulfillmentState.PARTIAL: OrderStatus.PARTIALLY_FULFILLED,
    OrderFulfillmentState.COMPLETE: OrderStatus.FULFILLED,
}

# Statuses that follow fulfillment in either direction
FULFILLMENT_TRACKED_ORDER_STATUSES: set[OrderStatus] = {
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.PARTIALLY_FULFILLED,
    OrderStatus.FULFILLED,
}

SHIPMENT_NUMBER_PREFIX = "SHP"

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

EVENT_SHIPMENT_CREATED = "shipment.created"
EVENT_SHIPMENT_STATUS_UPDATED = "shipment.status_updated"
EVENT_ORDER_ITEMS_BACKORDERED = "order_items.backordered"
