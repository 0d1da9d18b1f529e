# Import all models so SQLAlchemy metadata is populated for Alembic and create_all
from orderdesk.models.amendment import OrderAmendment
from orderdesk.models.amendment_item import OrderAmendmentItem
from orderdesk.models.enums import (
    AmendmentStatus,
    AmendmentType,
    ChangeType,
    EventStatus,
    FulfillmentStatus,
    OrderFulfillmentState,
    OrderStatus,
    PriceSource,
    ShipmentStatus,
    VersionChangeType,
)
from orderdesk.models.event_outbox import EventOutbox
from orderdesk.models.order import Order
from orderdesk.models.order_item import OrderItem
from orderdesk.models.order_version import OrderVersion
from orderdesk.models.product import Product
from orderdesk.models.quote import Quote
from orderdesk.models.quote_line_item import QuoteLineItem
from orderdesk.models.shipment import Shipment
from orderdesk.models.shipment_item import ShipmentItem

__all__ = [
    "AmendmentStatus",
    "AmendmentType",
    "ChangeType",
    "EventOutbox",
    "EventStatus",
    "FulfillmentStatus",
    "Order",
    "OrderAmendment",
    "OrderAmendmentItem",
    "OrderFulfillmentState",
    "OrderItem",
    "OrderStatus",
    "OrderVersion",
    "PriceSource",
    "Product",
    "Quote",
    "QuoteLineItem",
    "Shipment",
    "ShipmentItem",
    "ShipmentStatus",
    "VersionChangeType",
]
