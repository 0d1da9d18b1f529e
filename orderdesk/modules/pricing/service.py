"""Pricing service — price locks, per-item price options and the order pricing view."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.database.session import atomic
from orderdesk.exceptions import NotFoundException
from orderdesk.models.order import Order
from orderdesk.models.quote import Quote
from orderdesk.modules.catalog.base import ProductCatalogBase, QuoteLineLookupBase
from orderdesk.modules.events.outbox_service import OutboxService
from orderdesk.modules.fulfillment.tracking import item_fulfillment_status
from orderdesk.modules.orders.service import OrderService
from orderdesk.modules.orders.totals import active_items
from orderdesk.modules.pricing.resolver import has_price_change, is_price_locked, resolve_price
from orderdesk.modules.pricing.schemas import (
    ItemPriceOptionsResponse,
    OrderPricingItem,
    OrderPricingResponse,
    PriceLockResponse,
    QuoteSummary,
)

logger = logging.getLogger(__name__)

EVENT_PRICE_LOCK_UPDATED = "order.price_lock_updated"


def _lock_response(order: Order) -> PriceLockResponse:
    return PriceLockResponse(
        order_id=order.id,
        price_locked=order.price_locked,
        price_lock_until=order.price_lock_until,
        quote_prices_honored=order.quote_prices_honored,
        lock_active=is_price_locked(order),
    )


class PricingService:
    def __init__(
        self,
        db: AsyncSession,
        catalog: ProductCatalogBase,
        quotes: QuoteLineLookupBase,
    ):
        self.db = db
        self.catalog = catalog
        self.quotes = quotes
        self.orders = OrderService(db)

    # ------------------------------------------------------------------
    # Price lock
    # ------------------------------------------------------------------

    async def set_price_lock(
        self,
        order_id: uuid.UUID,
        locked: bool,
        lock_until: datetime | None = None,
        updated_by: uuid.UUID | None = None,
        quote_prices_honored: bool | None = None,
    ) -> PriceLockResponse:
        async with atomic(self.db, "set price lock"):
            order = await self.orders.lock_order(order_id)
            order.price_locked = locked
            order.price_lock_until = lock_until if locked else None
            if quote_prices_honored is not None:
                order.quote_prices_honored = quote_prices_honored
            order.last_modified_by = updated_by
            order.last_modified_at = datetime.now(UTC)
            await self.db.flush()

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_PRICE_LOCK_UPDATED,
                aggregate_type="order",
                aggregate_id=str(order_id),
                payload={
                    "order_id": str(order_id),
                    "price_locked": locked,
                    "price_lock_until": order.price_lock_until.isoformat()
                    if order.price_lock_until else None,
                    "quote_prices_honored": order.quote_prices_honored,
                    "updated_by": str(updated_by) if updated_by else None,
                },
            )

        logger.info(
            "Price lock on order %s set to %s (until %s)",
            order.order_number, locked, order.price_lock_until,
        )
        return _lock_response(order)

    async def is_price_locked(self, order_id: uuid.UUID) -> bool:
        order = await self.orders.get_order(order_id)
        return is_price_locked(order)

    # ------------------------------------------------------------------
    # Price options
    # ------------------------------------------------------------------

    async def get_item_price_options(
        self, order_id: uuid.UUID, product_id: uuid.UUID
    ) -> ItemPriceOptionsResponse:
        """Catalog, quote and charged prices for one product, plus the recommendation."""
        order = await self.orders.get_order(order_id)
        line = next(
            (
                item for item in active_items(await self.orders.list_items(order_id))
                if item.product_id == product_id
            ),
            None,
        )
        product = await self.catalog.get_product(product_id)
        if product is None and line is None:
            raise NotFoundException.for_entity("product", product_id)

        quote_line = (
            await self.quotes.get_quote_line_for_product(order.quote_id, product_id)
            if order.quote_id else None
        )
        catalog_price = product.price_cents if product else None
        quote_price = quote_line.unit_price_cents if quote_line else None
        order_price = line.price_at_order_cents if line else None

        recommended = resolve_price(
            order,
            catalog_price,
            quote_price,
            use_quote_prices=order.quote_prices_honored,
            fallback_price_cents=order_price,
        )
        return ItemPriceOptionsResponse(
            order_id=order_id,
            product_id=product_id,
            catalog_price_cents=catalog_price,
            quote_price_cents=quote_price,
            order_price_cents=order_price,
            price_difference_cents=(
                catalog_price - quote_price
                if catalog_price is not None and quote_price is not None else 0
            ),
            has_price_change=recommended.has_price_change,
            price_locked=is_price_locked(order),
            quote_prices_honored=order.quote_prices_honored,
            recommended_price_cents=recommended.price_cents,
            recommended_source=recommended.source,
        )

    # ------------------------------------------------------------------
    # Order pricing view
    # ------------------------------------------------------------------

    async def get_order_pricing(self, order_id: uuid.UUID) -> OrderPricingResponse:
        """The order with its quote reference and every line annotated with prices."""
        order = await self.orders.get_order(order_id)
        items = await self.orders.list_items(order_id)

        quote = None
        quote_prices: dict[uuid.UUID, int] = {}
        if order.quote_id:
            result = await self.db.execute(select(Quote).where(Quote.id == order.quote_id))
            quote = result.scalar_one_or_none()
            quote_prices = await self.quotes.get_quote_prices(order.quote_id)
        products = await self.catalog.get_products([item.product_id for item in items])

        pricing_items = []
        for item in items:
            product = products.get(item.product_id)
            catalog_price = product.price_cents if product else None
            quote_price = quote_prices.get(item.product_id)
            pricing_items.append(OrderPricingItem(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                product_sku=item.product_sku,
                quantity=item.quantity,
                price_at_order_cents=item.price_at_order_cents,
                line_total_cents=item.line_total_cents,
                quantity_fulfilled=item.quantity_fulfilled,
                quantity_backordered=item.quantity_backordered,
                quantity_cancelled=item.quantity_cancelled,
                fulfillment_status=item_fulfillment_status(item),
                quote_price_cents=quote_price,
                catalog_price_cents=catalog_price,
                has_price_change=has_price_change(quote_price, catalog_price),
            ))

        return OrderPricingResponse(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            version_number=order.version_number,
            price_locked=order.price_locked,
            price_lock_until=order.price_lock_until,
            lock_active=is_price_locked(order),
            quote_prices_honored=order.quote_prices_honored,
            subtotal_cents=order.subtotal_cents,
            discount_cents=order.discount_cents,
            tax_cents=order.tax_cents,
            total_cents=order.total_cents,
            currency=order.currency,
            quote=QuoteSummary.model_validate(quote) if quote else None,
            items=pricing_items,
            last_modified_at=order.last_modified_at,
            created_at=order.created_at,
        )
