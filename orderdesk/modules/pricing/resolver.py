"""Price resolution for order lines.

A line's unit price comes from, highest precedence first:

1. an explicit override supplied with the change,
2. the originating quote's price while the order's price lock is active,
3. the quote's price when the change asks to honor quote prices,
4. the current catalog price.

``has_price_change`` flags lines whose quote and catalog prices have drifted
apart by more than a cent. It is informational and never changes the price.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from orderdesk.models.enums import PriceSource
from orderdesk.models.order import Order

PRICE_CHANGE_TOLERANCE_CENTS = 1


@dataclass(frozen=True)
class ResolvedPrice:
    price_cents: int
    source: PriceSource
    quote_price_cents: int | None
    catalog_price_cents: int | None
    has_price_change: bool


def is_price_locked(order: Order, now: datetime | None = None) -> bool:
    """True while the lock flag is set and ``price_lock_until`` has not passed."""
    if not order.price_locked:
        return False
    if order.price_lock_until is None:
        return True
    lock_until = order.price_lock_until
    # SQLite hands back naive datetimes; they are stored as UTC
    if lock_until.tzinfo is None:
        lock_until = lock_until.replace(tzinfo=UTC)
    return lock_until >= (now or datetime.now(UTC))


def has_price_change(quote_price_cents: int | None, catalog_price_cents: int | None) -> bool:
    if quote_price_cents is None or catalog_price_cents is None:
        return False
    return abs(quote_price_cents - catalog_price_cents) > PRICE_CHANGE_TOLERANCE_CENTS


def resolve_price(
    order: Order,
    catalog_price_cents: int | None,
    quote_price_cents: int | None,
    override_price_cents: int | None = None,
    *,
    use_quote_prices: bool = False,
    fallback_price_cents: int | None = None,
    now: datetime | None = None,
) -> ResolvedPrice:
    """Pick the unit price for a line.

    ``fallback_price_cents`` is used only when the catalog no longer prices
    the product (an existing line keeps what it was charged). Raises
    ``ValueError`` when no price can be determined at all.
    """
    if override_price_cents is not None:
        price, source = override_price_cents, PriceSource.OVERRIDE
    elif quote_price_cents is not None and is_price_locked(order, now):
        price, source = quote_price_cents, PriceSource.PRICE_LOCK
    elif quote_price_cents is not None and use_quote_prices:
        price, source = quote_price_cents, PriceSource.QUOTE_REQUESTED
    elif catalog_price_cents is not None:
        price, source = catalog_price_cents, PriceSource.CATALOG
    elif fallback_price_cents is not None:
        price, source = fallback_price_cents, PriceSource.ORDER
    else:
        raise ValueError("No price available for line")

    return ResolvedPrice(
        price_cents=price,
        source=source,
        quote_price_cents=quote_price_cents,
        catalog_price_cents=catalog_price_cents,
        has_price_change=has_price_change(quote_price_cents, catalog_price_cents),
    )
