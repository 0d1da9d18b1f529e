"""Database-backed catalog and quote lookups."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.models.product import Product
from orderdesk.models.quote_line_item import QuoteLineItem
from orderdesk.modules.catalog.base import (
    CatalogProduct,
    ProductCatalogBase,
    QuoteLineLookupBase,
    QuoteLinePrice,
)


def _to_catalog_product(product: Product) -> CatalogProduct:
    return CatalogProduct(
        id=product.id,
        name=product.name,
        sku=product.sku,
        price_cents=product.price_cents,
    )


class SqlProductCatalog(ProductCatalogBase):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_product(self, product_id: uuid.UUID) -> CatalogProduct | None:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id, Product.is_active.is_(True))
        )
        product = result.scalar_one_or_none()
        return _to_catalog_product(product) if product else None

    async def get_products(
        self, product_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, CatalogProduct]:
        if not product_ids:
            return {}
        result = await self.db.execute(
            select(Product).where(
                Product.id.in_(set(product_ids)), Product.is_active.is_(True)
            )
        )
        return {p.id: _to_catalog_product(p) for p in result.scalars().all()}


class SqlQuoteLineLookup(QuoteLineLookupBase):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_quote_line_for_product(
        self, quote_id: uuid.UUID, product_id: uuid.UUID
    ) -> QuoteLinePrice | None:
        result = await self.db.execute(
            select(QuoteLineItem).where(
                QuoteLineItem.quote_id == quote_id,
                QuoteLineItem.product_id == product_id,
            )
        )
        line = result.scalar_one_or_none()
        if line is None:
            return None
        return QuoteLinePrice(
            quote_id=line.quote_id,
            product_id=line.product_id,
            unit_price_cents=line.unit_price_cents,
        )

    async def get_quote_prices(self, quote_id: uuid.UUID) -> dict[uuid.UUID, int]:
        result = await self.db.execute(
            select(QuoteLineItem.product_id, QuoteLineItem.unit_price_cents).where(
                QuoteLineItem.quote_id == quote_id
            )
        )
        return {row.product_id: row.unit_price_cents for row in result.all()}
