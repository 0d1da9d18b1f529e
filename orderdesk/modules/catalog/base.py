"""Abstract collaborators the order engine reads prices and tax from."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogProduct:
    """Current catalog view of a product."""

    id: uuid.UUID
    name: str
    sku: str | None
    price_cents: int


@dataclass(frozen=True)
class QuoteLinePrice:
    """Price a quote offered for one product."""

    quote_id: uuid.UUID
    product_id: uuid.UUID
    unit_price_cents: int


class ProductCatalogBase(ABC):
    @abstractmethod
    async def get_product(self, product_id: uuid.UUID) -> CatalogProduct | None:
        """Return the product, or None if the catalog does not know it."""

    @abstractmethod
    async def get_products(
        self, product_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, CatalogProduct]:
        """Return known products keyed by id; unknown ids are omitted."""


class QuoteLineLookupBase(ABC):
    @abstractmethod
    async def get_quote_line_for_product(
        self, quote_id: uuid.UUID, product_id: uuid.UUID
    ) -> QuoteLinePrice | None:
        """Return the quote line for a product, or None if the quote does not price it."""

    @abstractmethod
    async def get_quote_prices(self, quote_id: uuid.UUID) -> dict[uuid.UUID, int]:
        """Return unit prices (cents) for every product on the quote."""


class TaxCalculatorBase(ABC):
    @abstractmethod
    def compute_tax(self, taxable_cents: int, jurisdiction: str | None) -> int:
        """Return tax in cents for a taxable amount in a jurisdiction."""
