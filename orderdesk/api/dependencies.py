"""Per-request construction of services and their collaborators."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.database.session import get_db
from orderdesk.modules.amendment.approval import ApprovalPolicy
from orderdesk.modules.amendment.service import AmendmentService
from orderdesk.modules.catalog.base import (
    ProductCatalogBase,
    QuoteLineLookupBase,
    TaxCalculatorBase,
)
from orderdesk.modules.catalog.sql import SqlProductCatalog, SqlQuoteLineLookup
from orderdesk.modules.catalog.tax import ConfiguredRateTaxCalculator
from orderdesk.modules.fulfillment.service import FulfillmentService
from orderdesk.modules.pricing.service import PricingService
from orderdesk.modules.versioning.service import VersionService


def get_product_catalog(db: AsyncSession = Depends(get_db)) -> ProductCatalogBase:
    return SqlProductCatalog(db)


def get_quote_lookup(db: AsyncSession = Depends(get_db)) -> QuoteLineLookupBase:
    return SqlQuoteLineLookup(db)


def get_tax_calculator() -> TaxCalculatorBase:
    return ConfiguredRateTaxCalculator()


def get_approval_policy() -> ApprovalPolicy:
    return ApprovalPolicy.from_settings()


def get_amendment_service(
    db: AsyncSession = Depends(get_db),
    catalog: ProductCatalogBase = Depends(get_product_catalog),
    quotes: QuoteLineLookupBase = Depends(get_quote_lookup),
    tax_calculator: TaxCalculatorBase = Depends(get_tax_calculator),
    policy: ApprovalPolicy = Depends(get_approval_policy),
) -> AmendmentService:
    return AmendmentService(db, catalog, quotes, tax_calculator, policy)


def get_version_service(db: AsyncSession = Depends(get_db)) -> VersionService:
    return VersionService(db)


def get_fulfillment_service(
    db: AsyncSession = Depends(get_db),
    tax_calculator: TaxCalculatorBase = Depends(get_tax_calculator),
) -> FulfillmentService:
    return FulfillmentService(db, tax_calculator)


def get_pricing_service(
    db: AsyncSession = Depends(get_db),
    catalog: ProductCatalogBase = Depends(get_product_catalog),
    quotes: QuoteLineLookupBase = Depends(get_quote_lookup),
) -> PricingService:
    return PricingService(db, catalog, quotes)
