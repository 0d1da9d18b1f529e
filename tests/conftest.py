"""Pytest fixtures for orderdesk service and router tests.

Tests run against an in-memory SQLite database through aiosqlite. The
engine emits its own BEGIN so that SAVEPOINTs (used by every mutating
service call) behave the way they do on PostgreSQL.
"""

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from orderdesk.app import app
from orderdesk.database.base import Base
from orderdesk.database.session import get_db
from orderdesk.models import Order, OrderItem, Product, Quote, QuoteLineItem
from orderdesk.modules.amendment.approval import ApprovalPolicy
from orderdesk.modules.amendment.service import AmendmentService
from orderdesk.modules.catalog.sql import SqlProductCatalog, SqlQuoteLineLookup
from orderdesk.modules.catalog.tax import ConfiguredRateTaxCalculator
from orderdesk.modules.fulfillment.service import FulfillmentService
from orderdesk.modules.orders.totals import apply_totals, compute_totals
from orderdesk.modules.pricing.service import PricingService
from orderdesk.modules.versioning.service import VersionService

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def async_test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        async_test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def tax_calculator() -> ConfiguredRateTaxCalculator:
    return ConfiguredRateTaxCalculator(
        rates={"ON": Decimal("0.13"), "AB": Decimal("0.05")},
        default_rate=Decimal("0.13"),
        default_jurisdiction="ON",
    )


@pytest.fixture
def approval_policy() -> ApprovalPolicy:
    return ApprovalPolicy(threshold_cents=10000, threshold_percent=Decimal("10"))


@pytest.fixture
def amendment_service(async_session, tax_calculator, approval_policy) -> AmendmentService:
    return AmendmentService(
        async_session,
        SqlProductCatalog(async_session),
        SqlQuoteLineLookup(async_session),
        tax_calculator,
        approval_policy,
    )


@pytest.fixture
def version_service(async_session) -> VersionService:
    return VersionService(async_session)


@pytest.fixture
def fulfillment_service(async_session, tax_calculator) -> FulfillmentService:
    return FulfillmentService(async_session, tax_calculator)


@pytest.fixture
def pricing_service(async_session) -> PricingService:
    return PricingService(
        async_session, SqlProductCatalog(async_session), SqlQuoteLineLookup(async_session)
    )


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def products(async_session) -> dict[str, Product]:
    """Cable $25.00, lamp $40.00, filter $15.00."""
    rows = {
        "cable": Product(sku="CBL-USBC", name="USB-C cable 2m", price_cents=2500),
        "lamp": Product(sku="LMP-DESK", name="LED desk lamp", price_cents=4000),
        "filter": Product(sku="FLT-WTR", name="Water filter cartridge", price_cents=1500),
    }
    async_session.add_all(rows.values())
    await async_session.flush()
    return rows


@pytest_asyncio.fixture
async def quote(async_session, products) -> Quote:
    """Quote pricing cable at $23.00 and filter at $12.00."""
    row = Quote(quote_number="QT-0001", total_cents=0)
    async_session.add(row)
    await async_session.flush()
    async_session.add_all([
        QuoteLineItem(
            quote_id=row.id, product_id=products["cable"].id, unit_price_cents=2300, quantity=4
        ),
        QuoteLineItem(
            quote_id=row.id, product_id=products["filter"].id, unit_price_cents=1200, quantity=2
        ),
    ])
    await async_session.flush()
    return row


@pytest_asyncio.fixture
async def order(async_session, products, quote, tax_calculator, version_service) -> Order:
    """Order with cable x4 @ $25.00 and lamp x2 @ $40.00; subtotal $180.00 at 13% tax."""
    row = Order(order_number="ORD-1001", quote_id=quote.id, tax_jurisdiction="ON")
    async_session.add(row)
    await async_session.flush()

    items = [
        OrderItem(
            order_id=row.id,
            product_id=products["cable"].id,
            product_name=products["cable"].name,
            product_sku=products["cable"].sku,
            quantity=4,
            price_at_order_cents=2500,
            line_total_cents=10000,
            quantity_fulfilled=0,
            quantity_backordered=0,
            quantity_cancelled=0,
        ),
        OrderItem(
            order_id=row.id,
            product_id=products["lamp"].id,
            product_name=products["lamp"].name,
            product_sku=products["lamp"].sku,
            quantity=2,
            price_at_order_cents=4000,
            line_total_cents=8000,
            quantity_fulfilled=0,
            quantity_backordered=0,
            quantity_cancelled=0,
        ),
    ]
    async_session.add_all(items)
    apply_totals(row, compute_totals(row, items, tax_calculator))
    await async_session.flush()

    await version_service.snapshot(row.id, change_summary="Order placed")
    return row


@pytest_asyncio.fixture
async def async_client(async_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient wired to the FastAPI app with the test session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
