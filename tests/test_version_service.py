"""Integration tests for the order version ledger."""

import uuid

import pytest

from orderdesk.exceptions import NotFoundException
from orderdesk.models.enums import VersionChangeType
from orderdesk.modules.amendment.schemas import AmendmentCreate


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_initial_version(self, version_service, order):
        [version] = await version_service.list_versions(order.id)

        assert version.version_number == 1
        assert version.change_summary == "Order placed"
        assert version.subtotal_cents == 18000
        assert version.tax_cents == 2340
        assert version.total_cents == 20340
        assert version.order_status == "CONFIRMED"
        assert len(version.items_snapshot) == 2

    @pytest.mark.asyncio
    async def test_versions_number_consecutively(self, version_service, order):
        author = uuid.uuid4()
        second = await version_service.snapshot(order.id, created_by=author, change_summary="Manual")
        third = await version_service.snapshot(order.id)

        assert second.version_number == 2
        assert second.created_by == author
        assert third.version_number == 3
        assert order.version_number == 3

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, version_service, order):
        await version_service.snapshot(order.id)
        await version_service.snapshot(order.id)

        versions = await version_service.list_versions(order.id)

        assert [v.version_number for v in versions] == [3, 2, 1]

    @pytest.mark.asyncio
    async def test_list_for_unknown_order(self, version_service):
        with pytest.raises(NotFoundException):
            await version_service.list_versions(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_missing_version(self, version_service, order):
        with pytest.raises(NotFoundException) as exc_info:
            await version_service.get_version(order.id, 42)
        assert exc_info.value.details[0]["version_number"] == 42


class TestDiffVersions:
    @pytest.mark.asyncio
    async def test_same_version_has_no_changes(self, version_service, order):
        diff = await version_service.diff_versions(order.id, 1, 1)

        assert diff.changes == []
        assert diff.total_difference_cents == 0

    @pytest.mark.asyncio
    async def test_diff_across_applied_amendment(self, version_service, amendment_service, order, products):
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        await amendment_service.apply_amendment(amendment.id)

        diff = await version_service.diff_versions(order.id, 2, 3)

        [change] = diff.changes
        assert change.change_type == VersionChangeType.ADDED
        assert change.product_id == products["filter"].id
        assert change.new_quantity == 1
        assert diff.version_1.item_count == 2
        assert diff.version_2.item_count == 3
        assert diff.total_difference_cents == 22035 - 20340

    @pytest.mark.asyncio
    async def test_diff_with_missing_version(self, version_service, order):
        with pytest.raises(NotFoundException):
            await version_service.diff_versions(order.id, 1, 9)
