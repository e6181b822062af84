"""Tests for the import orchestrator.

Runs import profiles end to end against an in-memory database, a fake
vendor adapter and a mocked indexing queue.
"""

from decimal import Decimal

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.core.exceptions import NotFoundError, ProfileDisabledError, VendorApiError
from okazje.models import Deal, ImportRun, Product
from okazje.schemas.run import IngestOptions
from okazje.services.indexing import IndexingQueue
from okazje.services.ingest_service import IngestService

from conftest import raw_offer


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.fixture
def service(test_db, adapter_factory, indexing_queue) -> IngestService:
    return IngestService(
        test_db,
        adapter_factory=adapter_factory,
        indexing_queue=indexing_queue,
        store_raw_data=False,
    )


# ============================================================================
# CREATE
# ============================================================================

class TestCreate:
    async def test_creates_product_and_deal(self, service, test_db, make_profile, fake_vendor, indexing_queue):
        profile = await make_profile()
        fake_vendor.items = [raw_offer("offer-1")]

        result = await service.run_import(profile.id)

        assert result.ok is True
        assert result.dry_run is False
        assert result.errors == []
        assert result.stats == {
            "fetched": 1,
            "created": 2,
            "updated": 0,
            "skipped": 0,
            "errors": 0,
            "duplicates": 0,
        }

        product = (await test_db.execute(select(Product))).scalar_one()
        assert product.source == "allegro"
        assert product.original_id == "offer-1"
        assert product.price == Decimal("110.00")
        assert product.original_price == Decimal("220.00")
        assert product.discount_percent == 50
        assert product.main_category_slug == "elektronika"
        assert product.metadata_["importedBy"] == "admin-1"

        deal = (await test_db.execute(select(Deal))).scalar_one()
        assert deal.product_id == product.id
        assert deal.title == "Słuchawki offer-1 -50%"
        assert deal.posted_by == "admin-1"

        indexing_queue.queue_product.assert_awaited_once_with(product.id)
        indexing_queue.queue_deal.assert_awaited_once_with(deal.id)

    async def test_product_without_discount_gets_no_deal(self, service, test_db, make_profile, fake_vendor):
        profile = await make_profile()
        fake_vendor.items = [raw_offer("offer-1", original_price=None)]

        result = await service.run_import(profile.id)

        assert result.stats["created"] == 1
        assert await _count(test_db, Product) == 1
        assert await _count(test_db, Deal) == 0

    async def test_run_recorded_as_completed(self, service, test_db, make_profile, fake_vendor):
        profile = await make_profile()
        fake_vendor.items = [raw_offer("offer-1")]

        result = await service.run_import(
            profile.id, IngestOptions(triggered_by="manual", triggered_by_uid="admin-7")
        )

        run = await service.get_import_run_status(result.run_id)
        assert run.status == "completed"
        assert run.profile_id == profile.id
        assert run.vendor_id == "allegro"
        assert run.triggered_by == "manual"
        assert run.triggered_by_uid == "admin-7"
        assert run.stats == result.stats
        assert run.error_summary is None
        assert run.finished_at is not None
        assert run.duration_ms >= 0

    async def test_max_items_caps_processed_items(self, service, make_profile, fake_vendor):
        profile = await make_profile(max_items_per_run=10)
        fake_vendor.items = [raw_offer(f"offer-{i}") for i in range(5)]

        result = await service.run_import(profile.id, IngestOptions(max_items=3))

        assert fake_vendor.searches[0].limit == 3
        assert result.stats["fetched"] == 3
        assert result.stats["created"] == 6


# ============================================================================
# VALIDATION AND ITEM ERRORS
# ============================================================================

class TestItemRejection:
    async def test_price_below_minimum_skipped(self, service, test_db, make_profile, fake_vendor):
        profile = await make_profile(filters={"searchQuery": "słuchawki", "minPrice": 50})
        fake_vendor.items = [raw_offer("cheap-1", price="30", original_price=None)]

        result = await service.run_import(profile.id)

        assert result.ok is True
        assert result.stats["skipped"] == 1
        assert result.stats["errors"] == 1
        assert result.stats["created"] == 0
        assert len(result.errors) == 1
        assert result.errors[0].code == "VALIDATION"
        assert result.errors[0].message == "Price below minimum (50)"
        assert result.errors[0].item_id == "cheap-1"
        assert await _count(test_db, Product) == 0

    async def test_broken_item_does_not_abort_run(self, service, test_db, make_profile, fake_vendor):
        profile = await make_profile()
        fake_vendor.items = [
            raw_offer("broken-1", price=None),
            raw_offer("offer-2"),
        ]

        result = await service.run_import(profile.id)

        assert result.ok is True
        assert result.stats["errors"] == 1
        assert result.stats["created"] == 2
        assert result.errors[0].code == "UNKNOWN"
        assert result.errors[0].item_id == "broken-1"
        assert await _count(test_db, Product) == 1

        run = await service.get_import_run_status(result.run_id)
        assert run.error_summary[0]["item_id"] == "broken-1"

    async def test_non_object_entry_does_not_abort_run(self, service, test_db, make_profile, fake_vendor):
        profile = await make_profile()
        fake_vendor.items = [None, raw_offer("offer-2")]

        result = await service.run_import(profile.id)

        assert result.ok is True
        assert result.stats["fetched"] == 2
        assert result.stats["created"] == 2
        assert result.stats["errors"] == 1
        assert len(result.errors) == 1
        assert result.errors[0].code == "UNKNOWN"
        assert result.errors[0].item_id is None
        assert await _count(test_db, Product) == 1

        run = await service.get_import_run_status(result.run_id)
        assert run.status == "completed"


# ============================================================================
# INDEXING
# ============================================================================

class TestIndexing:
    async def test_queue_failure_does_not_count_as_item_error(
        self, test_db, adapter_factory, make_profile, fake_vendor
    ):
        profile = await make_profile()
        fake_vendor.items = [raw_offer("offer-1")]
        # No scheme, so redis refuses to build a client from it
        queue = IndexingQueue("localhost:6379", "okazje:indexing")
        service = IngestService(test_db, adapter_factory=adapter_factory, indexing_queue=queue)

        result = await service.run_import(profile.id)

        assert result.ok is True
        assert result.stats["created"] == 2
        assert result.stats["errors"] == 0
        assert result.errors == []
        assert await _count(test_db, Product) == 1
        assert await _count(test_db, Deal) == 1

    async def test_raising_queue_is_isolated_from_item_accounting(
        self, test_db, adapter_factory, indexing_queue, make_profile, fake_vendor
    ):
        profile = await make_profile()
        fake_vendor.items = [raw_offer("offer-1"), raw_offer("offer-2")]
        indexing_queue.queue_product.side_effect = RuntimeError("queue down")
        service = IngestService(test_db, adapter_factory=adapter_factory, indexing_queue=indexing_queue)

        result = await service.run_import(profile.id)

        assert result.stats["created"] == 4
        assert result.stats["errors"] == 0
        assert indexing_queue.queue_deal.await_count == 2

    async def test_enqueue_swallows_client_errors(self):
        queue = IndexingQueue("localhost:6379", "okazje:indexing")

        assert await queue.queue_product("product-1") is False
        assert await queue.queue_deal("deal-1") is False

    async def test_disabled_queue_skips_redis(self):
        queue = IndexingQueue("redis://localhost:6379/0", "okazje:indexing", enabled=False)

        assert await queue.queue_product("product-1") is False
        assert queue._redis is None


# ============================================================================
# DUPLICATES
# ============================================================================

class TestDuplicates:
    async def test_skip_strategy(self, service, test_db, make_profile, fake_vendor, indexing_queue):
        profile = await make_profile(deduplication_strategy="skip")
        fake_vendor.items = [raw_offer("offer-1")]
        await service.run_import(profile.id)
        indexing_queue.reset_mock()

        result = await service.run_import(profile.id)

        assert result.stats["skipped"] == 1
        assert result.stats["duplicates"] == 1
        assert result.stats["created"] == 0
        assert result.errors == []
        assert await _count(test_db, Product) == 1
        assert await _count(test_db, Deal) == 1
        indexing_queue.queue_product.assert_not_awaited()

    async def test_update_strategy_refreshes_product(self, service, test_db, make_profile, fake_vendor, indexing_queue):
        profile = await make_profile(deduplication_strategy="update")
        fake_vendor.items = [raw_offer("offer-1")]
        await service.run_import(profile.id)

        product = (await test_db.execute(select(Product))).scalar_one()
        product.status = "approved"
        product.main_category_slug = "audio-premium"
        await test_db.commit()
        first_import = product.metadata_["importedAt"]

        fake_vendor.items = [raw_offer("offer-1", price="80", title="Słuchawki offer-1 v2")]
        result = await service.run_import(profile.id)

        assert result.stats["updated"] == 1
        assert result.stats["duplicates"] == 0
        assert result.stats["created"] == 0

        refreshed = (
            await test_db.execute(select(Product).execution_options(populate_existing=True))
        ).scalar_one()
        assert refreshed.price == Decimal("88.00")
        assert refreshed.name == "Słuchawki offer-1 v2"
        assert refreshed.status == "approved"
        assert refreshed.main_category_slug == "audio-premium"
        assert refreshed.metadata_["importedAt"] == first_import
        assert "refreshedAt" in refreshed.metadata_
        assert await _count(test_db, Deal) == 1
        indexing_queue.queue_product.assert_awaited_with(refreshed.id)


# ============================================================================
# DRY RUN
# ============================================================================

class TestDryRun:
    async def test_dry_run_writes_nothing(self, service, test_db, make_profile, fake_vendor, indexing_queue):
        profile = await make_profile()
        fake_vendor.items = [raw_offer("offer-1"), raw_offer("offer-2")]

        result = await service.run_import(profile.id, IngestOptions(dry_run=True))

        assert result.ok is True
        assert result.dry_run is True
        assert result.stats["would_create"] == 2
        assert result.stats["would_update"] == 0
        assert "created" not in result.stats
        assert "updated" not in result.stats
        assert await _count(test_db, Product) == 0
        assert await _count(test_db, Deal) == 0
        assert await _count(test_db, ImportRun) == 1
        indexing_queue.queue_product.assert_not_awaited()

        run = await service.get_import_run_status(result.run_id)
        assert run.dry_run is True

    async def test_dry_run_counts_would_update(self, service, test_db, make_profile, fake_vendor):
        profile = await make_profile(deduplication_strategy="update")
        fake_vendor.items = [raw_offer("offer-1")]
        await service.run_import(profile.id)

        fake_vendor.items = [raw_offer("offer-1", price="80")]
        result = await service.run_import(profile.id, IngestOptions(dry_run=True))

        assert result.stats["would_update"] == 1
        product = (
            await test_db.execute(select(Product).execution_options(populate_existing=True))
        ).scalar_one()
        assert product.price == Decimal("110.00")


# ============================================================================
# RUN FAILURES
# ============================================================================

class TestRunFailures:
    async def test_network_error_fails_run(self, service, test_db, make_profile, fake_vendor, indexing_queue):
        profile = await make_profile()
        fake_vendor.error = httpx.ConnectError("connection refused")

        result = await service.run_import(profile.id)

        assert result.ok is False
        assert len(result.errors) == 1
        assert result.errors[0].code == "UNKNOWN"
        assert "connection refused" in result.errors[0].message
        assert await _count(test_db, Product) == 0
        indexing_queue.queue_product.assert_not_awaited()

        run = await service.get_import_run_status(result.run_id)
        assert run.status == "failed"
        assert len(run.error_summary) == 1

    async def test_vendor_error_details_kept(self, service, make_profile, fake_vendor):
        profile = await make_profile()
        fake_vendor.error = VendorApiError("allegro", "UNAUTHORIZED", "Token expired")

        result = await service.run_import(profile.id)

        assert result.ok is False
        assert result.errors[0].details["code"] == "UNAUTHORIZED"
        assert result.errors[0].details["message"] == "Token expired"

    async def test_degraded_search_completes_with_vendor_error(self, service, make_profile, fake_vendor):
        profile = await make_profile()
        fake_vendor.degraded = VendorApiError("allegro", "HTTP_503", "Service unavailable")

        result = await service.run_import(profile.id)

        assert result.ok is True
        assert result.stats["fetched"] == 0
        assert len(result.errors) == 1
        assert result.errors[0].code == "VENDOR_API"
        assert result.errors[0].message == "Service unavailable"

        run = await service.get_import_run_status(result.run_id)
        assert run.status == "completed"

    async def test_missing_profile(self, service, test_db):
        with pytest.raises(NotFoundError):
            await service.run_import("no-such-profile")

        assert await _count(test_db, ImportRun) == 0

    async def test_disabled_profile(self, service, test_db, make_profile):
        profile = await make_profile(enabled=False)

        with pytest.raises(ProfileDisabledError):
            await service.run_import(profile.id)

        assert await _count(test_db, ImportRun) == 0

    async def test_unknown_run_status(self, service):
        with pytest.raises(NotFoundError):
            await service.get_import_run_status("no-such-run")
