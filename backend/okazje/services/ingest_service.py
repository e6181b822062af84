"""Vendor-agnostic import orchestrator.

One ``IngestService.run_import`` call executes one import profile:

  1. Load the profile (missing or disabled profiles raise before a run exists)
  2. Commit an ``ImportRun`` with status ``running``
  3. Build the vendor's search params and fetch a single page
  4. Process items sequentially: validate, deduplicate, map, persist
  5. Finish the run as ``completed`` or, when orchestration itself fails,
     ``failed``

A failing item never aborts the run; it is rolled back, counted and
recorded in the run's error summary. Under dry-run nothing but the run row
is written.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.config import settings
from okazje.core.exceptions import NotFoundError, ProfileDisabledError, VendorApiError
from okazje.models.oauth_token import OAuthToken
from okazje.schemas.profile import ImportProfileSchema
from okazje.schemas.run import ImportErrorEntry, ImportStats, IngestOptions, IngestResult
from okazje.services.deal_service import DealService
from okazje.services.import_profile_service import ImportProfileService
from okazje.services.import_run_service import ImportRunService
from okazje.services.indexing import IndexingQueue, get_indexing_queue
from okazje.services.mapper import MapperConfig, map_to_deal, map_to_product
from okazje.services.oauth_service import get_valid_token
from okazje.services.product_service import ProductService
from okazje.services.validator import validate_product
from okazje.vendors.base import VendorAdapter
from okazje.vendors.factory import AdapterFactory, get_adapter_factory

logger = structlog.get_logger(__name__)

DEFAULT_POSTED_BY = "system"


class IngestService:
    """Runs import profiles against their vendor adapters."""

    def __init__(
        self,
        db: AsyncSession,
        adapter_factory: Optional[AdapterFactory] = None,
        indexing_queue: Optional[IndexingQueue] = None,
        store_raw_data: Optional[bool] = None,
    ):
        """Initialize the ingest service.

        Args:
            db: Async database session, used for the whole run
            adapter_factory: Factory used to build vendor adapters
            indexing_queue: Queue notified after each persisted document
            store_raw_data: Keep raw vendor JSON in product metadata
        """
        self.db = db
        self.adapter_factory = adapter_factory or get_adapter_factory()
        self.indexing_queue = indexing_queue or get_indexing_queue()
        self.store_raw_data = (
            settings.STORE_RAW_VENDOR_DATA if store_raw_data is None else store_raw_data
        )

        self.profiles = ImportProfileService(db)
        self.runs = ImportRunService(db)
        self.products = ProductService(db)
        self.deals = DealService(db)
        self.logger = logger.bind(service="ingest_service")

    async def _token_provider(
        self, vendor_id: str, account_name: Optional[str]
    ) -> Optional[OAuthToken]:
        return await get_valid_token(self.db, vendor_id, account_name)

    async def run_import(
        self, profile_id: str, options: Optional[IngestOptions] = None
    ) -> IngestResult:
        """Execute one import profile.

        Args:
            profile_id: Import profile to run
            options: Dry-run flag, item cap override and trigger metadata

        Returns:
            IngestResult with the run id, final stats and recorded errors

        Raises:
            NotFoundError: If the profile does not exist
            ProfileDisabledError: If the profile is disabled
        """
        options = options or IngestOptions()

        profile_row = await self.profiles.get_profile(profile_id)
        if profile_row is None:
            raise NotFoundError("ImportProfile", profile_id)
        if not profile_row.enabled:
            raise ProfileDisabledError(profile_id)
        profile = self.profiles.to_schema(profile_row)

        stats = ImportStats()
        errors: List[ImportErrorEntry] = []
        started_at = datetime.now(timezone.utc)

        run = await self.runs.start_run(
            profile_id=profile.id,
            vendor_id=profile.vendor_id,
            dry_run=options.dry_run,
            triggered_by=options.triggered_by,
            triggered_by_uid=options.triggered_by_uid,
            stats=stats.as_record(options.dry_run),
            started_at=started_at,
        )
        run_id = run.id

        log = self.logger.bind(
            run_id=run_id,
            profile_id=profile.id,
            vendor_id=profile.vendor_id,
            dry_run=options.dry_run,
        )
        log.info("import_run_started", triggered_by=options.triggered_by)

        status = "completed"
        try:
            await self._execute(profile, options, stats, errors, log)
        except Exception as e:
            status = "failed"
            log.error("import_run_failed", error=str(e), exc_info=True)
            await self.db.rollback()
            errors.append(
                ImportErrorEntry(
                    code="UNKNOWN",
                    message=str(e) or type(e).__name__,
                    details=e.to_dict() if isinstance(e, VendorApiError) else None,
                )
            )

        record = stats.as_record(options.dry_run)
        await self.runs.finish_run(run_id, status, record, errors, started_at)

        return IngestResult(
            ok=status == "completed",
            dry_run=options.dry_run,
            run_id=run_id,
            stats=record,
            errors=errors,
        )

    async def _execute(
        self,
        profile: ImportProfileSchema,
        options: IngestOptions,
        stats: ImportStats,
        errors: List[ImportErrorEntry],
        log: Any,
    ) -> None:
        adapter = self.adapter_factory.create_adapter(
            profile.vendor_id,
            account_name=profile.account_name,
            token_provider=self._token_provider,
        )

        max_items = (
            options.max_items
            or profile.max_items_per_run
            or settings.DEFAULT_MAX_ITEMS_PER_RUN
        )
        params = adapter.build_search_params(profile, max_items)
        result = await adapter.search(params)

        if result.error is not None:
            log.warning("vendor_search_degraded", code=result.error.code, error=result.error.message)
            errors.append(
                ImportErrorEntry(
                    code="VENDOR_API",
                    message=result.error.message,
                    details=result.error.to_dict(),
                )
            )

        items = result.items[: params.limit]
        stats.fetched = len(items)
        log.info("vendor_search_completed", fetched=stats.fetched, total=result.total)

        config = MapperConfig.from_profile(
            profile,
            imported_by=options.triggered_by_uid,
            store_raw_data=self.store_raw_data,
        )

        for raw in items:
            to_index = await self._process_item(
                adapter, raw, profile, config, options, stats, errors, log
            )
            await self._queue_for_indexing(to_index, log)

    async def _process_item(
        self,
        adapter: VendorAdapter,
        raw: Dict[str, Any],
        profile: ImportProfileSchema,
        config: MapperConfig,
        options: IngestOptions,
        stats: ImportStats,
        errors: List[ImportErrorEntry],
        log: Any,
    ) -> List[Tuple[str, str]]:
        """Validate, deduplicate and persist one raw vendor item.

        Returns:
            (doc_type, doc_id) pairs committed for this item, to be indexed
        """
        item_id: Optional[str] = None
        try:
            item_id = adapter.item_id(raw)
            item = adapter.normalize(raw)

            validation = validate_product(item, profile.filters)
            if not validation.valid:
                stats.skipped += 1
                stats.errors += 1
                errors.append(
                    ImportErrorEntry(code="VALIDATION", message=validation.reason, item_id=item_id)
                )
                log.debug("item_rejected", item_id=item_id, reason=validation.reason)
                return []

            existing = await self.products.find_by_source(item.vendor_id, item.external_id)
            if existing is not None:
                if profile.deduplication_strategy == "skip":
                    stats.skipped += 1
                    stats.duplicates += 1
                    log.debug("duplicate_skipped", item_id=item_id, product_id=existing.id)
                    return []

                if options.dry_run:
                    stats.would_update += 1
                    return []

                product_id = existing.id
                await self.products.refresh_product(existing, map_to_product(item, config))
                await self.db.commit()
                stats.updated += 1
                return [("product", product_id)]

            product_draft = map_to_product(item, config)
            deal_draft = map_to_deal(
                item, config, posted_by=config.imported_by or DEFAULT_POSTED_BY
            )

            if options.dry_run:
                stats.would_create += 1
                log.debug("item_would_create", item_id=item_id, deal=deal_draft is not None)
                return []

            product = await self.products.create_product(product_draft)
            to_index = [("product", product.id)]
            if deal_draft is not None:
                deal = await self.deals.create_deal(deal_draft, product_id=product.id)
                to_index.append(("deal", deal.id))
            await self.db.commit()

            stats.created += len(to_index)
            return to_index

        except Exception as e:
            await self.db.rollback()
            stats.errors += 1
            errors.append(
                ImportErrorEntry(
                    code="UNKNOWN",
                    message=str(e) or type(e).__name__,
                    item_id=item_id,
                )
            )
            log.error("item_processing_failed", item_id=item_id, error=str(e), exc_info=True)
            return []

    async def _queue_for_indexing(self, documents: List[Tuple[str, str]], log: Any) -> None:
        """Best-effort indexing of committed documents; failures are only logged."""
        for doc_type, doc_id in documents:
            try:
                if doc_type == "deal":
                    await self.indexing_queue.queue_deal(doc_id)
                else:
                    await self.indexing_queue.queue_product(doc_id)
            except Exception as e:
                log.warning("indexing_enqueue_failed", doc_type=doc_type, doc_id=doc_id, error=str(e))

    async def get_import_run_status(self, run_id: str):
        """Look up a run by id.

        Raises:
            NotFoundError: If no run has that id
        """
        run = await self.runs.get_run(run_id)
        if run is None:
            raise NotFoundError("ImportRun", run_id)
        return run
