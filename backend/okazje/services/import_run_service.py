"""Import run bookkeeping.

A run row is committed as ``running`` before the vendor is queried and
finished exactly once. Finishing uses an UPDATE statement so it does not
depend on ORM state that a per-item rollback may have expired.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.models.import_run import ImportRun
from okazje.schemas.run import ImportErrorEntry

logger = structlog.get_logger(__name__)


class ImportRunService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="import_run_service")

    async def start_run(
        self,
        profile_id: str,
        vendor_id: str,
        dry_run: bool,
        triggered_by: str,
        triggered_by_uid: Optional[str],
        stats: dict,
        started_at: Optional[datetime] = None,
    ) -> ImportRun:
        """Create and commit a ``running`` run."""
        run = ImportRun(
            profile_id=profile_id,
            vendor_id=vendor_id,
            status="running",
            dry_run=dry_run,
            stats=stats,
            started_at=started_at or datetime.now(timezone.utc),
            triggered_by=triggered_by,
            triggered_by_uid=triggered_by_uid,
        )
        self.db.add(run)
        await self.db.commit()

        self.logger.info("import_run_created", run_id=run.id, profile_id=profile_id, dry_run=dry_run)
        return run

    async def finish_run(
        self,
        run_id: str,
        status: str,
        stats: dict,
        errors: List[ImportErrorEntry],
        started_at: datetime,
    ) -> None:
        """Move a run to its terminal status and commit."""
        if status not in ("completed", "failed"):
            raise ValueError(f"Invalid terminal status: {status}")

        finished_at = datetime.now(timezone.utc)
        duration_ms = int((finished_at - started_at).total_seconds() * 1000)

        await self.db.execute(
            update(ImportRun)
            .where(ImportRun.id == run_id)
            .values(
                status=status,
                stats=stats,
                error_summary=[e.model_dump(mode="json") for e in errors] or None,
                finished_at=finished_at,
                duration_ms=duration_ms,
            )
        )
        await self.db.commit()

        self.logger.info(
            "import_run_finished",
            run_id=run_id,
            status=status,
            duration_ms=duration_ms,
            **stats,
        )

    async def get_run(self, run_id: str) -> Optional[ImportRun]:
        result = await self.db.execute(
            select(ImportRun).where(ImportRun.id == run_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_runs_for_profile(self, profile_id: str, limit: int = 20) -> List[ImportRun]:
        result = await self.db.execute(
            select(ImportRun)
            .where(ImportRun.profile_id == profile_id)
            .order_by(ImportRun.started_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
