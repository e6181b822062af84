"""APScheduler-based import scheduler.

Runs every enabled import profile at a fixed interval with
``triggered_by="scheduled"``. Each profile gets its own job so a slow vendor
never delays the others, and ``max_instances=1`` keeps two runs of the same
profile from overlapping.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from okazje.schemas.run import IngestOptions, IngestResult
from okazje.services.import_profile_service import ImportProfileService
from okazje.services.ingest_service import IngestService
from okazje.vendors.factory import AdapterFactory

logger = structlog.get_logger(__name__)


class ImportScheduler:
    """Manages periodic import jobs using APScheduler."""

    def __init__(
        self,
        db_session_factory: async_sessionmaker[AsyncSession],
        interval_minutes: int = 360,
        adapter_factory: Optional[AdapterFactory] = None,
    ):
        """Initialize import scheduler.

        Args:
            db_session_factory: Async session factory for database access
            interval_minutes: How often each profile runs
            adapter_factory: Factory passed through to IngestService
        """
        self.db_session_factory = db_session_factory
        self.interval_minutes = interval_minutes
        self.adapter_factory = adapter_factory
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="import_scheduler")
        self._job_ids: Dict[str, str] = {}  # profile_id -> job_id

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            self.logger.info("scheduler_started")
        else:
            self.logger.warning("scheduler_already_running")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    async def load_profile_jobs(self) -> int:
        """Schedule a job for every enabled profile.

        Returns:
            Number of jobs scheduled
        """
        async with self.db_session_factory() as db:
            profiles = await ImportProfileService(db).list_enabled_profiles()
            profile_ids = [p.id for p in profiles]

        jobs_added = 0
        for idx, profile_id in enumerate(profile_ids):
            # Stagger first runs by 30 seconds per profile
            if self.add_profile_job(profile_id, offset_seconds=idx * 30):
                jobs_added += 1

        self.logger.info("profile_jobs_loaded", count=jobs_added)
        return jobs_added

    def add_profile_job(self, profile_id: str, offset_seconds: int = 0) -> Optional[Job]:
        """Add a periodic import job for a profile.

        Returns:
            APScheduler Job instance or None if one already exists
        """
        if profile_id in self._job_ids:
            self.logger.warning("job_already_exists", profile_id=profile_id)
            return None

        trigger = IntervalTrigger(
            minutes=self.interval_minutes,
            start_date=datetime.now(timezone.utc) + timedelta(seconds=offset_seconds),
            timezone="UTC",
        )
        job = self.scheduler.add_job(
            func=self._run_profile_wrapper,
            trigger=trigger,
            args=[profile_id],
            id=f"import_{profile_id}",
            name=f"Import {profile_id}",
            replace_existing=True,
            max_instances=1,
        )
        self._job_ids[profile_id] = job.id

        self.logger.info(
            "profile_job_added",
            profile_id=profile_id,
            interval_minutes=self.interval_minutes,
            offset_seconds=offset_seconds,
        )
        return job

    def remove_profile_job(self, profile_id: str) -> bool:
        job_id = self._job_ids.pop(profile_id, None)
        if not job_id:
            self.logger.warning("job_not_found", profile_id=profile_id)
            return False

        self.scheduler.remove_job(job_id)
        self.logger.info("profile_job_removed", profile_id=profile_id)
        return True

    async def _run_profile_wrapper(self, profile_id: str) -> None:
        """Entry point called by APScheduler.

        Exceptions are logged so a failing profile never stops the scheduler.
        """
        try:
            await self.run_profile(profile_id)
        except Exception as e:
            self.logger.error(
                "import_job_failed",
                profile_id=profile_id,
                error=str(e),
                exc_info=True,
            )

    async def run_profile(self, profile_id: str) -> IngestResult:
        """Run one scheduled import for ``profile_id``."""
        self.logger.info("starting_import_job", profile_id=profile_id)

        async with self.db_session_factory() as db:
            service = IngestService(db, adapter_factory=self.adapter_factory)
            result = await service.run_import(
                profile_id, IngestOptions(triggered_by="scheduled")
            )

        self.logger.info(
            "import_job_completed",
            profile_id=profile_id,
            run_id=result.run_id,
            ok=result.ok,
            **result.stats,
        )
        return result

    def get_jobs_status(self) -> dict:
        jobs = {}
        for profile_id, job_id in self._job_ids.items():
            job = self.scheduler.get_job(job_id)
            if job:
                # Jobs added before start() have no next_run_time yet
                next_run = getattr(job, "next_run_time", None)
                jobs[profile_id] = {
                    "job_id": job_id,
                    "next_run": next_run.isoformat() if next_run else None,
                    "trigger": str(job.trigger),
                }
        return jobs

    def is_running(self) -> bool:
        return self.scheduler.running
