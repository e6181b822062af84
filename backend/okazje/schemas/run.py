"""Schemas describing import runs, their counters and their outcome."""

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ImportErrorCode = Literal["VALIDATION", "VENDOR_API", "UNKNOWN"]


class ImportErrorEntry(BaseModel):
    """A single problem recorded in a run's error summary."""

    code: ImportErrorCode
    message: str
    item_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    details: Optional[Any] = None


class ImportStats(BaseModel):
    """Per-run counters.

    A created deal counts towards ``created`` on top of its product. Dry-run
    runs use ``would_create`` and ``would_update`` instead of ``created`` and
    ``updated``.
    """

    fetched: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    duplicates: int = 0
    would_create: int = 0
    would_update: int = 0

    def as_record(self, dry_run: bool) -> dict:
        """Counters as stored on the run, shaped for live or dry-run mode."""
        if dry_run:
            return self.model_dump(exclude={"created", "updated"})
        return self.model_dump(exclude={"would_create", "would_update"})


class IngestOptions(BaseModel):
    dry_run: bool = False
    max_items: Optional[int] = Field(None, ge=1)
    triggered_by: Literal["scheduled", "manual"] = "manual"
    triggered_by_uid: Optional[str] = None


class IngestResult(BaseModel):
    """Outcome of one ``IngestService.run_import`` call."""

    ok: bool
    dry_run: bool
    run_id: str
    stats: dict
    errors: List[ImportErrorEntry] = Field(default_factory=list)


class ImportRunResponse(BaseModel):
    """Read model for an ``ImportRun`` row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    profile_id: str
    vendor_id: str
    status: Literal["running", "completed", "failed"]
    dry_run: bool
    stats: dict
    error_summary: Optional[List[dict]] = None
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    triggered_by: str
    triggered_by_uid: Optional[str] = None
