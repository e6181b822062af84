"""Pydantic schemas for profiles, runs and the admin API."""

from okazje.schemas.ingest import RunImportRequest
from okazje.schemas.profile import ImportFilters, ImportMapping, ImportProfileSchema
from okazje.schemas.run import (
    ImportErrorEntry,
    ImportRunResponse,
    ImportStats,
    IngestOptions,
    IngestResult,
)

__all__ = [
    "RunImportRequest",
    "ImportFilters",
    "ImportMapping",
    "ImportProfileSchema",
    "ImportErrorEntry",
    "ImportRunResponse",
    "ImportStats",
    "IngestOptions",
    "IngestResult",
]
