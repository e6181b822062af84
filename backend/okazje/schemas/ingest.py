"""Pydantic schemas for the admin import trigger endpoint."""

from typing import Optional

from pydantic import BaseModel, Field


class RunImportRequest(BaseModel):
    """Body of ``POST /api/v1/imports/run``.

    The shared secret travels in the body so a cron job or admin script only
    needs a plain JSON POST.
    """

    api_key: str = Field(..., min_length=1, description="Must match INGEST_API_KEY")
    profile_id: str = Field(..., min_length=1, description="Import profile to execute")
    dry_run: bool = Field(False, description="Evaluate items without writing products or deals")
    max_items: Optional[int] = Field(
        None,
        ge=1,
        le=200,
        description="Override the profile's max_items_per_run",
        examples=[20],
    )
    triggered_by_uid: Optional[str] = Field(
        None, description="Admin user id recorded on the run"
    )
