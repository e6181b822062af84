"""Import run tracking and monitoring."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from okazje.models.base import Base, UUIDPrimaryKeyMixin, utcnow


class ImportRun(UUIDPrimaryKeyMixin, Base):
    """One execution of an import profile.

    Created with status ``running`` before the vendor is queried and
    updated exactly once to ``completed`` or ``failed``.
    """

    __tablename__ = "import_runs"

    profile_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    vendor_id: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="running", comment="running | completed | failed"
    )
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    stats: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    error_summary: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    triggered_by: Mapped[str] = mapped_column(
        String(16), nullable=False, default="manual", comment="scheduled | manual"
    )
    triggered_by_uid: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        Index("idx_import_runs_profile_started", "profile_id", "started_at"),
    )

    def __repr__(self) -> str:
        return f"<ImportRun(id={self.id}, profile={self.profile_id}, status={self.status})>"
