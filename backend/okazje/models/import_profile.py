"""Import profile: saved configuration for one vendor import."""

from typing import Optional

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from okazje.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ImportProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Which vendor to query, how to filter results and how to map them.

    ``filters`` and ``mapping`` hold the JSON shapes validated by
    ``okazje.schemas.profile.ImportFilters`` and ``ImportMapping``.
    The ingestion pipeline only ever reads profiles.
    """

    __tablename__ = "import_profiles"

    vendor_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    account_name: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, comment="OAuth account to use for this vendor"
    )

    filters: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    mapping: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    max_items_per_run: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    deduplication_strategy: Mapped[str] = mapped_column(
        String(16), nullable=False, default="skip", comment="skip | update"
    )
    created_by: Mapped[str] = mapped_column(String(128), nullable=False, default="system")

    def __repr__(self) -> str:
        return f"<ImportProfile(id={self.id}, vendor={self.vendor_id}, enabled={self.enabled})>"
