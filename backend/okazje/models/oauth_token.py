"""OAuth access tokens for vendor APIs.

Tokens are obtained and refreshed elsewhere; this service only reads them.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from okazje.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class OAuthToken(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "oauth_tokens"

    vendor_id: Mapped[str] = mapped_column(String(32), nullable=False)
    account_name: Mapped[str] = mapped_column(String(100), nullable=False, default="default")
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="active", comment="active | expired | revoked"
    )
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_oauth_tokens_vendor_status", "vendor_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<OAuthToken(vendor={self.vendor_id}, account={self.account_name}, status={self.status})>"
