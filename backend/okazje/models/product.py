"""Catalogue product created from a vendor listing."""

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from okazje.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from okazje.models.deal import Deal


class Product(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Product imported from a vendor.

    Each imported product is uniquely identified by its (source, original_id)
    pair, which is the deduplication key of the ingestion pipeline.
    """

    __tablename__ = "products"

    # Provenance
    source: Mapped[str] = mapped_column(String(32), nullable=False, comment="Vendor id")
    original_id: Mapped[str] = mapped_column(
        String(200), nullable=False, comment="Item id at the vendor"
    )

    # Content
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    long_description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Pricing
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    discount_percent: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Media and links
    image: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    image_hint: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    gallery: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    affiliate_url: Mapped[str] = mapped_column(String(2000), nullable=False)

    rating_card: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Categorization
    main_category_slug: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    sub_category_slug: Mapped[str] = mapped_column(String(100), nullable=False)
    sub_sub_category_slug: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="draft", comment="draft | approved | rejected"
    )

    metadata_: Mapped[dict] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
        comment="Import provenance: source, originalId, importedAt, merchant, ...",
    )

    __table_args__ = (
        UniqueConstraint("source", "original_id", name="uq_product_source_original"),
        Index("idx_products_status", "status"),
    )

    deals: Mapped[list["Deal"]] = relationship(back_populates="product")

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name[:50]}', source={self.source})>"
