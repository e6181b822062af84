"""Deal model: a time-sensitive offer shown in the deals feed."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from okazje.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from okazje.models.product import Product


class Deal(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A discounted offer created alongside an imported product.

    Community counters (votes, temperature, comments) start at zero.
    """

    __tablename__ = "deals"

    product_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    link: Mapped[str] = mapped_column(String(2000), nullable=False)
    image: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    image_hint: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    posted_by: Mapped[str] = mapped_column(String(128), nullable=False)
    posted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    temperature: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Legacy single-slug category plus the three-level hierarchy
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    main_category_slug: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    sub_category_slug: Mapped[str] = mapped_column(String(100), nullable=False)
    sub_sub_category_slug: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    merchant: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    shipping_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="draft", comment="draft | approved | rejected"
    )

    product: Mapped[Optional["Product"]] = relationship(back_populates="deals")

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, title='{self.title[:50]}', price={self.price})>"
