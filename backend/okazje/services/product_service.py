"""Product persistence for imported vendor items.

Products are keyed by (source, original_id). The ingestion pipeline looks a
product up by that key before deciding whether to create, skip or refresh it.
"""

from typing import Optional

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.models.product import Product
from okazje.services.mapper import ProductDraft

logger = structlog.get_logger(__name__)


class ProductService:
    """Service for reading and writing imported products."""

    def __init__(self, db: AsyncSession):
        """Initialize product service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="product_service")

    async def find_by_source(self, source: str, original_id: str) -> Optional[Product]:
        """Find the product previously imported for a vendor item."""
        result = await self.db.execute(
            select(Product).where(
                and_(Product.source == source, Product.original_id == original_id)
            )
        )
        return result.scalar_one_or_none()

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await self.db.get(Product, product_id)

    async def create_product(self, draft: ProductDraft) -> Product:
        """Insert a new product from a mapped draft.

        The row is flushed, not committed; the caller owns the transaction.
        """
        product = Product(
            source=draft.source,
            original_id=draft.original_id,
            name=draft.name,
            description=draft.description,
            long_description=draft.long_description,
            price=draft.price,
            original_price=draft.original_price,
            discount_percent=draft.discount_percent,
            image=draft.image,
            image_hint=draft.image_hint,
            gallery=draft.gallery,
            affiliate_url=draft.affiliate_url,
            rating_card=draft.rating_card,
            main_category_slug=draft.main_category_slug,
            sub_category_slug=draft.sub_category_slug,
            sub_sub_category_slug=draft.sub_sub_category_slug,
            status=draft.status,
            metadata_=draft.metadata,
        )
        self.db.add(product)
        await self.db.flush()

        self.logger.info(
            "product_created",
            product_id=product.id,
            source=draft.source,
            original_id=draft.original_id,
        )
        return product

    async def refresh_product(self, product: Product, draft: ProductDraft) -> Product:
        """Refresh vendor-owned fields of an existing product.

        Prices, discount, media and descriptive text follow the vendor.
        Category placement and moderation status stay as the catalogue has
        them. Metadata is merged so earlier keys survive.
        """
        product.name = draft.name
        product.description = draft.description
        product.long_description = draft.long_description
        product.price = draft.price
        product.original_price = draft.original_price
        product.discount_percent = draft.discount_percent
        product.image = draft.image
        product.image_hint = draft.image_hint
        product.gallery = draft.gallery
        product.affiliate_url = draft.affiliate_url
        product.rating_card = draft.rating_card

        previous = product.metadata_ or {}
        product.metadata_ = {
            **previous,
            **draft.metadata,
            "importedAt": previous.get("importedAt") or draft.metadata.get("importedAt"),
            "refreshedAt": draft.metadata.get("importedAt"),
        }

        await self.db.flush()

        self.logger.info("product_refreshed", product_id=product.id, price=str(draft.price))
        return product
