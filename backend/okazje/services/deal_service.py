"""Deal persistence."""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.models.deal import Deal
from okazje.services.mapper import DealDraft

logger = structlog.get_logger(__name__)


class DealService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="deal_service")

    async def create_deal(self, draft: DealDraft, product_id: Optional[str] = None) -> Deal:
        """Insert a deal linked to its product; flushed, not committed."""
        deal = Deal(
            product_id=product_id,
            title=draft.title,
            description=draft.description,
            price=draft.price,
            original_price=draft.original_price,
            link=draft.link,
            image=draft.image,
            image_hint=draft.image_hint,
            posted_by=draft.posted_by,
            posted_at=draft.posted_at,
            created_by=draft.created_by,
            vote_count=draft.vote_count,
            temperature=draft.temperature,
            comments_count=draft.comments_count,
            category=draft.category,
            main_category_slug=draft.main_category_slug,
            sub_category_slug=draft.sub_category_slug,
            sub_sub_category_slug=draft.sub_sub_category_slug,
            merchant=draft.merchant,
            shipping_cost=draft.shipping_cost,
            status=draft.status,
        )
        self.db.add(deal)
        await self.db.flush()

        self.logger.info("deal_created", deal_id=deal.id, product_id=product_id, price=str(draft.price))
        return deal
