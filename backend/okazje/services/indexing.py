"""Search indexing queue.

Imported products and deals are pushed onto a Redis list that the search
indexer consumes. Queueing is fire-and-forget: any queue failure is logged
and never fails an import.
"""

import json
from datetime import datetime, timezone
from typing import Optional

import structlog
from redis.asyncio import Redis, from_url

from okazje.config import settings

logger = structlog.get_logger(__name__)


class IndexingQueue:
    """Async Redis-backed queue of documents awaiting (re)indexing."""

    def __init__(self, redis_url: str, key_prefix: str, enabled: bool = True):
        """Initialize the queue.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            key_prefix: Prefix for the per-type list keys
            enabled: When False, items are only logged
        """
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.enabled = enabled
        self._redis: Optional[Redis] = None
        self.logger = logger.bind(service="indexing_queue")

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)
        return self._redis

    def key_for(self, doc_type: str) -> str:
        return f"{self.key_prefix}:{doc_type}"

    async def enqueue(self, doc_type: str, doc_id: str) -> bool:
        """Push one document onto the queue.

        Returns:
            True if queued, False if disabled or Redis failed
        """
        if not self.enabled:
            self.logger.debug("indexing_queue_disabled", doc_type=doc_type, doc_id=doc_id)
            return False

        message = json.dumps(
            {
                "type": doc_type,
                "id": doc_id,
                "queued_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        try:
            redis = await self._get_redis()
            await redis.lpush(self.key_for(doc_type), message)
            self.logger.debug("indexing_queued", doc_type=doc_type, doc_id=doc_id)
            return True
        except Exception as e:
            self.logger.error(
                "indexing_queue_failed",
                doc_type=doc_type,
                doc_id=doc_id,
                error=str(e),
                exc_info=True,
            )
            return False

    async def queue_product(self, product_id: str) -> bool:
        return await self.enqueue("product", product_id)

    async def queue_deal(self, deal_id: str) -> bool:
        return await self.enqueue("deal", deal_id)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


# Global queue instance
_queue_instance: Optional[IndexingQueue] = None


def get_indexing_queue() -> IndexingQueue:
    """Get or create the global indexing queue."""
    global _queue_instance

    if _queue_instance is None:
        _queue_instance = IndexingQueue(
            settings.REDIS_URL,
            settings.INDEXING_QUEUE_KEY_PREFIX,
            enabled=settings.INDEXING_QUEUE_ENABLED,
        )
    return _queue_instance


async def queue_product_for_indexing(product_id: str) -> bool:
    return await get_indexing_queue().queue_product(product_id)


async def queue_deal_for_indexing(deal_id: str) -> bool:
    return await get_indexing_queue().queue_deal(deal_id)
