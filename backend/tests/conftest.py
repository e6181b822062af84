"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import okazje.models  # noqa: F401  (registers every table on Base.metadata)
from okazje.core.exceptions import VendorApiError
from okazje.models.base import Base
from okazje.models.import_profile import ImportProfile
from okazje.schemas.profile import ImportProfileSchema
from okazje.services.indexing import IndexingQueue
from okazje.vendors.base import SearchParams, SearchResult, VendorAdapter, VendorItem, to_decimal
from okazje.vendors.factory import AdapterFactory


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create an in-memory SQLite database session for testing."""
    async with session_factory() as session:
        yield session


# ============================================================================
# IMPORT PROFILES
# ============================================================================

def profile_row(**overrides: Any) -> ImportProfile:
    """Build an enabled allegro profile; keyword arguments override columns."""
    values: Dict[str, Any] = {
        "vendor_id": "allegro",
        "name": "Słuchawki",
        "enabled": True,
        "filters": {"searchQuery": "słuchawki"},
        "mapping": {
            "targetMainCategory": "elektronika",
            "targetSubCategory": "audio",
            "priceMarkup": 10,
        },
        "max_items_per_run": 50,
        "deduplication_strategy": "skip",
        "created_by": "admin-1",
    }
    values.update(overrides)
    return ImportProfile(**values)


@pytest_asyncio.fixture
async def make_profile(test_db: AsyncSession):
    """Persist import profiles built by ``profile_row``."""

    async def _make(**overrides: Any) -> ImportProfile:
        profile = profile_row(**overrides)
        test_db.add(profile)
        await test_db.commit()
        await test_db.refresh(profile)
        return profile

    return _make


@pytest.fixture
def profile_schema() -> ImportProfileSchema:
    return ImportProfileSchema.model_validate(
        {
            "id": "profile-1",
            "vendorId": "allegro",
            "name": "Słuchawki",
            "filters": {"searchQuery": "słuchawki", "minPrice": 50, "maxPrice": 500},
            "mapping": {"targetMainCategory": "elektronika", "targetSubCategory": "audio"},
        }
    )


# ============================================================================
# VENDOR ITEMS
# ============================================================================

def make_item(**overrides: Any) -> VendorItem:
    """A valid, discounted vendor item."""
    values: Dict[str, Any] = {
        "vendor_id": "allegro",
        "external_id": "offer-1",
        "title": "Słuchawki bezprzewodowe XM5",
        "product_url": "https://allegro.pl/oferta/offer-1",
        "current_price": Decimal("100"),
        "original_price": Decimal("200"),
        "image_urls": ["https://img.example.com/1.jpg", "https://img.example.com/2.jpg"],
        "description": "Aktywna redukcja szumów",
        "rating_score": 4.5,
        "rating_count": 120,
    }
    values.update(overrides)
    return VendorItem(**values)


def raw_offer(offer_id: str = "offer-1", **overrides: Any) -> Dict[str, Any]:
    """Raw item in the shape ``FakeAdapter.normalize`` understands."""
    raw: Dict[str, Any] = {
        "id": offer_id,
        "title": f"Słuchawki {offer_id}",
        "url": f"https://allegro.pl/oferta/{offer_id}",
        "price": "100",
        "original_price": "200",
        "images": [f"https://img.example.com/{offer_id}.jpg"],
        "free_shipping": True,
    }
    raw.update(overrides)
    return raw


# ============================================================================
# FAKE VENDOR
# ============================================================================

@dataclass
class FakeVendor:
    """What the fake adapter returns from ``search``."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[Exception] = None
    degraded: Optional[VendorApiError] = None
    searches: List[SearchParams] = field(default_factory=list)


class FakeAdapter(VendorAdapter):
    """In-memory adapter standing in for a real vendor API."""

    vendor_id = "allegro"
    vendor_name = "Fake Allegro"
    max_page_size = 100
    vendor: FakeVendor

    def build_search_params(self, profile: ImportProfileSchema, max_items: int) -> SearchParams:
        return SearchParams(
            query={"phrase": profile.filters.search_query},
            limit=self.page_limit(max_items),
        )

    async def search(self, params: SearchParams) -> SearchResult:
        self.vendor.searches.append(params)
        if self.vendor.error is not None:
            raise self.vendor.error
        return SearchResult(
            items=list(self.vendor.items),
            total=len(self.vendor.items),
            error=self.vendor.degraded,
        )

    async def get_details(self, item_id: str) -> Optional[Dict[str, Any]]:
        return next((raw for raw in self.vendor.items if raw["id"] == item_id), None)

    def normalize(self, raw: Dict[str, Any]) -> VendorItem:
        return VendorItem(
            vendor_id=self.vendor_id,
            external_id=raw["id"],
            title=raw.get("title") or "",
            product_url=raw.get("url") or "",
            current_price=to_decimal(raw.get("price")),
            original_price=to_decimal(raw.get("original_price")),
            image_urls=list(raw.get("images") or []),
            description=raw.get("description"),
            free_shipping=raw.get("free_shipping"),
            merchant=raw.get("merchant", "sklep-audio"),
            raw=raw,
        )


@pytest.fixture
def fake_vendor() -> FakeVendor:
    return FakeVendor()


@pytest.fixture
def adapter_factory(fake_vendor: FakeVendor) -> AdapterFactory:
    """Factory whose allegro adapter is backed by ``fake_vendor``."""
    bound = type("BoundFakeAdapter", (FakeAdapter,), {"vendor": fake_vendor})
    factory = AdapterFactory()
    factory.register_adapter("allegro", bound)
    return factory


@pytest.fixture
def indexing_queue() -> AsyncMock:
    return AsyncMock(spec=IndexingQueue)
