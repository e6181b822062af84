"""Vendor-neutral mapping of normalized vendor items to catalogue drafts.

Every vendor adapter normalizes its JSON into a ``VendorItem``; the
functions here turn that item into a ``ProductDraft`` and, when the item is
discounted enough, a ``DealDraft``. Apart from ``now`` the output depends
only on the item and the ``MapperConfig``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from okazje.schemas.profile import ImportProfileSchema

if TYPE_CHECKING:
    from okazje.vendors.base import VendorItem


MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 300
MAX_DEAL_TITLE_BASE = 150
MAX_DEAL_DESCRIPTION_LENGTH = 500
DEAL_DISCOUNT_THRESHOLD = 20
FREE_SHIPPING_TEXT = "Darmowa wysyłka"

_CENT = Decimal("0.01")


@dataclass
class MapperConfig:
    """Catalogue placement and pricing rules taken from an import profile."""

    vendor_id: str
    main_category_slug: str
    sub_category_slug: str
    sub_sub_category_slug: Optional[str] = None
    price_markup: Optional[float] = None
    default_status: str = "draft"
    imported_by: Optional[str] = None
    store_raw_data: bool = False

    @classmethod
    def from_profile(
        cls,
        profile: ImportProfileSchema,
        imported_by: Optional[str] = None,
        store_raw_data: bool = False,
    ) -> "MapperConfig":
        mapping = profile.mapping
        return cls(
            vendor_id=profile.vendor_id,
            main_category_slug=mapping.target_main_category,
            sub_category_slug=mapping.target_sub_category,
            sub_sub_category_slug=mapping.target_sub_sub_category,
            price_markup=mapping.price_markup,
            default_status=mapping.default_status or "draft",
            imported_by=imported_by or profile.created_by,
            store_raw_data=store_raw_data,
        )


@dataclass
class ProductDraft:
    """Product fields ready to be persisted."""

    source: str
    original_id: str
    name: str
    description: str
    long_description: str
    price: Decimal
    image: str
    image_hint: str
    affiliate_url: str
    main_category_slug: str
    sub_category_slug: str
    status: str
    original_price: Optional[Decimal] = None
    discount_percent: Optional[int] = None
    sub_sub_category_slug: Optional[str] = None
    gallery: List[Dict[str, Any]] = field(default_factory=list)
    rating_card: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DealDraft:
    """Deal fields ready to be persisted."""

    title: str
    description: str
    price: Decimal
    link: str
    image: str
    image_hint: str
    posted_by: str
    posted_at: datetime
    created_by: str
    category: str
    main_category_slug: str
    sub_category_slug: str
    status: str
    original_price: Optional[Decimal] = None
    sub_sub_category_slug: Optional[str] = None
    merchant: Optional[str] = None
    shipping_cost: Optional[Decimal] = None
    vote_count: int = 0
    temperature: int = 0
    comments_count: int = 0


def apply_markup(price: Decimal, markup: Optional[float]) -> Decimal:
    """Add a percentage markup and round half-up to two decimals.

    >>> apply_markup(Decimal("100"), 10)
    Decimal('110.00')
    """
    if markup is None or markup <= 0:
        return Decimal(price).quantize(_CENT, rounding=ROUND_HALF_UP)
    factor = Decimal(1) + Decimal(str(markup)) / Decimal(100)
    return (Decimal(price) * factor).quantize(_CENT, rounding=ROUND_HALF_UP)


def calculate_discount_percent(
    original: Optional[Decimal], current: Decimal
) -> Optional[int]:
    """Whole-number discount of ``current`` against ``original``.

    Returns None when there is no positive original price.
    """
    if original is None or original <= 0:
        return None
    percent = (Decimal(original) - Decimal(current)) / Decimal(original) * 100
    return int(percent.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _round_percent(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def effective_discount_percent(item: "VendorItem") -> Optional[int]:
    """Vendor-reported discount, or the one implied by the two prices."""
    if item.discount_percent is not None:
        return _round_percent(item.discount_percent)
    return calculate_discount_percent(item.original_price, item.current_price)


def truncate_name(title: str) -> str:
    if len(title) > MAX_NAME_LENGTH:
        return title[: MAX_NAME_LENGTH - 3] + "..."
    return title


def shipping_text(item: "VendorItem") -> Optional[str]:
    if item.shipping_info:
        return item.shipping_info
    if item.free_shipping:
        return FREE_SHIPPING_TEXT
    return None


def build_gallery(item: "VendorItem", now: datetime) -> List[Dict[str, Any]]:
    added_at = now.isoformat()
    return [
        {
            "id": f"{item.external_id}-{index}",
            "type": "url",
            "src": url,
            "alt": truncate_name(item.title),
            "isPrimary": index == 0,
            "source": item.vendor_id,
            "addedAt": added_at,
        }
        for index, url in enumerate(item.image_urls)
    ]


def build_rating_card(item: "VendorItem") -> Dict[str, Any]:
    # Vendors expose one overall score; it seeds every dimension.
    score = item.rating_score or 0
    return {
        "average": score,
        "count": item.rating_count or 0,
        "durability": score,
        "easeOfUse": score,
        "valueForMoney": score,
        "versatility": score,
    }


def map_to_product(
    item: "VendorItem", config: MapperConfig, now: Optional[datetime] = None
) -> ProductDraft:
    """Build the catalogue product for a vendor item."""
    now = now or datetime.now(timezone.utc)
    markup = config.price_markup

    metadata: Dict[str, Any] = {
        "source": item.vendor_id,
        "originalId": item.external_id,
        "importedAt": now.isoformat(),
        "rawDataStored": config.store_raw_data,
    }
    optional_metadata = {
        "importedBy": config.imported_by,
        "merchant": item.merchant,
        "shipping": shipping_text(item),
        "orders": item.orders,
        "currency": item.currency,
    }
    metadata.update({k: v for k, v in optional_metadata.items() if v is not None})
    if config.store_raw_data:
        metadata["rawData"] = item.raw

    description = (item.description or "")[:MAX_DESCRIPTION_LENGTH] or item.title[:MAX_DESCRIPTION_LENGTH]

    return ProductDraft(
        source=item.vendor_id,
        original_id=item.external_id,
        name=truncate_name(item.title),
        description=description,
        long_description=item.long_description or item.description or item.title,
        price=apply_markup(item.current_price, markup),
        original_price=(
            apply_markup(item.original_price, markup) if item.original_price is not None else None
        ),
        discount_percent=calculate_discount_percent(item.original_price, item.current_price),
        image=item.image_urls[0] if item.image_urls else "",
        image_hint=truncate_name(item.title),
        gallery=build_gallery(item, now),
        affiliate_url=item.product_url,
        rating_card=build_rating_card(item),
        main_category_slug=config.main_category_slug,
        sub_category_slug=config.sub_category_slug,
        sub_sub_category_slug=config.sub_sub_category_slug,
        status=config.default_status or "draft",
        metadata=metadata,
    )


def is_deal_worthy(item: "VendorItem") -> bool:
    discount = effective_discount_percent(item)
    if discount is not None and discount >= DEAL_DISCOUNT_THRESHOLD:
        return True
    return item.original_price is not None and item.original_price > item.current_price


def map_to_deal(
    item: "VendorItem",
    config: MapperConfig,
    posted_by: str,
    now: Optional[datetime] = None,
) -> Optional[DealDraft]:
    """Build a deal for a discounted item, or None when it does not qualify."""
    if not is_deal_worthy(item):
        return None

    now = now or datetime.now(timezone.utc)
    markup = config.price_markup
    discount = effective_discount_percent(item)

    title = item.title[:MAX_DEAL_TITLE_BASE]
    if discount is not None:
        title = f"{title} -{discount}%"
    title = title.strip()

    description = (item.description or "")[:MAX_DEAL_DESCRIPTION_LENGTH] or item.title
    if item.free_shipping:
        description += f"\n\n✓ {FREE_SHIPPING_TEXT}"

    if item.free_shipping:
        shipping_cost: Optional[Decimal] = Decimal("0")
    else:
        shipping_cost = item.shipping_cost

    return DealDraft(
        title=title,
        description=description,
        price=apply_markup(item.current_price, markup),
        original_price=(
            apply_markup(item.original_price, markup) if item.original_price is not None else None
        ),
        link=item.product_url,
        image=item.image_urls[0] if item.image_urls else "",
        image_hint=truncate_name(item.title),
        posted_by=posted_by,
        posted_at=now,
        created_by=posted_by,
        category=config.main_category_slug,
        main_category_slug=config.main_category_slug,
        sub_category_slug=config.sub_category_slug,
        sub_sub_category_slug=config.sub_sub_category_slug,
        merchant=item.merchant,
        shipping_cost=shipping_cost,
        status=config.default_status or "draft",
    )
