"""eBay Browse API adapter.

Documentation: https://developer.ebay.com/api-docs/buy/browse/overview.html
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from okazje.config import settings
from okazje.core.exceptions import VendorAuthError
from okazje.schemas.profile import ImportProfileSchema
from okazje.vendors.base import SearchParams, SearchResult, VendorAdapter, VendorItem, to_decimal


class EbayAdapter(VendorAdapter):
    """eBay Browse API adapter using OAuth application tokens."""

    vendor_id = "ebay"
    vendor_name = "eBay"
    max_page_size = 200
    min_request_interval = 0.5
    item_id_field = "itemId"

    API_BASE_URL = "https://api.ebay.com/buy/browse/v1"
    SANDBOX_API_BASE_URL = "https://api.sandbox.ebay.com/buy/browse/v1"
    PRICE_CEILING = 999999

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.marketplace_id = settings.EBAY_MARKETPLACE_ID or "EBAY_PL"
        self.api_base_url = self.SANDBOX_API_BASE_URL if settings.EBAY_SANDBOX else self.API_BASE_URL

    @classmethod
    def configured_rate_limit(cls) -> int:
        return settings.EBAY_RATE_LIMIT

    def build_search_params(self, profile: ImportProfileSchema, max_items: int) -> SearchParams:
        filters = profile.filters
        filter_parts: List[str] = []

        if filters.min_price or filters.max_price:
            low = filters.min_price or 0
            high = filters.max_price or self.PRICE_CEILING
            filter_parts.append(f"price:[{low}..{high}],priceCurrency:PLN")

        if filters.shipping_type == "free":
            filter_parts.append("deliveryOptions:{FIXED_COST|FREE}")

        query: Dict[str, Any] = {"q": filters.search_query}
        if filter_parts:
            query["filter"] = "|".join(filter_parts)
        if filters.category_filter:
            query["category_ids"] = filters.category_filter

        return SearchParams(query=query, limit=self.page_limit(max_items))

    async def _headers(self) -> Dict[str, str]:
        access_token = await self._get_access_token()
        if not access_token:
            raise VendorAuthError(self.vendor_id, "No valid OAuth token available for vendor ebay")
        return {
            "Authorization": f"Bearer {access_token}",
            "X-EBAY-C-MARKETPLACE-ID": self.marketplace_id,
            "Content-Type": "application/json",
        }

    async def search(self, params: SearchParams) -> SearchResult:
        headers = await self._headers()
        query = dict(params.query, limit=params.limit, offset=0)

        self.logger.info("ebay_search", q=params.query.get("q"), limit=params.limit)
        response = await self._send(
            "GET", f"{self.api_base_url}/item_summary/search", params=query, headers=headers
        )
        if not response.is_success:
            error = self._api_error(response)
            self.logger.error("ebay_search_failed", status_code=response.status_code, code=error.code)
            raise error

        data = response.json()
        for warning in data.get("warnings") or []:
            self.logger.warning("ebay_search_warning", warning=warning)

        items = data.get("itemSummaries") or []
        return SearchResult(items=items, total=int(data.get("total") or len(items)), page=params.page)

    async def get_details(self, item_id: str) -> Optional[Dict[str, Any]]:
        headers = await self._headers()
        response = await self._send("GET", f"{self.api_base_url}/item/{item_id}", headers=headers)
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise self._api_error(response)
        return response.json()

    @staticmethod
    def _seller_rating(seller: Dict[str, Any]) -> Optional[float]:
        """Map positive feedback percentage onto a 0-5 scale."""
        percentage = to_decimal(seller.get("feedbackPercentage"))
        if percentage is None:
            return None
        return round(float(percentage) / 100 * 5, 2)

    def normalize(self, raw: Dict[str, Any]) -> VendorItem:
        price = raw.get("price") or {}
        marketing = raw.get("marketingPrice") or {}
        original = (marketing.get("originalPrice") or raw.get("originalPrice") or {}).get("value")
        seller = raw.get("seller") or {}

        image_urls: List[str] = []
        primary = (raw.get("image") or {}).get("imageUrl")
        if primary:
            image_urls.append(primary)
        for image in raw.get("additionalImages") or []:
            url = image.get("imageUrl")
            if url and url not in image_urls:
                image_urls.append(url)

        free_shipping: Optional[bool] = None
        shipping_cost: Optional[Decimal] = None
        shipping_options = raw.get("shippingOptions") or []
        if shipping_options:
            option = shipping_options[0]
            shipping_cost = to_decimal((option.get("shippingCost") or {}).get("value"))
            free_shipping = option.get("shippingCostType") == "FREE" or shipping_cost == 0

        discount = marketing.get("discountPercentage")

        categories = [
            c.get("categoryName") or c.get("categoryId")
            for c in raw.get("categories") or []
            if c.get("categoryName") or c.get("categoryId")
        ]
        if not categories and raw.get("categoryPath"):
            categories = raw["categoryPath"].split("|")

        return VendorItem(
            vendor_id=self.vendor_id,
            external_id=str(raw.get("itemId") or ""),
            title=raw.get("title") or "",
            product_url=raw.get("itemAffiliateWebUrl") or raw.get("itemWebUrl") or "",
            current_price=to_decimal(price.get("value")),
            original_price=to_decimal(original),
            currency=price.get("currency") or "PLN",
            image_urls=image_urls,
            description=raw.get("shortDescription"),
            long_description=raw.get("description"),
            rating_score=self._seller_rating(seller),
            rating_count=seller.get("feedbackScore"),
            discount_percent=float(discount) if discount is not None else None,
            free_shipping=free_shipping,
            shipping_cost=shipping_cost,
            merchant=seller.get("username"),
            category_path=categories,
            raw=raw,
        )
