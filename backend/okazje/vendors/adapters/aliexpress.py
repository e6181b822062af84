"""AliExpress open platform adapter.

Authenticates with a stored OAuth token when one is available, otherwise
signs each request with the app key/secret (MD5 TOP signature). Search
failures reported by the API are returned on ``SearchResult.error`` rather
than raised, so a run against a flaky AliExpress endpoint still completes.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from okazje.config import settings
from okazje.core.exceptions import VendorApiError, VendorAuthError
from okazje.schemas.profile import ImportProfileSchema
from okazje.vendors.base import SearchParams, SearchResult, VendorAdapter, VendorItem, to_decimal
from okazje.vendors.utils.signing import top_md5_signature


class AliExpressAdapter(VendorAdapter):
    """AliExpress product search adapter."""

    vendor_id = "aliexpress"
    vendor_name = "AliExpress"
    max_page_size = 50
    min_request_interval = 0.5
    item_id_field = "item_id"

    SEARCH_PATH = "/product/search"
    DETAILS_PATH = "/product/details"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.app_key = settings.ALIEXPRESS_APP_KEY
        self.app_secret = settings.ALIEXPRESS_APP_SECRET
        self.api_endpoint = settings.ALIEXPRESS_API_ENDPOINT.rstrip("/")

    @classmethod
    def configured_rate_limit(cls) -> int:
        return settings.ALIEXPRESS_RATE_LIMIT

    def build_search_params(self, profile: ImportProfileSchema, max_items: int) -> SearchParams:
        filters = profile.filters
        query = {
            "q": filters.search_query,
            "minPrice": filters.min_price,
            "maxPrice": filters.max_price,
            "minRating": filters.min_rating,
            "minDiscount": filters.min_discount,
            "shippingType": filters.shipping_type,
            "category": filters.category_filter,
        }
        return SearchParams(
            query={k: v for k, v in query.items() if v is not None},
            limit=self.page_limit(max_items),
        )

    async def _request_params(self, method: str, params: Dict[str, Any]) -> Tuple[dict, dict]:
        """Attach authentication to a request.

        Returns:
            (query params, headers)
        """
        query = {k: str(v) for k, v in params.items() if v is not None}

        access_token = await self._get_access_token()
        if access_token:
            return query, {"Authorization": f"Bearer {access_token}"}

        if not self.app_key or not self.app_secret:
            raise VendorAuthError(
                self.vendor_id,
                "No OAuth token and ALIEXPRESS_APP_KEY / ALIEXPRESS_APP_SECRET are not set",
            )

        query.update(
            {
                "app_key": self.app_key,
                "method": method,
                "sign_method": "md5",
                "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
                "format": "json",
                "v": "2.0",
            }
        )
        query["sign"] = top_md5_signature(query, self.app_secret)
        return query, {}

    async def search(self, params: SearchParams) -> SearchResult:
        query = dict(params.query, limit=params.limit, page=params.page)
        request_params, headers = await self._request_params("aliexpress.product.search", query)

        self.logger.info("aliexpress_search", query=params.query.get("q"), limit=params.limit)
        response = await self._send(
            "GET",
            f"{self.api_endpoint}{self.SEARCH_PATH}",
            params=request_params,
            headers=headers,
        )

        if not response.is_success:
            error = self._api_error(response)
            self.logger.error(
                "aliexpress_search_failed",
                status_code=response.status_code,
                code=error.code,
                error=error.message,
            )
            return SearchResult(page=params.page, error=error)

        data = response.json()
        if data.get("success") is False:
            err = data.get("error") or {}
            error = VendorApiError(
                self.vendor_id,
                str(err.get("code") or "SEARCH_FAILED"),
                err.get("message") or "AliExpress search failed",
                details=err,
            )
            self.logger.error("aliexpress_search_failed", code=error.code, error=error.message)
            return SearchResult(page=params.page, error=error)

        products = data.get("products") or []
        return SearchResult(
            items=products,
            total=int(data.get("total") or len(products)),
            page=int(data.get("page") or params.page),
        )

    async def get_details(self, item_id: str) -> Optional[Dict[str, Any]]:
        request_params, headers = await self._request_params(
            "aliexpress.product.details", {"productId": item_id}
        )
        response = await self._send(
            "GET",
            f"{self.api_endpoint}{self.DETAILS_PATH}",
            params=request_params,
            headers=headers,
        )
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise self._api_error(response)

        data = response.json()
        if data.get("success") is False:
            self.logger.warning("aliexpress_details_missing", item_id=item_id, error=data.get("error"))
            return None
        return data.get("product")

    def normalize(self, raw: Dict[str, Any]) -> VendorItem:
        price = raw.get("price") or {}
        rating = raw.get("rating") or {}
        shipping = raw.get("shipping") or {}
        merchant = raw.get("merchant") or {}

        return VendorItem(
            vendor_id=self.vendor_id,
            external_id=str(raw.get("item_id") or ""),
            title=raw.get("title") or "",
            product_url=raw.get("product_url") or "",
            current_price=to_decimal(price.get("current")),
            original_price=to_decimal(price.get("original")),
            currency=price.get("currency") or "PLN",
            image_urls=[url for url in raw.get("image_urls") or [] if url],
            description=raw.get("description"),
            rating_score=rating.get("score"),
            rating_count=rating.get("count"),
            orders=raw.get("sales"),
            discount_percent=raw.get("discount_percent"),
            free_shipping=shipping.get("free") if shipping else None,
            shipping_cost=to_decimal(shipping.get("cost")),
            shipping_info=shipping.get("info"),
            merchant=merchant.get("name"),
            category_path=list(raw.get("category_path") or []),
            raw=raw,
        )
