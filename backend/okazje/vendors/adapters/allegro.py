"""Allegro REST API adapter.

Allegro only accepts OAuth bearer tokens; tokens are read from the
``oauth_tokens`` table and never refreshed here. Documentation:
https://developer.allegro.pl/documentation
"""

from typing import Any, Dict, List, Optional

from okazje.config import settings
from okazje.core.exceptions import VendorAuthError
from okazje.schemas.profile import ImportProfileSchema
from okazje.vendors.base import SearchParams, SearchResult, VendorAdapter, VendorItem, to_decimal


class AllegroAdapter(VendorAdapter):
    """Allegro offer listing adapter."""

    vendor_id = "allegro"
    vendor_name = "Allegro"
    max_page_size = 100
    min_request_interval = 0.5

    API_BASE_URL = "https://api.allegro.pl"
    SANDBOX_API_BASE_URL = "https://api.allegro.pl.allegrosandbox.pl"
    OFFER_URL = "https://allegro.pl/oferta/{offer_id}"
    SANDBOX_OFFER_URL = "https://allegro.pl.allegrosandbox.pl/oferta/{offer_id}"
    MEDIA_TYPE = "application/vnd.allegro.public.v1+json"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.sandbox = settings.ALLEGRO_SANDBOX
        self.api_base_url = self.SANDBOX_API_BASE_URL if self.sandbox else self.API_BASE_URL

    @classmethod
    def configured_rate_limit(cls) -> int:
        return settings.ALLEGRO_RATE_LIMIT

    def build_search_params(self, profile: ImportProfileSchema, max_items: int) -> SearchParams:
        filters = profile.filters
        query: Dict[str, Any] = {
            "phrase": filters.search_query,
            "parameter.price.from": filters.min_price,
            "parameter.price.to": filters.max_price,
            "delivery.free": True if filters.shipping_type == "free" else None,
            "category.id": filters.category_filter,
        }
        return SearchParams(
            query={k: v for k, v in query.items() if v is not None},
            limit=self.page_limit(max_items),
        )

    async def _headers(self) -> Dict[str, str]:
        access_token = await self._get_access_token()
        if not access_token:
            account = f" (account: {self.account_name})" if self.account_name else ""
            raise VendorAuthError(
                self.vendor_id, f"No valid OAuth token available for vendor allegro{account}"
            )
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": self.MEDIA_TYPE,
        }

    async def search(self, params: SearchParams) -> SearchResult:
        headers = await self._headers()
        query = {k: str(v).lower() if isinstance(v, bool) else str(v) for k, v in params.query.items()}
        query.update(limit=str(params.limit), offset="0")

        self.logger.info("allegro_search", phrase=params.query.get("phrase"), limit=params.limit)
        response = await self._send(
            "GET", f"{self.api_base_url}/offers/listing", params=query, headers=headers
        )
        if not response.is_success:
            error = self._api_error(response)
            self.logger.error(
                "allegro_search_failed", status_code=response.status_code, code=error.code
            )
            raise error

        data = response.json()
        items = data.get("items") or {}
        offers: List[Dict[str, Any]] = list(items.get("promoted") or []) + list(
            items.get("regular") or []
        )
        total = (data.get("searchMeta") or {}).get("totalCount") or data.get("totalCount") or len(offers)
        return SearchResult(items=offers, total=int(total), page=params.page)

    async def get_details(self, item_id: str) -> Optional[Dict[str, Any]]:
        headers = await self._headers()
        response = await self._send(
            "GET", f"{self.api_base_url}/sale/product-offers/{item_id}", headers=headers
        )
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise self._api_error(response)
        return response.json()

    def offer_url(self, offer_id: str) -> str:
        template = self.SANDBOX_OFFER_URL if self.sandbox else self.OFFER_URL
        return template.format(offer_id=offer_id)

    def normalize(self, raw: Dict[str, Any]) -> VendorItem:
        offer_id = str(raw.get("id") or "")
        selling_mode = raw.get("sellingMode") or {}
        price = selling_mode.get("price") or {}
        delivery = raw.get("delivery") or {}
        lowest = delivery.get("lowestPrice") or {}
        seller = raw.get("seller") or {}
        publication = raw.get("publication") or {}
        category = raw.get("category") or {}

        image_urls: List[str] = []
        primary = (raw.get("primaryImage") or {}).get("url")
        if primary:
            image_urls.append(primary)
        for image in raw.get("images") or []:
            url = image.get("url") if isinstance(image, dict) else None
            if url and url not in image_urls:
                image_urls.append(url)

        free = delivery.get("availableForFree")
        if free:
            shipping_info: Optional[str] = "Darmowa dostawa"
        elif lowest.get("amount") is not None:
            shipping_info = f"Dostawa od {lowest['amount']} {lowest.get('currency', 'PLN')}"
        else:
            shipping_info = None

        status = publication.get("status")

        return VendorItem(
            vendor_id=self.vendor_id,
            external_id=offer_id,
            title=raw.get("name") or "",
            product_url=self.offer_url(offer_id) if offer_id else "",
            current_price=to_decimal(price.get("amount")),
            currency=price.get("currency") or "PLN",
            image_urls=image_urls,
            description=raw.get("description"),
            free_shipping=free,
            shipping_cost=to_decimal(lowest.get("amount")),
            shipping_info=shipping_info,
            merchant=seller.get("login") or seller.get("id"),
            category_path=[category["id"]] if category.get("id") else [],
            is_active=status is None or status == "ACTIVE",
            raw=raw,
        )
