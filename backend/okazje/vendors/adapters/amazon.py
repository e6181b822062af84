"""Amazon Product Advertising API 5.0 adapter.

Uses a stored OAuth token when one exists, otherwise signs each request
with AWS Signature Version 4 from the configured access/secret keys.
Documentation: https://webservices.amazon.com/paapi5/documentation/
"""

import json
from typing import Any, Dict, List, Optional

from okazje.config import settings
from okazje.core.exceptions import VendorApiError, VendorAuthError
from okazje.schemas.profile import ImportProfileSchema
from okazje.vendors.base import SearchParams, SearchResult, VendorAdapter, VendorItem, to_decimal
from okazje.vendors.utils.signing import aws_sigv4_headers


class AmazonAdapter(VendorAdapter):
    """Amazon PA-API search adapter."""

    vendor_id = "amazon"
    vendor_name = "Amazon"
    max_page_size = 10  # PA-API ItemCount maximum
    min_request_interval = 1.0
    item_id_field = "ASIN"

    API_SERVICE = "ProductAdvertisingAPI"
    TARGET_PREFIX = "com.amazon.paapi5.v1.ProductAdvertisingAPIv1"
    SEARCH_PATH = "/paapi5/searchitems"
    GET_ITEMS_PATH = "/paapi5/getitems"

    RESOURCES = [
        "Images.Primary.Large",
        "Images.Variants.Large",
        "ItemInfo.Title",
        "ItemInfo.Features",
        "ItemInfo.ByLineInfo",
        "ItemInfo.ProductInfo",
        "ItemInfo.ManufactureInfo",
        "ItemInfo.Classifications",
        "Offers.Listings.Price",
        "Offers.Listings.SavingBasis",
        "Offers.Listings.Availability.Type",
        "Offers.Listings.DeliveryInfo.IsFreeShippingEligible",
        "Offers.Listings.MerchantInfo",
        "CustomerReviews.Count",
        "CustomerReviews.StarRating",
    ]

    # Errors that mean "nothing matched" rather than a failed call
    EMPTY_RESULT_CODES = {"NoResults"}

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.access_key = settings.AMAZON_ACCESS_KEY
        self.secret_key = settings.AMAZON_SECRET_KEY
        self.partner_tag = settings.AMAZON_PARTNER_TAG
        self.region = settings.AMAZON_REGION
        self.marketplace = settings.AMAZON_MARKETPLACE
        self.host = settings.AMAZON_HOST

    @classmethod
    def configured_rate_limit(cls) -> int:
        return settings.AMAZON_RATE_LIMIT

    def build_search_params(self, profile: ImportProfileSchema, max_items: int) -> SearchParams:
        filters = profile.filters
        query = {
            "keywords": filters.search_query,
            "minPrice": filters.min_price,
            "maxPrice": filters.max_price,
            "minRating": filters.min_rating,
            "category": filters.category_filter,
        }
        return SearchParams(
            query={k: v for k, v in query.items() if v is not None},
            limit=self.page_limit(max_items),
            page=1,
        )

    def _search_payload(self, params: SearchParams) -> Dict[str, Any]:
        query = params.query
        payload: Dict[str, Any] = {
            "Keywords": query["keywords"],
            "SearchIndex": query.get("category") or "All",
            "ItemCount": params.limit,
            "ItemPage": params.page,
            "PartnerTag": self.partner_tag,
            "PartnerType": "Associates",
            "Marketplace": self.marketplace,
            "Resources": self.RESOURCES,
        }
        # PA-API prices are in the lowest currency unit
        if query.get("minPrice") is not None:
            payload["MinPrice"] = int(query["minPrice"] * 100)
        if query.get("maxPrice") is not None:
            payload["MaxPrice"] = int(query["maxPrice"] * 100)
        if query.get("minRating") is not None:
            payload["MinReviewsRating"] = int(query["minRating"])
        return payload

    async def _post(self, path: str, operation: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Authenticate and POST one PA-API operation, returning parsed JSON."""
        body = json.dumps(payload, separators=(",", ":"))
        target = f"{self.TARGET_PREFIX}.{operation}"

        access_token = await self._get_access_token()
        if access_token:
            headers = {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json; charset=utf-8",
                "X-Amz-Target": target,
            }
        elif self.access_key and self.secret_key:
            headers = aws_sigv4_headers(
                access_key=self.access_key,
                secret_key=self.secret_key,
                region=self.region,
                service=self.API_SERVICE,
                host=self.host,
                path=path,
                target=target,
                payload=body,
            )
        else:
            raise VendorAuthError(
                self.vendor_id,
                "No OAuth token and AMAZON_ACCESS_KEY / AMAZON_SECRET_KEY are not set",
            )

        response = await self._send("POST", f"https://{self.host}{path}", content=body, headers=headers)
        if not response.is_success:
            error = self._api_error(response)
            self.logger.error(
                "amazon_api_http_error",
                operation=operation,
                status_code=response.status_code,
                code=error.code,
            )
            raise error
        return response.json()

    def _raise_for_api_errors(self, data: Dict[str, Any], result_key: str) -> None:
        errors = data.get("Errors") or []
        if not errors or data.get(result_key):
            return
        first = errors[0]
        code = first.get("Code") or "UNKNOWN_ERROR"
        if code in self.EMPTY_RESULT_CODES:
            return
        raise VendorApiError(self.vendor_id, code, first.get("Message") or "PA-API error", details=errors)

    async def search(self, params: SearchParams) -> SearchResult:
        self.logger.info("amazon_search", keywords=params.query.get("keywords"), limit=params.limit)
        data = await self._post(self.SEARCH_PATH, "SearchItems", self._search_payload(params))
        self._raise_for_api_errors(data, "SearchResult")

        result = data.get("SearchResult") or {}
        items = result.get("Items") or []
        return SearchResult(
            items=items,
            total=int(result.get("TotalResultCount") or len(items)),
            page=params.page,
        )

    async def get_details(self, item_id: str) -> Optional[Dict[str, Any]]:
        payload = {
            "ItemIds": [item_id],
            "ItemIdType": "ASIN",
            "PartnerTag": self.partner_tag,
            "PartnerType": "Associates",
            "Marketplace": self.marketplace,
            "Resources": self.RESOURCES,
        }
        data = await self._post(self.GET_ITEMS_PATH, "GetItems", payload)
        self._raise_for_api_errors(data, "ItemsResult")
        items = (data.get("ItemsResult") or {}).get("Items") or []
        return items[0] if items else None

    @staticmethod
    def _display(info: Dict[str, Any], *path: str) -> Optional[Any]:
        node: Any = info
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        if isinstance(node, dict):
            return node.get("DisplayValue")
        return None

    def _specifications(self, info: Dict[str, Any]) -> Dict[str, str]:
        specs: Dict[str, str] = {}
        for section in ("ProductInfo", "ManufactureInfo"):
            for name, value in (info.get(section) or {}).items():
                if isinstance(value, dict) and value.get("DisplayValue") is not None:
                    specs[value.get("Label") or name] = str(value["DisplayValue"])
        return specs

    def normalize(self, raw: Dict[str, Any]) -> VendorItem:
        info = raw.get("ItemInfo") or {}
        listing = ((raw.get("Offers") or {}).get("Listings") or [{}])[0]
        price = listing.get("Price") or {}
        savings = price.get("Savings") or {}
        reviews = raw.get("CustomerReviews") or {}

        image_urls: List[str] = []
        images = raw.get("Images") or {}
        primary = ((images.get("Primary") or {}).get("Large") or {}).get("URL")
        if primary:
            image_urls.append(primary)
        for variant in images.get("Variants") or []:
            url = (variant.get("Large") or {}).get("URL")
            if url and url not in image_urls:
                image_urls.append(url)

        features: List[str] = ((info.get("Features") or {}).get("DisplayValues")) or []
        specs = self._specifications(info)
        description = "\n".join(features) or None

        sections: List[str] = []
        if features:
            sections.append("**Cechy:**\n" + "\n".join(features))
        if specs:
            sections.append(
                "**Specyfikacja:**\n" + "\n".join(f"- {k}: {v}" for k, v in specs.items())
            )

        brand = self._display(info, "ByLineInfo", "Brand") or self._display(
            info, "ByLineInfo", "Manufacturer"
        )
        merchant = (listing.get("MerchantInfo") or {}).get("Name") or brand
        category = self._display(info, "Classifications", "ProductGroup")
        availability = (listing.get("Availability") or {}).get("Type")

        return VendorItem(
            vendor_id=self.vendor_id,
            external_id=raw.get("ASIN") or "",
            title=self._display(info, "Title") or "",
            product_url=raw.get("DetailPageURL") or "",
            current_price=to_decimal(price.get("Amount")),
            original_price=to_decimal((listing.get("SavingBasis") or {}).get("Amount")),
            currency=price.get("Currency") or "PLN",
            image_urls=image_urls,
            description=description,
            long_description="\n\n".join(sections) or None,
            rating_score=(reviews.get("StarRating") or {}).get("Value"),
            rating_count=reviews.get("Count"),
            discount_percent=savings.get("Percentage"),
            free_shipping=(listing.get("DeliveryInfo") or {}).get("IsFreeShippingEligible"),
            merchant=merchant,
            category_path=[category] if category else [],
            is_active=availability != "OutOfStock",
            raw=raw,
        )
