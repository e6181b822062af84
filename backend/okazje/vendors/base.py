"""Base vendor adapter interface.

All vendor integrations inherit from VendorAdapter. An adapter owns the
vendor-specific parts of an import: translating profile filters into the
vendor's query dialect, calling the HTTP API and normalizing raw item JSON
into a VendorItem. Validation and mapping are shared and vendor-neutral.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import structlog

from okazje.config import settings
from okazje.core.exceptions import VendorApiError
from okazje.models.oauth_token import OAuthToken
from okazje.schemas.profile import ImportFilters, ImportProfileSchema
from okazje.services.mapper import DealDraft, MapperConfig, ProductDraft, map_to_deal, map_to_product
from okazje.services.validator import ValidationResult, validate_product
from okazje.vendors.utils.rate_limiter import RequestRateLimiter


TokenProvider = Callable[[str, Optional[str]], Awaitable[Optional[OAuthToken]]]


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a vendor price (number or numeric string) into a Decimal."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


@dataclass
class VendorItem:
    """Vendor-neutral view of one vendor listing."""

    vendor_id: str
    external_id: str
    title: str
    product_url: str
    current_price: Decimal
    image_urls: List[str] = field(default_factory=list)
    original_price: Optional[Decimal] = None
    currency: str = "PLN"
    item_id_field: str = "id"  # key holding the vendor item id in raw JSON
    description: Optional[str] = None
    long_description: Optional[str] = None
    rating_score: Optional[float] = None
    rating_count: Optional[int] = None
    orders: Optional[int] = None
    discount_percent: Optional[float] = None  # as reported by the vendor
    free_shipping: Optional[bool] = None
    shipping_cost: Optional[Decimal] = None
    shipping_info: Optional[str] = None
    merchant: Optional[str] = None
    category_path: List[str] = field(default_factory=list)
    is_active: bool = True
    raw: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.external_id:
            raise ValueError("external_id is required")
        if self.current_price is None or self.current_price < 0:
            raise ValueError("current_price must be a non-negative Decimal")


@dataclass
class SearchParams:
    """A single-page search request in the vendor's own query dialect."""

    query: Dict[str, Any]
    limit: int
    page: int = 1


@dataclass
class SearchResult:
    """Raw vendor items from one search call.

    ``error`` is set instead of raising when the vendor degrades gracefully.
    """

    items: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 1
    error: Optional[VendorApiError] = None


class VendorAdapter(ABC):
    """Abstract base class for vendor API adapters."""

    vendor_id: str = ""  # Must be overridden in subclass (e.g., "allegro")
    vendor_name: str = ""
    max_page_size: int = 50
    min_request_interval: float = 0.5  # seconds between requests
    currency: str = "PLN"

    def __init__(
        self,
        account_name: Optional[str] = None,
        rate_limiter: Optional[RequestRateLimiter] = None,
        token_provider: Optional[TokenProvider] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the adapter with dependency injection points.

        Args:
            account_name: OAuth account to authenticate as
            rate_limiter: Shared limiter for this vendor credential
            token_provider: Coroutine returning a usable OAuth token or None
            timeout: Per-request timeout in seconds
        """
        self.account_name = account_name
        self.rate_limiter = rate_limiter
        self.token_provider = token_provider
        self._timeout = timeout if timeout is not None else settings.VENDOR_REQUEST_TIMEOUT
        self.logger = structlog.get_logger(__name__).bind(vendor=self.vendor_id)

    @classmethod
    def configured_rate_limit(cls) -> int:
        """Requests per minute allowed for this vendor."""
        return 60

    # ------------------------------------------------------------------
    # Vendor-specific contract
    # ------------------------------------------------------------------

    @abstractmethod
    def build_search_params(self, profile: ImportProfileSchema, max_items: int) -> SearchParams:
        """Translate profile filters into a vendor search request.

        Args:
            profile: Parsed import profile
            max_items: Requested item count, capped at ``max_page_size``
        """

    @abstractmethod
    async def search(self, params: SearchParams) -> SearchResult:
        """Run one search call against the vendor API.

        Raises:
            VendorApiError: On non-2xx responses, unless the vendor degrades
                gracefully via ``SearchResult.error``
            httpx.TransportError: On network failures and timeouts
        """

    @abstractmethod
    async def get_details(self, item_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the full raw record for one item, None if it does not exist."""

    @abstractmethod
    def normalize(self, raw: Dict[str, Any]) -> VendorItem:
        """Convert a raw vendor item into a VendorItem."""

    def item_id(self, raw: Any) -> Optional[str]:
        """Best-effort id of a raw item, used to attribute errors.

        Returns None for entries that are not JSON objects.
        """
        if not isinstance(raw, dict):
            return None
        value = raw.get(self.item_id_field)
        return str(value) if value is not None else None

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    def page_limit(self, max_items: int) -> int:
        return max(1, min(max_items, self.max_page_size))

    def validate(self, raw: Dict[str, Any], filters: Optional[ImportFilters]) -> ValidationResult:
        return validate_product(self.normalize(raw), filters)

    def map_to_product(
        self, raw: Dict[str, Any], config: MapperConfig, now: Optional[datetime] = None
    ) -> ProductDraft:
        return map_to_product(self.normalize(raw), config, now=now)

    def map_to_deal(
        self,
        raw: Dict[str, Any],
        config: MapperConfig,
        posted_by: str,
        now: Optional[datetime] = None,
    ) -> Optional[DealDraft]:
        return map_to_deal(self.normalize(raw), config, posted_by, now=now)

    async def _get_access_token(self) -> Optional[str]:
        if self.token_provider is None:
            return None
        token = await self.token_provider(self.vendor_id, self.account_name)
        return token.access_token if token else None

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Throttle, then send one request with a fresh client."""
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()

        self.logger.debug("vendor_request", method=method, url=url)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.request(method, url, **kwargs)

        self.logger.debug("vendor_response", url=url, status_code=response.status_code)
        return response

    def _api_error(self, response: httpx.Response) -> VendorApiError:
        """Build a VendorApiError from a non-2xx response."""
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        message = response.reason_phrase or "Request failed"
        code = f"HTTP_{response.status_code}"
        if isinstance(body, dict):
            errors = body.get("errors") or body.get("Errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                first = errors[0]
                code = str(first.get("code") or first.get("Code") or first.get("errorId") or code)
                message = first.get("message") or first.get("Message") or message
            elif isinstance(body.get("error"), dict):
                code = str(body["error"].get("code") or code)
                message = body["error"].get("message") or message
            elif body.get("message"):
                message = body["message"]

        return VendorApiError(
            self.vendor_id,
            code,
            message,
            details={"status_code": response.status_code, "body": body},
        )
