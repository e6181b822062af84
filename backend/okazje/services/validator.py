"""Acceptance checks applied to every fetched vendor item."""

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Union

from okazje.schemas.profile import ImportFilters
from okazje.services.mapper import effective_discount_percent

if TYPE_CHECKING:
    from okazje.vendors.base import VendorItem


@dataclass
class ValidationResult:
    valid: bool
    reason: Optional[str] = None


_VALID = ValidationResult(valid=True)


def _fmt(value: Union[Decimal, float, int]) -> str:
    """Render a threshold without a trailing ``.0`` for whole numbers."""
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def validate_product(
    item: "VendorItem", filters: Optional[ImportFilters] = None
) -> ValidationResult:
    """Return the first failed check for ``item``, or a valid result.

    Structural checks run first, then the profile thresholds. Thresholds that
    are unset or zero are ignored, and rating/orders/discount thresholds only
    apply when the vendor reported that value.
    """
    if not item.title or not item.title.strip():
        return ValidationResult(False, "Missing title")
    if not item.image_urls:
        return ValidationResult(False, "No images")
    if not item.product_url:
        return ValidationResult(False, "Missing product URL")

    if filters is not None:
        if filters.min_price and item.current_price < filters.min_price:
            return ValidationResult(False, f"Price below minimum ({_fmt(filters.min_price)})")
        if filters.max_price and item.current_price > filters.max_price:
            return ValidationResult(False, f"Price above maximum ({_fmt(filters.max_price)})")

        if filters.min_rating and item.rating_score is not None:
            if item.rating_score < filters.min_rating:
                return ValidationResult(False, f"Rating below minimum ({_fmt(filters.min_rating)})")

        if filters.min_orders and item.orders is not None:
            if item.orders < filters.min_orders:
                return ValidationResult(False, f"Orders below minimum ({filters.min_orders})")

        if filters.min_discount:
            discount = effective_discount_percent(item)
            if discount is not None and discount < filters.min_discount:
                return ValidationResult(
                    False, f"Discount below minimum ({_fmt(filters.min_discount)}%)"
                )

        if filters.shipping_type == "free" and item.free_shipping is False:
            return ValidationResult(False, "Shipping is not free")

    if not item.is_active:
        return ValidationResult(False, "Offer is not active")

    return _VALID
