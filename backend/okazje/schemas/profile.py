"""Pydantic schemas for import profiles.

The JSON columns ``ImportProfile.filters`` and ``ImportProfile.mapping`` are
parsed through these models before the pipeline uses them. Both snake_case
and camelCase keys are accepted so profiles exported from the admin panel
load unchanged.
"""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


_PROFILE_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    from_attributes=True,
)


class ImportFilters(BaseModel):
    """Vendor search query and local acceptance thresholds.

    ``min_price <= max_price`` is not enforced here; a profile with inverted
    bounds simply rejects every item.
    """

    model_config = _PROFILE_MODEL_CONFIG

    search_query: str = Field(
        ...,
        min_length=1,
        description="Free-text query sent to the vendor",
        examples=["słuchawki bezprzewodowe"],
    )
    min_price: Optional[Decimal] = Field(None, ge=0, examples=[50])
    max_price: Optional[Decimal] = Field(None, ge=0, examples=[500])
    min_rating: Optional[float] = Field(None, ge=0, le=5, examples=[4.0])
    min_discount: Optional[float] = Field(None, ge=0, le=100, examples=[20])
    min_orders: Optional[int] = Field(None, ge=0, examples=[100])
    shipping_type: Literal["free", "paid", "any"] = "any"
    category_filter: Optional[str] = Field(
        None, description="Vendor-side category id", examples=["Electronics"]
    )


class ImportMapping(BaseModel):
    """Where imported items land in the catalogue and how they are priced."""

    model_config = _PROFILE_MODEL_CONFIG

    target_main_category: str = Field(..., min_length=1, examples=["elektronika"])
    target_sub_category: str = Field(..., min_length=1, examples=["audio"])
    target_sub_sub_category: Optional[str] = Field(None, examples=["sluchawki"])
    price_markup: Optional[float] = Field(
        None,
        description="Percent added to vendor prices, e.g. 10 means +10%",
        examples=[10],
    )
    default_status: Literal["draft", "approved"] = "draft"


class ImportProfileSchema(BaseModel):
    """Fully parsed view of an ``ImportProfile`` row."""

    model_config = _PROFILE_MODEL_CONFIG

    id: str
    vendor_id: Literal["aliexpress", "allegro", "amazon", "ebay"]
    name: str
    enabled: bool = True
    account_name: Optional[str] = None
    filters: ImportFilters
    mapping: ImportMapping
    max_items_per_run: int = Field(50, ge=1)
    deduplication_strategy: Literal["skip", "update"] = "skip"
    created_by: str = "system"
