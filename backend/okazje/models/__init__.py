"""SQLAlchemy models for the ingestion service.

All models are imported here so ``Base.metadata`` knows every table.
"""

from okazje.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from okazje.models.import_profile import ImportProfile
from okazje.models.import_run import ImportRun
from okazje.models.product import Product
from okazje.models.deal import Deal
from okazje.models.oauth_token import OAuthToken

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "ImportProfile",
    "ImportRun",
    "Product",
    "Deal",
    "OAuthToken",
]
