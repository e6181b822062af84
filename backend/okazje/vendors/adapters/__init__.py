"""Vendor-specific adapters."""

from okazje.vendors.adapters.aliexpress import AliExpressAdapter
from okazje.vendors.adapters.allegro import AllegroAdapter
from okazje.vendors.adapters.amazon import AmazonAdapter
from okazje.vendors.adapters.ebay import EbayAdapter

__all__ = [
    "AliExpressAdapter",
    "AllegroAdapter",
    "AmazonAdapter",
    "EbayAdapter",
]
