"""Vendor adapter framework.

This package provides the abstract adapter interface, the per-vendor
implementations and the factory that wires shared rate limiting and OAuth
token lookup into each adapter.
"""

from okazje.vendors.base import SearchParams, SearchResult, VendorAdapter, VendorItem
from okazje.vendors.factory import AdapterFactory, get_adapter_factory, register_all_adapters

__all__ = [
    "SearchParams",
    "SearchResult",
    "VendorAdapter",
    "VendorItem",
    "AdapterFactory",
    "get_adapter_factory",
    "register_all_adapters",
]
