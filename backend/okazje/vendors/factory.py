"""Factory for creating and managing vendor adapter instances."""

from typing import Dict, Optional, Type

import structlog

from okazje.core.exceptions import UnknownVendorError
from okazje.vendors.base import TokenProvider, VendorAdapter
from okazje.vendors.utils.rate_limiter import RateLimiterRegistry


logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Factory for creating and configuring adapter instances.

    Provides dependency injection for the shared rate limiter registry and
    the OAuth token lookup.
    """

    def __init__(self, rate_limiters: Optional[RateLimiterRegistry] = None):
        # Shared across every adapter this factory creates
        self.rate_limiters = rate_limiters or RateLimiterRegistry()
        self._adapter_registry: Dict[str, Type[VendorAdapter]] = {}

    def register_adapter(self, vendor_id: str, adapter_class: Type[VendorAdapter]) -> None:
        """Register an adapter class for a vendor.

        Args:
            vendor_id: Vendor identifier (e.g., "allegro")
            adapter_class: Adapter class (must inherit from VendorAdapter)
        """
        if not issubclass(adapter_class, VendorAdapter):
            raise ValueError(f"Adapter class must inherit from VendorAdapter: {adapter_class}")

        self._adapter_registry[vendor_id] = adapter_class
        logger.info("adapter_registered", vendor_id=vendor_id)

    def create_adapter(
        self,
        vendor_id: str,
        account_name: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
    ) -> VendorAdapter:
        """Create and configure an adapter instance.

        Args:
            vendor_id: Vendor identifier
            account_name: OAuth account the adapter should use
            token_provider: Coroutine resolving a valid OAuth token

        Raises:
            UnknownVendorError: If no adapter is registered for ``vendor_id``
        """
        adapter_class = self._adapter_registry.get(vendor_id)
        if not adapter_class:
            logger.warning("adapter_not_found", vendor_id=vendor_id)
            raise UnknownVendorError(vendor_id)

        rate_limiter = self.rate_limiters.get(
            vendor_id,
            account_name,
            rate_limit_per_minute=adapter_class.configured_rate_limit(),
            min_interval=adapter_class.min_request_interval,
        )
        adapter = adapter_class(
            account_name=account_name,
            rate_limiter=rate_limiter,
            token_provider=token_provider,
        )

        logger.debug("adapter_created", vendor_id=vendor_id, account_name=account_name)
        return adapter

    def get_registered_vendors(self) -> list[str]:
        return list(self._adapter_registry.keys())

    def has_adapter(self, vendor_id: str) -> bool:
        return vendor_id in self._adapter_registry


def register_all_adapters(factory: "AdapterFactory") -> None:
    """Register the four supported vendors on ``factory``."""
    from okazje.vendors.adapters import (
        AliExpressAdapter,
        AllegroAdapter,
        AmazonAdapter,
        EbayAdapter,
    )

    for adapter_class in (AliExpressAdapter, AllegroAdapter, AmazonAdapter, EbayAdapter):
        factory.register_adapter(adapter_class.vendor_id, adapter_class)


# Global factory instance
_adapter_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory, registering vendors on first use."""
    global _adapter_factory
    if _adapter_factory is None:
        _adapter_factory = AdapterFactory()
        register_all_adapters(_adapter_factory)
    return _adapter_factory
