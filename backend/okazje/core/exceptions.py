"""Custom exception classes for the ingestion service."""

from datetime import datetime, timezone
from typing import Any, Optional


class OkazjeException(Exception):
    """Base exception for all Okazje+ errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(OkazjeException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ProfileDisabledError(OkazjeException):
    """Raised when an import is requested for a disabled profile."""

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Import profile '{profile_id}' is disabled")


class UnknownVendorError(OkazjeException):
    """Raised when no adapter is registered for a vendor id."""

    def __init__(self, vendor_id: str):
        self.vendor_id = vendor_id
        super().__init__(f"No adapter registered for vendor '{vendor_id}'")


class VendorApiError(OkazjeException):
    """Structured error returned or raised by a vendor client.

    Carries the vendor's error code, a human readable message, optional
    details (HTTP status, response body) and the time it was observed.
    """

    def __init__(
        self,
        vendor: str,
        code: str,
        message: str,
        details: Optional[Any] = None,
    ):
        self.vendor = vendor
        self.code = code
        self.details = details
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(f"{vendor} API error [{code}]: {message}")
        self.message = message

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class VendorAuthError(VendorApiError):
    """Raised when a vendor call needs an OAuth token and none is usable."""

    def __init__(self, vendor: str, message: str):
        super().__init__(vendor, "AUTH_REQUIRED", message)
