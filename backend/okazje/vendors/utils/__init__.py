"""Vendor client utilities."""

from okazje.vendors.utils.rate_limiter import RateLimiterRegistry, RequestRateLimiter
from okazje.vendors.utils.signing import aws_sigv4_headers, top_md5_signature

__all__ = [
    "RateLimiterRegistry",
    "RequestRateLimiter",
    "aws_sigv4_headers",
    "top_md5_signature",
]
