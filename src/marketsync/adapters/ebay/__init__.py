"""Public interface for the eBay adapter."""

from __future__ import annotations

from .auth import EbayTokenProvider
from .client import EbayClient, build_order_filter, format_ebay_datetime

__all__ = [
    "EbayClient",
    "EbayTokenProvider",
    "build_order_filter",
    "format_ebay_datetime",
]
