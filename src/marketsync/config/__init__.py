"""Application configuration helpers."""

from __future__ import annotations

from .ebay import EbayConfig, ListingPolicies, get_ebay_config
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .images import ImageLookupConfig, get_image_lookup_config
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import get_sync_policy

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "EbayConfig",
    "ImageLookupConfig",
    "ListingPolicies",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_ebay_config",
    "get_image_lookup_config",
    "get_storage_config",
    "get_sync_policy",
    "require_env_vars",
]
