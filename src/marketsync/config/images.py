"""Shop image lookup configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, optional_env
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy, ShouldCacheHook
from .storage import StorageConfig, get_storage_config

DEFAULT_SHOP_BASE_URL = "https://supremechaos.com"
DEFAULT_SHOP_IMAGE_URL = "https://scrmetal.de/shopimg.php?id={item_id}&format=webp&for=ebay"
DEFAULT_IMAGE_CACHE_TTL_SECONDS = 24 * 60 * 60.0


@dataclass(frozen=True, slots=True)
class ImageLookupConfig:
    shop_base_url: str
    image_url_template: str
    resilience: ResilienceConfig


def get_image_lookup_config(
    *,
    storage: StorageConfig | None = None,
    cache_predicate: ShouldCacheHook | None = None,
) -> ImageLookupConfig:
    storage_config = storage or get_storage_config()
    shop_base_url = optional_env("SHOP_BASE_URL", DEFAULT_SHOP_BASE_URL) or DEFAULT_SHOP_BASE_URL
    ttl = env_float("SHOP_IMAGE_CACHE_TTL_SECONDS", DEFAULT_IMAGE_CACHE_TTL_SECONDS)
    return ImageLookupConfig(
        shop_base_url=shop_base_url.rstrip("/"),
        image_url_template=optional_env("SHOP_IMAGE_URL", DEFAULT_SHOP_IMAGE_URL)
        or DEFAULT_SHOP_IMAGE_URL,
        resilience=ResilienceConfig(
            name="shop-images",
            base_url=shop_base_url.rstrip("/"),
            timeout_seconds=15.0,
            ratelimit=RateLimit.per_second(2),
            retry=RetryPolicy(total=3),
            cache=CacheConfig(
                backend="sqlite",
                sqlite_path=str(storage_config.http_cache_path()),
                default_ttl_seconds=ttl,
                should_cache=cache_predicate,
            ),
        ),
    )
