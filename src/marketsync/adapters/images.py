"""Discover listing pictures from the public shop product pages."""

from __future__ import annotations

import asyncio
import re
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from marketsync.adapters.http_resilience import ResilientClient
from marketsync.domain.errors import TransientRemoteError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from marketsync.config.http_resilience import ResilienceConfig
    from marketsync.config.images import ImageLookupConfig
    from marketsync.domain.model import SourceItem
    from marketsync.domain.ports import ImageLookup

log = getLogger(__name__)

_OG_IMAGE = re.compile(r'og:image"\s+content="([^"]+/media/[^"]+)"')


def has_product_image(payload: object) -> bool:
    """Cache predicate: only keep product pages that expose a picture."""

    return isinstance(payload, str) and _OG_IMAGE.search(payload) is not None


def extract_picture_url(html: str) -> str | None:
    match = _OG_IMAGE.search(html)
    if match is None:
        return None
    # the marketplace rejects raw brackets in picture URLs
    return match.group(1).replace("[", "%5B").replace("]", "%5D")


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class ShopImageLookup:
    """Resolve the marketplace picture URL of an item.

    The shop product page is fetched (through the HTTP cache) to confirm that a
    picture exists; the listing then references the shop's image endpoint.
    """

    def __init__(
        self,
        config: ImageLookupConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._pictures: dict[str, str | None] = {}

    def __call__(self, item: SourceItem) -> Sequence[str]:
        if not item.shop_id:
            log.info("Item %s has no shop product id; no picture", item.id)
            return []
        if item.shop_id not in self._pictures:
            self._pictures[item.shop_id] = asyncio.run(self._fetch_picture_async(item.shop_id))
        if self._pictures[item.shop_id] is None:
            return []
        return [self._config.image_url_template.format(item_id=item.id, shop_id=item.shop_id)]

    async def _fetch_picture_async(self, shop_id: str) -> str | None:
        operation = f"fetch product page {shop_id}"
        async with self._client_factory(self._config.resilience) as client:
            try:
                response = await client.get(f"/detail/{shop_id}")
            except httpx.HTTPError as exc:
                raise TransientRemoteError(str(exc), operation=operation) from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            log.info("Shop product page %s not found", shop_id)
            return None
        if not response.is_success:
            raise TransientRemoteError(
                response.reason_phrase or "request failed",
                operation=operation,
                status_code=response.status_code,
            )
        picture = extract_picture_url(response.text)
        if picture is None:
            log.info("Shop product page %s has no picture", shop_id)
        return picture


if TYPE_CHECKING:

    def _protocol_check(lookup: ShopImageLookup) -> ImageLookup:
        return lookup
