"""Shop picture discovery."""

from __future__ import annotations

import httpx
import pytest

from marketsync.adapters.images import ShopImageLookup, extract_picture_url, has_product_image
from marketsync.config.http_resilience import ResilienceConfig
from marketsync.config.images import DEFAULT_SHOP_IMAGE_URL, ImageLookupConfig
from marketsync.domain.errors import TransientRemoteError
from tests.helpers.catalog import make_source_item
from tests.helpers.http_api import FakeHttpApi

PRODUCT_PAGE = (
    "<html><head>"
    '<meta property="og:image" '
    'content="https://shop.test/media/image/3f/a1/darkthrone_[front].jpg">'
    "</head></html>"
)


@pytest.fixture
def shop() -> FakeHttpApi:
    return FakeHttpApi()


@pytest.fixture
def lookup(shop: FakeHttpApi) -> ShopImageLookup:
    config = ImageLookupConfig(
        shop_base_url="https://shop.test",
        image_url_template=DEFAULT_SHOP_IMAGE_URL,
        resilience=ResilienceConfig(name="shop-test", base_url="https://shop.test"),
    )
    return ShopImageLookup(config, client_factory=shop.client_factory)


def test_extract_picture_url_escapes_brackets() -> None:
    assert (
        extract_picture_url(PRODUCT_PAGE)
        == "https://shop.test/media/image/3f/a1/darkthrone_%5Bfront%5D.jpg"
    )
    assert extract_picture_url("<html></html>") is None


def test_cache_predicate_only_accepts_pages_with_pictures() -> None:
    assert has_product_image(PRODUCT_PAGE)
    assert not has_product_image("<html>sold out</html>")
    assert not has_product_image({"og:image": "x"})


def test_lookup_returns_image_endpoint_and_memoizes(
    lookup: ShopImageLookup, shop: FakeHttpApi
) -> None:
    shop.on("GET", "/detail/4711", httpx.Response(200, text=PRODUCT_PAGE))
    item = make_source_item("SC-1001", shop_id="4711")

    first = lookup(item)
    second = lookup(item)

    assert first == ["https://scrmetal.de/shopimg.php?id=SC-1001&format=webp&for=ebay"]
    assert second == first
    assert len(shop.calls("GET", "/detail/4711")) == 1


def test_lookup_without_picture_returns_nothing(
    lookup: ShopImageLookup, shop: FakeHttpApi
) -> None:
    shop.on("GET", "/detail/404", httpx.Response(404))
    shop.on("GET", "/detail/5", httpx.Response(200, text="<html>no picture</html>"))

    assert lookup(make_source_item("A", shop_id="404")) == []
    assert lookup(make_source_item("B", shop_id="5")) == []
    assert lookup(make_source_item("C", shop_id=None)) == []
    assert len(shop.requests) == 2


def test_lookup_server_error_is_transient(lookup: ShopImageLookup, shop: FakeHttpApi) -> None:
    shop.on("GET", "/detail/4711", httpx.Response(502))

    with pytest.raises(TransientRemoteError) as exc:
        lookup(make_source_item(shop_id="4711"))

    assert exc.value.status_code == 502
