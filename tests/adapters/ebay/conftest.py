"""Shared fixtures for eBay adapter tests."""

from __future__ import annotations

import pytest

from marketsync.adapters.ebay.client import EbayClient
from marketsync.config.ebay import EbayConfig
from marketsync.config.http_resilience import ResilienceConfig, RetryPolicy
from tests.helpers.http_api import FakeEbayApi


@pytest.fixture
def ebay_api() -> FakeEbayApi:
    return FakeEbayApi()


@pytest.fixture
def ebay_config() -> EbayConfig:
    return EbayConfig(
        client_id="client",
        client_secret="secret",  # noqa: S106
        refresh_token="refresh",  # noqa: S106
        resilience=ResilienceConfig(
            name="ebay-test",
            base_url="https://api.ebay.test",
            retry=RetryPolicy(total=0),
        ),
    )


@pytest.fixture
def ebay_client(ebay_config: EbayConfig, ebay_api: FakeEbayApi) -> EbayClient:
    return EbayClient(ebay_config, client_factory=ebay_api.client_factory)
