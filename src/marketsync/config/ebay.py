"""eBay REST API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, optional_env, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

EBAY_PRODUCTION_URL = "https://api.ebay.com"
EBAY_SANDBOX_URL = "https://api.sandbox.ebay.com"
EBAY_TIMEOUT_SECONDS = 30.0
DEFAULT_MARKETPLACE_ID = "EBAY_DE"
DEFAULT_CONTENT_LANGUAGE = "de-DE"
DEFAULT_MERCHANT_LOCATION_KEY = "DEFAULT"
DEFAULT_OAUTH_SCOPES = (
    "https://api.ebay.com/oauth/api_scope",
    "https://api.ebay.com/oauth/api_scope/sell.inventory",
    "https://api.ebay.com/oauth/api_scope/sell.fulfillment",
)


@dataclass(frozen=True, slots=True)
class ListingPolicies:
    """Business policy ids attached to every offer (optional on sandbox accounts)."""

    fulfillment_policy_id: str | None = None
    payment_policy_id: str | None = None
    return_policy_id: str | None = None


@dataclass(frozen=True, slots=True)
class EbayConfig:
    client_id: str
    client_secret: str
    refresh_token: str
    resilience: ResilienceConfig
    sandbox: bool = False
    marketplace_id: str = DEFAULT_MARKETPLACE_ID
    content_language: str = DEFAULT_CONTENT_LANGUAGE
    merchant_location_key: str = DEFAULT_MERCHANT_LOCATION_KEY
    policies: ListingPolicies = ListingPolicies()
    scopes: tuple[str, ...] = DEFAULT_OAUTH_SCOPES

    @property
    def token_url(self) -> str:
        base = EBAY_SANDBOX_URL if self.sandbox else EBAY_PRODUCTION_URL
        return f"{base}/identity/v1/oauth2/token"


def get_ebay_config(*, resilience: ResilienceConfig | None = None) -> EbayConfig:
    values = require_env_vars(("EBAY_CLIENT_ID", "EBAY_CLIENT_SECRET", "EBAY_REFRESH_TOKEN"))
    sandbox = env_bool("EBAY_SANDBOX")
    content_language = optional_env("EBAY_CONTENT_LANGUAGE", DEFAULT_CONTENT_LANGUAGE)
    return EbayConfig(
        client_id=values["EBAY_CLIENT_ID"],
        client_secret=values["EBAY_CLIENT_SECRET"],
        refresh_token=values["EBAY_REFRESH_TOKEN"],
        sandbox=sandbox,
        marketplace_id=optional_env("EBAY_MARKETPLACE_ID", DEFAULT_MARKETPLACE_ID)
        or DEFAULT_MARKETPLACE_ID,
        content_language=content_language or DEFAULT_CONTENT_LANGUAGE,
        merchant_location_key=optional_env(
            "EBAY_MERCHANT_LOCATION_KEY", DEFAULT_MERCHANT_LOCATION_KEY
        )
        or DEFAULT_MERCHANT_LOCATION_KEY,
        policies=ListingPolicies(
            fulfillment_policy_id=optional_env("EBAY_FULFILLMENT_POLICY_ID"),
            payment_policy_id=optional_env("EBAY_PAYMENT_POLICY_ID"),
            return_policy_id=optional_env("EBAY_RETURN_POLICY_ID"),
        ),
        resilience=resilience
        or ResilienceConfig(
            name="ebay",
            base_url=EBAY_SANDBOX_URL if sandbox else EBAY_PRODUCTION_URL,
            timeout_seconds=EBAY_TIMEOUT_SECONDS,
            ratelimit=RateLimit.per_second(5),
            retry=RetryPolicy(total=3),
            cache=None,
            default_headers={
                "Content-Language": content_language or DEFAULT_CONTENT_LANGUAGE,
                "Accept": "application/json",
            },
        ),
    )
