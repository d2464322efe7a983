"""Build eBay inventory-item and offer payloads for catalog items."""

from __future__ import annotations

import html
import re
from logging import getLogger
from typing import TYPE_CHECKING, Final

from marketsync.domain.ports.marketplace import ListingDraft
from marketsync.domain.titles import is_tax_reduced, parse_title, shorten_by_word

if TYPE_CHECKING:
    from collections.abc import Sequence
    from decimal import Decimal

    from marketsync.config.ebay import EbayConfig
    from marketsync.domain.model import SourceItem
    from marketsync.domain.ports import ImageLookup, ListingContent
    from marketsync.domain.titles import ParsedTitle

log = getLogger(__name__)

STANDARD_VAT_PERCENT: Final[str] = "19.0"
REDUCED_VAT_PERCENT: Final[str] = "7.0"
ASPECT_MAX_LENGTH: Final[int] = 65
DEFAULT_CATEGORY_ID: Final[str] = "21756"

# catalog format -> marketplace leaf category
CATEGORY_BY_FORMAT: Final[dict[str, str]] = {
    "CD": "1574",
    "2CD": "1574",
    "MCD": "1574",
    "DIGI": "1574",
    "DIGICD": "1574",
    "LP": "1594",
    "2LP": "1594",
    "EP": "1594",
    "7": "1594",
    "MC": "52071",
    "TAPE": "52071",
    "TS": "68726",
    "SHIRT": "68726",
    "GIRLIE": "68694",
    "HOOD": "68719",
    "PATCH": "30691",
    "CAP": "70781",
    "BEANIE": "70781",
    "BOOK": "43777",
    "BUCH": "43777",
    "TICKET": "34814",
}

_TAGS = re.compile(r"<[^>]*>")


def category_id(parsed: ParsedTitle, group_id: str = "") -> str:
    for key in (parsed.format, group_id.upper()):
        if key in CATEGORY_BY_FORMAT:
            return CATEGORY_BY_FORMAT[key]
    log.debug("No category for format %r / group %r; using default", parsed.format, group_id)
    return DEFAULT_CATEGORY_ID


def render_description(item: SourceItem, parsed: ParsedTitle) -> str:
    text = html.escape(_TAGS.sub("", item.description)).replace("\n", "<br>")
    release = f"<p>{item.release_date:%Y}</p>" if item.release_date else ""
    title = html.escape(parsed.listing_title(max_length=200))
    return f"<div><h3>{title}</h3><p>{text}</p>{release}</div>"


class ListingContentBuilder:
    def __init__(self, config: EbayConfig, image_lookup: ImageLookup) -> None:
        self._config = config
        self._image_lookup = image_lookup

    def image_urls(self, item: SourceItem) -> Sequence[str]:
        return self._image_lookup(item)

    def build_draft(
        self,
        item: SourceItem,
        *,
        quantity: int,
        price: Decimal,
        images: Sequence[str],
    ) -> ListingDraft:
        parsed = parse_title(item.name)
        reduced = is_tax_reduced(parsed, item.group_id)
        description = render_description(item, parsed)

        product: dict[str, object] = {
            "title": parsed.listing_title(),
            "description": description,
            "aspects": self._aspects(parsed, reduced=reduced),
            "imageUrls": list(images),
        }
        if item.ean and len(item.ean) == 13 and item.ean.isdigit():
            product["ean"] = [item.ean]

        inventory_item = {
            "product": product,
            "condition": "NEW",
            "availability": {"shipToLocationAvailability": {"quantity": quantity}},
        }
        offer = {
            "sku": item.sku,
            "marketplaceId": self._config.marketplace_id,
            "format": "FIXED_PRICE",
            "availableQuantity": quantity,
            "categoryId": category_id(parsed, item.group_id),
            "listingDescription": description,
            "pricingSummary": {"price": {"value": f"{price:.2f}", "currency": "EUR"}},
            "merchantLocationKey": self._config.merchant_location_key,
            "tax": {"vatPercentage": REDUCED_VAT_PERCENT if reduced else STANDARD_VAT_PERCENT},
            "listingPolicies": self._policies(),
        }
        return ListingDraft(sku=item.sku, inventory_item=inventory_item, offer=offer)

    def _aspects(self, parsed: ParsedTitle, *, reduced: bool) -> dict[str, list[str]]:
        artist = shorten_by_word(parsed.artist, ASPECT_MAX_LENGTH)
        title = shorten_by_word(parsed.title, ASPECT_MAX_LENGTH)
        aspects = {"Interpret": [artist], "Musiktitel": [title]}
        if parsed.display_format:
            aspects["Format"] = [parsed.display_format]
        if reduced and parsed.format in {"BOOK", "BUCH"}:
            aspects["Autor"] = [artist]
            aspects["Buchtitel"] = [title]
        return aspects

    def _policies(self) -> dict[str, str]:
        policies = self._config.policies
        found = {
            "fulfillmentPolicyId": policies.fulfillment_policy_id,
            "paymentPolicyId": policies.payment_policy_id,
            "returnPolicyId": policies.return_policy_id,
        }
        return {key: value for key, value in found.items() if value}


if TYPE_CHECKING:

    def _protocol_check(builder: ListingContentBuilder) -> ListingContent:
        return builder
