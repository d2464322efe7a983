"""Resolve free-text shipper labels and tracking numbers to carrier codes.

Resolution is pure and runs in two stages:

1. The shipper label is lowercased and trimmed, then looked up in the alias
   table: first as an exact key, then as a substring (longest alias first, so
   "dpd paket" is not mistaken for "dp").
2. If the label did not resolve, the tracking number is uppercased, stripped of
   whitespace and matched against per-carrier structural patterns in table order.

Anything left over resolves to ``Carrier.OTHER``.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Final


class Carrier(StrEnum):
    """Carrier codes accepted by the marketplace shipping fulfillment API."""

    DEUTSCHE_POST = "DEUTSCHE_POST"
    DHL = "DHL"
    HERMES = "HERMES"
    UPS = "UPS"
    FEDEX = "FEDEX"
    TNT = "TNT"
    OTHER = "OTHER"


CARRIER_ALIASES: Final[dict[str, Carrier]] = {
    "deutsche post": Carrier.DEUTSCHE_POST,
    "deutschepost": Carrier.DEUTSCHE_POST,
    "dp": Carrier.DEUTSCHE_POST,
    "post": Carrier.DEUTSCHE_POST,
    "dhl": Carrier.DHL,
    "dhl express": Carrier.DHL,
    "dhl paket": Carrier.DHL,
    "dhl germany": Carrier.DHL,
    "hermes": Carrier.HERMES,
    "hermes germany": Carrier.HERMES,
    "evri": Carrier.HERMES,
    "ups": Carrier.UPS,
    "united parcel service": Carrier.UPS,
    "fedex": Carrier.FEDEX,
    "fed ex": Carrier.FEDEX,
    "federal express": Carrier.FEDEX,
    "tnt": Carrier.TNT,
    "tnt express": Carrier.TNT,
    # known carriers without a dedicated marketplace code
    "spring gds": Carrier.OTHER,
    "springgds": Carrier.OTHER,
    "spring": Carrier.OTHER,
    "gds": Carrier.OTHER,
    "gls": Carrier.OTHER,
    "general logistics systems": Carrier.OTHER,
    "dpd": Carrier.OTHER,
    "dynamic parcel distribution": Carrier.OTHER,
    "go!": Carrier.OTHER,
    "go logistics": Carrier.OTHER,
}

_ALIASES_LONGEST_FIRST: Final[tuple[tuple[str, Carrier], ...]] = tuple(
    sorted(CARRIER_ALIASES.items(), key=lambda entry: (-len(entry[0]), entry[0]))
)

# Order matters: specific national formats precede the generic ones they overlap with.
TRACKING_PATTERNS: Final[tuple[tuple[re.Pattern[str], Carrier], ...]] = (
    (re.compile(r"^1Z[A-Z0-9]{16}$"), Carrier.UPS),
    (re.compile(r"^RR\d{9}DE$"), Carrier.DEUTSCHE_POST),
    (re.compile(r"^CP\d{9}DE$"), Carrier.DEUTSCHE_POST),
    (re.compile(r"^[A-Z]{2}\d{9}DE$"), Carrier.DEUTSCHE_POST),
    (re.compile(r"^\d{13}$"), Carrier.DEUTSCHE_POST),
    (re.compile(r"^H\d{13}$"), Carrier.HERMES),
    (re.compile(r"^\d{8}[A-Z]{3}\d{3}$"), Carrier.HERMES),
    (re.compile(r"^\d{14}$"), Carrier.HERMES),
    (re.compile(r"^\d{10}$"), Carrier.DHL),
    (re.compile(r"^\d{11}$"), Carrier.DHL),
    (re.compile(r"^[A-Z]{2}\d{9}[A-Z]{2}$"), Carrier.DHL),
    (re.compile(r"^\d{18}$"), Carrier.UPS),
    (re.compile(r"^\d{12}$"), Carrier.FEDEX),
    (re.compile(r"^\d{15}$"), Carrier.FEDEX),
    (re.compile(r"^\d{20}$"), Carrier.FEDEX),
    (re.compile(r"^[A-Z0-9]{10}$"), Carrier.DHL),
)


def carrier_from_label(label: str | None) -> Carrier | None:
    """Return the carrier for a shipper label, or ``None`` if the label is unknown."""

    if not label:
        return None
    normalized = " ".join(label.lower().split())
    if not normalized:
        return None
    direct = CARRIER_ALIASES.get(normalized)
    if direct is not None:
        return direct
    for alias, carrier in _ALIASES_LONGEST_FIRST:
        if alias in normalized:
            return carrier
    return None


def carrier_from_tracking(tracking: str | None) -> Carrier | None:
    """Return the carrier whose tracking-number format matches, if any."""

    if not tracking:
        return None
    normalized = "".join(tracking.upper().split())
    if not normalized:
        return None
    for pattern, carrier in TRACKING_PATTERNS:
        if pattern.match(normalized):
            return carrier
    return None


def resolve_carrier(shipper: str | None, tracking: str | None) -> Carrier:
    return carrier_from_label(shipper) or carrier_from_tracking(tracking) or Carrier.OTHER
