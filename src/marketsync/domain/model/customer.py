"""Buyer records created from marketplace orders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Customer:
    """Customer of the invoice ledger; ``email`` is the lookup key for repeat buyers."""

    email: str
    created: datetime
    updated: datetime
    id: int | None = None
    first_name: str = ""
    last_name: str = ""
    salutation: str = ""
    address: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = ""
    phone: str = ""
