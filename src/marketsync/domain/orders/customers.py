"""Create or refresh the ledger customer behind a marketplace order."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from marketsync.domain.model import Customer

if TYPE_CHECKING:
    from datetime import datetime

    from marketsync.domain.ports import CustomerRepository, RemoteOrder, RemoteShippingAddress

log = getLogger(__name__)

NAME_LENGTH: Final[int] = 50
GERMAN_SPEAKING: Final[frozenset[str]] = frozenset({"DE", "AT", "CH"})
# placeholder eBay sends when the buyer's phone is withheld
WITHHELD_PHONE: Final[str] = "Invalid Request"


def split_name(full_name: str) -> tuple[str, str]:
    """The last word is the last name; everything before it the first name."""

    parts = full_name.split()
    if len(parts) > 1:
        return " ".join(parts[:-1]), parts[-1]
    return "", full_name.strip()


def salutation(first_name: str, country_code: str) -> str:
    greeting = "Moin" if country_code in GERMAN_SPEAKING else "Hello"
    return f"{greeting} {first_name},"


def address_block(address: RemoteShippingAddress) -> str:
    return "\n".join(line for line in (address.company, address.line1, address.line2) if line)


def city_line(address: RemoteShippingAddress) -> str:
    if address.state:
        return f"{address.city}, {address.state}"
    return address.city


def _shorten(value: str, length: int = NAME_LENGTH) -> str:
    return value[:length]


def apply_address(customer: Customer, address: RemoteShippingAddress, *, now: datetime) -> None:
    first_name, last_name = split_name(address.full_name)
    customer.first_name = _shorten(first_name)
    customer.last_name = _shorten(last_name)
    customer.salutation = salutation(first_name, address.country_code)
    customer.address = address_block(address)
    if address.postal_code:
        customer.postal_code = address.postal_code.upper()
    customer.city = _shorten(city_line(address))
    customer.country = address.country_code
    if address.phone and address.phone != WITHHELD_PHONE:
        customer.phone = address.phone
    customer.updated = now


def record_customer(
    order: RemoteOrder,
    customers: CustomerRepository,
    *,
    now: datetime,
) -> Customer | None:
    """Find the buyer by email or create them, then take over the shipping address.

    Orders without a shipping address yield ``None``; the invoice is imported
    without a customer.
    """

    address = order.ship_to
    if address is None:
        log.warning("Order %s has no shipping address; no customer recorded", order.order_id)
        return None

    email = address.email.lower()
    customer = customers.get_by_email(email) if email else None
    if customer is None:
        customer = Customer(email=email, created=now, updated=now)
        customers.add(customer)
        log.info("New customer %s from order %s", email or "<no email>", order.order_id)
    apply_address(customer, address, now=now)
    customers.flush()
    return customer
