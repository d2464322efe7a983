"""Translate eBay payload models into marketplace port values."""

from __future__ import annotations

from datetime import UTC
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from marketsync.domain.ports.marketplace import (
    MigrationResult,
    RemoteFulfillment,
    RemoteInventoryItem,
    RemoteOffer,
    RemoteOrder,
    RemoteOrderLine,
    RemoteShippingAddress,
)

if TYPE_CHECKING:
    from datetime import datetime

    from .schema import (
        Amount,
        FulfillmentPayload,
        InventoryItemPayload,
        LineItemPayload,
        MigrateListingResponse,
        OfferPayload,
        OrderPayload,
        PhoneNumber,
    )

_CENT = Decimal("0.01")


def _amount(value: Amount | None) -> Decimal | None:
    if value is None:
        return None
    return value.value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_offer(payload: OfferPayload) -> RemoteOffer:
    price = payload.pricing_summary.price if payload.pricing_summary else None
    return RemoteOffer(
        offer_id=payload.offer_id,
        sku=payload.sku,
        status=payload.status,
        listing_id=payload.listing.listing_id if payload.listing else None,
        price=_amount(price),
        quantity=payload.available_quantity,
    )


def parse_inventory_item(payload: InventoryItemPayload) -> RemoteInventoryItem:
    return RemoteInventoryItem(sku=payload.sku, quantity=payload.quantity)


def parse_migration(payload: MigrateListingResponse) -> MigrationResult:
    migrated = payload.inventory_items[0] if payload.inventory_items else None
    succeeded = 200 <= payload.status_code < 300 and migrated is not None
    message = "; ".join(error.long_message or error.message for error in payload.errors)
    return MigrationResult(
        listing_id=payload.listing_id,
        succeeded=succeeded,
        sku=migrated.sku if migrated else None,
        offer_id=migrated.offer_id if migrated else None,
        message=message,
    )


def parse_order_line(payload: LineItemPayload) -> RemoteOrderLine:
    cost = _amount(payload.line_item_cost)
    unit_price = None
    if cost is not None and payload.quantity > 0:
        unit_price = (cost / payload.quantity).quantize(_CENT, rounding=ROUND_HALF_UP)
    return RemoteOrderLine(
        line_item_id=payload.line_item_id,
        quantity=payload.quantity,
        sku=payload.sku or None,
        legacy_item_id=payload.legacy_item_id,
        title=payload.title,
        unit_price=unit_price,
        fee=_amount(payload.marketplace_fee),
    )


def _phone(number: PhoneNumber | None) -> str:
    return number.phone_number.strip() if number is not None else ""


def parse_ship_to(payload: OrderPayload) -> RemoteShippingAddress | None:
    """Shipping address of the first fulfillment instruction.

    Email and phone fall back to the buyer's registration address.
    """

    ship_to = next(
        (
            instruction.shipping_step.ship_to
            for instruction in payload.fulfillment_start_instructions
            if instruction.shipping_step is not None
            and instruction.shipping_step.ship_to is not None
        ),
        None,
    )
    if ship_to is None:
        return None
    registered = payload.buyer.registration_address
    email = ship_to.email or (registered.email if registered is not None else "")
    phone = _phone(ship_to.primary_phone)
    if not phone and registered is not None:
        phone = _phone(registered.primary_phone)
    contact = ship_to.contact_address
    return RemoteShippingAddress(
        full_name=ship_to.full_name.strip(),
        email=email.strip(),
        company=ship_to.company_name.strip(),
        line1=contact.address_line1.strip(),
        line2=contact.address_line2.strip(),
        postal_code=contact.postal_code.strip(),
        city=contact.city.strip(),
        state=contact.state_or_province.strip(),
        country_code=contact.country_code.strip().upper(),
        phone=phone,
    )


def parse_order(payload: OrderPayload) -> RemoteOrder:
    paid_at = None
    if payload.payment_summary is not None:
        paid_at = next(
            (
                _aware(payment.payment_date)
                for payment in payload.payment_summary.payments
                if payment.payment_date is not None
            ),
            None,
        )
    pricing = payload.pricing_summary
    return RemoteOrder(
        order_id=payload.order_id,
        created=_aware(payload.creation_date),
        buyer=payload.buyer.username,
        fulfillment_status=payload.order_fulfillment_status,
        payment_status=payload.order_payment_status,
        cancel_state=payload.cancel_status.cancel_state if payload.cancel_status else None,
        paid_at=paid_at,
        total=_amount(pricing.total) if pricing else None,
        postage=_amount(pricing.delivery_cost) if pricing else None,
        ship_to=parse_ship_to(payload),
        lines=tuple(parse_order_line(line) for line in payload.line_items),
    )


def parse_fulfillment(payload: FulfillmentPayload) -> RemoteFulfillment:
    return RemoteFulfillment(
        fulfillment_id=payload.fulfillment_id,
        tracking_number=payload.tracking_number,
        carrier=payload.carrier_code,
    )
