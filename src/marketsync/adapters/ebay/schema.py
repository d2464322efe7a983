"""Pydantic models describing the eBay Sell API payloads we read."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from decimal import Decimal  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field


class EbayBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorDetail(EbayBaseModel):
    error_id: int = Field(alias="errorId", default=0)
    message: str = ""
    long_message: str | None = Field(alias="longMessage", default=None)


class ErrorResponse(EbayBaseModel):
    errors: list[ErrorDetail] = Field(default_factory=list)

    @property
    def message(self) -> str:
        return "; ".join(error.long_message or error.message for error in self.errors)

    @property
    def error_ids(self) -> tuple[int, ...]:
        return tuple(error.error_id for error in self.errors)


class TokenResponse(EbayBaseModel):
    access_token: str
    expires_in: int
    token_type: str = "User Access Token"


class Amount(EbayBaseModel):
    value: Decimal
    currency: str = "EUR"


# Inventory ----------------------------------------------------------------------


class ShipToLocationAvailability(EbayBaseModel):
    quantity: int = 0


class Availability(EbayBaseModel):
    ship_to_location_availability: ShipToLocationAvailability | None = Field(
        alias="shipToLocationAvailability", default=None
    )


class InventoryItemPayload(EbayBaseModel):
    sku: str
    availability: Availability | None = None

    @property
    def quantity(self) -> int:
        if self.availability is None or self.availability.ship_to_location_availability is None:
            return 0
        return self.availability.ship_to_location_availability.quantity


class InventoryItemsResponse(EbayBaseModel):
    inventory_items: list[InventoryItemPayload] = Field(
        alias="inventoryItems", default_factory=list
    )
    total: int = 0


class OfferListing(EbayBaseModel):
    listing_id: str | None = Field(alias="listingId", default=None)
    listing_status: str | None = Field(alias="listingStatus", default=None)


class PricingSummary(EbayBaseModel):
    price: Amount | None = None


class OfferPayload(EbayBaseModel):
    offer_id: str = Field(alias="offerId")
    sku: str
    status: str = ""
    listing: OfferListing | None = None
    pricing_summary: PricingSummary | None = Field(alias="pricingSummary", default=None)
    available_quantity: int | None = Field(alias="availableQuantity", default=None)


class OffersResponse(EbayBaseModel):
    offers: list[OfferPayload] = Field(default_factory=list)
    total: int = 0


class CreateOfferResponse(EbayBaseModel):
    offer_id: str = Field(alias="offerId")


class PublishResponse(EbayBaseModel):
    listing_id: str = Field(alias="listingId")


class MigratedInventoryItem(EbayBaseModel):
    sku: str
    offer_id: str | None = Field(alias="offerId", default=None)


class MigrateListingResponse(EbayBaseModel):
    status_code: int = Field(alias="statusCode")
    listing_id: str = Field(alias="listingId")
    inventory_items: list[MigratedInventoryItem] = Field(
        alias="inventoryItems", default_factory=list
    )
    errors: list[ErrorDetail] = Field(default_factory=list)


class BulkMigrateResponse(EbayBaseModel):
    responses: list[MigrateListingResponse] = Field(default_factory=list)


# Fulfillment --------------------------------------------------------------------


class PhoneNumber(EbayBaseModel):
    phone_number: str = Field(alias="phoneNumber", default="")


class RegistrationAddress(EbayBaseModel):
    email: str = ""
    primary_phone: PhoneNumber | None = Field(alias="primaryPhone", default=None)


class BuyerPayload(EbayBaseModel):
    username: str = ""
    registration_address: RegistrationAddress | None = Field(
        alias="buyerRegistrationAddress", default=None
    )


class ContactAddress(EbayBaseModel):
    address_line1: str = Field(alias="addressLine1", default="")
    address_line2: str = Field(alias="addressLine2", default="")
    city: str = ""
    state_or_province: str = Field(alias="stateOrProvince", default="")
    postal_code: str = Field(alias="postalCode", default="")
    country_code: str = Field(alias="countryCode", default="")


class ShipTo(EbayBaseModel):
    full_name: str = Field(alias="fullName", default="")
    company_name: str = Field(alias="companyName", default="")
    email: str = ""
    contact_address: ContactAddress = Field(
        alias="contactAddress", default_factory=ContactAddress
    )
    primary_phone: PhoneNumber | None = Field(alias="primaryPhone", default=None)


class ShippingStep(EbayBaseModel):
    ship_to: ShipTo | None = Field(alias="shipTo", default=None)


class FulfillmentStartInstruction(EbayBaseModel):
    shipping_step: ShippingStep | None = Field(alias="shippingStep", default=None)


class LineItemPayload(EbayBaseModel):
    line_item_id: str = Field(alias="lineItemId")
    legacy_item_id: str | None = Field(alias="legacyItemId", default=None)
    sku: str | None = None
    title: str = ""
    quantity: int = 1
    line_item_cost: Amount | None = Field(alias="lineItemCost", default=None)
    marketplace_fee: Amount | None = Field(alias="marketplaceFee", default=None)


class Payment(EbayBaseModel):
    payment_date: datetime | None = Field(alias="paymentDate", default=None)
    payment_status: str | None = Field(alias="paymentStatus", default=None)


class PaymentSummary(EbayBaseModel):
    payments: list[Payment] = Field(default_factory=list)


class OrderPricingSummary(EbayBaseModel):
    total: Amount | None = None
    delivery_cost: Amount | None = Field(alias="deliveryCost", default=None)


class CancelStatus(EbayBaseModel):
    cancel_state: str | None = Field(alias="cancelState", default=None)


class OrderPayload(EbayBaseModel):
    order_id: str = Field(alias="orderId")
    creation_date: datetime = Field(alias="creationDate")
    buyer: BuyerPayload = Field(default_factory=BuyerPayload)
    order_fulfillment_status: str = Field(alias="orderFulfillmentStatus", default="")
    order_payment_status: str = Field(alias="orderPaymentStatus", default="")
    cancel_status: CancelStatus | None = Field(alias="cancelStatus", default=None)
    payment_summary: PaymentSummary | None = Field(alias="paymentSummary", default=None)
    pricing_summary: OrderPricingSummary | None = Field(alias="pricingSummary", default=None)
    fulfillment_start_instructions: list[FulfillmentStartInstruction] = Field(
        alias="fulfillmentStartInstructions", default_factory=list
    )
    line_items: list[LineItemPayload] = Field(alias="lineItems", default_factory=list)


class OrdersResponse(EbayBaseModel):
    orders: list[OrderPayload] = Field(default_factory=list)
    total: int = 0


class FulfillmentPayload(EbayBaseModel):
    fulfillment_id: str = Field(alias="fulfillmentId")
    tracking_number: str = Field(alias="shipmentTrackingNumber", default="")
    carrier_code: str = Field(alias="shippingCarrierCode", default="")


class FulfillmentsResponse(EbayBaseModel):
    fulfillments: list[FulfillmentPayload] = Field(default_factory=list)


class RefundResponse(EbayBaseModel):
    refund_id: str | None = Field(alias="refundId", default=None)
    refund_status: str | None = Field(alias="refundStatus", default=None)
