"""HTTP client for the eBay Sell Inventory and Fulfillment APIs."""

from __future__ import annotations

import asyncio
from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from marketsync.adapters.http_resilience import ResilientClient
from marketsync.domain.errors import PermanentRemoteError
from marketsync.domain.ports.marketplace import (
    InventoryPage,
    ListingReceipt,
    OrderPage,
)

from .auth import EbayTokenProvider
from .errors import ensure_success, error_from_exception
from .schema import (
    BulkMigrateResponse,
    CreateOfferResponse,
    FulfillmentsResponse,
    InventoryItemsResponse,
    OfferPayload,
    OffersResponse,
    OrderPayload,
    OrdersResponse,
    PublishResponse,
    RefundResponse,
)
from .translator import (
    parse_fulfillment,
    parse_inventory_item,
    parse_migration,
    parse_offer,
    parse_order,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime
    from decimal import Decimal

    from pydantic import BaseModel

    from marketsync.config.ebay import EbayConfig
    from marketsync.config.http_resilience import ResilienceConfig
    from marketsync.domain.carriers import Carrier
    from marketsync.domain.ports.marketplace import (
        ListingDraft,
        MarketplaceClient,
        MigrationResult,
        RemoteFulfillment,
        RemoteOffer,
        RemoteOrder,
    )

log = getLogger(__name__)

INVENTORY_PATH = "/sell/inventory/v1"
FULFILLMENT_PATH = "/sell/fulfillment/v1"
EBAY_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


def format_ebay_datetime(value: datetime) -> str:
    return value.astimezone(UTC).strftime(EBAY_DATETIME_FORMAT)


def build_order_filter(
    *,
    created_from: datetime | None,
    created_to: datetime | None,
    fulfillment_status: str | None,
) -> str | None:
    parts: list[str] = []
    if created_from is not None or created_to is not None:
        lower = format_ebay_datetime(created_from) if created_from else ""
        upper = format_ebay_datetime(created_to) if created_to else ""
        parts.append(f"creationdate:[{lower}..{upper}]")
    if fulfillment_status:
        parts.append(f"orderfulfillmentstatus:{{{fulfillment_status}}}")
    return ",".join(parts) or None


def _sku_path(sku: str) -> str:
    return f"{INVENTORY_PATH}/inventory_item/{quote(sku, safe='')}"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _parse[TModel: BaseModel](
    model: type[TModel], response: httpx.Response, *, operation: str
) -> TModel:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise PermanentRemoteError(
            f"unexpected response payload: {exc}",
            operation=operation,
            status_code=response.status_code,
        ) from exc


class EbayClient:
    """Marketplace client backed by the eBay REST APIs.

    Every public method runs its own event loop; callers stay synchronous.
    """

    def __init__(
        self,
        config: EbayConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
        token_provider: EbayTokenProvider | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._tokens = token_provider or EbayTokenProvider(config)

    # Listings -----------------------------------------------------------------

    def create_listing(self, draft: ListingDraft) -> ListingReceipt:
        return asyncio.run(self._create_listing_async(draft))

    def update_listing(self, draft: ListingDraft, *, offer_id: str) -> ListingReceipt:
        return asyncio.run(self._update_listing_async(draft, offer_id))

    def set_available_quantity(self, sku: str, quantity: int) -> None:
        asyncio.run(self._set_available_quantity_async(sku, quantity))

    def get_offers(self, sku: str) -> Sequence[RemoteOffer]:
        return asyncio.run(self._get_offers_async(sku))

    def withdraw_offer(self, offer_id: str) -> None:
        asyncio.run(self._withdraw_offer_async(offer_id))

    def bulk_migrate(self, listing_ids: Sequence[str]) -> Sequence[MigrationResult]:
        return asyncio.run(self._bulk_migrate_async(listing_ids))

    def list_inventory_items(self, *, offset: int, limit: int) -> InventoryPage:
        return asyncio.run(self._list_inventory_items_async(offset, limit))

    async def _create_listing_async(self, draft: ListingDraft) -> ListingReceipt:
        async with self._client_factory(self._config.resilience) as client:
            await self._put_inventory_item(client, draft)
            existing = await self._fetch_offers(client, draft.sku)
            if existing:
                offer_id = existing[0].offer_id
                await self._put_offer(client, offer_id, draft)
            else:
                operation = f"create offer {draft.sku}"
                response = await self._call(
                    client,
                    "POST",
                    f"{INVENTORY_PATH}/offer",
                    operation=operation,
                    json=dict(draft.offer),
                )
                offer_id = _parse(CreateOfferResponse, response, operation=operation).offer_id
            listing_id = await self._publish(client, offer_id)
        log.info("Published offer %s for %s as listing %s", offer_id, draft.sku, listing_id)
        return ListingReceipt(listing_id=listing_id, offer_id=offer_id)

    async def _update_listing_async(self, draft: ListingDraft, offer_id: str) -> ListingReceipt:
        async with self._client_factory(self._config.resilience) as client:
            await self._put_inventory_item(client, draft)
            await self._put_offer(client, offer_id, draft)
            listing_id = await self._publish(client, offer_id)
        return ListingReceipt(listing_id=listing_id, offer_id=offer_id)

    async def _set_available_quantity_async(self, sku: str, quantity: int) -> None:
        payload = {"availability": {"shipToLocationAvailability": {"quantity": quantity}}}
        async with self._client_factory(self._config.resilience) as client:
            await self._call(
                client,
                "PUT",
                f"{_sku_path(sku)}/availability",
                operation=f"set quantity {sku}={quantity}",
                json=payload,
                quantity_update=True,
            )

    async def _get_offers_async(self, sku: str) -> list[RemoteOffer]:
        async with self._client_factory(self._config.resilience) as client:
            payloads = await self._fetch_offers(client, sku)
        return [parse_offer(payload) for payload in payloads]

    async def _withdraw_offer_async(self, offer_id: str) -> None:
        async with self._client_factory(self._config.resilience) as client:
            await self._call(
                client,
                "POST",
                f"{INVENTORY_PATH}/offer/{offer_id}/withdraw",
                operation=f"withdraw offer {offer_id}",
            )

    async def _bulk_migrate_async(self, listing_ids: Sequence[str]) -> list[MigrationResult]:
        operation = "bulk migrate listings"
        payload = {"requests": [{"listingId": listing_id} for listing_id in listing_ids]}
        async with self._client_factory(self._config.resilience) as client:
            # 207 Multi-Status carries per-listing results; only hard failures raise
            response = await self._call(
                client,
                "POST",
                f"{INVENTORY_PATH}/bulk_migrate_listing",
                operation=operation,
                json=payload,
            )
        migrated = _parse(BulkMigrateResponse, response, operation=operation)
        return [parse_migration(result) for result in migrated.responses]

    async def _list_inventory_items_async(self, offset: int, limit: int) -> InventoryPage:
        operation = "list inventory items"
        async with self._client_factory(self._config.resilience) as client:
            response = await self._call(
                client,
                "GET",
                f"{INVENTORY_PATH}/inventory_item",
                operation=operation,
                params={"limit": limit, "offset": offset},
            )
        page = _parse(InventoryItemsResponse, response, operation=operation)
        return InventoryPage(
            items=tuple(parse_inventory_item(item) for item in page.inventory_items),
            offset=offset,
            total=page.total,
        )

    async def _put_inventory_item(self, client: ResilientClient, draft: ListingDraft) -> None:
        await self._call(
            client,
            "PUT",
            _sku_path(draft.sku),
            operation=f"put inventory item {draft.sku}",
            json=dict(draft.inventory_item),
        )

    async def _put_offer(self, client: ResilientClient, offer_id: str, draft: ListingDraft) -> None:
        await self._call(
            client,
            "PUT",
            f"{INVENTORY_PATH}/offer/{offer_id}",
            operation=f"update offer {offer_id}",
            json=dict(draft.offer),
        )

    async def _publish(self, client: ResilientClient, offer_id: str) -> str:
        operation = f"publish offer {offer_id}"
        response = await self._call(
            client,
            "POST",
            f"{INVENTORY_PATH}/offer/{offer_id}/publish",
            operation=operation,
        )
        return _parse(PublishResponse, response, operation=operation).listing_id

    async def _fetch_offers(self, client: ResilientClient, sku: str) -> list[OfferPayload]:
        operation = f"get offers {sku}"
        response = await self._call(
            client,
            "GET",
            f"{INVENTORY_PATH}/offer",
            operation=operation,
            params={"sku": sku},
            missing_ok=True,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return []
        return _parse(OffersResponse, response, operation=operation).offers

    # Orders -------------------------------------------------------------------

    def list_orders(
        self,
        *,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
        fulfillment_status: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> OrderPage:
        order_filter = build_order_filter(
            created_from=created_from,
            created_to=created_to,
            fulfillment_status=fulfillment_status,
        )
        return asyncio.run(self._list_orders_async(order_filter, offset, limit))

    def get_order(self, order_id: str) -> RemoteOrder:
        return asyncio.run(self._get_order_async(order_id))

    def get_shipping_fulfillments(self, order_id: str) -> Sequence[RemoteFulfillment]:
        return asyncio.run(self._get_shipping_fulfillments_async(order_id))

    def mark_shipped(
        self,
        order_id: str,
        *,
        tracking: str,
        carrier: Carrier,
        shipped_at: datetime,
    ) -> str:
        return asyncio.run(self._mark_shipped_async(order_id, tracking, carrier, shipped_at))

    def cancel_order(self, order_id: str, *, reason: str) -> None:
        asyncio.run(self._cancel_order_async(order_id, reason))

    def issue_refund(
        self,
        order_id: str,
        *,
        reason: str,
        amount: Decimal | None = None,
        comment: str | None = None,
    ) -> str | None:
        payload: dict[str, object] = {"reasonForRefund": reason}
        if amount is not None:
            payload["orderLevelRefundAmount"] = {"value": f"{amount:.2f}", "currency": "EUR"}
        if comment:
            payload["comment"] = comment
        return asyncio.run(self._issue_refund_async(order_id, payload))

    def mark_paid(self, order_id: str) -> bool:
        """Confirm the payment remotely.

        The Fulfillment API has no mark-as-paid mutation; payment is read back
        from the order instead.
        """

        order = self.get_order(order_id)
        return order.payment_status == "PAID"

    async def _list_orders_async(
        self,
        order_filter: str | None,
        offset: int,
        limit: int,
    ) -> OrderPage:
        operation = "list orders"
        params: dict[str, str | int] = {"limit": limit, "offset": offset}
        if order_filter is not None:
            params["filter"] = order_filter
        async with self._client_factory(self._config.resilience) as client:
            response = await self._call(
                client,
                "GET",
                f"{FULFILLMENT_PATH}/order",
                operation=operation,
                params=params,
            )
        page = _parse(OrdersResponse, response, operation=operation)
        return OrderPage(
            orders=tuple(parse_order(order) for order in page.orders),
            offset=offset,
            total=page.total,
        )

    async def _get_order_async(self, order_id: str) -> RemoteOrder:
        async with self._client_factory(self._config.resilience) as client:
            payload = await self._fetch_order(client, order_id)
        return parse_order(payload)

    async def _fetch_order(self, client: ResilientClient, order_id: str) -> OrderPayload:
        operation = f"get order {order_id}"
        response = await self._call(
            client,
            "GET",
            f"{FULFILLMENT_PATH}/order/{order_id}",
            operation=operation,
        )
        return _parse(OrderPayload, response, operation=operation)

    async def _get_shipping_fulfillments_async(self, order_id: str) -> list[RemoteFulfillment]:
        operation = f"get shipping fulfillments {order_id}"
        async with self._client_factory(self._config.resilience) as client:
            response = await self._call(
                client,
                "GET",
                f"{FULFILLMENT_PATH}/order/{order_id}/shipping_fulfillment",
                operation=operation,
                missing_ok=True,
            )
        if response.status_code == httpx.codes.NOT_FOUND:
            return []
        payload = _parse(FulfillmentsResponse, response, operation=operation)
        return [parse_fulfillment(item) for item in payload.fulfillments]

    async def _mark_shipped_async(
        self,
        order_id: str,
        tracking: str,
        carrier: Carrier,
        shipped_at: datetime,
    ) -> str:
        operation = f"mark shipped {order_id}"
        async with self._client_factory(self._config.resilience) as client:
            order = await self._fetch_order(client, order_id)
            if not order.line_items:
                raise PermanentRemoteError("order has no line items", operation=operation)
            payload = {
                "lineItems": [
                    {"lineItemId": line.line_item_id, "quantity": line.quantity}
                    for line in order.line_items
                ],
                "shippedDate": format_ebay_datetime(shipped_at),
                "shippingCarrierCode": str(carrier),
                "trackingNumber": tracking,
            }
            response = await self._call(
                client,
                "POST",
                f"{FULFILLMENT_PATH}/order/{order_id}/shipping_fulfillment",
                operation=operation,
                json=payload,
            )
        location = response.headers.get("Location", "")
        return location.rstrip("/").rsplit("/", 1)[-1] if location else ""

    async def _cancel_order_async(self, order_id: str, reason: str) -> None:
        async with self._client_factory(self._config.resilience) as client:
            await self._call(
                client,
                "POST",
                f"{FULFILLMENT_PATH}/order/{order_id}/cancel",
                operation=f"cancel order {order_id}",
                json={"cancelStateReason": reason, "legacyOrderId": order_id},
            )

    async def _issue_refund_async(self, order_id: str, payload: dict[str, object]) -> str | None:
        operation = f"issue refund {order_id}"
        async with self._client_factory(self._config.resilience) as client:
            response = await self._call(
                client,
                "POST",
                f"{FULFILLMENT_PATH}/order/{order_id}/issue_refund",
                operation=operation,
                json=payload,
            )
        return _parse(RefundResponse, response, operation=operation).refund_id

    # Transport ----------------------------------------------------------------

    async def _call(
        self,
        client: ResilientClient,
        method: str,
        url: str,
        *,
        operation: str,
        json: object = None,
        params: dict[str, str | int] | None = None,
        quantity_update: bool = False,
        missing_ok: bool = False,
    ) -> httpx.Response:
        token = await self._tokens.access_token(client)
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if json is None:
                response = await client.request(method, url, params=params, headers=headers)
            else:
                response = await client.request(
                    method, url, params=params, headers=headers, json=json
                )
        except httpx.HTTPError as exc:
            log.warning("eBay %s failed: %s", operation, exc)
            raise error_from_exception(exc, operation=operation) from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            self._tokens.invalidate()
        if missing_ok and response.status_code == httpx.codes.NOT_FOUND:
            return response
        return ensure_success(response, operation=operation, quantity_update=quantity_update)


if TYPE_CHECKING:

    def _protocol_check(client: EbayClient) -> MarketplaceClient:
        return client
