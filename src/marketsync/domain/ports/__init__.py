"""Domain ports (interfaces) for adapters."""

from __future__ import annotations

from .content import ImageLookup, ListingContent
from .marketplace import (
    InventoryPage,
    ListingDraft,
    ListingReceipt,
    MarketplaceClient,
    MigrationResult,
    OrderPage,
    RemoteFulfillment,
    RemoteInventoryItem,
    RemoteOffer,
    RemoteOrder,
    RemoteOrderLine,
    RemoteShippingAddress,
)
from .persistence import (
    CheckpointRepository,
    CustomerRepository,
    InvoiceRepository,
    ItemQuery,
    MirrorItemRepository,
    OrderQuery,
    Repository,
    SourceItemRepository,
    TransactionRepository,
)
from .unit_of_work import RepositoryCollection, SyncRepositories, SyncUnitOfWork, UnitOfWork

__all__ = [
    "CheckpointRepository",
    "CustomerRepository",
    "ImageLookup",
    "InventoryPage",
    "InvoiceRepository",
    "ItemQuery",
    "ListingContent",
    "ListingDraft",
    "ListingReceipt",
    "MarketplaceClient",
    "MigrationResult",
    "MirrorItemRepository",
    "OrderPage",
    "OrderQuery",
    "RemoteFulfillment",
    "RemoteInventoryItem",
    "RemoteOffer",
    "RemoteOrder",
    "RemoteOrderLine",
    "RemoteShippingAddress",
    "Repository",
    "RepositoryCollection",
    "SourceItemRepository",
    "SyncRepositories",
    "SyncUnitOfWork",
    "TransactionRepository",
    "UnitOfWork",
]
