"""SQLAlchemy mapping metadata for the catalog, order ledger and mirror stores."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)

from marketsync.domain.model import (
    Customer,
    MirrorItem,
    MirrorTransaction,
    SourceInvoice,
    SourceInvoiceLine,
    SourceItem,
    SyncCheckpoint,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
Money = Numeric(10, 2, asdecimal=True)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Catalog and ledger (owned by the warehouse system) ---------------------------

source_item_table = Table(
    "source_item",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column("updated", UTCDateTime(), nullable=False),
    Column("name", String(255), nullable=False, default=""),
    Column("group_id", String(32), nullable=False, default=""),
    Column("quantity", Integer, nullable=False, default=0),
    Column("price", Money, nullable=False),
    Column("listable", Boolean, nullable=False, default=False),
    Column("available_from", UTCDateTime(), nullable=True),
    Column("available_until", UTCDateTime(), nullable=True),
    Column("release_date", UTCDateTime(), nullable=True),
    Column("shop_id", String(64), nullable=True),
    Column("ean", String(32), nullable=True),
    Column("description", Text, nullable=False, default=""),
)

customer_table = Table(
    "customer",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, index=True),
    Column("created", UTCDateTime(), nullable=False),
    Column("updated", UTCDateTime(), nullable=False),
    Column("first_name", String(50), nullable=False, default=""),
    Column("last_name", String(50), nullable=False, default=""),
    Column("salutation", String(64), nullable=False, default=""),
    Column("address", Text, nullable=False, default=""),
    Column("postal_code", String(16), nullable=False, default=""),
    Column("city", String(50), nullable=False, default=""),
    Column("country", String(2), nullable=False, default=""),
    Column("phone", String(32), nullable=False, default=""),
)

source_invoice_table = Table(
    "source_invoice",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("received", UTCDateTime(), nullable=False),
    Column("updated", UTCDateTime(), nullable=False),
    Column("source", String(16), nullable=False),
    Column("source_ref", String(64), nullable=True),
    Column("buyer", String(128), nullable=False, default=""),
    Column("customer_id", Integer, ForeignKey("customer.id"), nullable=True, index=True),
    Column("pay_date", UTCDateTime(), nullable=True),
    Column("dispatch_date", UTCDateTime(), nullable=True),
    Column("closed", Boolean, nullable=False, default=False),
    Column("tracking", String(64), nullable=False, default=""),
    Column("shipper", String(64), nullable=False, default=""),
    Column("total", Money, nullable=False),
    Column("postage", Money, nullable=False),
    UniqueConstraint("source", "source_ref"),
)

source_invoice_line_table = Table(
    "source_invoice_line",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("invoice_id", Integer, ForeignKey("source_invoice.id"), nullable=False, index=True),
    Column("item_id", String(64), nullable=False, index=True),
    Column("quantity", Integer, nullable=False),
    Column("price", Money, nullable=False),
    Column("name", String(255), nullable=False, default=""),
)

# Marketplace mirror ------------------------------------------------------------

mirror_item_table = Table(
    "mirror_item",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("item_id", String(64), nullable=False, index=True),
    Column("listing_id", String(32), nullable=False),
    Column("offer_id", String(32), nullable=True),
    Column("quantity", Integer, nullable=False),
    Column("price", Money, nullable=False),
    Column("created", UTCDateTime(), nullable=False),
    Column("updated", UTCDateTime(), nullable=False),
    Column("deleted", UTCDateTime(), nullable=True),
)

# at most one live row per source item
Index(
    "uq_mirror_item_live_item_id",
    mirror_item_table.c.item_id,
    unique=True,
    sqlite_where=mirror_item_table.c.deleted.is_(None),
    postgresql_where=mirror_item_table.c.deleted.is_(None),
)

mirror_transaction_table = Table(
    "mirror_transaction",
    mapper_registry.metadata,
    Column("transaction_id", String(64), primary_key=True),
    Column("order_id", String(64), nullable=False, index=True),
    Column("invoice_id", Integer, ForeignKey("source_invoice.id"), nullable=False, index=True),
    Column("created", UTCDateTime(), nullable=False),
    Column("item_id", String(64), nullable=True),
    Column("legacy_item_id", String(32), nullable=True),
    Column("buyer", String(128), nullable=False, default=""),
    Column("quantity", Integer, nullable=False, default=1),
    Column("fee", Money, nullable=False),
    Column("paid", Boolean, nullable=False, default=False),
    Column("shipped", Boolean, nullable=False, default=False),
    Column("canceled", Boolean, nullable=False, default=False),
    Column("tracking", String(64), nullable=False, default=""),
    Column("updated", UTCDateTime(), nullable=True),
    Column("paid_checked", UTCDateTime(), nullable=True),
    Column("shipped_checked", UTCDateTime(), nullable=True),
    Column("canceled_checked", UTCDateTime(), nullable=True),
)

sync_checkpoint_table = Table(
    "sync_checkpoint",
    mapper_registry.metadata,
    Column("name", String(64), primary_key=True),
    Column("cursor", String(255), nullable=False),
    Column("updated", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(SourceItem, source_item_table)
    mapper_registry.map_imperatively(Customer, customer_table)
    mapper_registry.map_imperatively(SourceInvoice, source_invoice_table)
    mapper_registry.map_imperatively(SourceInvoiceLine, source_invoice_line_table)
    mapper_registry.map_imperatively(MirrorItem, mirror_item_table)
    mapper_registry.map_imperatively(MirrorTransaction, mirror_transaction_table)
    mapper_registry.map_imperatively(SyncCheckpoint, sync_checkpoint_table)

    orm.configure_mappers()
    return mapper_registry
