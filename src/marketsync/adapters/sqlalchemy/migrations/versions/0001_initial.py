"""Initial schema: catalog, ledger, marketplace mirror and checkpoints.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from marketsync.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _money() -> sa.Numeric:
    return sa.Numeric(10, 2)


def upgrade() -> None:
    op.create_table(
        "source_item",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("updated", UTCDateTime(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("group_id", sa.String(32), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", _money(), nullable=False),
        sa.Column("listable", sa.Boolean(), nullable=False),
        sa.Column("available_from", UTCDateTime(), nullable=True),
        sa.Column("available_until", UTCDateTime(), nullable=True),
        sa.Column("release_date", UTCDateTime(), nullable=True),
        sa.Column("shop_id", sa.String(64), nullable=True),
        sa.Column("ean", sa.String(32), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_source_item"),
    )
    op.create_table(
        "source_invoice",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("received", UTCDateTime(), nullable=False),
        sa.Column("updated", UTCDateTime(), nullable=False),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("source_ref", sa.String(64), nullable=True),
        sa.Column("buyer", sa.String(128), nullable=False),
        sa.Column("pay_date", UTCDateTime(), nullable=True),
        sa.Column("dispatch_date", UTCDateTime(), nullable=True),
        sa.Column("closed", sa.Boolean(), nullable=False),
        sa.Column("tracking", sa.String(64), nullable=False),
        sa.Column("shipper", sa.String(64), nullable=False),
        sa.Column("total", _money(), nullable=False),
        sa.Column("postage", _money(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_source_invoice"),
        sa.UniqueConstraint("source", "source_ref", name="uq_source_invoice_source"),
    )
    op.create_table(
        "source_invoice_line",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", _money(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.ForeignKeyConstraint(
            ["invoice_id"],
            ["source_invoice.id"],
            name="fk_source_invoice_line_invoice_id_source_invoice",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_source_invoice_line"),
    )
    op.create_index(
        "ix_source_invoice_line_invoice_id", "source_invoice_line", ["invoice_id"]
    )
    op.create_index("ix_source_invoice_line_item_id", "source_invoice_line", ["item_id"])

    op.create_table(
        "mirror_item",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.String(64), nullable=False),
        sa.Column("listing_id", sa.String(32), nullable=False),
        sa.Column("offer_id", sa.String(32), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", _money(), nullable=False),
        sa.Column("created", UTCDateTime(), nullable=False),
        sa.Column("updated", UTCDateTime(), nullable=False),
        sa.Column("deleted", UTCDateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_mirror_item"),
    )
    op.create_index("ix_mirror_item_item_id", "mirror_item", ["item_id"])
    op.create_index(
        "uq_mirror_item_live_item_id",
        "mirror_item",
        ["item_id"],
        unique=True,
        sqlite_where=sa.text("deleted IS NULL"),
        postgresql_where=sa.text("deleted IS NULL"),
    )

    op.create_table(
        "mirror_transaction",
        sa.Column("transaction_id", sa.String(64), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("created", UTCDateTime(), nullable=False),
        sa.Column("item_id", sa.String(64), nullable=True),
        sa.Column("legacy_item_id", sa.String(32), nullable=True),
        sa.Column("buyer", sa.String(128), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("fee", _money(), nullable=False),
        sa.Column("paid", sa.Boolean(), nullable=False),
        sa.Column("shipped", sa.Boolean(), nullable=False),
        sa.Column("canceled", sa.Boolean(), nullable=False),
        sa.Column("tracking", sa.String(64), nullable=False),
        sa.Column("updated", UTCDateTime(), nullable=True),
        sa.Column("paid_checked", UTCDateTime(), nullable=True),
        sa.Column("shipped_checked", UTCDateTime(), nullable=True),
        sa.Column("canceled_checked", UTCDateTime(), nullable=True),
        sa.ForeignKeyConstraint(
            ["invoice_id"],
            ["source_invoice.id"],
            name="fk_mirror_transaction_invoice_id_source_invoice",
        ),
        sa.PrimaryKeyConstraint("transaction_id", name="pk_mirror_transaction"),
    )
    op.create_index("ix_mirror_transaction_order_id", "mirror_transaction", ["order_id"])
    op.create_index("ix_mirror_transaction_invoice_id", "mirror_transaction", ["invoice_id"])

    op.create_table(
        "sync_checkpoint",
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("cursor", sa.String(255), nullable=False),
        sa.Column("updated", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("name", name="pk_sync_checkpoint"),
    )


def downgrade() -> None:
    op.drop_table("sync_checkpoint")
    op.drop_index("ix_mirror_transaction_invoice_id", table_name="mirror_transaction")
    op.drop_index("ix_mirror_transaction_order_id", table_name="mirror_transaction")
    op.drop_table("mirror_transaction")
    op.drop_index("uq_mirror_item_live_item_id", table_name="mirror_item")
    op.drop_index("ix_mirror_item_item_id", table_name="mirror_item")
    op.drop_table("mirror_item")
    op.drop_index("ix_source_invoice_line_item_id", table_name="source_invoice_line")
    op.drop_index("ix_source_invoice_line_invoice_id", table_name="source_invoice_line")
    op.drop_table("source_invoice_line")
    op.drop_table("source_invoice")
    op.drop_table("source_item")
