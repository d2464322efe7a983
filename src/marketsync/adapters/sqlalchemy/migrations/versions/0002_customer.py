"""Customers created from marketplace buyers, linked from their invoices.

Revision ID: 0002_customer
Revises: 0001_initial
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from marketsync.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0002_customer"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "customer",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("created", UTCDateTime(), nullable=False),
        sa.Column("updated", UTCDateTime(), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("salutation", sa.String(64), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("postal_code", sa.String(16), nullable=False),
        sa.Column("city", sa.String(50), nullable=False),
        sa.Column("country", sa.String(2), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_customer"),
    )
    op.create_index("ix_customer_email", "customer", ["email"])

    with op.batch_alter_table("source_invoice") as batch:
        batch.add_column(sa.Column("customer_id", sa.Integer(), nullable=True))
        batch.create_foreign_key(
            "fk_source_invoice_customer_id_customer", "customer", ["customer_id"], ["id"]
        )
        batch.create_index("ix_source_invoice_customer_id", ["customer_id"])


def downgrade() -> None:
    with op.batch_alter_table("source_invoice") as batch:
        batch.drop_index("ix_source_invoice_customer_id")
        batch.drop_constraint("fk_source_invoice_customer_id_customer", type_="foreignkey")
        batch.drop_column("customer_id")
    op.drop_index("ix_customer_email", table_name="customer")
    op.drop_table("customer")
