"""add price books and sku cost split

Revision ID: c7e2d5a8b913
Revises: a1f3c9e2b7d4
Create Date: 2026-10-19 15:42:08.611930

Price books decide which SKUs a client may buy (rate sheets still decide the
price). Communities can restrict sales to their own community_products.
SKUs gain the material / labor per-foot split of their BOM-derived standard
cost. Adds missing tables and columns idempotently.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = 'c7e2d5a8b913'
down_revision: Union[str, None] = 'a1f3c9e2b7d4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _column_exists(table_name, column_name):
    """Check if a column already exists in the table."""
    bind = op.get_bind()
    insp = inspect(bind)
    columns = [c["name"] for c in insp.get_columns(table_name)]
    return column_name in columns


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    sku_columns = [
        ("standard_material_cost", sa.Float()),
        ("standard_labor_cost", sa.Float()),
        ("standard_cost_calculated_at", sa.DateTime()),
    ]
    for col_name, col_type in sku_columns:
        if not _column_exists("skus", col_name):
            op.add_column("skus", sa.Column(col_name, col_type, nullable=True))

    if not _column_exists("communities", "restrict_skus"):
        op.add_column(
            "communities",
            sa.Column("restrict_skus", sa.Boolean(), nullable=True, server_default=sa.false()),
        )

    if not _table_exists("price_books"):
        op.create_table(
            "price_books",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), default=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("price_book_items"):
        op.create_table(
            "price_book_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("price_book_id", sa.Integer(), sa.ForeignKey("price_books.id"), nullable=False),
            sa.Column("sku_id", sa.Integer(), sa.ForeignKey("skus.id"), nullable=False),
            sa.Column("is_featured", sa.Boolean(), default=False),
            sa.Column("sort_order", sa.Integer(), default=0),
            sa.UniqueConstraint("price_book_id", "sku_id", name="uq_price_book_sku"),
        )

    if not _table_exists("client_price_book_assignments"):
        op.create_table(
            "client_price_book_assignments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("price_book_id", sa.Integer(), sa.ForeignKey("price_books.id"), nullable=False),
            sa.Column("expires_at", sa.Date(), nullable=True),
            sa.UniqueConstraint("client_id", "price_book_id", name="uq_client_price_book"),
        )


def downgrade() -> None:
    for table in ("client_price_book_assignments", "price_book_items", "price_books"):
        if _table_exists(table):
            op.drop_table(table)
    if _column_exists("communities", "restrict_skus"):
        op.drop_column("communities", "restrict_skus")
    for col_name in ("standard_cost_calculated_at", "standard_labor_cost", "standard_material_cost"):
        if _column_exists("skus", col_name):
            op.drop_column("skus", col_name)
