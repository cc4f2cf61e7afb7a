"""create bom engine tables

Revision ID: a1f3c9e2b7d4
Revises:
Create Date: 2026-10-19 09:14:52.318204

Product configuration (types, styles, components, formula templates),
materials, labor codes, eligibility rules, rate sheets and the assignment
chain, SKUs, BOM project snapshots and code counters. Tables that already
exist (created by Base.metadata.create_all()) are skipped.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = 'a1f3c9e2b7d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def _id():
    return sa.Column("id", sa.Integer(), primary_key=True)


def upgrade() -> None:
    if not _table_exists("product_types"):
        op.create_table(
            "product_types",
            _id(),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("default_post_spacing", sa.Float(), nullable=True),
            sa.Column("is_active", sa.Boolean(), default=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("product_styles"):
        op.create_table(
            "product_styles",
            _id(),
            sa.Column("product_type_id", sa.Integer(), sa.ForeignKey("product_types.id"), nullable=False),
            sa.Column("code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("formula_adjustments", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), default=True),
            sa.UniqueConstraint("product_type_id", "code", name="uq_style_per_type"),
        )

    if not _table_exists("component_types"):
        op.create_table(
            "component_types",
            _id(),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("unit", sa.String(), nullable=True),
            sa.Column("is_labor", sa.Boolean(), default=False),
        )

    if not _table_exists("product_type_components"):
        op.create_table(
            "product_type_components",
            _id(),
            sa.Column("product_type_id", sa.Integer(), sa.ForeignKey("product_types.id"), nullable=False),
            sa.Column("component_type_id", sa.Integer(), sa.ForeignKey("component_types.id"), nullable=False),
            sa.Column("display_order", sa.Integer(), default=0),
            sa.Column("visibility", sa.JSON(), nullable=True),
            sa.UniqueConstraint("product_type_id", "component_type_id", name="uq_component_per_type"),
        )

    if not _table_exists("formula_templates"):
        op.create_table(
            "formula_templates",
            _id(),
            sa.Column("product_type_id", sa.Integer(), sa.ForeignKey("product_types.id"), nullable=False),
            sa.Column("product_style_id", sa.Integer(), sa.ForeignKey("product_styles.id"), nullable=True),
            sa.Column("component_type_id", sa.Integer(), sa.ForeignKey("component_types.id"), nullable=False),
            sa.Column("expression", sa.Text(), nullable=False),
            sa.Column("rounding_level", sa.String(), nullable=True),
            sa.Column("priority", sa.Integer(), default=0),
            sa.Column("is_active", sa.Boolean(), default=True),
            sa.Column("plain_english", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("materials"):
        op.create_table(
            "materials",
            _id(),
            sa.Column("sku", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("category", sa.String(), nullable=True),
            sa.Column("unit", sa.String(), nullable=True),
            sa.Column("unit_cost", sa.Float(), nullable=True),
            sa.Column("width_inches", sa.Float(), nullable=True),
            sa.Column("length_feet", sa.Float(), nullable=True),
            sa.Column("qty_per_unit", sa.Float(), nullable=True),
            sa.Column("attributes", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), default=True),
        )

    if not _table_exists("labor_codes"):
        op.create_table(
            "labor_codes",
            _id(),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("description", sa.String(), nullable=False),
            sa.Column("unit", sa.String(), nullable=True),
            sa.Column("rate", sa.Float(), nullable=True),
            sa.Column("is_active", sa.Boolean(), default=True),
        )

    if not _table_exists("eligibility_rules"):
        op.create_table(
            "eligibility_rules",
            _id(),
            sa.Column("product_type_id", sa.Integer(), sa.ForeignKey("product_types.id"), nullable=False),
            sa.Column("component_type_id", sa.Integer(), sa.ForeignKey("component_types.id"), nullable=False),
            sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=True),
            sa.Column("labor_code_id", sa.Integer(), sa.ForeignKey("labor_codes.id"), nullable=True),
            sa.Column("attribute_filter", sa.JSON(), nullable=True),
            sa.Column("quantity_formula", sa.Text(), nullable=True),
            sa.Column("is_default", sa.Boolean(), default=False),
            sa.Column("display_order", sa.Integer(), default=0),
            sa.Column("is_active", sa.Boolean(), default=True),
            sa.Column("notes", sa.Text(), nullable=True),
        )

    if not _table_exists("skus"):
        op.create_table(
            "skus",
            _id(),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("product_type_id", sa.Integer(), sa.ForeignKey("product_types.id"), nullable=False),
            sa.Column("product_style_id", sa.Integer(), sa.ForeignKey("product_styles.id"), nullable=True),
            sa.Column("height", sa.Float(), nullable=True),
            sa.Column("post_type", sa.String(), nullable=True),
            sa.Column("variables", sa.JSON(), nullable=True),
            sa.Column("components", sa.JSON(), nullable=True),
            sa.Column("standard_cost", sa.Float(), nullable=True),
            sa.Column("is_active", sa.Boolean(), default=True),
        )

    if not _table_exists("rate_sheets"):
        op.create_table(
            "rate_sheets",
            _id(),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("pricing_type", sa.String(), nullable=True),
            sa.Column("default_markup_percent", sa.Float(), nullable=True),
            sa.Column("default_margin_percent", sa.Float(), nullable=True),
            sa.Column("is_active", sa.Boolean(), default=True),
        )

    if not _table_exists("rate_sheet_items"):
        op.create_table(
            "rate_sheet_items",
            _id(),
            sa.Column("rate_sheet_id", sa.Integer(), sa.ForeignKey("rate_sheets.id"), nullable=False),
            sa.Column("sku_id", sa.Integer(), sa.ForeignKey("skus.id"), nullable=False),
            sa.Column("pricing_method", sa.String(), nullable=True),
            sa.Column("fixed_price", sa.Float(), nullable=True),
            sa.Column("fixed_labor_price", sa.Float(), nullable=True),
            sa.Column("fixed_material_price", sa.Float(), nullable=True),
            sa.Column("markup_percent", sa.Float(), nullable=True),
            sa.Column("margin_percent", sa.Float(), nullable=True),
            sa.Column("cost_plus_amount", sa.Float(), nullable=True),
            sa.UniqueConstraint("rate_sheet_id", "sku_id", name="uq_rate_sheet_sku"),
        )

    if not _table_exists("business_units"):
        op.create_table(
            "business_units",
            _id(),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("rate_sheet_id", sa.Integer(), sa.ForeignKey("rate_sheets.id"), nullable=True),
        )

    if not _table_exists("clients"):
        op.create_table(
            "clients",
            _id(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("business_unit_id", sa.Integer(), sa.ForeignKey("business_units.id"), nullable=True),
            sa.Column("rate_sheet_id", sa.Integer(), sa.ForeignKey("rate_sheets.id"), nullable=True),
        )

    if not _table_exists("communities"):
        op.create_table(
            "communities",
            _id(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=True),
            sa.Column("rate_sheet_id", sa.Integer(), sa.ForeignKey("rate_sheets.id"), nullable=True),
        )

    if not _table_exists("community_products"):
        op.create_table(
            "community_products",
            _id(),
            sa.Column("community_id", sa.Integer(), sa.ForeignKey("communities.id"), nullable=False),
            sa.Column("sku_id", sa.Integer(), sa.ForeignKey("skus.id"), nullable=False),
            sa.Column("price_override", sa.Float(), nullable=True),
            sa.UniqueConstraint("community_id", "sku_id", name="uq_community_sku"),
        )

    if not _table_exists("bom_projects"):
        op.create_table(
            "bom_projects",
            _id(),
            sa.Column("project_code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("community_id", sa.Integer(), sa.ForeignKey("communities.id"), nullable=True),
            sa.Column("lines_json", sa.JSON(), nullable=True),
            sa.Column("materials_json", sa.JSON(), nullable=True),
            sa.Column("labor_json", sa.JSON(), nullable=True),
            sa.Column("material_cost", sa.Float(), nullable=True),
            sa.Column("labor_cost", sa.Float(), nullable=True),
            sa.Column("total_cost", sa.Float(), nullable=True),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("code_counters"):
        op.create_table(
            "code_counters",
            sa.Column("name", sa.String(), primary_key=True),
            sa.Column("value", sa.Integer(), nullable=False, server_default="0"),
        )


def downgrade() -> None:
    for table in (
        "code_counters", "bom_projects", "community_products", "communities", "clients",
        "business_units", "rate_sheet_items", "rate_sheets", "skus", "eligibility_rules",
        "labor_codes", "materials", "formula_templates", "product_type_components",
        "component_types", "product_styles", "product_types",
    ):
        if _table_exists(table):
            op.drop_table(table)
