from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, Text, ForeignKey, Boolean, JSON, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


ROUNDING_LEVELS = ["sku", "project", "none"]
PRICING_TYPES = ["custom", "formula", "hybrid"]
PRICING_METHODS = ["fixed", "markup", "margin", "cost_plus"]
COMPONENT_UNITS = ["Each", "Bag", "Yard", "LF", "Coil", "Box"]


# --- Product configuration ---

class ProductType(Base):
    """Fence family: wood-vertical, wood-horizontal, iron."""
    __tablename__ = "product_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    default_post_spacing = Column(Float, nullable=True)  # feet
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    styles = relationship("ProductStyle", back_populates="product_type", cascade="all, delete-orphan")
    components = relationship("ProductTypeComponent", back_populates="product_type",
                              cascade="all, delete-orphan")


class ProductStyle(Base):
    """Variant of a product type. formula_adjustments override formula constants."""
    __tablename__ = "product_styles"
    __table_args__ = (UniqueConstraint("product_type_id", "code", name="uq_style_per_type"),)

    id = Column(Integer, primary_key=True, index=True)
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    formula_adjustments = Column(JSON, default=dict)  # {"post_spacing": 7.71, ...}
    is_active = Column(Boolean, default=True)

    product_type = relationship("ProductType", back_populates="styles")


class ComponentType(Base):
    """Shared across all product types: post, rail, picket, nails_frame, labor..."""
    __tablename__ = "component_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    unit = Column(String, default="Each")
    is_labor = Column(Boolean, default=False)


class ProductTypeComponent(Base):
    """Which components a product type's BOM contains. display_order = execution order."""
    __tablename__ = "product_type_components"
    __table_args__ = (UniqueConstraint("product_type_id", "component_type_id",
                                       name="uq_component_per_type"),)

    id = Column(Integer, primary_key=True, index=True)
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    component_type_id = Column(Integer, ForeignKey("component_types.id"), nullable=False)
    display_order = Column(Integer, default=0)
    visibility = Column(JSON, nullable=True)  # attribute filter, e.g. {"post_type": "STEEL"}

    product_type = relationship("ProductType", back_populates="components")
    component_type = relationship("ComponentType")


class FormulaTemplate(Base):
    """Quantity formula for (type, style or wildcard, component)."""
    __tablename__ = "formula_templates"

    id = Column(Integer, primary_key=True, index=True)
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    product_style_id = Column(Integer, ForeignKey("product_styles.id"), nullable=True)  # NULL = all styles
    component_type_id = Column(Integer, ForeignKey("component_types.id"), nullable=False)
    expression = Column(Text, nullable=False)
    rounding_level = Column(String, default="sku")  # 'sku' | 'project' | 'none'
    priority = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    plain_english = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    product_type = relationship("ProductType")
    product_style = relationship("ProductStyle")
    component_type = relationship("ComponentType")


class Material(Base):
    """Purchasable material with the dimensional attributes formulas read."""
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    unit = Column(String, default="Each")
    unit_cost = Column(Float, default=0.0)
    width_inches = Column(Float, nullable=True)
    length_feet = Column(Float, nullable=True)
    qty_per_unit = Column(Float, nullable=True)
    attributes = Column(JSON, default=dict)  # extra attributes, e.g. {"post_type": "STEEL"}
    is_active = Column(Boolean, default=True)


class LaborCode(Base):
    __tablename__ = "labor_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)  # W02, M03, ...
    description = Column(String, nullable=False)
    unit = Column(String, default="LF")
    rate = Column(Float, default=0.0)
    is_active = Column(Boolean, default=True)


class EligibilityRule(Base):
    """(type, component) -> one material or one labor code, with an attribute filter."""
    __tablename__ = "eligibility_rules"

    id = Column(Integer, primary_key=True, index=True)
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    component_type_id = Column(Integer, ForeignKey("component_types.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=True)
    labor_code_id = Column(Integer, ForeignKey("labor_codes.id"), nullable=True)
    attribute_filter = Column(JSON, nullable=True)
    quantity_formula = Column(Text, nullable=True)  # labor only, defaults to [run_length]
    is_default = Column(Boolean, default=False)
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    notes = Column(Text, nullable=True)

    product_type = relationship("ProductType")
    component_type = relationship("ComponentType")
    material = relationship("Material")
    labor_code = relationship("LaborCode")


class Sku(Base):
    """Sellable fence configuration: type + style + stored variables + material picks."""
    __tablename__ = "skus"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    product_style_id = Column(Integer, ForeignKey("product_styles.id"), nullable=True)
    height = Column(Float, nullable=True)
    post_type = Column(String, nullable=True)  # 'WOOD' | 'STEEL'
    variables = Column(JSON, default=dict)     # {"rail_count": 2, ...}
    components = Column(JSON, default=dict)    # {component code: material sku}
    standard_cost = Column(Float, nullable=True)  # per foot
    standard_material_cost = Column(Float, nullable=True)  # per foot, from the BOM engine
    standard_labor_cost = Column(Float, nullable=True)     # per foot, from the BOM engine
    standard_cost_calculated_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True)

    product_type = relationship("ProductType")
    product_style = relationship("ProductStyle")


# --- Pricing ---

class RateSheet(Base):
    __tablename__ = "rate_sheets"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    pricing_type = Column(String, default="custom")  # 'custom' | 'formula' | 'hybrid'
    default_markup_percent = Column(Float, nullable=True)
    default_margin_percent = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True)

    items = relationship("RateSheetItem", back_populates="rate_sheet", cascade="all, delete-orphan")


class RateSheetItem(Base):
    __tablename__ = "rate_sheet_items"
    __table_args__ = (UniqueConstraint("rate_sheet_id", "sku_id", name="uq_rate_sheet_sku"),)

    id = Column(Integer, primary_key=True, index=True)
    rate_sheet_id = Column(Integer, ForeignKey("rate_sheets.id"), nullable=False)
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False)
    pricing_method = Column(String, default="fixed")  # 'fixed' | 'markup' | 'margin' | 'cost_plus'
    fixed_price = Column(Float, nullable=True)
    fixed_labor_price = Column(Float, nullable=True)
    fixed_material_price = Column(Float, nullable=True)
    markup_percent = Column(Float, nullable=True)
    margin_percent = Column(Float, nullable=True)
    cost_plus_amount = Column(Float, nullable=True)

    rate_sheet = relationship("RateSheet", back_populates="items")
    sku = relationship("Sku")


class BusinessUnit(Base):
    __tablename__ = "business_units"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    rate_sheet_id = Column(Integer, ForeignKey("rate_sheets.id"), nullable=True)


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    business_unit_id = Column(Integer, ForeignKey("business_units.id"), nullable=True)
    rate_sheet_id = Column(Integer, ForeignKey("rate_sheets.id"), nullable=True)


class Community(Base):
    __tablename__ = "communities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    rate_sheet_id = Column(Integer, ForeignKey("rate_sheets.id"), nullable=True)
    restrict_skus = Column(Boolean, default=False)  # only community_products are sold here


class CommunityProduct(Base):
    """Per-community SKU price override. Wins over every rate sheet."""
    __tablename__ = "community_products"
    __table_args__ = (UniqueConstraint("community_id", "sku_id", name="uq_community_sku"),)

    id = Column(Integer, primary_key=True, index=True)
    community_id = Column(Integer, ForeignKey("communities.id"), nullable=False)
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False)
    price_override = Column(Float, nullable=True)

    sku = relationship("Sku")


# --- Price books (which SKUs a client may buy; rate sheets decide the price) ---

class PriceBook(Base):
    __tablename__ = "price_books"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship("PriceBookItem", back_populates="price_book", cascade="all, delete-orphan")


class PriceBookItem(Base):
    __tablename__ = "price_book_items"
    __table_args__ = (UniqueConstraint("price_book_id", "sku_id", name="uq_price_book_sku"),)

    id = Column(Integer, primary_key=True, index=True)
    price_book_id = Column(Integer, ForeignKey("price_books.id"), nullable=False)
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False)
    is_featured = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)

    price_book = relationship("PriceBook", back_populates="items")
    sku = relationship("Sku")


class ClientPriceBookAssignment(Base):
    __tablename__ = "client_price_book_assignments"
    __table_args__ = (UniqueConstraint("client_id", "price_book_id", name="uq_client_price_book"),)

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    price_book_id = Column(Integer, ForeignKey("price_books.id"), nullable=False)
    expires_at = Column(Date, nullable=True)  # NULL = never expires


# --- Projects ---

class BomProject(Base):
    """Snapshot of a calculated BOM. Written once, in one transaction."""
    __tablename__ = "bom_projects"

    id = Column(Integer, primary_key=True, index=True)
    project_code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)
    community_id = Column(Integer, ForeignKey("communities.id"), nullable=True)
    lines_json = Column(JSON, default=list)       # inputs per run
    materials_json = Column(JSON, default=list)   # project totals
    labor_json = Column(JSON, default=list)
    material_cost = Column(Float, default=0.0)
    labor_cost = Column(Float, default=0.0)
    total_cost = Column(Float, default=0.0)
    status = Column(String, default="draft")  # 'draft' | 'ready' | 'ordered'
    created_at = Column(DateTime, default=datetime.utcnow)


class CodeCounter(Base):
    """One row per human-readable code sequence. Incremented atomically."""
    __tablename__ = "code_counters"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)
