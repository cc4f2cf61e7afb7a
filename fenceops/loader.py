"""
Configuration loader — ORM rows -> frozen engine snapshots.

Input: SQLAlchemy session
Output: engine.Catalog / engine.PricingBook

All reads happen here, once per request; the engine itself never touches the
database. Stored filters are turned into tagged predicates at load time, so a
malformed filter fails here rather than mid-calculation.
"""

import logging
from collections import defaultdict
from datetime import date

from sqlalchemy.orm import Session

from . import models
from .config import settings
from .engine import catalog as cat
from .engine import pricing
from .engine.calculator import BomCalculator
from .engine.predicates import predicate_from_filter

logger = logging.getLogger(__name__)

MATERIAL_DIMENSIONS = ("width_inches", "length_feet", "qty_per_unit")


def _material_attributes(row: models.Material) -> dict:
    attributes = dict(row.attributes or {})
    for name in MATERIAL_DIMENSIONS:
        value = getattr(row, name)
        if value is not None:
            attributes[name] = value
    attributes["unit_cost"] = row.unit_cost or 0.0
    return attributes


def load_catalog(db: Session) -> cat.Catalog:
    product_types = {}
    type_codes = {}
    for row in db.query(models.ProductType).filter(models.ProductType.is_active.is_(True)):
        product_types[row.code] = cat.ProductType(row.code, row.name, row.default_post_spacing)
        type_codes[row.id] = row.code

    styles = {}
    style_codes = {}
    for row in db.query(models.ProductStyle).filter(models.ProductStyle.is_active.is_(True)):
        if row.product_type_id not in type_codes:
            continue
        type_code = type_codes[row.product_type_id]
        styles[(type_code, row.code)] = cat.ProductStyle(
            row.code, type_code, row.name, dict(row.formula_adjustments or {})
        )
        style_codes[row.id] = row.code

    components = {}
    component_codes = {}
    for row in db.query(models.ComponentType).all():
        components[row.code] = cat.ComponentType(row.code, row.name, row.unit or "Each",
                                                 bool(row.is_labor))
        component_codes[row.id] = row.code

    layouts = {}
    for row in db.query(models.ProductTypeComponent).order_by(models.ProductTypeComponent.id):
        if row.product_type_id not in type_codes:
            continue
        type_code = type_codes[row.product_type_id]
        layouts.setdefault(type_code, []).append(cat.ProductTypeComponent(
            type_code,
            component_codes[row.component_type_id],
            row.display_order or 0,
            predicate_from_filter(row.visibility),
        ))

    templates = []
    for row in db.query(models.FormulaTemplate).order_by(models.FormulaTemplate.id):
        if row.product_type_id not in type_codes:
            continue
        if row.product_style_id is not None and row.product_style_id not in style_codes:
            continue
        templates.append(cat.FormulaTemplate(
            product_type=type_codes[row.product_type_id],
            component=component_codes[row.component_type_id],
            expression=row.expression,
            style=style_codes.get(row.product_style_id),
            rounding_level=row.rounding_level or "sku",
            priority=row.priority or 0,
            is_active=bool(row.is_active),
            plain_english=row.plain_english or "",
            id=row.id,
        ))

    materials = {}
    material_skus = {}
    for row in db.query(models.Material).filter(models.Material.is_active.is_(True)):
        materials[row.sku] = cat.Material(
            row.sku, row.name, row.unit or "Each", row.unit_cost or 0.0,
            _material_attributes(row),
        )
        material_skus[row.id] = row.sku

    labor_codes = {}
    labor_ids = {}
    for row in db.query(models.LaborCode).filter(models.LaborCode.is_active.is_(True)):
        labor_codes[row.code] = cat.LaborCode(row.code, row.description, row.unit or "LF",
                                              row.rate or 0.0)
        labor_ids[row.id] = row.code

    rules = []
    query = db.query(models.EligibilityRule).filter(models.EligibilityRule.is_active.is_(True))
    for row in query.order_by(models.EligibilityRule.id):
        if row.product_type_id not in type_codes:
            continue
        # rules pointing at retired materials/labor codes drop out with them
        if row.material_id is not None and row.material_id not in material_skus:
            continue
        if row.labor_code_id is not None and row.labor_code_id not in labor_ids:
            continue
        rules.append(cat.EligibilityRule(
            product_type=type_codes[row.product_type_id],
            component=component_codes[row.component_type_id],
            material_sku=material_skus.get(row.material_id),
            labor_code=labor_ids.get(row.labor_code_id),
            predicate=predicate_from_filter(row.attribute_filter),
            is_default=bool(row.is_default),
            display_order=row.display_order or 0,
            quantity_formula=row.quantity_formula,
            id=row.id,
        ))

    catalog = cat.Catalog(
        product_types=product_types,
        styles=styles,
        components=components,
        layouts={k: tuple(v) for k, v in layouts.items()},
        templates=tuple(templates),
        materials=materials,
        labor_codes=labor_codes,
        rules=tuple(rules),
    )
    logger.debug(
        "Loaded catalog: %d product types, %d templates, %d rules",
        len(product_types), len(templates), len(rules),
    )
    return catalog


def load_calculator(db: Session) -> BomCalculator:
    return BomCalculator(load_catalog(db), default_line_count=settings.DEFAULT_LINE_COUNT)


def load_pricing_book(db: Session) -> pricing.PricingBook:
    sku_rows = db.query(models.Sku).all()
    sku_codes = {row.id: row.code for row in sku_rows}
    active_skus = {row.code for row in sku_rows if row.is_active}

    rate_sheets = {
        row.id: pricing.RateSheet(
            id=row.id,
            code=row.code,
            name=row.name,
            pricing_type=row.pricing_type or "custom",
            default_markup_percent=row.default_markup_percent,
            default_margin_percent=row.default_margin_percent,
            is_active=bool(row.is_active),
        )
        for row in db.query(models.RateSheet).all()
    }

    items = {}
    for row in db.query(models.RateSheetItem).all():
        sku = sku_codes.get(row.sku_id)
        if sku is None:
            continue
        items[(row.rate_sheet_id, sku)] = pricing.RateSheetItem(
            rate_sheet_id=row.rate_sheet_id,
            sku=sku,
            pricing_method=row.pricing_method or "fixed",
            fixed_price=row.fixed_price,
            fixed_labor_price=row.fixed_labor_price,
            fixed_material_price=row.fixed_material_price,
            markup_percent=row.markup_percent,
            margin_percent=row.margin_percent,
            cost_plus_amount=row.cost_plus_amount,
        )

    business_units = {
        row.id: pricing.BusinessUnit(row.id, row.code, row.rate_sheet_id)
        for row in db.query(models.BusinessUnit).all()
    }
    clients = {
        row.id: pricing.Client(row.id, row.name, row.business_unit_id, row.rate_sheet_id)
        for row in db.query(models.Client).all()
    }
    communities = {
        row.id: pricing.Community(row.id, row.name, row.client_id, row.rate_sheet_id,
                                  restrict_skus=bool(row.restrict_skus))
        for row in db.query(models.Community).all()
    }
    overrides = {}
    community_skus = defaultdict(set)
    for row in db.query(models.CommunityProduct).all():
        sku = sku_codes.get(row.sku_id)
        if sku is None:
            continue
        community_skus[row.community_id].add(sku)
        if row.price_override is not None:
            overrides[(row.community_id, sku)] = row.price_override

    book_skus = defaultdict(set)
    for row in db.query(models.PriceBookItem).all():
        sku = sku_codes.get(row.sku_id)
        if sku is not None:
            book_skus[row.price_book_id].add(sku)
    price_books = {
        row.id: pricing.PriceBook(row.id, row.code, frozenset(book_skus[row.id]),
                                  is_active=bool(row.is_active))
        for row in db.query(models.PriceBook).all()
    }

    # expired assignments no longer count, so the client falls back to the full catalog
    today = date.today()
    client_price_books = defaultdict(list)
    query = db.query(models.ClientPriceBookAssignment).order_by(models.ClientPriceBookAssignment.id)
    for row in query:
        if row.expires_at is None or row.expires_at >= today:
            client_price_books[row.client_id].append(row.price_book_id)

    return pricing.PricingBook(
        rate_sheets=rate_sheets,
        items=items,
        business_units=business_units,
        clients=clients,
        communities=communities,
        overrides=overrides,
        price_books=price_books,
        client_price_books={k: tuple(v) for k, v in client_price_books.items()},
        community_skus={k: frozenset(v) for k, v in community_skus.items()},
        skus=frozenset(active_skus),
    )


def load_price_resolver(db: Session) -> pricing.PriceResolver:
    return pricing.PriceResolver(load_pricing_book(db), decimals=settings.PRICE_DECIMALS)
