"""
Price resolution cascade.

Input: SKU code, base cost, and optionally a community / client / business unit
Output: ResolvedPrice (price, labor/material split, method, source level)

Order of precedence:
  1. community price override for the SKU
  2. effective rate sheet: community -> client -> business unit
     (first active sheet found wins; the client and BU are derived from the
     community / client when not passed explicitly)
  3. the SKU's item on that sheet, priced by its method
     (fixed, markup, margin, cost_plus)
  4. no item on a formula/hybrid sheet: the sheet's default margin or markup
  5. nothing applies: base cost, method "cost_only"

Availability (which SKUs a client or community may buy) is separate from
price: a community with restrict_skus sees only its own products, a client
with price book assignments sees the union of its active books, and anyone
else sees the full catalog.

Pure math over a frozen PricingBook. No database access.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .errors import UnknownReferenceError

logger = logging.getLogger(__name__)

# --- Pricing methods ---
COMMUNITY_OVERRIDE = "community_override"
FIXED = "fixed"
MARKUP = "markup"
MARGIN = "margin"
COST_PLUS = "cost_plus"
DEFAULT_FORMULA = "default_formula"
COST_ONLY = "cost_only"

ITEM_METHODS = (FIXED, MARKUP, MARGIN, COST_PLUS)
SHEET_TYPES = ("custom", "formula", "hybrid")


@dataclass(frozen=True)
class RateSheet:
    id: int
    code: str
    name: str = ""
    pricing_type: str = "custom"
    default_markup_percent: Optional[float] = None
    default_margin_percent: Optional[float] = None
    is_active: bool = True


@dataclass(frozen=True)
class RateSheetItem:
    rate_sheet_id: int
    sku: str
    pricing_method: str = FIXED
    fixed_price: Optional[float] = None
    fixed_labor_price: Optional[float] = None
    fixed_material_price: Optional[float] = None
    markup_percent: Optional[float] = None
    margin_percent: Optional[float] = None
    cost_plus_amount: Optional[float] = None


@dataclass(frozen=True)
class BusinessUnit:
    id: int
    code: str
    rate_sheet_id: Optional[int] = None


@dataclass(frozen=True)
class Client:
    id: int
    name: str
    business_unit_id: Optional[int] = None
    rate_sheet_id: Optional[int] = None


@dataclass(frozen=True)
class Community:
    id: int
    name: str
    client_id: Optional[int] = None
    rate_sheet_id: Optional[int] = None
    restrict_skus: bool = False


@dataclass(frozen=True)
class PriceBook:
    """Product catalog: which SKUs an assigned client may buy."""
    id: int
    code: str
    skus: frozenset = frozenset()
    is_active: bool = True


@dataclass(frozen=True)
class PricingBook:
    rate_sheets: Mapping = field(default_factory=dict)     # id -> RateSheet
    items: Mapping = field(default_factory=dict)           # (sheet id, sku) -> RateSheetItem
    business_units: Mapping = field(default_factory=dict)  # id -> BusinessUnit
    clients: Mapping = field(default_factory=dict)         # id -> Client
    communities: Mapping = field(default_factory=dict)     # id -> Community
    overrides: Mapping = field(default_factory=dict)       # (community id, sku) -> price
    price_books: Mapping = field(default_factory=dict)     # id -> PriceBook
    client_price_books: Mapping = field(default_factory=dict)  # client id -> price book ids
    community_skus: Mapping = field(default_factory=dict)  # community id -> frozenset of skus
    skus: frozenset = frozenset()                          # every active sku


@dataclass(frozen=True)
class ResolvedPrice:
    price: float
    pricing_method: str
    pricing_source: Optional[str] = None   # community | client | business_unit
    rate_sheet_code: Optional[str] = None
    labor_price: Optional[float] = None
    material_price: Optional[float] = None

    @property
    def is_fallback(self) -> bool:
        return self.pricing_method == COST_ONLY


class PriceResolver:
    """Resolves sell prices against one PricingBook snapshot."""

    def __init__(self, book: PricingBook, decimals: int = 2):
        self.book = book
        self.decimals = decimals

    def _round(self, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        return round(value, self.decimals)

    # --- Assignment chain ---

    def effective_rate_sheet(self, community_id: Optional[int] = None,
                             client_id: Optional[int] = None,
                             business_unit_id: Optional[int] = None):
        """Return (RateSheet, source level) or (None, None)."""
        book = self.book
        chain = []

        if community_id is not None:
            community = book.communities.get(community_id)
            if community is None:
                raise UnknownReferenceError(f"unknown community {community_id}")
            chain.append(("community", community.rate_sheet_id))
            if client_id is None:
                client_id = community.client_id

        if client_id is not None:
            client = book.clients.get(client_id)
            if client is None:
                raise UnknownReferenceError(f"unknown client {client_id}")
            chain.append(("client", client.rate_sheet_id))
            if business_unit_id is None:
                business_unit_id = client.business_unit_id

        if business_unit_id is not None:
            unit = book.business_units.get(business_unit_id)
            if unit is None:
                raise UnknownReferenceError(f"unknown business unit {business_unit_id}")
            chain.append(("business_unit", unit.rate_sheet_id))

        for level, sheet_id in chain:
            if sheet_id is None:
                continue
            sheet = book.rate_sheets.get(sheet_id)
            if sheet is not None and sheet.is_active:
                return sheet, level
        return None, None

    # --- Availability ---

    def available_skus(self, client_id: Optional[int] = None,
                       community_id: Optional[int] = None) -> list:
        """Sorted SKU codes the client / community may buy."""
        book = self.book
        if community_id is not None:
            community = book.communities.get(community_id)
            if community is None:
                raise UnknownReferenceError(f"unknown community {community_id}")
            if community.restrict_skus:
                return sorted(book.community_skus.get(community_id, frozenset()) & book.skus)
            if client_id is None:
                client_id = community.client_id

        if client_id is None:
            return sorted(book.skus)
        if client_id not in book.clients:
            raise UnknownReferenceError(f"unknown client {client_id}")

        book_ids = book.client_price_books.get(client_id, ())
        if not book_ids:
            return sorted(book.skus)
        available = set()
        for book_id in book_ids:
            price_book = book.price_books.get(book_id)
            if price_book is not None and price_book.is_active:
                available |= price_book.skus
        return sorted(available & book.skus)

    def is_available(self, sku: str, client_id: Optional[int] = None,
                     community_id: Optional[int] = None) -> bool:
        return sku in self.available_skus(client_id, community_id)

    # --- Entry point ---

    def resolve_price(self, sku: str, base_cost: float,
                      community_id: Optional[int] = None,
                      client_id: Optional[int] = None,
                      business_unit_id: Optional[int] = None) -> ResolvedPrice:
        if community_id is not None:
            override = self.book.overrides.get((community_id, sku))
            if override is not None:
                return ResolvedPrice(
                    price=self._round(override),
                    pricing_method=COMMUNITY_OVERRIDE,
                    pricing_source="community",
                )

        sheet, source = self.effective_rate_sheet(community_id, client_id, business_unit_id)
        if sheet is None:
            return self._cost_only(base_cost)

        item = self.book.items.get((sheet.id, sku))
        if item is not None:
            return self._price_item(sheet, item, base_cost, source)

        if sheet.pricing_type in ("formula", "hybrid"):
            margin = sheet.default_margin_percent
            if margin is not None and 0 < margin < 100:
                price = base_cost / (1 - margin / 100)
            else:
                price = base_cost * (1 + (sheet.default_markup_percent or 0) / 100)
            return ResolvedPrice(
                price=self._round(price),
                pricing_method=DEFAULT_FORMULA,
                pricing_source=source,
                rate_sheet_code=sheet.code,
            )

        return self._cost_only(base_cost)

    def _cost_only(self, base_cost: float) -> ResolvedPrice:
        return ResolvedPrice(price=self._round(base_cost), pricing_method=COST_ONLY)

    def _price_item(self, sheet: RateSheet, item: RateSheetItem, base_cost: float,
                    source: str) -> ResolvedPrice:
        method = item.pricing_method
        labor_price = material_price = None

        if method == FIXED:
            price = item.fixed_price if item.fixed_price is not None else base_cost
            labor_price = item.fixed_labor_price
            material_price = item.fixed_material_price
        elif method == MARKUP:
            percent = item.markup_percent
            if percent is None:
                percent = sheet.default_markup_percent or 0
            price = base_cost * (1 + percent / 100)
        elif method == MARGIN:
            percent = item.margin_percent
            if percent is None:
                percent = sheet.default_margin_percent
            if percent is None or percent >= 100:
                logger.warning(
                    "Rate sheet %s: unusable margin %s for SKU %s",
                    sheet.code, percent, item.sku,
                )
                if item.fixed_price is not None:
                    return ResolvedPrice(
                        price=self._round(item.fixed_price),
                        pricing_method=FIXED,
                        pricing_source=source,
                        rate_sheet_code=sheet.code,
                        labor_price=self._round(item.fixed_labor_price),
                        material_price=self._round(item.fixed_material_price),
                    )
                return self._cost_only(base_cost)
            price = base_cost / (1 - percent / 100)
        elif method == COST_PLUS:
            price = base_cost + (item.cost_plus_amount or 0)
        else:
            logger.warning(
                "Rate sheet %s: unknown pricing method %r for SKU %s",
                sheet.code, method, item.sku,
            )
            return self._cost_only(base_cost)

        return ResolvedPrice(
            price=self._round(price),
            pricing_method=method,
            pricing_source=source,
            rate_sheet_code=sheet.code,
            labor_price=self._round(labor_price),
            material_price=self._round(material_price),
        )
