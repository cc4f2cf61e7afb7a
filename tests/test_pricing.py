"""
Price resolution cascade tests.

Tests:
1-3.   Community override precedence
4-7.   Rate sheet inheritance (community -> client -> business unit)
8-13.  Item pricing methods
14-16. Sheet defaults and cost_only fallback
17-22. SKU availability from price books
"""

import pytest

from fenceops.engine.errors import UnknownReferenceError
from fenceops.engine.pricing import (
    BusinessUnit, Client, Community, PriceBook, PriceResolver, PricingBook, RateSheet,
    RateSheetItem,
)

SKU = "WV-6-STD-W"


def _book(items=(), sheets=None, overrides=None, community_sheet=None, client_sheet=None,
          bu_sheet=None):
    sheets = sheets or {
        1: RateSheet(1, "COMM", pricing_type="custom"),
        2: RateSheet(2, "CLIENT", pricing_type="custom"),
        3: RateSheet(3, "BU", pricing_type="formula", default_markup_percent=35),
    }
    return PricingBook(
        rate_sheets=sheets,
        items={(i.rate_sheet_id, i.sku): i for i in items},
        business_units={1: BusinessUnit(1, "ATX", bu_sheet)},
        clients={10: Client(10, "Perry Homes", 1, client_sheet)},
        communities={100: Community(100, "Sunfield", 10, community_sheet)},
        overrides=overrides or {},
    )


# ============================================================
# Community override
# ============================================================

def test_community_override_wins_over_rate_sheets():
    book = _book(
        items=[RateSheetItem(1, SKU, "fixed", fixed_price=60.0)],
        overrides={(100, SKU): 55.0},
        community_sheet=1, client_sheet=2, bu_sheet=3,
    )
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert resolved.price == 55.0
    assert resolved.pricing_method == "community_override"
    assert resolved.pricing_source == "community"


def test_override_is_per_community_and_sku():
    book = _book(overrides={(100, "OTHER"): 99.0})
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert resolved.pricing_method == "cost_only"


def test_override_needs_a_community():
    book = _book(overrides={(100, SKU): 55.0}, bu_sheet=3)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, business_unit_id=1)
    assert resolved.pricing_method == "default_formula"


# ============================================================
# Rate sheet inheritance
# ============================================================

def test_community_sheet_first():
    book = _book(
        items=[RateSheetItem(1, SKU, "fixed", fixed_price=60.0),
               RateSheetItem(2, SKU, "fixed", fixed_price=70.0)],
        community_sheet=1, client_sheet=2,
    )
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert (resolved.price, resolved.pricing_source, resolved.rate_sheet_code) == (60.0, "community", "COMM")


def test_client_sheet_derived_from_community():
    book = _book(items=[RateSheetItem(2, SKU, "fixed", fixed_price=70.0)], client_sheet=2)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert (resolved.price, resolved.pricing_source) == (70.0, "client")


def test_business_unit_sheet_derived_through_client():
    book = _book(items=[RateSheetItem(3, SKU, "markup", markup_percent=25)], bu_sheet=3)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, client_id=10)
    assert (resolved.price, resolved.pricing_source) == (50.0, "business_unit")


def test_inactive_sheet_is_skipped():
    sheets = {
        1: RateSheet(1, "COMM", is_active=False),
        2: RateSheet(2, "CLIENT"),
    }
    book = _book(items=[RateSheetItem(1, SKU, "fixed", fixed_price=60.0),
                        RateSheetItem(2, SKU, "fixed", fixed_price=70.0)],
                 sheets=sheets, community_sheet=1, client_sheet=2)
    assert PriceResolver(book).resolve_price(SKU, 40.0, community_id=100).price == 70.0


def test_unknown_community_raises():
    with pytest.raises(UnknownReferenceError):
        PriceResolver(_book()).resolve_price(SKU, 40.0, community_id=999)


# ============================================================
# Item pricing methods
# ============================================================

def test_fixed_price_carries_labor_material_split():
    book = _book(items=[RateSheetItem(1, SKU, "fixed", fixed_price=60.0,
                                      fixed_labor_price=22.5, fixed_material_price=37.5)],
                 community_sheet=1)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert (resolved.price, resolved.labor_price, resolved.material_price) == (60.0, 22.5, 37.5)


def test_fixed_without_price_uses_base_cost():
    book = _book(items=[RateSheetItem(1, SKU, "fixed")], community_sheet=1)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert (resolved.price, resolved.pricing_method) == (40.0, "fixed")


def test_markup_falls_back_to_sheet_default():
    sheets = {1: RateSheet(1, "COMM", default_markup_percent=10)}
    book = _book(items=[RateSheetItem(1, SKU, "markup")], sheets=sheets, community_sheet=1)
    assert PriceResolver(book).resolve_price(SKU, 40.0, community_id=100).price == 44.0


def test_margin_twenty_percent_on_forty_dollars():
    book = _book(items=[RateSheetItem(1, SKU, "margin", margin_percent=20)], community_sheet=1)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert resolved.price == 50.0
    assert resolved.pricing_method == "margin"


def test_unusable_margin_falls_back(caplog):
    book = _book(items=[RateSheetItem(1, SKU, "margin", margin_percent=100, fixed_price=65.0)],
                 community_sheet=1)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert (resolved.price, resolved.pricing_method) == (65.0, "fixed")
    assert "unusable margin" in caplog.text

    book = _book(items=[RateSheetItem(1, SKU, "margin")], community_sheet=1)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert (resolved.price, resolved.pricing_method) == (40.0, "cost_only")


def test_cost_plus():
    book = _book(items=[RateSheetItem(1, SKU, "cost_plus", cost_plus_amount=7.25),
                        RateSheetItem(1, "BARE", "cost_plus")], community_sheet=1)
    resolver = PriceResolver(book)
    assert resolver.resolve_price(SKU, 40.0, community_id=100).price == 47.25
    assert resolver.resolve_price("BARE", 40.0, community_id=100).price == 40.0


# ============================================================
# Sheet defaults and fallback
# ============================================================

def test_formula_sheet_default_margin_then_markup():
    sheets = {3: RateSheet(3, "BU", pricing_type="hybrid", default_margin_percent=20,
                           default_markup_percent=35)}
    book = _book(sheets=sheets, bu_sheet=3)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, business_unit_id=1)
    assert (resolved.price, resolved.pricing_method) == (50.0, "default_formula")

    book = _book(bu_sheet=3)
    assert PriceResolver(book).resolve_price(SKU, 40.0, business_unit_id=1).price == 54.0


def test_custom_sheet_without_item_is_cost_only():
    book = _book(community_sheet=1)
    resolved = PriceResolver(book).resolve_price(SKU, 40.0, community_id=100)
    assert resolved.pricing_method == "cost_only"
    assert resolved.price == 40.0


def test_nothing_in_chain_is_cost_only():
    resolved = PriceResolver(_book()).resolve_price(SKU, 40.0, community_id=100)
    assert resolved.price == 40.0
    assert resolved.pricing_method == "cost_only"
    assert resolved.pricing_source is None
    assert resolved.is_fallback

    assert PriceResolver(PricingBook()).resolve_price(SKU, 12.3456).price == 12.35


# ============================================================
# Availability
# ============================================================

CATALOG = frozenset({"WV-6-STD-W", "WV-6-GN-W", "WV-8-STD-S", "IR-5-AM"})


def _catalog_book(client_books=None, price_books=None, restrict=False, community_skus=None):
    return PricingBook(
        clients={10: Client(10, "Perry Homes"), 11: Client(11, "Other Builder")},
        communities={
            100: Community(100, "Sunfield", 10, restrict_skus=restrict),
            101: Community(101, "Open Range", 11),
        },
        price_books=price_books or {
            1: PriceBook(1, "WOOD", frozenset({"WV-6-STD-W", "WV-6-GN-W"})),
            2: PriceBook(2, "STEEL", frozenset({"WV-8-STD-S"})),
            3: PriceBook(3, "RETIRED", frozenset({"IR-5-AM"}), is_active=False),
        },
        client_price_books=client_books or {},
        community_skus=community_skus or {},
        skus=CATALOG,
    )


def test_client_without_price_books_sees_full_catalog():
    resolver = PriceResolver(_catalog_book())
    assert resolver.available_skus(client_id=11) == sorted(CATALOG)
    assert resolver.available_skus() == sorted(CATALOG)


def test_assigned_price_books_are_unioned():
    resolver = PriceResolver(_catalog_book(client_books={10: (1, 2)}))
    assert resolver.available_skus(client_id=10) == ["WV-6-GN-W", "WV-6-STD-W", "WV-8-STD-S"]
    assert resolver.available_skus(client_id=11) == sorted(CATALOG)
    assert not resolver.is_available("IR-5-AM", client_id=10)


def test_inactive_price_book_offers_nothing():
    resolver = PriceResolver(_catalog_book(client_books={10: (3,)}))
    assert resolver.available_skus(client_id=10) == []


def test_community_inherits_client_price_books():
    resolver = PriceResolver(_catalog_book(client_books={10: (2,)}))
    assert resolver.available_skus(community_id=100) == ["WV-8-STD-S"]
    assert resolver.available_skus(community_id=101) == sorted(CATALOG)


def test_restricted_community_sees_only_its_products():
    book = _catalog_book(
        client_books={10: (1,)},
        restrict=True,
        community_skus={100: frozenset({"IR-5-AM", "RETIRED-SKU"})},
    )
    resolver = PriceResolver(book)
    assert resolver.available_skus(community_id=100) == ["IR-5-AM"]
    assert resolver.is_available("IR-5-AM", client_id=10, community_id=100)
    assert not resolver.is_available("WV-6-STD-W", community_id=100)


def test_availability_unknown_ids_raise():
    resolver = PriceResolver(_catalog_book())
    with pytest.raises(UnknownReferenceError, match="unknown client 99"):
        resolver.available_skus(client_id=99)
    with pytest.raises(UnknownReferenceError, match="unknown community 999"):
        resolver.available_skus(community_id=999)
