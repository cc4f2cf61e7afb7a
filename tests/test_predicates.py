"""
Attribute filter / visibility predicate tests.
"""

import pytest

from fenceops.engine.errors import ConfigurationError
from fenceops.engine.predicates import (
    ALWAYS, AllOf, Equals, OneOf, Range, may_overlap, predicate_from_filter,
)


def test_empty_filter_always_matches():
    assert predicate_from_filter(None) is ALWAYS
    assert predicate_from_filter({}) is ALWAYS
    assert ALWAYS.parts == ()
    assert ALWAYS.matches({})


def test_scalar_is_equals():
    predicate = predicate_from_filter({"post_type": "STEEL"})
    assert predicate == Equals("post_type", "STEEL")
    assert predicate.matches({"post_type": "STEEL"})
    assert not predicate.matches({"post_type": "WOOD"})
    assert not predicate.matches({"post_type": "steel"})


def test_missing_key_does_not_match():
    assert not predicate_from_filter({"post_type": "STEEL"}).matches({})
    assert not predicate_from_filter({"height": {"max": 6}}).matches({})


def test_list_and_in_are_one_of():
    assert predicate_from_filter({"height": [6, 8]}) == OneOf("height", (6, 8))
    predicate = predicate_from_filter({"style": {"in": ["standard", "good-neighbor"]}})
    assert predicate.matches({"style": "standard"})
    assert not predicate.matches({"style": "exposed"})


def test_range_is_inclusive():
    predicate = predicate_from_filter({"height": {"min": 4, "max": 6}})
    assert predicate == Range("height", 4, 6)
    assert predicate.matches({"height": 4})
    assert predicate.matches({"height": 6})
    assert not predicate.matches({"height": 6.5})
    assert not predicate.matches({"height": "6"})


def test_legacy_suffix_range():
    predicate = predicate_from_filter({"height_min": 4, "height_max": 6})
    assert predicate == Range("height", 4, 6)


def test_several_keys_combine_with_all_of():
    predicate = predicate_from_filter({"post_type": "WOOD", "has_cap": True, "has_trim": True})
    assert isinstance(predicate, AllOf)
    assert predicate.matches({"post_type": "WOOD", "has_cap": True, "has_trim": True})
    assert not predicate.matches({"post_type": "WOOD", "has_cap": True, "has_trim": False})


def test_boolean_does_not_match_number():
    predicate = predicate_from_filter({"has_cap": True})
    assert not predicate.matches({"has_cap": 1})


def test_malformed_filters_raise():
    with pytest.raises(ConfigurationError):
        predicate_from_filter({"height": {"between": [1, 2]}})
    with pytest.raises(ConfigurationError):
        predicate_from_filter({"height_min": "four"})
    with pytest.raises(ConfigurationError):
        predicate_from_filter(["post_type"])


def test_gt_and_lt_are_exclusive():
    predicate = predicate_from_filter({"height": {"gt": 6}})
    assert predicate == Range("height", 6, None, min_exclusive=True)
    assert not predicate.matches({"height": 6})
    assert predicate.matches({"height": 6.005})
    assert predicate.matches({"height": 8})

    below = predicate_from_filter({"height": {"min": 4, "lt": 6}})
    assert below.matches({"height": 4})
    assert below.matches({"height": 5.99})
    assert not below.matches({"height": 6})


def test_inclusive_and_exclusive_bounds_leave_no_gap():
    up_to_six = predicate_from_filter({"height": {"max": 6}})
    over_six = predicate_from_filter({"height": {"gt": 6}})
    for height in (5, 6, 6.001, 6.005, 6.01, 8):
        assert up_to_six.matches({"height": height}) != over_six.matches({"height": height})


def test_conflicting_bounds_raise():
    with pytest.raises(ConfigurationError, match="either min or gt"):
        predicate_from_filter({"height": {"min": 6, "gt": 6}})
    with pytest.raises(ConfigurationError, match="either max or lt"):
        predicate_from_filter({"height": {"max": 6, "lt": 6}})
    with pytest.raises(ConfigurationError, match="must be a number"):
        predicate_from_filter({"height": {"gt": "six"}})
    with pytest.raises(ConfigurationError, match="unknown operator"):
        predicate_from_filter({"height": {"gt": 6, "below": 8}})


# ============================================================
# Overlap between filters
# ============================================================

def _overlap(a, b):
    return may_overlap(predicate_from_filter(a), predicate_from_filter(b))


def test_filters_on_different_keys_overlap():
    assert _overlap({"post_type": "WOOD"}, {"height": {"max": 6}})
    assert _overlap(None, {"post_type": "STEEL"})
    assert _overlap({"post_type": "WOOD"}, {"post_type": "WOOD"})


def test_different_values_are_disjoint():
    assert not _overlap({"post_type": "WOOD"}, {"post_type": "STEEL"})
    assert not _overlap({"style": ["standard", "good-neighbor"]}, {"style": "exposed"})
    assert _overlap({"style": ["standard", "good-neighbor"]}, {"style": {"in": ["exposed", "standard"]}})
    assert not _overlap({"has_cap": True}, {"has_cap": 1})


def test_range_overlap():
    assert not _overlap({"height": {"max": 6}}, {"height": {"gt": 6}})
    assert _overlap({"height": {"max": 6}}, {"height": {"min": 6}})
    assert not _overlap({"height": {"lt": 4}}, {"height": {"min": 4}})
    assert _overlap({"height": {"min": 4}}, {"height": {"min": 8}})
    assert not _overlap({"height_min": 8}, {"height_max": 6})


def test_values_against_range():
    assert not _overlap({"height": [4, 5]}, {"height": {"gt": 6}})
    assert _overlap({"height": [4, 8]}, {"height": {"gt": 6}})
    assert not _overlap({"height": "tall"}, {"height": {"min": 0}})


def test_one_disjoint_key_is_enough():
    assert not _overlap({"post_type": "WOOD", "height": {"max": 6}},
                        {"post_type": "STEEL", "height": {"max": 6}})
