"""
Unit tests for the request key builder.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from data_access.app.caching.keys import (
    as_prefix,
    build_detail_key,
    build_key,
    freeze,
    is_empty_param,
    is_unset_param,
    key_matches,
    key_resource,
    register_key_order,
)


class TestBuildKey:
    """Test cases for build_key."""

    def test_empty_filters_collapse(self):
        """Test that empty, whitespace and 'all' status filters produce the same key as no filter."""
        base = build_key("coupons", {"page": 1, "limit": 20})

        assert build_key("coupons", {"page": 1, "limit": 20, "status": "all", "search": ""}) == base
        assert build_key("coupons", {"page": 1, "limit": 20, "status": "all", "search": "   "}) == base
        assert build_key("coupons", {"page": 1, "limit": 20, "status": None}) == base

    def test_search_for_all_keeps_its_key(self):
        """Test that a free-text search for 'all' is a real filter."""
        assert build_key("coupons", {"search": "all"}) != build_key("coupons", {})
        assert build_key("coupons", {"search": "all"}) == ("coupons", ("search", "all"))

    def test_all_sentinel_is_case_sensitive(self):
        """Test that only the exact 'all' value collapses."""
        assert build_key("coupons", {"status": "ALL"}) == ("coupons", ("status", "ALL"))
        assert build_key("coupons", {"status": "All"}) != build_key("coupons", {})

    def test_resource_enum_filters_collapse(self):
        """Test the per-resource enum filters that accept 'all'."""
        assert build_key("providers", {"kyc_status": "all", "category_id": "all"}) == ("providers",)
        assert build_key("payments", {"gateway": "all"}) == ("payments",)
        assert build_key("templates", {"channel": "all"}) == ("templates",)
        assert build_key("reports", {"status": "all", "owner": "all"}) == ("reports", ("owner", "all"))

    def test_registered_parameter_order(self):
        """Test that key order follows the registered order, not insertion order."""
        key = build_key("coupons", {"search": "save", "status": "active", "limit": 20, "page": 2})

        assert key == ("coupons", ("page", 2), ("limit", 20), ("status", "active"), ("search", "save"))

    def test_bookings_parameter_order(self):
        """Test the bookings parameter order including date range filters."""
        key = build_key("bookings", {
            "category_id": "cat1",
            "end_date": "2025-03-31",
            "start_date": "2025-03-01",
            "payment_status": "paid",
            "page": 1,
        })

        assert [name for name, _ in key[1:]] == ["page", "payment_status", "start_date", "end_date", "category_id"]

    def test_unregistered_parameters_appended_sorted(self):
        """Test that unknown parameters follow registered ones in sorted order."""
        key = build_key("coupons", {"zeta": 1, "alpha": 2, "page": 1})

        assert key == ("coupons", ("page", 1), ("alpha", 2), ("zeta", 1))

    def test_unregistered_resource_uses_sorted_order(self):
        """Test key building for a resource with no registered order."""
        key = build_key("reports", {"b": 1, "a": 2})

        assert key == ("reports", ("a", 2), ("b", 1))

    def test_different_filters_same_value_do_not_collide(self):
        """Test that two filters carrying the same value produce different keys."""
        by_status = build_key("providers", {"status": "pending"})
        by_kyc = build_key("providers", {"kyc_status": "pending"})

        assert by_status != by_kyc

    def test_unhashable_values_are_frozen(self):
        """Test that list and dict values produce hashable, deep-equal keys."""
        first = build_key("services", {"ids": ["a", "b"], "range": {"min": 1, "max": 2}})
        second = build_key("services", {"range": {"max": 2, "min": 1}, "ids": ["a", "b"]})

        assert first == second
        assert hash(first) == hash(second)

    def test_zero_and_false_are_kept(self):
        """Test that falsy but meaningful values are not dropped."""
        key = build_key("categories", {"page": 0, "status": False})

        assert ("page", 0) in key
        assert ("status", False) in key

    def test_no_params(self):
        """Test key for a resource without parameters."""
        assert build_key("templates") == ("templates",)

    def test_register_key_order(self):
        """Test registering a custom order."""
        register_key_order("widgets", ("size", "color"))

        assert build_key("widgets", {"color": "red", "size": "L"}) == ("widgets", ("size", "L"), ("color", "red"))

    def test_detail_key(self):
        """Test single-entity keys."""
        assert build_detail_key("coupon-detail", "c1") == ("coupon-detail", ("id", "c1"))


class TestKeyMatching:
    """Test cases for key prefix matching."""

    @pytest.fixture
    def key(self):
        return build_key("coupons", {"page": 1, "limit": 20, "status": "active"})

    def test_bare_resource_matches_family(self, key):
        assert key_matches(key, "coupons")
        assert not key_matches(key, "coupon-detail")

    def test_prefix_matches(self, key):
        assert key_matches(key, ("coupons", ("page", 1)))
        assert not key_matches(key, ("coupons", ("page", 2)))

    def test_exact_match(self, key):
        assert key_matches(key, key, exact=True)
        assert not key_matches(key, "coupons", exact=True)

    def test_family_does_not_match_similar_resource(self):
        """Test that 'coupons' does not address 'coupons-stats'."""
        assert not key_matches(("coupons-stats",), "coupons")

    def test_helpers(self, key):
        assert as_prefix("coupons") == ("coupons",)
        assert key_resource(key) == "coupons"
        assert is_empty_param("   ")
        assert not is_empty_param("all")
        assert not is_empty_param(0)
        assert is_unset_param("coupons", "status", "all")
        assert not is_unset_param("coupons", "search", "all")
        assert is_unset_param(None, "search", "")
        assert freeze({"b": [1, 2], "a": {3}}) == (("a", (3,)), ("b", (1, 2)))
