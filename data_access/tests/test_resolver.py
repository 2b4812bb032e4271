"""
Unit tests for the generic alias resolver.
"""

import math
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from data_access.app.normalization.resolver import (
    MISSING,
    Alias,
    AliasTable,
    FieldKind,
    coerce,
    flag,
    listing,
    lookup_path,
    nested_total,
    number,
    relation_name,
    resolve_field,
    status,
    text,
)


class TestLookupPath:
    """Test cases for dotted path lookup."""

    def test_nested_mapping(self):
        assert lookup_path({"user": {"name": "Asha"}}, "user.name") == "Asha"

    def test_list_index(self):
        raw = {"service_categories": [{"name": "Cleaning"}]}
        assert lookup_path(raw, "service_categories.0.name") == "Cleaning"

    def test_missing_segments(self):
        assert lookup_path({"user": None}, "user.name") is MISSING
        assert lookup_path({"user": "Asha"}, "user.name") is MISSING
        assert lookup_path({"items": []}, "items.0") is MISSING


class TestCoerce:
    """Test cases for value coercion."""

    @pytest.mark.parametrize("value,expected", [("12.5", 12.5), (3, 3.0), (" 7 ", 7.0)])
    def test_numbers_parsed(self, value, expected):
        assert coerce(value, FieldKind.NUMBER) == expected

    @pytest.mark.parametrize("value", ["abc", "", float("nan"), math.inf, True, None, {"a": 1}])
    def test_unparseable_numbers(self, value):
        assert coerce(value, FieldKind.NUMBER) is MISSING

    def test_integer_truncates(self):
        assert coerce("42.9", FieldKind.INTEGER) == 42

    @pytest.mark.parametrize("value,expected", [(True, True), ("false", False), ("TRUE", True), (0, False)])
    def test_booleans(self, value, expected):
        assert coerce(value, FieldKind.BOOLEAN) is expected

    def test_strings(self):
        assert coerce(12, FieldKind.STRING) == "12"
        assert coerce(True, FieldKind.STRING) is MISSING
        assert coerce({"name": "x"}, FieldKind.STRING) is MISSING

    def test_lists(self):
        assert coerce(("a", "b"), FieldKind.LIST) == ["a", "b"]
        assert coerce("a, b,", FieldKind.LIST) == ["a", "b"]


class TestResolveField:
    """Test cases for resolving one canonical field."""

    def test_canonical_name_wins(self):
        rule = number("value", "discount_value")
        assert resolve_field({"value": 5, "discount_value": 10}, rule) == 5.0

    def test_aliases_in_order(self):
        rule = text("expiry", "expiry_date", "expires_at")
        assert resolve_field({"expires_at": "b", "expiry_date": "a"}, rule) == "a"

    def test_none_falls_through(self):
        rule = text("name", "business_name")
        assert resolve_field({"name": None, "business_name": "QuickFix"}, rule) == "QuickFix"

    def test_kind_defaults(self):
        assert resolve_field({}, text("name")) == ""
        assert resolve_field({}, number("amount")) == 0.0
        assert resolve_field({}, flag("is_per_unit")) is False
        assert resolve_field({}, listing("skills")) == []

    def test_custom_default(self):
        assert resolve_field({}, text("user_name", default="N/A")) == "N/A"

    def test_parse_failure_uses_next_source_then_default(self):
        rule = number("price", "price_per_unit")
        assert resolve_field({"price": "abc", "price_per_unit": "9"}, rule) == 9.0
        assert resolve_field({"price": "abc"}, rule) == 0.0

    def test_value_map_and_choices(self):
        """Test that values outside the map or choices count as unmatched."""
        rule = text(
            "type",
            Alias("coupon_type", value_map={"PERCENTAGE": "percentage", "FLAT_AMOUNT": "fixed"}),
            default="fixed",
            choices=("percentage", "fixed"),
        )

        assert resolve_field({"coupon_type": "PERCENTAGE"}, rule) == "percentage"
        assert resolve_field({"coupon_type": "percentage"}, rule) == "percentage"
        assert resolve_field({"coupon_type": "BOGO"}, rule) == "fixed"
        assert resolve_field({"type": "bogus", "coupon_type": "FLAT_AMOUNT"}, rule) == "fixed"

    def test_canonical_first_can_be_disabled(self):
        rule = text("id", "booking_id", "id", canonical_first=False)
        assert resolve_field({"id": "7", "booking_id": "BK-1"}, rule) == "BK-1"

    def test_transforms(self):
        assert resolve_field({"category": {"name": "Cleaning"}}, text("category", Alias("category", transform=relation_name))) == "Cleaning"
        rule = number("earnings", Alias("earnings", transform=nested_total("total_net")))
        assert resolve_field({"earnings": {"total_net": "12.5"}}, rule) == 12.5


class TestStatusRule:
    """Test cases for status precedence."""

    @pytest.fixture
    def rule(self):
        return status()

    def test_explicit_status_wins(self, rule):
        """Test that an explicit status string wins over is_active."""
        assert resolve_field({"status": "Active", "is_active": False}, rule) == "active"

    @pytest.mark.parametrize("flag_value,expected", [
        (True, "active"),
        (False, "inactive"),
        ("true", "active"),
        ("false", "inactive"),
    ])
    def test_boolean_flag(self, rule, flag_value, expected):
        assert resolve_field({"is_active": flag_value}, rule) == expected

    def test_default(self, rule):
        assert resolve_field({}, rule) == "inactive"
        assert resolve_field({"is_active": "maybe"}, rule) == "inactive"
        assert resolve_field({}, status(default="active")) == "active"


class TestAliasTable:

    def test_derived_fields(self):
        table = AliasTable(
            resource="things",
            rules=(status(),),
            derived={"is_active": lambda values: values["status"] == "active"},
        )

        assert table.apply({"is_active": "true"}) == {"status": "active", "is_active": True}
        assert table.field_names() == ("status", "is_active")
