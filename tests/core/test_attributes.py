"""Tests for attribute value conversion, matching and ordering."""

from datetime import datetime, timezone

import pytest

from catalog_bridge.core.attributes import compare, to_generic_value, values_match
from catalog_bridge.models.instances import PrimitiveValue
from catalog_bridge.models.type_defs import AttributeCategory, PrimitiveKind, TypeDefAttribute


def value(kind: str, raw):
    return PrimitiveValue(primitive_kind=kind, value=raw)


class TestToGenericValue:
    """Raw catalog values coerced to declared kinds."""

    @pytest.mark.parametrize("kind,raw,expected", [
        (PrimitiveKind.STRING, 42, "42"),
        (PrimitiveKind.INT, "17", 17),
        (PrimitiveKind.LONG, 1200, 1200),
        (PrimitiveKind.FLOAT, "2.5", 2.5),
        (PrimitiveKind.BOOLEAN, "TRUE", True),
        (PrimitiveKind.BOOLEAN, "yes", False),
    ])
    def test_coercion(self, kind, raw, expected):
        result = to_generic_value(kind, raw)
        assert result.primitive_kind == kind
        assert result.value == expected

    def test_iso_instant_to_date(self):
        result = to_generic_value(PrimitiveKind.DATE, "2021-03-04T10:11:12.123Z")
        assert result.value == datetime(2021, 3, 4, 10, 11, 12, 123000, tzinfo=timezone.utc)

    def test_epoch_millis_to_date(self):
        result = to_generic_value(PrimitiveKind.DATE, 0)
        assert result.value == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_none_is_absent(self):
        assert to_generic_value(PrimitiveKind.STRING, None) is None

    def test_uncoercible_value_is_skipped(self):
        """A value that cannot be converted yields None instead of raising."""
        assert to_generic_value(PrimitiveKind.INT, "twelve") is None
        assert to_generic_value(PrimitiveKind.DATE, "last tuesday") is None

    def test_unsupported_kind_is_skipped(self):
        assert to_generic_value(PrimitiveKind.BIGDECIMAL, "1.0") is None

    def test_non_primitive_attribute_is_skipped(self):
        attribute = TypeDefAttribute(name="tags", category=AttributeCategory.ARRAY)
        assert to_generic_value(attribute, ["a"]) is None


class TestValuesMatch:
    """Typed match values against raw catalog values."""

    def test_string_is_full_match_regex(self):
        assert values_match(value("string", "^AB.*"), "ABC123")
        assert values_match(value("string", "AB.*"), "ABC123")
        assert not values_match(value("string", "AB"), "ABC123")

    def test_invalid_regex_does_not_match(self):
        assert not values_match(value("string", "(unclosed"), "(unclosed")

    def test_boolean_requires_boolean(self):
        assert values_match(value("boolean", True), True)
        assert not values_match(value("boolean", True), "true")

    def test_numbers(self):
        assert values_match(value("long", 1200), 1200)
        assert not values_match(value("int", 1), True)

    def test_dates_compare_by_millisecond(self):
        expected = datetime(2021, 3, 4, 10, 11, 12, 123000, tzinfo=timezone.utc)
        assert values_match(value("date", expected), "2021-03-04T10:11:12.123456Z")

    def test_none_handling(self):
        assert values_match(None, None)
        assert not values_match(value("string", "x"), None)


class TestCompare:
    """Ordering of typed values."""

    def test_same_kind(self):
        assert compare(value("int", 1), value("int", 2)) == -1
        assert compare(value("string", "b"), value("string", "a")) == 1
        assert compare(value("date", datetime(2020, 1, 1)), value("date", datetime(2020, 1, 1))) == 0

    def test_none_sorts_first(self):
        assert compare(None, value("int", 0)) == -1
        assert compare(value("int", 0), None) == 1
        assert compare(None, None) == 0

    def test_mixed_kinds_compare_as_strings(self):
        assert compare(value("int", 10), value("string", "9")) == -1
