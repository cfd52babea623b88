"""Tests for the catalog filter query language."""

import pytest

from catalog_bridge.core.filters import (
    FilterSyntaxError,
    and_,
    contains,
    eq,
    format_value,
    or_,
    parse_filter,
)


class TestBuilders:
    """Building filter expressions."""

    def test_plain_tokens_unquoted(self):
        assert eq("type", "casTable") == "eq(type,casTable)"

    def test_values_with_spaces_quoted(self):
        assert contains("name", 'sales "2021"') == 'contains(name,"sales \\"2021\\"")'

    def test_booleans_and_numbers(self):
        assert format_value(True) == "true"
        assert format_value(12) == "12"

    def test_nesting_is_pairwise(self):
        assert and_("a(x,1)", "b(y,2)", "c(z,3)") == "and(and(a(x,1),b(y,2)),c(z,3))"

    def test_empty_clauses_ignored(self):
        assert or_(None, eq("type", "casTable")) == "eq(type,casTable)"
        assert and_() is None


class TestEvaluation:
    """Parsing and evaluating expressions against flat records."""

    @pytest.fixture
    def record(self):
        return {"type": "casTable", "name": "Quarterly Sales", "endpoint1Id": "t1", "isView": False}

    def test_eq(self, record):
        assert parse_filter(eq("type", "casTable")).matches(record)
        assert not parse_filter(eq("type", "casColumn")).matches(record)

    def test_contains_is_case_insensitive(self, record):
        assert parse_filter(contains("name", "sales")).matches(record)

    def test_boolean_field(self, record):
        assert parse_filter(eq("isView", False)).matches(record)

    def test_logical_operators(self, record):
        expression = and_(eq("type", "casTable"), or_(eq("endpoint1Id", "t1"), eq("endpoint2Id", "t1")))
        assert parse_filter(expression).matches(record)

    def test_single_quoted_values(self, record):
        assert parse_filter("or(eq(endpoint1Id,'t1'),eq(endpoint2Id,'t1'))").matches(record)

    def test_missing_field_does_not_match(self, record):
        assert not parse_filter(eq("label", "x")).matches(record)

    def test_empty_expression(self):
        assert parse_filter("") is None
        assert parse_filter(None) is None

    @pytest.mark.parametrize("text", [
        "eq(type,casTable",
        "between(type,a)",
        "eq(type,casTable) trailing",
        'eq(name,"unterminated)',
    ])
    def test_syntax_errors(self, text):
        with pytest.raises(FilterSyntaxError):
            parse_filter(text)
