"""
Catalog filter query language.

The catalog accepts a small S-expression-like DSL:

    eq(field,value)  contains(field,value)  and(a,b)  or(a,b)

Values that are not plain tokens are double-quoted, with ``"`` and ``\\``
escaped. Builders here produce expressions; ``parse_filter`` and
``FilterNode.matches`` evaluate them against flat records for in-memory
catalogs.

Usage:
    from catalog_bridge.core.filters import and_, contains, eq

    and_(eq("type", "casTable"), contains("name", "sales 2021"))
    # 'and(eq(type,casTable),contains(name,"sales 2021"))'
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple, Union

PLAIN_TOKEN = re.compile(r"[A-Za-z0-9_.\-]+")

COMPARISON_OPERATORS = ("eq", "contains")
LOGICAL_OPERATORS = ("and", "or")


class FilterSyntaxError(ValueError):
    """Filter expression could not be parsed."""
    pass


# ============================================================================
# Builders
# ============================================================================

def format_value(value: Any) -> str:
    """Render a value for use in a filter expression."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        value = value.isoformat()
    text = str(value)
    if PLAIN_TOKEN.fullmatch(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def eq(field_name: str, value: Any) -> str:
    return f"eq({field_name},{format_value(value)})"


def contains(field_name: str, value: Any) -> str:
    return f"contains({field_name},{format_value(value)})"


def _combine(operator: str, clauses: Tuple[Optional[str], ...]) -> Optional[str]:
    present = [clause for clause in clauses if clause]
    if not present:
        return None
    combined = present[0]
    for clause in present[1:]:
        combined = f"{operator}({combined},{clause})"
    return combined


def and_(*clauses: Optional[str]) -> Optional[str]:
    """AND clauses together, nesting pairwise. Empty clauses are ignored."""
    return _combine("and", clauses)


def or_(*clauses: Optional[str]) -> Optional[str]:
    """OR clauses together, nesting pairwise. Empty clauses are ignored."""
    return _combine("or", clauses)


# ============================================================================
# Parser and evaluator
# ============================================================================

@dataclass
class FilterNode:
    """Parsed filter expression."""
    operator: str
    field_name: Optional[str] = None
    value: Optional[str] = None
    children: List["FilterNode"] = field(default_factory=list)

    def matches(self, record: Mapping[str, Any]) -> bool:
        if self.operator == "and":
            return all(child.matches(record) for child in self.children)
        if self.operator == "or":
            return any(child.matches(record) for child in self.children)

        actual = record.get(self.field_name)
        if actual is None:
            return False
        actual_text = format_value(actual) if isinstance(actual, bool) else str(actual)
        if self.operator == "eq":
            return actual_text == self.value
        return self.value.lower() in actual_text.lower()


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def error(self, message: str) -> FilterSyntaxError:
        return FilterSyntaxError(f"{message} at position {self.pos} in filter '{self.text}'")

    def skip_space(self):
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def expect(self, char: str):
        self.skip_space()
        if self.pos >= len(self.text) or self.text[self.pos] != char:
            raise self.error(f"Expected '{char}'")
        self.pos += 1

    def token(self) -> str:
        self.skip_space()
        match = PLAIN_TOKEN.match(self.text, self.pos)
        if not match:
            raise self.error("Expected identifier")
        self.pos = match.end()
        return match.group(0)

    def value(self) -> str:
        self.skip_space()
        if self.pos < len(self.text) and self.text[self.pos] in "\"'":
            quote = self.text[self.pos]
            self.pos += 1
            chars = []
            while self.pos < len(self.text):
                char = self.text[self.pos]
                if char == "\\" and self.pos + 1 < len(self.text):
                    chars.append(self.text[self.pos + 1])
                    self.pos += 2
                    continue
                if char == quote:
                    self.pos += 1
                    return "".join(chars)
                chars.append(char)
                self.pos += 1
            raise self.error("Unterminated quoted value")
        return self.token()

    def expression(self) -> FilterNode:
        operator = self.token()
        self.expect("(")
        if operator in COMPARISON_OPERATORS:
            field_name = self.token()
            self.expect(",")
            value = self.value()
            self.expect(")")
            return FilterNode(operator, field_name=field_name, value=value)
        if operator in LOGICAL_OPERATORS:
            children = [self.expression()]
            self.skip_space()
            while self.pos < len(self.text) and self.text[self.pos] == ",":
                self.pos += 1
                children.append(self.expression())
                self.skip_space()
            self.expect(")")
            return FilterNode(operator, children=children)
        raise self.error(f"Unknown filter operator '{operator}'")


def parse_filter(text: Union[str, None]) -> Optional[FilterNode]:
    """
    Parse a filter expression.

    Returns:
        FilterNode, or None for an empty expression

    Raises:
        FilterSyntaxError: If the expression is malformed
    """
    if not text or not text.strip():
        return None
    parser = _Parser(text)
    node = parser.expression()
    parser.skip_space()
    if parser.pos != len(text):
        raise parser.error("Unexpected trailing input")
    return node
