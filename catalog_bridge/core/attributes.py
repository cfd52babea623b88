"""
Attribute Translator - raw catalog values to typed generic property values.

Three operations:

- ``to_generic_value``: coerce one raw catalog value into a PrimitiveValue of
  the target attribute's declared kind. Coercion failures and unsupported
  kinds are logged and yield None so the property is omitted.
- ``values_match``: compare a typed generic value against a raw catalog value
  during filtering. Strings use regular-expression semantics: the generic
  value is a pattern that must match the whole raw string.
- ``compare``: ordering over typed values for sorting, with None first.
"""

import logging
import re
from datetime import date, datetime, time, timezone
from typing import Any, Optional, Union

from ..models.instances import PrimitiveValue
from ..models.type_defs import AttributeCategory, PrimitiveKind, TypeDefAttribute
from .errors import CatalogDataError
from .timestamps import (
    from_epoch_millis,
    is_iso_instant,
    parse_catalog_timestamp,
    to_epoch_millis,
)

logger = logging.getLogger(__name__)

SUPPORTED_KINDS = frozenset({
    PrimitiveKind.BOOLEAN,
    PrimitiveKind.INT,
    PrimitiveKind.LONG,
    PrimitiveKind.FLOAT,
    PrimitiveKind.STRING,
    PrimitiveKind.DATE,
})

_NUMERIC_KINDS = frozenset({PrimitiveKind.INT, PrimitiveKind.LONG, PrimitiveKind.FLOAT})


def _coerce_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    # Any string other than "true" reads as false
    return str(raw).strip().lower() == "true"


def _coerce_integer(raw: Any) -> int:
    if isinstance(raw, bool):
        raise TypeError(f"Boolean {raw!r} is not an integer value")
    if isinstance(raw, (int, float)):
        return int(raw)
    if isinstance(raw, str):
        return int(raw.strip())
    raise TypeError(f"Cannot convert {type(raw).__name__} to an integer value")


def _coerce_float(raw: Any) -> float:
    if isinstance(raw, bool):
        raise TypeError(f"Boolean {raw!r} is not a float value")
    if isinstance(raw, (int, float, str)):
        return float(raw)
    raise TypeError(f"Cannot convert {type(raw).__name__} to a float value")


def _coerce_date(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return parse_catalog_timestamp(raw)
    if isinstance(raw, date):
        return datetime.combine(raw, time.min, tzinfo=timezone.utc)
    if isinstance(raw, str):
        if is_iso_instant(raw):
            return parse_catalog_timestamp(raw, "date attribute")
        raise ValueError(f"'{raw}' is not an ISO-8601 instant")
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return from_epoch_millis(raw)
    raise TypeError(f"Cannot convert {type(raw).__name__} to a date value")


_COERCERS = {
    PrimitiveKind.BOOLEAN: _coerce_boolean,
    PrimitiveKind.INT: _coerce_integer,
    PrimitiveKind.LONG: _coerce_integer,
    PrimitiveKind.FLOAT: _coerce_float,
    PrimitiveKind.STRING: str,
    PrimitiveKind.DATE: _coerce_date,
}


def _kind_of(target: Union[TypeDefAttribute, PrimitiveKind, None]) -> Optional[PrimitiveKind]:
    if isinstance(target, TypeDefAttribute):
        if target.category != AttributeCategory.PRIMITIVE:
            return None
        return target.primitive_kind
    return target


def to_generic_value(
    target: Union[TypeDefAttribute, PrimitiveKind, None],
    raw: Any
) -> Optional[PrimitiveValue]:
    """
    Convert a raw catalog value to a typed generic value.

    Args:
        target: Target attribute (or its primitive kind)
        raw: Value from the catalog object

    Returns:
        PrimitiveValue, or None when raw is None, the kind is unsupported or
        the value cannot be coerced
    """
    if raw is None:
        return None

    kind = _kind_of(target)
    name = target.name if isinstance(target, TypeDefAttribute) else kind
    if kind not in SUPPORTED_KINDS:
        logger.warning(f"Unsupported attribute kind {kind} for '{name}'; skipping value {raw!r}")
        return None

    try:
        value = _COERCERS[kind](raw)
    except (ValueError, TypeError, OverflowError, CatalogDataError) as e:
        logger.warning(f"Could not convert {raw!r} to {kind.value} for '{name}': {e}")
        return None

    return PrimitiveValue(primitive_kind=kind, value=value)


def _raw_to_datetime(raw: Any) -> Optional[datetime]:
    try:
        return _coerce_date(raw)
    except (ValueError, TypeError, OverflowError, CatalogDataError):
        return None


def values_match(generic_value: Optional[PrimitiveValue], raw: Any) -> bool:
    """
    Check whether a raw catalog value matches a typed generic value.

    String values are regular expressions matched against the entire raw
    string, so ``"^AB.*"`` matches ``"ABC123"``.
    """
    if generic_value is None and raw is None:
        return True
    if generic_value is None or raw is None:
        return False

    kind = generic_value.primitive_kind
    expected = generic_value.value
    if expected is None:
        return False

    if kind == PrimitiveKind.STRING:
        try:
            return re.fullmatch(str(expected), str(raw)) is not None
        except re.error as e:
            logger.warning(f"Invalid search pattern '{expected}': {e}")
            return False

    if kind == PrimitiveKind.DATE:
        actual = _raw_to_datetime(raw)
        if actual is None or not isinstance(expected, datetime):
            return False
        return to_epoch_millis(actual) == to_epoch_millis(expected)

    if kind == PrimitiveKind.BOOLEAN:
        return isinstance(raw, bool) and raw == expected

    if kind in _NUMERIC_KINDS:
        if isinstance(raw, bool):
            return False
        return raw == expected

    logger.warning(f"Unsupported attribute kind {kind} in value match")
    return False


def compare(v1: Optional[PrimitiveValue], v2: Optional[PrimitiveValue]) -> int:
    """
    Order two typed values: -1, 0 or 1.

    None sorts before any value. Values of different or unorderable kinds
    fall back to comparing their string forms.
    """
    if v1 is v2:
        return 0
    if v1 is None or v1.value is None:
        return 0 if (v2 is None or v2.value is None) else -1
    if v2 is None or v2.value is None:
        return 1

    a, b = v1.value, v2.value
    if v1.primitive_kind == v2.primitive_kind and isinstance(b, type(a)):
        return (a > b) - (a < b)
    a, b = str(a), str(b)
    return (a > b) - (a < b)
