"""Catalog timestamp parsing and epoch-millisecond conversion."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from .errors import CatalogDataError

# Catalog audit timestamps carry micro- or millisecond fractions.
TIMESTAMP_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

ISO_INSTANT_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?Z")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_catalog_timestamp(value: Any, field_name: str = "timestamp") -> datetime:
    """
    Parse an audit timestamp from a catalog instance.

    Args:
        value: datetime or ISO-8601 instant string such as
            "2021-03-04T10:11:12.123456Z"
        field_name: Name used in the error message

    Returns:
        Timezone-aware UTC datetime

    Raises:
        CatalogDataError: If the value is missing or malformed
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str) or not value:
        raise CatalogDataError(f"Missing {field_name} on catalog object: {value!r}")

    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    raise CatalogDataError(f"Malformed {field_name} on catalog object: '{value}'")


def is_iso_instant(value: str) -> bool:
    return ISO_INSTANT_PATTERN.fullmatch(value) is not None


def to_epoch_millis(value: datetime) -> int:
    return (_as_utc(value) - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: Union[int, float]) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)
