"""Ordering, paging and unsupported-parameter checks for result lists."""

import logging
from functools import cmp_to_key
from typing import Callable, List, Optional, Sequence, TypeVar

from ..models.instances import InstanceHeader, InstanceStatus, PrimitiveValue
from ..models.search import PagingOptions, SequencingOrder
from ..models.type_defs import PrimitiveKind
from .attributes import compare
from .errors import FunctionNotSupportedError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=InstanceHeader)

_DESCENDING = frozenset({
    SequencingOrder.CREATION_DATE_RECENT,
    SequencingOrder.LAST_UPDATE_RECENT,
    SequencingOrder.PROPERTY_DESCENDING,
})


def check_supported(options: PagingOptions, operation: str):
    """
    Reject historical queries and status filters other than ACTIVE.

    Raises:
        FunctionNotSupportedError: If the request cannot be served
    """
    if options.as_of_time is not None:
        raise FunctionNotSupportedError(
            f"{operation} does not support historical queries (as_of_time)",
            code="NO_HISTORY",
        )
    statuses = options.status_filter
    if statuses is not None and set(statuses) != {InstanceStatus.ACTIVE}:
        raise FunctionNotSupportedError(
            f"{operation} only supports the ACTIVE status filter, got {[s.value for s in statuses]}"
        )


def _key_function(
    sequencing_property: Optional[str],
    order: SequencingOrder
) -> Optional[Callable[[InstanceHeader], Optional[PrimitiveValue]]]:
    if order == SequencingOrder.GUID:
        return lambda item: PrimitiveValue(primitive_kind=PrimitiveKind.STRING, value=item.guid)
    if order in (SequencingOrder.CREATION_DATE_RECENT, SequencingOrder.CREATION_DATE_OLDEST):
        return lambda item: PrimitiveValue(primitive_kind=PrimitiveKind.DATE, value=item.create_time)
    if order in (SequencingOrder.LAST_UPDATE_RECENT, SequencingOrder.LAST_UPDATE_OLDEST):
        return lambda item: PrimitiveValue(primitive_kind=PrimitiveKind.DATE, value=item.update_time)
    if order in (SequencingOrder.PROPERTY_ASCENDING, SequencingOrder.PROPERTY_DESCENDING):
        if not sequencing_property:
            logger.warning(f"Sequencing order {order.value} given without a sequencing property")
            return None
        return lambda item: getattr(item, "properties", {}).get(sequencing_property)
    return None


def sort_instances(
    items: Sequence[T],
    sequencing_property: Optional[str] = None,
    sequencing_order: Optional[SequencingOrder] = None
) -> List[T]:
    """Stable sort of generic instances by the requested order."""
    items = list(items)
    if sequencing_order is None or sequencing_order == SequencingOrder.ANY:
        return items

    key = _key_function(sequencing_property, sequencing_order)
    if key is None:
        return items

    sign = -1 if sequencing_order in _DESCENDING else 1
    return sorted(items, key=cmp_to_key(lambda a, b: sign * compare(key(a), key(b))))


def page(items: Sequence[T], from_element: int = 0, page_size: int = 0) -> List[T]:
    """Slice [from_element, from_element + page_size), clipped; page_size 0 means no limit."""
    if page_size <= 0:
        return list(items[from_element:])
    return list(items[from_element:from_element + page_size])
