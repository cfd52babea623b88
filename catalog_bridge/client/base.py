"""Catalog-access capability consumed by the translators."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.catalog_object import CatalogKind, CatalogObject


class CatalogClient(ABC):
    """
    Abstract access to the catalog.

    Implementations return None (or an empty list) for absent objects and
    raise ``CatalogClientError`` for transport failures.
    """

    @abstractmethod
    def get_by_id(self, native_id: str, kind: CatalogKind = CatalogKind.ENTITY) -> Optional[CatalogObject]:
        """Fetch one object by native id, or None if absent."""
        pass

    @abstractmethod
    def list_by_filter(
        self,
        filter_expression: Optional[str],
        attribute_filter: Optional[Dict[str, Any]] = None,
        kind: CatalogKind = CatalogKind.ENTITY,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> List[CatalogObject]:
        """
        List objects matching a filter expression.

        Args:
            filter_expression: Catalog filter DSL, or None for all objects
            attribute_filter: Free-form attributes every result must equal
            kind: Kind of object to list
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            Matching catalog objects
        """
        pass

    @abstractmethod
    def definition_exists_by_name(self, name: str, kind: CatalogKind = CatalogKind.ENTITY) -> bool:
        """Check whether the catalog defines a type with this name."""
        pass


def matches_attribute_filter(catalog_object: CatalogObject, attribute_filter: Optional[Dict[str, Any]]) -> bool:
    """True when every attribute filter entry equals the object's attribute."""
    if not attribute_filter:
        return True
    return all(
        catalog_object.attributes.get(name) == value
        for name, value in attribute_filter.items()
    )
