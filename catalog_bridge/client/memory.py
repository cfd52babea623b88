"""Dict-backed catalog client for tests and local runs."""

import logging
import threading
from typing import Any, Dict, List, Optional

from ..core.catalog_object import REFERENCE_TYPE, CatalogKind, CatalogObject
from ..core.filters import parse_filter
from .base import CatalogClient, matches_attribute_filter

logger = logging.getLogger(__name__)


class InMemoryCatalogClient(CatalogClient):
    """
    Catalog held in memory.

    Filter expressions are evaluated against each object's ``instance.*``
    fields, the same fields the catalog's query language sees.
    """

    def __init__(self):
        self._objects: Dict[CatalogKind, Dict[str, CatalogObject]] = {
            kind: {} for kind in CatalogKind
        }
        self._lock = threading.Lock()
        self.calls: List[str] = []

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def add(self, catalog_object: CatalogObject, kind: CatalogKind = CatalogKind.ENTITY) -> CatalogObject:
        with self._lock:
            self._objects[kind][catalog_object.guid] = catalog_object
        return catalog_object

    def add_entity(self, instance: Dict[str, Any], definition: Dict[str, Any]) -> CatalogObject:
        """Add an entity from catalog-shaped instance and definition records."""
        return self.add(CatalogObject.from_payload(instance, definition, CatalogKind.ENTITY), CatalogKind.ENTITY)

    def add_relationship(self, instance: Dict[str, Any], definition: Dict[str, Any]) -> CatalogObject:
        return self.add(
            CatalogObject.from_payload(instance, definition, CatalogKind.RELATIONSHIP),
            CatalogKind.RELATIONSHIP,
        )

    def add_definition(self, definition: Dict[str, Any], kind: CatalogKind = CatalogKind.ENTITY) -> CatalogObject:
        """Add a definition; ``kind`` is the kind of instance it defines."""
        definition = {"id": definition.get("name"), "definitionType": kind.value, **definition}
        catalog_object = CatalogObject.from_payload(None, definition, kind)
        with self._lock:
            self._objects[CatalogKind.DEFINITION][catalog_object.guid] = catalog_object
        return catalog_object

    def remove(self, native_id: str, kind: CatalogKind = CatalogKind.ENTITY) -> bool:
        with self._lock:
            return self._objects[kind].pop(native_id, None) is not None

    # ------------------------------------------------------------------
    # CatalogClient
    # ------------------------------------------------------------------

    def get_by_id(self, native_id: str, kind: CatalogKind = CatalogKind.ENTITY) -> Optional[CatalogObject]:
        self.calls.append(f"get_by_id:{kind.value}:{native_id}")
        return self._objects[kind].get(native_id)

    def list_by_filter(
        self,
        filter_expression: Optional[str],
        attribute_filter: Optional[Dict[str, Any]] = None,
        kind: CatalogKind = CatalogKind.ENTITY,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> List[CatalogObject]:
        self.calls.append(f"list_by_filter:{kind.value}:{filter_expression}")
        node = parse_filter(filter_expression)

        with self._lock:
            candidates = list(self._objects[kind].values())

        matched = [
            obj for obj in candidates
            if (node is None or node.matches(_filter_record(obj)))
            and matches_attribute_filter(obj, attribute_filter)
        ]
        start = offset or 0
        end = start + limit if limit is not None else None
        logger.debug(f"Filter {filter_expression} matched {len(matched)} {kind.value} objects")
        return matched[start:end]

    def definition_exists_by_name(self, name: str, kind: CatalogKind = CatalogKind.ENTITY) -> bool:
        self.calls.append(f"definition_exists_by_name:{kind.value}:{name}")
        if name.startswith(f"{REFERENCE_TYPE}."):
            name = REFERENCE_TYPE
        return any(
            definition.definition.get("name") == name
            and definition.definition.get("definitionType") == kind.value
            for definition in self._objects[CatalogKind.DEFINITION].values()
        )


def _filter_record(catalog_object: CatalogObject) -> Dict[str, Any]:
    record = dict(catalog_object.instance)
    record.setdefault("id", catalog_object.guid)
    return record
