"""
Type Mapping Registry - catalog types and properties to generic-model types

The registry is built in two phases:

1. ``load_mapping_table`` reads the declarative YAML table and builds an
   immutable ``MappingTable``: name maps in both directions keyed by prefix,
   property maps, endpoint maps and the reserved set.
2. Type negotiation registers generic type defs as implemented or
   unimplemented. Registration is guarded by a lock and promotes declared
   supertypes of implemented types by walking the supertype chain until it
   reaches a fixed point.

A ``None`` prefix denotes a plain one-to-one mapping; any other prefix marks
one of several generic types synthesized from a single catalog type.

Usage:
    from catalog_bridge.core.type_mapping import TypeMappingRegistry

    registry = TypeMappingRegistry.from_yaml()      # packaged table
    registry.all_catalog_names_for("RelationalTable")   # {None: "casTable"}
    registry.register_implemented(type_def)
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx
import yaml
from pydantic import ValidationError

from ..models.mapping import MappingRecord, MappingTableFile
from ..models.type_defs import GenericTypesFile, TypeDef, TypeDefAttribute, TypeDefLink
from .errors import MappingConfigurationError, TypeDefNotSupportedError

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_MAPPINGS_PATH = DATA_DIR / "type_mappings.yaml"
DEFAULT_GENERIC_TYPES_PATH = DATA_DIR / "generic_types.yaml"


# ============================================================================
# Mapping Table (phase 1)
# ============================================================================

@dataclass(frozen=True)
class EndpointMapping:
    """Endpoint roles of a relationship-shaped mapping.

    Attributes:
        catalog_type: Catalog relationship (or entity, when synthesized) type name
        generic_type: Generic relationship type name
        catalog_endpoint_one: Catalog endpoint field for end one
        generic_endpoint_one: Generic endpoint role for end one
        prefix_one: Prefix of the generic entity type at end one
        catalog_endpoint_two: Catalog endpoint field for end two
        generic_endpoint_two: Generic endpoint role for end two
        prefix_two: Prefix of the generic entity type at end two
    """
    catalog_type: str
    generic_type: str
    catalog_endpoint_one: str
    generic_endpoint_one: str
    prefix_one: Optional[str]
    catalog_endpoint_two: str
    generic_endpoint_two: str
    prefix_two: Optional[str]


# prefix -> value
PrefixMap = Dict[Optional[str], str]
# prefix -> {generic property -> catalog property}
PropertyMaps = Dict[Optional[str], Dict[str, str]]


@dataclass
class MappingTable:
    """All mappings loaded from the declarative table. Not mutated after load."""
    generic_to_catalog: Dict[str, PrefixMap] = field(default_factory=dict)
    catalog_to_generic: Dict[str, PrefixMap] = field(default_factory=dict)
    prefix_to_generic: Dict[str, str] = field(default_factory=dict)
    generic_property_maps: Dict[str, PropertyMaps] = field(default_factory=dict)
    catalog_property_maps: Dict[str, PropertyMaps] = field(default_factory=dict)
    catalog_endpoint_maps: Dict[str, Dict[Optional[str], EndpointMapping]] = field(default_factory=dict)
    reserved: Set[str] = field(default_factory=set)
    records: List[MappingRecord] = field(default_factory=list)

    def add_record(self, record: MappingRecord) -> bool:
        """Index one mapping record. Returns False if the record was skipped."""
        endpoints = record.endpoint_mappings
        if endpoints and len(endpoints) != 2:
            logger.warning(
                f"Skipping mapping {record.catalog} -> {record.generic}: "
                f"expected exactly 2 endpoint mappings, found {len(endpoints)}"
            )
            return False

        prefix = record.prefix
        self.generic_to_catalog.setdefault(record.generic, {})[prefix] = record.catalog
        self.catalog_to_generic.setdefault(record.catalog, {})[prefix] = record.generic
        if prefix is not None:
            self.prefix_to_generic[prefix] = record.generic

        if record.property_mappings:
            properties = {pm.generic: pm.catalog for pm in record.property_mappings}
            self.generic_property_maps.setdefault(record.generic, {})[prefix] = properties
            self.catalog_property_maps.setdefault(record.catalog, {})[prefix] = dict(properties)

        if endpoints:
            one, two = endpoints
            mapping = EndpointMapping(
                catalog_type=record.catalog,
                generic_type=record.generic,
                catalog_endpoint_one=one.catalog,
                generic_endpoint_one=one.generic,
                prefix_one=one.prefix,
                catalog_endpoint_two=two.catalog,
                generic_endpoint_two=two.generic,
                prefix_two=two.prefix,
            )
            self.catalog_endpoint_maps.setdefault(record.catalog, {})[prefix] = mapping

        self.records.append(record)
        return True


def build_mapping_table(records: Iterable[MappingRecord], reserved: Iterable[str] = ()) -> MappingTable:
    """Index validated mapping records into a MappingTable."""
    table = MappingTable(reserved=set(reserved))
    for record in records:
        table.add_record(record)
    return table


def load_mapping_table(path: Optional[Path] = None) -> MappingTable:
    """
    Load and index the declarative mapping table.

    Args:
        path: YAML file; defaults to the packaged type_mappings.yaml

    Returns:
        MappingTable

    Raises:
        MappingConfigurationError: If the file is missing or does not match
            the mapping table schema
    """
    path = Path(path) if path else DEFAULT_MAPPINGS_PATH
    if not path.exists():
        raise MappingConfigurationError(
            f"Required mapping table not found: {path}. "
            f"Expected location: {path.parent}"
        )

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        document = MappingTableFile.model_validate(raw)
    except yaml.YAMLError as e:
        raise MappingConfigurationError(f"Mapping table {path} is not valid YAML: {e}") from e
    except ValidationError as e:
        raise MappingConfigurationError(f"Mapping table {path} failed validation: {e}") from e

    table = build_mapping_table(document.mappings, document.reserved)
    logger.info(
        f"Loaded {len(table.records)} type mappings from {path.name} "
        f"({len(document.mappings) - len(table.records)} skipped, "
        f"{len(table.reserved)} reserved)"
    )
    return table


def load_generic_types(path: Optional[Path] = None) -> List[TypeDef]:
    """
    Load generic type defs offered during type negotiation.

    Args:
        path: YAML file; defaults to the packaged generic_types.yaml

    Returns:
        Type defs in file order (supertypes should precede subtypes)

    Raises:
        MappingConfigurationError: If the file is missing or invalid
    """
    path = Path(path) if path else DEFAULT_GENERIC_TYPES_PATH
    if not path.exists():
        raise MappingConfigurationError(f"Required generic types file not found: {path}")

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        document = GenericTypesFile.model_validate(raw)
    except yaml.YAMLError as e:
        raise MappingConfigurationError(f"Generic types file {path} is not valid YAML: {e}") from e
    except ValidationError as e:
        raise MappingConfigurationError(f"Generic types file {path} failed validation: {e}") from e

    logger.info(f"Loaded {len(document.types)} generic type defs from {path.name}")
    return document.types


# ============================================================================
# Type Mapping Registry (phase 2)
# ============================================================================

class TypeMappingRegistry:
    """
    Lookup algebra over the mapping table plus type negotiation state.

    Lookups are safe for concurrent readers. Registration mutates the
    negotiation state under a lock.
    """

    def __init__(self, table: MappingTable):
        self._table = table
        self._lock = threading.RLock()

        self._type_defs_by_guid: Dict[str, TypeDef] = {}
        self._guids_by_name: Dict[str, str] = {}
        self._unimplemented: Dict[str, TypeDef] = {}
        self._known_by_name: Dict[str, TypeDef] = {}
        self._attributes_by_name: Dict[str, Dict[str, TypeDefAttribute]] = {}
        self._identity_property_maps: Dict[str, Dict[str, str]] = {}
        self._supertypes_to_add: Set[str] = set()

        # Edges point from subtype to supertype
        self._hierarchy = nx.DiGraph()

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "TypeMappingRegistry":
        return cls(load_mapping_table(path))

    @property
    def table(self) -> MappingTable:
        return self._table

    # ------------------------------------------------------------------
    # Name lookups
    # ------------------------------------------------------------------

    def is_mapped(self, generic_name: str) -> bool:
        return generic_name in self._table.generic_to_catalog

    def is_reserved(self, generic_name: str) -> bool:
        return generic_name in self._table.reserved

    def is_implemented(self, generic_name: str) -> bool:
        return generic_name in self._guids_by_name

    def all_catalog_names_for(self, generic_name: str) -> Dict[Optional[str], str]:
        """
        All catalog type names a generic type maps to, keyed by prefix.

        An implemented but unmapped generic type maps to itself under the
        ``None`` prefix; an unknown type maps to nothing.
        """
        mapped = self._table.generic_to_catalog.get(generic_name)
        if mapped is not None:
            return dict(mapped)
        if self.is_implemented(generic_name):
            return {None: generic_name}
        return {}

    def catalog_name_for(self, generic_name: str, prefix: Optional[str] = None) -> Optional[str]:
        return self.all_catalog_names_for(generic_name).get(prefix)

    def all_generic_names_for(self, catalog_name: Optional[str]) -> Dict[Optional[str], str]:
        """All generic type names a catalog type maps to, keyed by prefix."""
        if catalog_name is None:
            return {}
        mapped = self._table.catalog_to_generic.get(catalog_name)
        if mapped is not None:
            return dict(mapped)
        if self.is_implemented(catalog_name):
            return {None: catalog_name}
        return {}

    def generic_name_for(self, catalog_name: Optional[str], prefix: Optional[str] = None) -> Optional[str]:
        return self.all_generic_names_for(catalog_name).get(prefix)

    def generic_name_for_prefix(self, prefix: str) -> Optional[str]:
        return self._table.prefix_to_generic.get(prefix)

    def mapped_generic_names(self) -> List[str]:
        return list(self._table.generic_to_catalog.keys())

    # ------------------------------------------------------------------
    # Property and endpoint lookups
    # ------------------------------------------------------------------

    def property_mapping(self, catalog_name: Optional[str], prefix: Optional[str] = None) -> Dict[str, str]:
        """
        Property mapping for a catalog type, as generic property -> catalog key.

        Falls back to the generic-indexed table when the catalog type has no
        declared property mappings.
        """
        by_prefix = self._table.catalog_property_maps.get(catalog_name)
        if by_prefix is not None:
            return dict(by_prefix.get(prefix, {}))
        generic_name = self.generic_name_for(catalog_name, prefix)
        if generic_name is None:
            return {}
        return self._generic_property_mapping(generic_name, prefix, allow_catalog_fallback=False)

    def generic_property_mapping(self, generic_name: str, prefix: Optional[str] = None) -> Dict[str, str]:
        """Property mapping for a generic type; falls back to the catalog-indexed table."""
        return self._generic_property_mapping(generic_name, prefix, allow_catalog_fallback=True)

    def _generic_property_mapping(
        self,
        generic_name: str,
        prefix: Optional[str],
        allow_catalog_fallback: bool
    ) -> Dict[str, str]:
        by_prefix = self._table.generic_property_maps.get(generic_name)
        if by_prefix is not None:
            return dict(by_prefix.get(prefix, {}))
        if prefix is None and generic_name in self._identity_property_maps:
            return dict(self._identity_property_maps[generic_name])
        if allow_catalog_fallback:
            catalog_name = self.catalog_name_for(generic_name, prefix)
            catalog_maps = self._table.catalog_property_maps.get(catalog_name)
            if catalog_maps is not None:
                return dict(catalog_maps.get(prefix, {}))
        return {}

    def endpoint_mapping(self, catalog_name: Optional[str], prefix: Optional[str] = None) -> Optional[EndpointMapping]:
        return self._table.catalog_endpoint_maps.get(catalog_name, {}).get(prefix)

    def all_endpoint_mappings_for(self, catalog_name: Optional[str]) -> Dict[Optional[str], EndpointMapping]:
        """Every endpoint mapping for a catalog type, keyed by prefix."""
        return dict(self._table.catalog_endpoint_maps.get(catalog_name, {}))

    # ------------------------------------------------------------------
    # Type negotiation
    # ------------------------------------------------------------------

    def register_implemented(self, type_def: TypeDef) -> List[str]:
        """
        Record a generic type as implemented.

        Removes the type from the unimplemented set and promotes its declared
        supertype chain: an unimplemented supertype becomes implemented, an
        unknown supertype is queued so it is accepted when it arrives.

        Returns:
            Names of all types that became implemented, starting with type_def

        Raises:
            TypeDefNotSupportedError: If the type is reserved
        """
        if self.is_reserved(type_def.name):
            raise TypeDefNotSupportedError(
                f"Type '{type_def.name}' is reserved and cannot be implemented"
            )

        promoted: List[str] = []
        with self._lock:
            current: Optional[TypeDef] = type_def
            while current is not None:
                self._record_implemented(current)
                promoted.append(current.name)
                current = self._next_supertype_to_promote(current)

        if len(promoted) > 1:
            logger.info(f"Registered {promoted[0]} and promoted supertypes {promoted[1:]}")
        else:
            logger.debug(f"Registered implemented type {type_def.name}")
        return promoted

    def _record_implemented(self, type_def: TypeDef):
        self._type_defs_by_guid[type_def.guid] = type_def
        self._guids_by_name[type_def.name] = type_def.guid
        self._unimplemented.pop(type_def.guid, None)
        self._supertypes_to_add.discard(type_def.guid)
        self._record_known(type_def)

    def _next_supertype_to_promote(self, type_def: TypeDef) -> Optional[TypeDef]:
        link = type_def.super_type
        if link is None or link.guid in self._type_defs_by_guid:
            return None
        if self.is_reserved(link.name):
            logger.warning(f"Supertype {link.name} of {type_def.name} is reserved; not promoting")
            return None
        supertype = self._unimplemented.get(link.guid)
        if supertype is None:
            self._supertypes_to_add.add(link.guid)
            return None
        return supertype

    def register_unimplemented(self, type_def: TypeDef):
        """Record a generic type the catalog cannot implement."""
        with self._lock:
            if type_def.guid in self._type_defs_by_guid:
                logger.warning(f"Type {type_def.name} is already implemented; ignoring")
                return
            self._unimplemented[type_def.guid] = type_def
            self._record_known(type_def)
        logger.debug(f"Registered unimplemented type {type_def.name}")

    def _record_known(self, type_def: TypeDef):
        self._known_by_name[type_def.name] = type_def
        attributes = {attr.name: attr for attr in type_def.attributes}
        self._attributes_by_name[type_def.name] = attributes

        if type_def.name not in self._table.generic_property_maps:
            self._identity_property_maps[type_def.name] = {
                name: name for name in attributes
            }

        self._hierarchy.add_node(type_def.name)
        if type_def.super_type is not None:
            self._hierarchy.add_edge(type_def.name, type_def.super_type.name)

    def is_supertype_of_mapped_type(self, type_def: TypeDef) -> bool:
        return type_def.guid in self._supertypes_to_add

    def type_def_by_guid(self, guid: str) -> Optional[TypeDef]:
        return self._type_defs_by_guid.get(guid)

    def type_def_by_name(self, name: str) -> Optional[TypeDef]:
        guid = self._guids_by_name.get(name)
        return self._type_defs_by_guid.get(guid) if guid else None

    def is_unimplemented(self, guid: str) -> bool:
        return guid in self._unimplemented

    def implemented_type_defs(self) -> List[TypeDef]:
        return list(self._type_defs_by_guid.values())

    def unimplemented_type_defs(self) -> List[TypeDef]:
        return list(self._unimplemented.values())

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def supertype_names(self, name: str) -> List[str]:
        """Declared supertype chain of a type, nearest first."""
        chain = []
        current = self._known_by_name.get(name)
        seen = {name}
        while current is not None and current.super_type is not None:
            super_name = current.super_type.name
            if super_name in seen:
                break
            chain.append(super_name)
            seen.add(super_name)
            current = self._known_by_name.get(super_name)
        return chain

    def supertype_links(self, name: str) -> List[TypeDefLink]:
        links = []
        for super_name in self.supertype_names(name):
            known = self._known_by_name.get(super_name)
            if known is not None:
                links.append(known.to_link())
        return links

    def subtype_names(self, name: str) -> Set[str]:
        """All known direct and indirect subtypes of a type."""
        if name not in self._hierarchy:
            return set()
        return set(nx.ancestors(self._hierarchy, name))

    def is_type_or_subtype(self, name: str, expected: str) -> bool:
        return name == expected or expected in self.supertype_names(name)

    def all_attributes_for(self, name: str) -> Dict[str, TypeDefAttribute]:
        """Attributes of a type including those inherited from its supertypes."""
        merged: Dict[str, TypeDefAttribute] = {}
        for type_name in reversed([name] + self.supertype_names(name)):
            merged.update(self._attributes_by_name.get(type_name, {}))
        return merged

    def attribute_for(self, type_name: str, attribute_name: str) -> Optional[TypeDefAttribute]:
        return self.all_attributes_for(type_name).get(attribute_name)

    def mapped_subtype_catalog_names(self, name: str) -> List[Tuple[Optional[str], str]]:
        """(prefix, catalog name) pairs for every mapped implemented subtype of a type."""
        pairs = []
        for subtype in sorted(self.subtype_names(name)):
            if not self.is_implemented(subtype):
                continue
            for prefix, catalog_name in self.all_catalog_names_for(subtype).items():
                pairs.append((prefix, catalog_name))
        return pairs
