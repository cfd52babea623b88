"""
CatalogObject - immutable view of one catalog entity, relationship or definition.

Catalog responses are flattened into three explicit namespaces:

    instance.*    instance-level fields (name, audit fields, type, endpoints)
    definition.*  definition-level fields (name, baseType, endpoint roles)
    attribute.*   free-form user attributes

Property mappings address values with a namespaced key such as
``instance.name`` or ``attribute.referencedType``; ``CatalogObject.get``
dispatches on the parsed namespace.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


REFERENCE_TYPE = "reference"
RELATED_OBJECTS_TYPE = "relatedObjects"


class Namespace(Enum):
    """Namespaces of a catalog property key."""
    INSTANCE = "instance"
    DEFINITION = "definition"
    ATTRIBUTE = "attribute"


class CatalogKind(Enum):
    """Kinds of object the catalog serves."""
    ENTITY = "entity"
    RELATIONSHIP = "relationship"
    DEFINITION = "definition"


# Instance and definition fields copied from catalog payloads
_INSTANCE_FIELDS = (
    "id", "createdBy", "modifiedBy", "creationTimeStamp", "modifiedTimeStamp",
    "name", "label", "description", "version", "type", "instanceType",
)
_ENTITY_INSTANCE_FIELDS = ("resourceId",)
_RELATIONSHIP_INSTANCE_FIELDS = ("endpoint1Id", "endpoint1Uri", "endpoint2Id", "endpoint2Uri")

_DEFINITION_FIELDS = (
    "id", "label", "description", "name", "createdBy", "modifiedBy",
    "creationTimeStamp", "modifiedTimeStamp", "version", "baseType", "definitionType",
)
_ENTITY_DEFINITION_FIELDS = ("platformTypeName",)
_ENDPOINT_DEFINITION_FIELDS = ("name", "label", "description", "cardinality", "elementType")


def split_property_key(key: str) -> Tuple[Namespace, str]:
    """
    Split a namespaced property key into its namespace and name.

    A bare key such as ``position`` names a free-form attribute; identity
    property mappings use bare keys.

    Raises:
        ValueError: If the key names an unknown namespace
    """
    prefix, sep, name = key.partition(".")
    if not sep:
        return Namespace.ATTRIBUTE, key
    if not name:
        raise ValueError(f"Catalog property key '{key}' has no name")
    try:
        return Namespace(prefix), name
    except ValueError:
        valid = ", ".join(ns.value for ns in Namespace)
        raise ValueError(
            f"Unknown namespace '{prefix}' in catalog property key '{key}'. "
            f"Valid namespaces: {valid}"
        ) from None


@dataclass(frozen=True)
class CatalogObject:
    """A catalog object as seen by the translators. Read-only after construction."""
    guid: str
    definition_id: Optional[str] = None
    instance: Mapping[str, Any] = field(default_factory=dict)
    definition: Mapping[str, Any] = field(default_factory=dict)
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("instance", "definition", "attributes"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name) or {})))

    def namespace(self, namespace: Namespace) -> Mapping[str, Any]:
        if namespace is Namespace.INSTANCE:
            return self.instance
        if namespace is Namespace.DEFINITION:
            return self.definition
        return self.attributes

    def get(self, key: str) -> Any:
        """Look up a namespaced key such as ``instance.name``."""
        namespace, name = split_property_key(key)
        return self.namespace(namespace).get(name)

    @property
    def type_name(self) -> Optional[str]:
        """
        Catalog type name used for mapping lookups.

        Reference objects resolve to ``reference.<referencedType>`` and
        relatedObjects relationships to the instance's own type.
        """
        name = self.definition.get("name")
        if isinstance(name, str) and name.lower() == REFERENCE_TYPE:
            return f"{REFERENCE_TYPE}.{self.attributes.get('referencedType')}"
        if isinstance(name, str) and name.lower() == RELATED_OBJECTS_TYPE.lower():
            return self.instance.get("type")
        return name

    @classmethod
    def from_payload(
        cls,
        instance: Optional[Mapping[str, Any]],
        definition: Optional[Mapping[str, Any]],
        kind: CatalogKind = CatalogKind.ENTITY
    ) -> "CatalogObject":
        """
        Build a CatalogObject from catalog instance and definition records.

        Args:
            instance: Instance record (camelCase keys as served by the catalog),
                or None for a bare definition
            definition: Definition record, or None
            kind: Whether the instance is an entity or a relationship

        Returns:
            New CatalogObject
        """
        definition = definition or {}
        if instance is None:
            return cls(
                guid=definition.get("id"),
                definition_id=definition.get("id"),
                definition=_definition_fields(definition, kind),
            )

        return cls(
            guid=instance.get("id"),
            definition_id=instance.get("definitionId"),
            instance=_instance_fields(instance, kind),
            definition=_definition_fields(definition, kind),
            attributes=dict(instance.get("attributes") or {}),
        )


def _instance_fields(instance: Mapping[str, Any], kind: CatalogKind) -> Dict[str, Any]:
    names = _INSTANCE_FIELDS
    if kind is CatalogKind.ENTITY:
        names = names + _ENTITY_INSTANCE_FIELDS
    elif kind is CatalogKind.RELATIONSHIP:
        names = names + _RELATIONSHIP_INSTANCE_FIELDS
    return {name: instance.get(name) for name in names}


def _definition_fields(definition: Mapping[str, Any], kind: CatalogKind) -> Dict[str, Any]:
    fields = {name: definition.get(name) for name in _DEFINITION_FIELDS}
    if kind is CatalogKind.ENTITY:
        for name in _ENTITY_DEFINITION_FIELDS:
            fields[name] = definition.get(name)
    elif kind is CatalogKind.RELATIONSHIP:
        fields["category"] = definition.get("category")
        for index in (1, 2):
            endpoint = definition.get(f"endpointDefinition{index}") or {}
            for name in _ENDPOINT_DEFINITION_FIELDS:
                fields[f"endpoint{index}{name[0].upper()}{name[1:]}"] = endpoint.get(name)
    return fields
