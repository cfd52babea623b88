"""
Entity Translator - catalog objects to generic-model entities.

One catalog object can surface as several generic entities, one per prefix
the catalog type is mapped under. Translation is best-effort per prefix: an
unmapped (catalog type, prefix) pair yields None rather than an error.

Property translation walks the prefix-scoped property mapping:

- ``constant.<literal>`` catalog keys emit the literal
- ``additionalProperties.<key>`` generic keys fold the stringified value into
  the entity's free-form ``additional_properties`` map
- other pairs are coerced by the Attribute Translator using the generic
  attribute's declared kind

Free-form catalog attributes not consumed by the mapping are folded into
``additional_properties`` as well.
"""

import logging
from typing import Any, Dict, Optional, Set

from ..models.instances import (
    EntityDetail,
    EntityProxy,
    EntitySummary,
    InstanceType,
    PrimitiveValue,
)
from ..models.mapping import ADDITIONAL_PROPERTIES_PREFIX, CONSTANT_PREFIX
from ..models.type_defs import PrimitiveKind, TypeDef, TypeDefCategory
from .attributes import to_generic_value
from .catalog_object import CatalogObject, Namespace, split_property_key
from .errors import MissingProxyNameError
from .guid import CompositeGuid
from .timestamps import parse_catalog_timestamp
from .type_mapping import TypeMappingRegistry

logger = logging.getLogger(__name__)

INSTANCE_ENDPOINT = "/catalog/instances/"
PROXY_UNIQUE_PROPERTY = "qualifiedName"


def audit_fields(catalog_object: CatalogObject) -> Dict[str, Any]:
    """
    Audit fields copied from the ``instance.*`` namespace.

    Raises:
        CatalogDataError: If a timestamp is missing or malformed
    """
    version = catalog_object.instance.get("version")
    return {
        "created_by": catalog_object.instance.get("createdBy"),
        "updated_by": catalog_object.instance.get("modifiedBy"),
        "create_time": parse_catalog_timestamp(
            catalog_object.instance.get("creationTimeStamp"), "creationTimeStamp"
        ),
        "update_time": parse_catalog_timestamp(
            catalog_object.instance.get("modifiedTimeStamp"), "modifiedTimeStamp"
        ),
        "version": int(version) if version is not None else 0,
    }


class EntityTranslator:
    """Builds generic entities from catalog objects."""

    def __init__(
        self,
        registry: TypeMappingRegistry,
        base_url: str = "",
        metadata_collection_id: Optional[str] = None
    ):
        self.registry = registry
        self.base_url = base_url.rstrip("/")
        self.metadata_collection_id = metadata_collection_id

    def instance_url(self, native_id: str) -> str:
        return f"{self.base_url}{INSTANCE_ENDPOINT}{native_id}"

    def resolve_type_def(self, catalog_object: CatalogObject, prefix: Optional[str]) -> Optional[TypeDef]:
        """Generic type def for a catalog object under a prefix, or None if unmapped."""
        catalog_type = catalog_object.type_name
        generic_name = self.registry.generic_name_for(catalog_type, prefix)
        if generic_name is None:
            logger.warning(
                f"No generic type mapped for catalog type '{catalog_type}' "
                f"with prefix {prefix!r}; skipping {catalog_object.guid}"
            )
            return None

        type_def = self.registry.type_def_by_name(generic_name)
        if type_def is None:
            logger.warning(f"Generic type '{generic_name}' is mapped but not implemented")
            return None
        if type_def.category != TypeDefCategory.ENTITY_DEF:
            logger.debug(f"Prefix {prefix!r} of '{catalog_type}' maps to non-entity type {generic_name}")
            return None
        return type_def

    def instance_type(self, type_def: TypeDef) -> InstanceType:
        return InstanceType.from_type_def(type_def, self.registry.supertype_links(type_def.name))

    def _header(self, catalog_object: CatalogObject, type_def: TypeDef, prefix: Optional[str]) -> Dict[str, Any]:
        header = {
            "guid": CompositeGuid(catalog_object.guid, prefix).encode(),
            "type": self.instance_type(type_def),
            "instance_url": self.instance_url(catalog_object.guid),
            "metadata_collection_id": self.metadata_collection_id,
        }
        header.update(audit_fields(catalog_object))
        return header

    def to_summary(self, catalog_object: CatalogObject, prefix: Optional[str] = None) -> Optional[EntitySummary]:
        type_def = self.resolve_type_def(catalog_object, prefix)
        if type_def is None:
            return None
        return EntitySummary(**self._header(catalog_object, type_def, prefix))

    def to_detail(self, catalog_object: CatalogObject, prefix: Optional[str] = None) -> Optional[EntityDetail]:
        """
        Translate a catalog object into a generic entity with properties.

        Args:
            catalog_object: Source object
            prefix: Generated-type prefix, or None for the plain mapping

        Returns:
            EntityDetail, or None if the catalog type is unmapped for prefix
        """
        type_def = self.resolve_type_def(catalog_object, prefix)
        if type_def is None:
            return None

        properties, additional, consumed = self.map_properties(
            catalog_object, type_def.name, prefix
        )

        for name, value in catalog_object.attributes.items():
            if name not in consumed and value is not None:
                additional[name] = str(value)

        return EntityDetail(
            properties=properties,
            additional_properties=additional,
            **self._header(catalog_object, type_def, prefix),
        )

    def map_properties(
        self,
        catalog_object: CatalogObject,
        generic_name: str,
        prefix: Optional[str]
    ):
        """
        Apply the prefix-scoped property mapping to a catalog object.

        Returns:
            Tuple of (typed properties, additional properties, names of
            free-form catalog attributes consumed by the mapping)
        """
        mapping = self.registry.property_mapping(catalog_object.type_name, prefix)
        attributes = self.registry.all_attributes_for(generic_name)

        properties: Dict[str, PrimitiveValue] = {}
        additional: Dict[str, str] = {}
        consumed: Set[str] = set()

        for generic_property, catalog_key in mapping.items():
            if catalog_key.startswith(CONSTANT_PREFIX):
                literal = catalog_key[len(CONSTANT_PREFIX):]
                if generic_property.startswith(ADDITIONAL_PROPERTIES_PREFIX):
                    additional[generic_property[len(ADDITIONAL_PROPERTIES_PREFIX):]] = literal
                else:
                    properties[generic_property] = PrimitiveValue(
                        primitive_kind=PrimitiveKind.STRING, value=literal
                    )
                continue

            namespace, catalog_name = split_property_key(catalog_key)
            raw = catalog_object.get(catalog_key)

            if generic_property.startswith(ADDITIONAL_PROPERTIES_PREFIX):
                key = generic_property[len(ADDITIONAL_PROPERTIES_PREFIX):]
                if raw is None:
                    logger.warning(f"No value for '{catalog_key}' to fold into additional property '{key}'")
                    continue
                additional[key] = str(raw)
            elif generic_property in attributes:
                value = to_generic_value(attributes[generic_property], raw)
                if value is None:
                    continue
                properties[generic_property] = value
            else:
                logger.warning(
                    f"No generic attribute '{generic_property}' defined for type "
                    f"{generic_name}; skipping mapping from '{catalog_key}'"
                )
                continue

            if namespace is Namespace.ATTRIBUTE:
                consumed.add(catalog_name)

        return properties, additional, consumed

    def to_proxy(self, catalog_object: CatalogObject, prefix: Optional[str] = None) -> Optional[EntityProxy]:
        """
        Build a reference-only entity for a relationship endpoint.

        Returns:
            EntityProxy, or None if the catalog type is unmapped for prefix

        Raises:
            MissingProxyNameError: If the catalog object has no instance name
        """
        name = catalog_object.instance.get("name")
        if not name:
            logger.error(f"No name found for catalog object {catalog_object.guid}; cannot create proxy")
            raise MissingProxyNameError(
                f"Catalog object {catalog_object.guid} has no instance.name to identify a proxy"
            )

        type_def = self.resolve_type_def(catalog_object, prefix)
        if type_def is None:
            return None

        return EntityProxy(
            unique_properties={
                PROXY_UNIQUE_PROPERTY: PrimitiveValue(primitive_kind=PrimitiveKind.STRING, value=name)
            },
            **self._header(catalog_object, type_def, prefix),
        )
