"""
Relationship Translator - catalog relationships and synthesized relationships.

Two sources of generic relationships:

1. A real catalog relationship object. Both endpoint entities are fetched
   from the catalog and turned into proxies using the prefixes declared by
   the relationship's endpoint mapping.
2. A single catalog entity split into several generic entities. The
   relationship linking two of those entities has no catalog object of its
   own; it is synthesized from the entity and its GUID carries the
   relationship's prefix. Synthesized relationships have no properties.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from ..client.base import CatalogClient
from ..models.instances import EntityProxy, InstanceType, PrimitiveValue, Relationship
from ..models.type_defs import TypeDef, TypeDefCategory
from .catalog_object import CatalogKind, CatalogObject
from .entities import EntityTranslator, audit_fields
from .errors import EntityNotKnownError, InvalidRelationshipEndsError
from .guid import CompositeGuid
from .timestamps import to_epoch_millis
from .type_mapping import TypeMappingRegistry

logger = logging.getLogger(__name__)

ENDPOINT_FIELDS = ("endpoint1Id", "endpoint2Id")


class RelationshipTranslator:
    """Builds generic relationships from catalog relationships and entities."""

    def __init__(
        self,
        registry: TypeMappingRegistry,
        entities: EntityTranslator,
        client: CatalogClient
    ):
        self.registry = registry
        self.entities = entities
        self.client = client

    # ------------------------------------------------------------------
    # Catalog relationships
    # ------------------------------------------------------------------

    def from_catalog_relationship(
        self,
        relationship: CatalogObject,
        guid: Optional[CompositeGuid] = None
    ) -> Optional[Relationship]:
        """
        Translate a catalog relationship object.

        Args:
            relationship: Catalog relationship
            guid: Composite GUID to stamp; defaults to the unprefixed native id

        Returns:
            Relationship, or None if the relationship type is unmapped

        Raises:
            EntityNotKnownError: If either endpoint entity cannot be fetched
            InvalidRelationshipEndsError: If an endpoint has no mapped proxy
        """
        guid = guid or CompositeGuid(relationship.guid)
        prefix = guid.generated_prefix
        catalog_type = relationship.type_name

        type_def = self._relationship_type_def(self.registry.generic_name_for(catalog_type, prefix))
        if type_def is None:
            logger.warning(f"No generic relationship type mapped for '{catalog_type}' with prefix {prefix!r}")
            return None

        mapping = self.registry.endpoint_mapping(catalog_type, prefix)
        prefix_one = mapping.prefix_one if mapping else None
        prefix_two = mapping.prefix_two if mapping else None

        endpoint_one, endpoint_two = self._fetch_endpoints(relationship)
        proxy_one = self.entities.to_proxy(endpoint_one, prefix_one)
        proxy_two = self.entities.to_proxy(endpoint_two, prefix_two)

        properties, _, _ = self.entities.map_properties(relationship, type_def.name, prefix)
        return self.assemble(type_def, guid, relationship, proxy_one, proxy_two, properties)

    def _fetch_endpoints(self, relationship: CatalogObject):
        endpoint_ids = [relationship.instance.get(name) for name in ENDPOINT_FIELDS]
        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(self._fetch_endpoint, relationship, eid) for eid in endpoint_ids]
            return [future.result() for future in futures]

    def _fetch_endpoint(self, relationship: CatalogObject, endpoint_id: Optional[str]) -> CatalogObject:
        if not endpoint_id:
            raise EntityNotKnownError(f"Relationship {relationship.guid} has no endpoint id")
        try:
            endpoint = self.client.get_by_id(endpoint_id, CatalogKind.ENTITY)
        except Exception as e:
            logger.error(f"Failed to fetch endpoint {endpoint_id} of relationship {relationship.guid}: {e}")
            raise EntityNotKnownError(
                f"Endpoint entity {endpoint_id} of relationship {relationship.guid} is not known"
            ) from e
        if endpoint is None:
            raise EntityNotKnownError(
                f"Endpoint entity {endpoint_id} of relationship {relationship.guid} is not known"
            )
        return endpoint

    # ------------------------------------------------------------------
    # Synthesized relationships
    # ------------------------------------------------------------------

    def synthesize_self_referencing(self, entity: CatalogObject, prefix: Optional[str]) -> Optional[Relationship]:
        """
        Synthesize the relationship between two generic entities split from one catalog entity.

        Args:
            entity: Catalog entity playing both roles
            prefix: Prefix of the relationship type

        Returns:
            Relationship with empty properties, or None if prefix is None or
            has no relationship type or endpoint mapping
        """
        if prefix is None:
            logger.error(f"Cannot synthesize a relationship for {entity.guid} without a prefix")
            return None

        type_def = self._relationship_type_def(self.registry.generic_name_for_prefix(prefix))
        if type_def is None:
            logger.warning(f"No generic relationship type registered for prefix {prefix!r}")
            return None

        mapping = self.registry.endpoint_mapping(entity.type_name, prefix)
        if mapping is None:
            logger.warning(f"No endpoint mapping for '{entity.type_name}' with prefix {prefix!r}")
            return None

        proxy_one = self.entities.to_proxy(entity, mapping.prefix_one)
        proxy_two = self.entities.to_proxy(entity, mapping.prefix_two)
        return self.assemble(type_def, CompositeGuid(entity.guid, prefix), entity, proxy_one, proxy_two, {})

    def synthesized_for_entity(self, entity: CatalogObject) -> List[Relationship]:
        """All relationships synthesized from one catalog entity."""
        relationships = []
        for prefix in self.registry.all_endpoint_mappings_for(entity.type_name):
            if prefix is None:
                continue
            relationship = self.synthesize_self_referencing(entity, prefix)
            if relationship is not None:
                relationships.append(relationship)
        return relationships

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def _relationship_type_def(self, generic_name: Optional[str]) -> Optional[TypeDef]:
        if generic_name is None:
            return None
        type_def = self.registry.type_def_by_name(generic_name)
        if type_def is None or type_def.category != TypeDefCategory.RELATIONSHIP_DEF:
            return None
        return type_def

    def assemble(
        self,
        type_def: TypeDef,
        guid: CompositeGuid,
        source: CatalogObject,
        proxy_one: Optional[EntityProxy],
        proxy_two: Optional[EntityProxy],
        properties: Dict[str, PrimitiveValue]
    ) -> Relationship:
        """
        Assemble a relationship stamped with GUID, audit fields and ACTIVE status.

        Version is the update time in epoch milliseconds.

        Raises:
            InvalidRelationshipEndsError: If either proxy is None
        """
        if proxy_one is None or proxy_two is None:
            raise InvalidRelationshipEndsError(
                f"Relationship {guid} of type {type_def.name} is missing an endpoint: "
                f"one={proxy_one.guid if proxy_one else None}, two={proxy_two.guid if proxy_two else None}"
            )

        audit: Dict[str, Any] = audit_fields(source)
        audit["version"] = to_epoch_millis(audit["update_time"])

        return Relationship(
            guid=guid.encode(),
            type=InstanceType.from_type_def(type_def, self.registry.supertype_links(type_def.name)),
            instance_url=self.entities.instance_url(source.guid),
            metadata_collection_id=self.entities.metadata_collection_id,
            entity_one_proxy=proxy_one,
            entity_two_proxy=proxy_two,
            properties=properties,
            **audit,
        )
