"""
Metadata Collection - read facade over the catalog in generic-model terms.

Resolves composite GUIDs, fetches catalog objects through the catalog client
and hands them to the translators. Transport failures surface as
entity/relationship-not-known; unmapped types surface as None.

Also owns type negotiation: each generic type offered at startup is either
implemented (mapped, defined by name in the catalog, or a supertype of a
mapped type) or recorded as unimplemented.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..client.base import CatalogClient
from ..models.instances import (
    EntityDetail,
    EntitySummary,
    InstanceStatus,
    PrimitiveValue,
    Relationship,
)
from ..models.search import EntitySearchRequest, MatchCriteria, PagingOptions, SequencingOrder
from ..models.type_defs import TypeDef, TypeDefAttribute, TypeDefCategory
from .catalog_object import CatalogKind, CatalogObject
from .entities import EntityTranslator
from .errors import (
    CatalogBridgeError,
    EntityNotKnownError,
    FunctionNotSupportedError,
    RelationshipNotKnownError,
    TypeDefNotSupportedError,
)
from .filters import eq, or_
from .guid import CompositeGuid
from .relationships import ENDPOINT_FIELDS, RelationshipTranslator
from .search import EntitySearch
from .sequencing import check_supported, page, sort_instances
from .type_mapping import TypeMappingRegistry

logger = logging.getLogger(__name__)

_DEFINITION_KINDS = {
    TypeDefCategory.ENTITY_DEF: CatalogKind.ENTITY,
    TypeDefCategory.RELATIONSHIP_DEF: CatalogKind.RELATIONSHIP,
}


class MetadataCollection:
    """Generic-model view of the catalog."""

    def __init__(
        self,
        registry: TypeMappingRegistry,
        client: CatalogClient,
        entities: EntityTranslator,
        relationships: RelationshipTranslator,
        search: EntitySearch
    ):
        self.registry = registry
        self.client = client
        self.entities = entities
        self.relationships = relationships
        self.search = search

    @property
    def metadata_collection_id(self) -> Optional[str]:
        return self.entities.metadata_collection_id

    # ========================================================================
    # Entities
    # ========================================================================

    def _fetch_entity(self, guid: str):
        decoded = CompositeGuid.decode(guid)
        if decoded is None:
            raise EntityNotKnownError("Entity guid is required")
        try:
            catalog_object = self.client.get_by_id(decoded.native_id, CatalogKind.ENTITY)
        except Exception as e:
            logger.error(f"Failed to fetch entity {guid}: {e}")
            raise EntityNotKnownError(f"Entity {guid} is not known") from e
        if catalog_object is None:
            raise EntityNotKnownError(f"Entity {guid} is not known")
        return decoded, catalog_object

    def get_entity_summary(self, guid: str) -> Optional[EntitySummary]:
        """
        Entity header for a composite GUID.

        Returns:
            EntitySummary, or None if the catalog type is unmapped for the prefix

        Raises:
            EntityNotKnownError: If the catalog has no such object
        """
        decoded, catalog_object = self._fetch_entity(guid)
        return self.entities.to_summary(catalog_object, decoded.generated_prefix)

    def get_entity_detail(self, guid: str) -> Optional[EntityDetail]:
        """
        Entity with properties for a composite GUID.

        Returns:
            EntityDetail, or None if the catalog type is unmapped for the prefix

        Raises:
            EntityNotKnownError: If the catalog has no such object
        """
        decoded, catalog_object = self._fetch_entity(guid)
        return self.entities.to_detail(catalog_object, decoded.generated_prefix)

    def is_entity_known(self, guid: str) -> Optional[EntityDetail]:
        """Entity detail, or None when the entity is absent or unmapped."""
        try:
            return self.get_entity_detail(guid)
        except EntityNotKnownError:
            logger.debug(f"Entity {guid} is not known")
            return None

    # ========================================================================
    # Relationships
    # ========================================================================

    def get_relationship(self, guid: str) -> Optional[Relationship]:
        """
        Relationship for a composite GUID.

        A prefixed GUID names a relationship synthesized from the entity with
        the same native id; any other GUID names a catalog relationship.

        Returns:
            Relationship, or None if its type is unmapped

        Raises:
            RelationshipNotKnownError: If the catalog has no such object
            EntityNotKnownError: If an endpoint entity is missing
        """
        decoded = CompositeGuid.decode(guid)
        if decoded is None:
            raise RelationshipNotKnownError("Relationship guid is required")

        kind = CatalogKind.ENTITY if decoded.is_generated else CatalogKind.RELATIONSHIP
        try:
            catalog_object = self.client.get_by_id(decoded.native_id, kind)
        except Exception as e:
            logger.error(f"Failed to fetch relationship {guid}: {e}")
            raise RelationshipNotKnownError(f"Relationship {guid} is not known") from e
        if catalog_object is None:
            raise RelationshipNotKnownError(f"Relationship {guid} is not known")

        if decoded.is_generated:
            return self.relationships.synthesize_self_referencing(catalog_object, decoded.generated_prefix)
        return self.relationships.from_catalog_relationship(catalog_object, decoded)

    def get_relationships_for_entity(
        self,
        entity_guid: str,
        relationship_type_guid: Optional[str] = None,
        from_element: int = 0,
        status_filter: Optional[List[InstanceStatus]] = None,
        as_of_time: Optional[datetime] = None,
        sequencing_property: Optional[str] = None,
        sequencing_order: Optional[SequencingOrder] = None,
        page_size: int = 0
    ) -> Optional[List[Relationship]]:
        """
        Relationships an entity participates in.

        Lists the catalog relationships with the entity at either end plus
        the relationships synthesized from the entity itself. Candidates that
        fail translation are dropped.

        Args:
            entity_guid: Composite GUID of the entity
            relationship_type_guid: Only relationships of this type (or its subtypes)
            from_element: Index of the first result
            status_filter: Only [ACTIVE] is supported
            as_of_time: Not supported
            sequencing_property: Property for PROPERTY_* orders
            sequencing_order: Result order
            page_size: Maximum results; 0 means no limit

        Returns:
            Page of relationships, or None when there are none

        Raises:
            FunctionNotSupportedError: For historical or non-ACTIVE requests
            EntityNotKnownError: If the entity or its relationships cannot be fetched
        """
        options = PagingOptions(
            from_element=from_element,
            page_size=page_size,
            status_filter=status_filter,
            as_of_time=as_of_time,
            sequencing_property=sequencing_property,
            sequencing_order=sequencing_order,
        )
        check_supported(options, "get_relationships_for_entity")

        expected_type = self._relationship_type_name(relationship_type_guid)
        decoded, entity = self._fetch_entity(entity_guid)

        relationship_filter = or_(*(eq(field_name, decoded.native_id) for field_name in ENDPOINT_FIELDS))
        try:
            catalog_relationships = self.client.list_by_filter(
                relationship_filter, kind=CatalogKind.RELATIONSHIP
            )
        except Exception as e:
            logger.error(f"Failed to list relationships of entity {entity_guid}: {e}")
            raise EntityNotKnownError(f"Entity {entity_guid} is not known") from e

        results: List[Relationship] = []
        for catalog_relationship in catalog_relationships:
            for prefix, generic_name in self.registry.all_generic_names_for(catalog_relationship.type_name).items():
                if expected_type and not self.registry.is_type_or_subtype(generic_name, expected_type):
                    continue
                relationship = self._translate_candidate(
                    lambda: self.relationships.from_catalog_relationship(
                        catalog_relationship, CompositeGuid(catalog_relationship.guid, prefix)
                    ),
                    catalog_relationship.guid,
                )
                if relationship is not None:
                    results.append(relationship)

        results.extend(self._synthesized_for(entity, entity_guid, expected_type))

        ordered = sort_instances(results, options.sequencing_property, options.sequencing_order)
        return page(ordered, options.from_element, options.page_size) or None

    def _synthesized_for(
        self,
        entity: CatalogObject,
        entity_guid: str,
        expected_type: Optional[str]
    ) -> List[Relationship]:
        synthesized = []
        for prefix in self.registry.all_endpoint_mappings_for(entity.type_name):
            if prefix is None:
                continue
            generic_name = self.registry.generic_name_for_prefix(prefix)
            if expected_type and not (generic_name and self.registry.is_type_or_subtype(generic_name, expected_type)):
                continue
            relationship = self._translate_candidate(
                lambda: self.relationships.synthesize_self_referencing(entity, prefix),
                CompositeGuid(entity.guid, prefix).encode(),
            )
            if relationship is None:
                continue
            if entity_guid in (relationship.entity_one_proxy.guid, relationship.entity_two_proxy.guid):
                synthesized.append(relationship)
        return synthesized

    def _translate_candidate(self, translate, guid: str) -> Optional[Relationship]:
        try:
            return translate()
        except CatalogBridgeError as e:
            logger.warning(f"Dropping relationship {guid}: {e}")
            return None

    def _relationship_type_name(self, type_guid: Optional[str]) -> Optional[str]:
        if type_guid is None:
            return None
        type_def = self.registry.type_def_by_guid(type_guid)
        if type_def is None:
            raise TypeDefNotSupportedError(f"Relationship type {type_guid} is not implemented")
        return type_def.name

    # ========================================================================
    # Search
    # ========================================================================

    def find_entities(self, request: EntitySearchRequest) -> Optional[List[EntityDetail]]:
        return self.search.find(request)

    def find_entities_by_property(
        self,
        entity_type_guid: Optional[str] = None,
        match_properties: Optional[Dict[str, PrimitiveValue]] = None,
        match_criteria: MatchCriteria = MatchCriteria.ALL,
        from_element: int = 0,
        status_filter: Optional[List[InstanceStatus]] = None,
        classifications: Optional[List[str]] = None,
        as_of_time: Optional[datetime] = None,
        sequencing_property: Optional[str] = None,
        sequencing_order: Optional[SequencingOrder] = None,
        page_size: int = 0
    ) -> Optional[List[EntityDetail]]:
        """
        Entities whose properties match.

        Returns:
            Page of entities, or None when nothing matches

        Raises:
            FunctionNotSupportedError: For historical or non-ACTIVE requests
        """
        request = EntitySearchRequest(
            entity_type_guid=entity_type_guid,
            match_properties=match_properties or {},
            match_criteria=match_criteria,
            from_element=from_element,
            status_filter=status_filter,
            classifications=classifications or [],
            as_of_time=as_of_time,
            sequencing_property=sequencing_property,
            sequencing_order=sequencing_order,
            page_size=page_size,
        )
        return self.search.find(request)

    def find_entities_by_property_value(
        self,
        entity_type_guid: Optional[str],
        search_criteria: str,
        from_element: int = 0,
        status_filter: Optional[List[InstanceStatus]] = None,
        classifications: Optional[List[str]] = None,
        as_of_time: Optional[datetime] = None,
        sequencing_property: Optional[str] = None,
        sequencing_order: Optional[SequencingOrder] = None,
        page_size: int = 0
    ) -> Optional[List[EntityDetail]]:
        """Entities with any string value matching a regular expression."""
        request = EntitySearchRequest(
            entity_type_guid=entity_type_guid,
            search_criteria=search_criteria,
            from_element=from_element,
            status_filter=status_filter,
            classifications=classifications or [],
            as_of_time=as_of_time,
            sequencing_property=sequencing_property,
            sequencing_order=sequencing_order,
            page_size=page_size,
        )
        return self.search.find(request)

    # ========================================================================
    # Type negotiation
    # ========================================================================

    def add_type_def(self, type_def: TypeDef) -> List[str]:
        """
        Offer a generic type to the catalog.

        Returns:
            Names of the types that became implemented

        Raises:
            TypeDefNotSupportedError: If the catalog cannot implement the type
        """
        name = type_def.name
        if self.registry.is_reserved(name):
            self.registry.register_unimplemented(type_def)
            raise TypeDefNotSupportedError(f"Type '{name}' is reserved")

        if self.registry.is_mapped(name) or self.registry.is_supertype_of_mapped_type(type_def):
            return self.registry.register_implemented(type_def)

        if self._catalog_defines(type_def):
            return self.registry.register_implemented(type_def)

        self.registry.register_unimplemented(type_def)
        raise TypeDefNotSupportedError(f"Type '{name}' has no catalog counterpart")

    def _catalog_defines(self, type_def: TypeDef) -> bool:
        kind = _DEFINITION_KINDS.get(type_def.category)
        if kind is None:
            return False
        try:
            return self.client.definition_exists_by_name(type_def.name, kind)
        except Exception as e:
            logger.error(f"Failed to look up catalog definition '{type_def.name}': {e}")
            return False

    def negotiate_types(self, type_defs: Iterable[TypeDef]) -> Dict[str, List[str]]:
        """
        Offer every type in order.

        Returns:
            Dict with "implemented" and "unimplemented" type names
        """
        for type_def in type_defs:
            try:
                self.add_type_def(type_def)
            except TypeDefNotSupportedError as e:
                logger.debug(f"Not implementing {type_def.name}: {e}")

        outcome = {
            "implemented": sorted(t.name for t in self.registry.implemented_type_defs()),
            "unimplemented": sorted(t.name for t in self.registry.unimplemented_type_defs()),
        }
        logger.info(
            f"Type negotiation: {len(outcome['implemented'])} implemented, "
            f"{len(outcome['unimplemented'])} unimplemented"
        )
        return outcome

    def verify_type_def(self, type_def: TypeDef) -> bool:
        """
        Check whether a type is implemented.

        Raises:
            TypeDefNotSupportedError: If the type was negotiated as unimplemented
        """
        if self.registry.is_unimplemented(type_def.guid):
            raise TypeDefNotSupportedError(f"Type '{type_def.name}' is not supported")
        return self.registry.type_def_by_guid(type_def.guid) is not None

    def verify_attribute_type_def(self, attribute: TypeDefAttribute) -> bool:
        raise FunctionNotSupportedError(
            f"Attribute type def verification is not supported ({attribute.name})"
        )

    def get_all_type_defs(self) -> List[TypeDef]:
        return sorted(self.registry.implemented_type_defs(), key=lambda t: t.name)
