"""
Repository Event Mapper - catalog change events to generic-model events.

An entity change fans out to one entity event per prefix its catalog type
is mapped under. Every prefixed entity also carries the relationships
synthesized from the same catalog entity; on removal those relationship
events are sent before the entity event.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..core.catalog_object import CatalogKind, CatalogObject
from ..core.entities import EntityTranslator
from ..core.errors import CatalogBridgeError
from ..core.guid import CompositeGuid
from ..core.relationships import RelationshipTranslator
from ..core.type_mapping import TypeMappingRegistry
from ..models.events import (
    CatalogEventPayload,
    CatalogPayloadType,
    RepositoryEvent,
    RepositoryEventKind,
)
from ..models.instances import EntityDetail, Relationship
from .publisher import EventPublisher

logger = logging.getLogger(__name__)

CREATE = "created"
UPDATE = "modified"
DELETE = "removed"

_ENTITY_KINDS = {
    CREATE: RepositoryEventKind.NEW_ENTITY,
    UPDATE: RepositoryEventKind.UPDATED_ENTITY,
    DELETE: RepositoryEventKind.DELETED_ENTITY,
}
_RELATIONSHIP_KINDS = {
    CREATE: RepositoryEventKind.NEW_RELATIONSHIP,
    UPDATE: RepositoryEventKind.UPDATED_RELATIONSHIP,
    DELETE: RepositoryEventKind.DELETED_RELATIONSHIP,
}


class RepositoryEventMapper:
    """Translates catalog change events and hands the results to a publisher."""

    def __init__(
        self,
        registry: TypeMappingRegistry,
        entities: EntityTranslator,
        relationships: RelationshipTranslator,
        publisher: EventPublisher
    ):
        self.registry = registry
        self.entities = entities
        self.relationships = relationships
        self.publisher = publisher

    def process_event(self, payload: Union[str, Dict[str, Any]]) -> List[RepositoryEvent]:
        """
        Process one catalog change event.

        Args:
            payload: Event payload as a JSON string or decoded dict

        Returns:
            Events published, in order
        """
        try:
            data = json.loads(payload) if isinstance(payload, str) else payload
            event = CatalogEventPayload.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Could not parse event payload: {e}")
            return []

        logger.info(f"Received catalog event for operation: {event.operation}")

        if event.object_type != CatalogPayloadType.INSTANCE.value:
            if event.object_type == CatalogPayloadType.DEFINITION.value:
                logger.info(f"Definition events are not mapped (operation {event.operation})")
            else:
                logger.warning(f"Invalid catalog object type: {event.object_type}")
            return []

        instance = event.instance or {}
        instance_type = instance.get("instanceType")
        operation = self._operation(event.operation)
        if operation is None or instance_type not in (CatalogKind.ENTITY.value, CatalogKind.RELATIONSHIP.value):
            logger.info(f"Event processing does not support operation {event.operation} for type {instance_type}")
            return []

        kind = CatalogKind(instance_type)
        catalog_object = CatalogObject.from_payload(instance, event.definition, kind)
        if kind is CatalogKind.ENTITY:
            events = self._entity_events(catalog_object, operation)
        else:
            events = self._relationship_events(catalog_object, operation)

        for repository_event in events:
            self.publisher.publish(repository_event)
        return events

    @staticmethod
    def _operation(operation: str) -> Optional[str]:
        for prefix in (CREATE, UPDATE, DELETE):
            if operation.startswith(prefix):
                return prefix
        return None

    def _event(
        self,
        kind: RepositoryEventKind,
        entity: Optional[EntityDetail] = None,
        relationship: Optional[Relationship] = None
    ) -> RepositoryEvent:
        return RepositoryEvent(
            kind=kind,
            metadata_collection_id=self.entities.metadata_collection_id,
            entity=entity,
            relationship=relationship,
        )

    # ========================================================================
    # Entities
    # ========================================================================

    def _entity_events(self, catalog_object: CatalogObject, operation: str) -> List[RepositoryEvent]:
        generic_names = self.registry.all_generic_names_for(catalog_object.type_name)
        if not generic_names:
            logger.info(f"No mappings found for catalog entity type: {catalog_object.type_name}")
            return []

        events: List[RepositoryEvent] = []
        for prefix in generic_names:
            entity = self._mapped_entity(catalog_object, prefix)
            if entity is None:
                continue

            generated = []
            if prefix is not None:
                generated = [
                    self._event(_RELATIONSHIP_KINDS[operation], relationship=relationship)
                    for relationship in self._generated_relationships(catalog_object, entity)
                ]

            entity_event = self._event(_ENTITY_KINDS[operation], entity=entity)
            if operation == DELETE:
                events.extend(generated)
                events.append(entity_event)
            else:
                events.append(entity_event)
                events.extend(generated)
        return events

    def _mapped_entity(self, catalog_object: CatalogObject, prefix: Optional[str]) -> Optional[EntityDetail]:
        try:
            return self.entities.to_detail(catalog_object, prefix)
        except CatalogBridgeError as e:
            logger.error(f"Unable to map catalog entity {catalog_object.guid} with prefix {prefix!r}: {e}")
            return None

    def _generated_relationships(self, catalog_object: CatalogObject, entity: EntityDetail) -> List[Relationship]:
        generated = []
        for prefix in self.registry.all_endpoint_mappings_for(catalog_object.type_name):
            if prefix is None:
                continue
            try:
                relationship = self.relationships.synthesize_self_referencing(catalog_object, prefix)
            except CatalogBridgeError as e:
                logger.error(f"Unable to create generated relationship with prefix {prefix} for entity {entity.guid}: {e}")
                continue
            if relationship is None:
                logger.warning(f"Unable to create generated relationship with prefix {prefix} for entity {entity.guid}")
                continue
            generated.append(relationship)
        return generated

    # ========================================================================
    # Relationships
    # ========================================================================

    def _relationship_events(self, catalog_object: CatalogObject, operation: str) -> List[RepositoryEvent]:
        try:
            relationship = self.relationships.from_catalog_relationship(
                catalog_object, CompositeGuid(catalog_object.guid)
            )
        except CatalogBridgeError as e:
            logger.error(f"Unable to map catalog relationship {catalog_object.guid}: {e}")
            return []
        if relationship is None:
            return []
        return [self._event(_RELATIONSHIP_KINDS[operation], relationship=relationship)]
