"""Catalog change events (inbound) and generic repository events (outbound)."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .instances import EntityDetail, Relationship

CATALOG_EVENT_MEDIA_TYPE = "application/vnd.sas.catalog.event"


class CatalogPayloadType(str, Enum):
    """What a catalog change event describes."""
    INSTANCE = "instance"
    DEFINITION = "definition"


class CatalogEventPayload(BaseModel):
    """Decoded catalog change event.

    ``operation`` starts with ``created``, ``modified`` or ``removed``;
    ``instance.instanceType`` tells entities from relationships.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    object_type: str = Field(validation_alias=AliasChoices("objectType", "type", "object_type"))
    operation: str
    action: Optional[str] = None
    action_state: Optional[str] = Field(None, validation_alias=AliasChoices("actionState", "action_state"))
    instance: Optional[Dict[str, Any]] = None
    definition: Optional[Dict[str, Any]] = None


class RepositoryEventKind(str, Enum):
    """Outbound generic-model event kinds."""
    NEW_ENTITY = "NEW_ENTITY"
    UPDATED_ENTITY = "UPDATED_ENTITY"
    DELETED_ENTITY = "DELETED_ENTITY"
    NEW_RELATIONSHIP = "NEW_RELATIONSHIP"
    UPDATED_RELATIONSHIP = "UPDATED_RELATIONSHIP"
    DELETED_RELATIONSHIP = "DELETED_RELATIONSHIP"


class RepositoryEvent(BaseModel):
    """One generic-model change event."""
    kind: RepositoryEventKind
    metadata_collection_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    entity: Optional[EntityDetail] = None
    relationship: Optional[Relationship] = None
