"""Generic-model instances produced by the translators.

Entities come in three shapes: ``EntitySummary`` (header and type only),
``EntityDetail`` (adds properties) and ``EntityProxy`` (reference-only, used
as a relationship endpoint). Relationships carry two proxies.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .type_defs import PrimitiveKind, TypeDef, TypeDefCategory, TypeDefLink


class InstanceStatus(str, Enum):
    """Status of a generic instance. Catalog objects are always ACTIVE."""
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class InstanceProvenance(str, Enum):
    """Where an instance originates."""
    LOCAL_COHORT = "LOCAL_COHORT"


class PrimitiveValue(BaseModel):
    """A typed primitive property value."""
    primitive_kind: PrimitiveKind
    value: Any = None


class InstanceType(BaseModel):
    """Type information stamped on each instance."""
    type_def_guid: str
    type_def_name: str
    type_def_category: TypeDefCategory = TypeDefCategory.ENTITY_DEF
    super_types: List[TypeDefLink] = Field(default_factory=list)

    @classmethod
    def from_type_def(cls, type_def: TypeDef, super_types: Optional[List[TypeDefLink]] = None) -> "InstanceType":
        return cls(
            type_def_guid=type_def.guid,
            type_def_name=type_def.name,
            type_def_category=type_def.category,
            super_types=super_types or [],
        )


class InstanceHeader(BaseModel):
    """Fields shared by entities and relationships."""
    guid: str
    type: InstanceType
    instance_url: Optional[str] = None
    metadata_collection_id: Optional[str] = None
    instance_provenance: InstanceProvenance = InstanceProvenance.LOCAL_COHORT
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None
    version: int = 0
    status: InstanceStatus = InstanceStatus.ACTIVE


class EntitySummary(InstanceHeader):
    """Entity header plus classifications (never populated from the catalog)."""
    classifications: List[Dict[str, Any]] = Field(default_factory=list)


class EntityDetail(EntitySummary):
    """Entity with its translated properties."""
    properties: Dict[str, PrimitiveValue] = Field(default_factory=dict)
    additional_properties: Dict[str, str] = Field(
        default_factory=dict,
        description="Catalog values without a first-class generic attribute"
    )

    def property_value(self, name: str) -> Optional[PrimitiveValue]:
        return self.properties.get(name)


class EntityProxy(EntitySummary):
    """Reference-only entity used as a relationship endpoint."""
    unique_properties: Dict[str, PrimitiveValue] = Field(default_factory=dict)


class Relationship(InstanceHeader):
    """Generic relationship between two entity proxies."""
    entity_one_proxy: EntityProxy
    entity_two_proxy: EntityProxy
    properties: Dict[str, PrimitiveValue] = Field(default_factory=dict)

    def property_value(self, name: str) -> Optional[PrimitiveValue]:
        return self.properties.get(name)
