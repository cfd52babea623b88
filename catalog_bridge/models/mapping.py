"""Schema of the declarative type-mapping table.

Example ``type_mappings.yaml`` record:

    - catalog: casTable
      generic: RelationalTableType
      prefix: RTT
      property_mappings:
        - {catalog: instance.name, generic: qualifiedName}
        - {catalog: constant.table, generic: additionalProperties.kind}
      endpoint_mappings:
        - {catalog: table, generic: schemaTypes, prefix: null}
        - {catalog: tableType, generic: describesAssets, prefix: RTT}
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

CONSTANT_PREFIX = "constant."
ADDITIONAL_PROPERTIES_PREFIX = "additionalProperties."

CATALOG_KEY_PREFIXES = ("instance.", "definition.", "attribute.", CONSTANT_PREFIX)


class PropertyMappingRecord(BaseModel):
    """Catalog property to generic attribute pair."""
    catalog: str = Field(..., description="Namespaced catalog key or constant.<literal>")
    generic: str = Field(..., description="Generic attribute or additionalProperties.<key>")

    @field_validator("catalog")
    @classmethod
    def validate_catalog_key(cls, v: str) -> str:
        if not v.startswith(CATALOG_KEY_PREFIXES):
            valid = ", ".join(CATALOG_KEY_PREFIXES)
            raise ValueError(f"Catalog property '{v}' must start with one of: {valid}")
        return v


class EndpointMappingRecord(BaseModel):
    """One side of a relationship endpoint mapping."""
    catalog: str = Field(..., description="Catalog endpoint field name")
    generic: str = Field(..., description="Generic endpoint role name")
    prefix: Optional[str] = Field(None, description="Prefix of the entity type at this end")


class MappingRecord(BaseModel):
    """One row of the mapping table."""
    catalog: str
    generic: str
    prefix: Optional[str] = None
    property_mappings: List[PropertyMappingRecord] = Field(default_factory=list)
    endpoint_mappings: List[EndpointMappingRecord] = Field(default_factory=list)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and (not v or "!" in v):
            raise ValueError(f"Prefix '{v}' must be a non-empty token without '!'")
        return v

    @property
    def is_generated_type(self) -> bool:
        return self.prefix is not None


class MappingTableFile(BaseModel):
    """Top-level document of the mapping table."""
    mappings: List[MappingRecord] = Field(default_factory=list)
    reserved: List[str] = Field(
        default_factory=list,
        description="Generic types permanently excluded from type negotiation"
    )
