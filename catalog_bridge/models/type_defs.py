"""Generic-model type definitions.

Type defs arrive during startup type negotiation (from the shipped
``generic_types.yaml`` or from a caller) and are recorded by the
``TypeMappingRegistry``. Only what translation needs is modelled: identity,
category, supertype link and primitive attribute metadata.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class TypeDefCategory(str, Enum):
    """Category of a generic type definition."""
    ENTITY_DEF = "EntityDef"
    RELATIONSHIP_DEF = "RelationshipDef"
    CLASSIFICATION_DEF = "ClassificationDef"


class AttributeCategory(str, Enum):
    """Category of an attribute's declared type."""
    PRIMITIVE = "primitive"
    ENUM = "enum"
    MAP = "map"
    ARRAY = "array"


class PrimitiveKind(str, Enum):
    """Primitive kinds a generic attribute can declare.

    Only BOOLEAN, INT, LONG, FLOAT, STRING and DATE are translated from
    catalog values; the others are recognised but skipped.
    """
    BOOLEAN = "boolean"
    BYTE = "byte"
    CHAR = "char"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BIGINTEGER = "biginteger"
    BIGDECIMAL = "bigdecimal"
    STRING = "string"
    DATE = "date"


class TypeDefLink(BaseModel):
    """Reference to another type def by guid and name."""
    guid: str
    name: str


class TypeDefAttribute(BaseModel):
    """Attribute declared by a generic type."""
    name: str = Field(..., description="Attribute name")
    category: AttributeCategory = Field(AttributeCategory.PRIMITIVE)
    primitive_kind: Optional[PrimitiveKind] = Field(
        None, description="Declared primitive kind when category is primitive"
    )
    description: Optional[str] = None


class TypeDef(BaseModel):
    """Generic type definition."""

    guid: str = Field(..., description="Unique identifier of the type def")
    name: str = Field(..., description="Generic type name")
    category: TypeDefCategory = Field(TypeDefCategory.ENTITY_DEF)
    super_type: Optional[TypeDefLink] = Field(None, description="Declared supertype")
    attributes: List[TypeDefAttribute] = Field(default_factory=list)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Type def name must not be empty")
        return v

    def to_link(self) -> TypeDefLink:
        return TypeDefLink(guid=self.guid, name=self.name)


class GenericTypesFile(BaseModel):
    """Schema of the generic types YAML file."""
    types: List[TypeDef] = Field(default_factory=list)
