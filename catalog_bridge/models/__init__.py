"""Generic-model records and catalog event payloads."""

from .events import CatalogEventPayload, RepositoryEvent, RepositoryEventKind
from .instances import (
    EntityDetail,
    EntityProxy,
    EntitySummary,
    InstanceStatus,
    InstanceType,
    PrimitiveValue,
    Relationship,
)
from .mapping import MappingRecord, MappingTableFile
from .search import EntitySearchRequest, MatchCriteria, PagingOptions, SequencingOrder
from .type_defs import PrimitiveKind, TypeDef, TypeDefAttribute, TypeDefCategory, TypeDefLink

__all__ = [
    'TypeDef',
    'TypeDefAttribute',
    'TypeDefCategory',
    'TypeDefLink',
    'PrimitiveKind',
    'PrimitiveValue',
    'InstanceStatus',
    'InstanceType',
    'EntitySummary',
    'EntityDetail',
    'EntityProxy',
    'Relationship',
    'MappingRecord',
    'MappingTableFile',
    'EntitySearchRequest',
    'MatchCriteria',
    'PagingOptions',
    'SequencingOrder',
    'CatalogEventPayload',
    'RepositoryEvent',
    'RepositoryEventKind',
]
