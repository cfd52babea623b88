"""
Core translation layer.

Translators, search and the connector live in their own modules
(``core.entities``, ``core.relationships``, ``core.search``,
``core.metadata_collection``, ``core.connector``) and are imported from there.
"""

from .attributes import compare, to_generic_value, values_match
from .catalog_object import CatalogKind, CatalogObject, Namespace, split_property_key
from .errors import (
    CatalogBridgeError,
    CatalogClientError,
    CatalogDataError,
    EntityNotKnownError,
    ErrorKind,
    FunctionNotSupportedError,
    InvalidRelationshipEndsError,
    LifecycleError,
    MappingConfigurationError,
    MissingProxyNameError,
    RelationshipNotKnownError,
    TypeDefNotSupportedError,
)
from .guid import GENERATED_TYPE_SEPARATOR, CompositeGuid, decode_guid, encode_guid
from .type_mapping import (
    EndpointMapping,
    MappingTable,
    TypeMappingRegistry,
    load_generic_types,
    load_mapping_table,
)

__all__ = [
    # GUID codec
    'GENERATED_TYPE_SEPARATOR',
    'CompositeGuid',
    'encode_guid',
    'decode_guid',
    # Catalog objects
    'CatalogKind',
    'CatalogObject',
    'Namespace',
    'split_property_key',
    # Type mapping
    'EndpointMapping',
    'MappingTable',
    'TypeMappingRegistry',
    'load_mapping_table',
    'load_generic_types',
    # Attribute translation
    'to_generic_value',
    'values_match',
    'compare',
    # Errors
    'ErrorKind',
    'CatalogBridgeError',
    'EntityNotKnownError',
    'RelationshipNotKnownError',
    'TypeDefNotSupportedError',
    'CatalogDataError',
    'MissingProxyNameError',
    'InvalidRelationshipEndsError',
    'FunctionNotSupportedError',
    'MappingConfigurationError',
    'CatalogClientError',
    'LifecycleError',
]
