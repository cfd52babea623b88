"""
Error taxonomy for the catalog bridge.

Every failure raised by the translation layer carries an ``ErrorKind`` tag so
callers (the MCP tools, the event mapper) can branch on the category without
matching concrete classes:

- NOT_FOUND: entity, relationship or definition absent in the catalog
- UNMAPPED: no registry entry for a type (type negotiation paths only)
- MALFORMED: upstream catalog data breaks a contract (missing proxy name,
  bad timestamp, null relationship endpoint)
- NOT_SUPPORTED: historical queries, non-active status filters, attribute
  type def verification
- CONFIGURATION: mapping table or generic type file cannot be loaded
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Tag shared by every bridge error."""
    NOT_FOUND = "not_found"
    UNMAPPED = "unmapped"
    MALFORMED = "malformed"
    NOT_SUPPORTED = "not_supported"
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    LIFECYCLE = "lifecycle"


# ============================================================================
# Exception Classes
# ============================================================================

class CatalogBridgeError(Exception):
    """Base exception for all catalog bridge errors."""

    kind: ErrorKind = ErrorKind.MALFORMED
    code: str = "CATALOG_BRIDGE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class EntityNotKnownError(CatalogBridgeError, LookupError):
    """Entity GUID does not resolve to a catalog object."""
    kind = ErrorKind.NOT_FOUND
    code = "ENTITY_NOT_KNOWN"


class RelationshipNotKnownError(CatalogBridgeError, LookupError):
    """Relationship GUID does not resolve to a catalog object."""
    kind = ErrorKind.NOT_FOUND
    code = "RELATIONSHIP_NOT_KNOWN"


class TypeDefNotSupportedError(CatalogBridgeError):
    """Generic type cannot be implemented by this catalog."""
    kind = ErrorKind.UNMAPPED
    code = "TYPEDEF_NOT_SUPPORTED"


class CatalogDataError(CatalogBridgeError, ValueError):
    """Catalog object violates a data contract."""
    kind = ErrorKind.MALFORMED
    code = "MALFORMED_CATALOG_DATA"


class MissingProxyNameError(CatalogDataError):
    """Catalog object has no instance name to identify a proxy."""
    code = "INVALID_INSTANCE"


class InvalidRelationshipEndsError(CatalogDataError):
    """Relationship assembled with a missing endpoint."""
    code = "INVALID_RELATIONSHIP_ENDS"


class FunctionNotSupportedError(CatalogBridgeError):
    """Requested operation is never attempted against the catalog."""
    kind = ErrorKind.NOT_SUPPORTED
    code = "FUNCTION_NOT_SUPPORTED"


class MappingConfigurationError(CatalogBridgeError, RuntimeError):
    """Mapping table or generic type file is missing or invalid."""
    kind = ErrorKind.CONFIGURATION
    code = "MAPPING_CONFIGURATION_ERROR"


class CatalogClientError(CatalogBridgeError):
    """Transport-level failure talking to the catalog."""
    kind = ErrorKind.TRANSPORT
    code = "REST_CLIENT_FAILURE"


class LifecycleError(CatalogBridgeError, RuntimeError):
    """Connector used or transitioned outside its lifecycle."""
    kind = ErrorKind.LIFECYCLE
    code = "CONNECTOR_NOT_STARTED"
