"""MCP tools over the catalog connector's read facade."""

import logging
from typing import Any, Dict, List, Optional

from mcp import Tool

from ..core.connector import CatalogConnector
from ..core.errors import CatalogBridgeError
from ..core.guid import decode_guid
from ..models.search import EntitySearchRequest
from ..utils.response import bridge_error_response, error_response, success_response

logger = logging.getLogger(__name__)

_PAGING_PROPERTIES = {
    "from_element": {
        "type": "integer",
        "description": "Index of the first result to return",
        "default": 0
    },
    "page_size": {
        "type": "integer",
        "description": "Maximum results (0 for no limit)",
        "default": 0
    },
    "sequencing_property": {
        "type": "string",
        "description": "Property to order by for PROPERTY_* orders"
    },
    "sequencing_order": {
        "type": "string",
        "enum": [
            "ANY", "GUID",
            "CREATION_DATE_RECENT", "CREATION_DATE_OLDEST",
            "LAST_UPDATE_RECENT", "LAST_UPDATE_OLDEST",
            "PROPERTY_ASCENDING", "PROPERTY_DESCENDING"
        ],
        "description": "Result ordering"
    }
}


def _dump(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    return value.model_dump(mode="json")


class CatalogTools:
    """Catalog lookups, searches and type mapping introspection."""

    def __init__(self, connector: CatalogConnector):
        self.connector = connector

    def get_tools(self) -> List[Tool]:
        """Return catalog tools."""
        return [
            Tool(
                name="catalog_get_entity",
                description="Fetch an entity by GUID, translated to the generic model",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "guid": {
                            "type": "string",
                            "description": "Entity GUID (native id, or prefix!id for generated entities)"
                        },
                        "summary": {
                            "type": "boolean",
                            "description": "Return the summary only, without properties",
                            "default": False
                        }
                    },
                    "required": ["guid"]
                }
            ),
            Tool(
                name="catalog_get_relationship",
                description="Fetch a relationship by GUID, including generated relationships",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "guid": {
                            "type": "string",
                            "description": "Relationship GUID"
                        }
                    },
                    "required": ["guid"]
                }
            ),
            Tool(
                name="catalog_entity_relationships",
                description="List the relationships an entity participates in",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "entity_guid": {
                            "type": "string",
                            "description": "Entity GUID"
                        },
                        "relationship_type_guid": {
                            "type": "string",
                            "description": "Restrict to one relationship type (optional)"
                        },
                        **_PAGING_PROPERTIES
                    },
                    "required": ["entity_guid"]
                }
            ),
            Tool(
                name="catalog_find_entities",
                description="Search entities by property values or by a regular expression over all string values",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "entity_type_guid": {
                            "type": "string",
                            "description": "Restrict to a type and its subtypes (optional)"
                        },
                        "match_properties": {
                            "type": "object",
                            "description": "Generic property name to {primitive_kind, value}"
                        },
                        "match_criteria": {
                            "type": "string",
                            "enum": ["ALL", "ANY"],
                            "default": "ALL"
                        },
                        "search_criteria": {
                            "type": "string",
                            "description": "Regular expression matched against every string value"
                        },
                        **_PAGING_PROPERTIES
                    }
                }
            ),
            Tool(
                name="catalog_list_type_mappings",
                description="List the catalog to generic type mappings and the negotiated types",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "catalog_type": {
                            "type": "string",
                            "description": "Only mappings for this catalog type (optional)"
                        }
                    }
                }
            ),
            Tool(
                name="catalog_decode_guid",
                description="Split a GUID into its native id and generated-type prefix",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "guid": {
                            "type": "string",
                            "description": "GUID to decode"
                        }
                    },
                    "required": ["guid"]
                }
            )
        ]

    async def handle_tool(self, name: str, arguments: dict) -> dict:
        """Route tool call to appropriate handler."""
        handlers = {
            "catalog_get_entity": self._get_entity,
            "catalog_get_relationship": self._get_relationship,
            "catalog_entity_relationships": self._entity_relationships,
            "catalog_find_entities": self._find_entities,
            "catalog_list_type_mappings": self._list_type_mappings,
            "catalog_decode_guid": self._decode_guid
        }

        handler = handlers.get(name)
        if not handler:
            return error_response(f"Unknown catalog tool: {name}", code="UNKNOWN_TOOL")

        try:
            return await handler(arguments)
        except CatalogBridgeError as e:
            logger.warning(f"{name} failed: {e}")
            return bridge_error_response(e, details={"tool": name})
        except Exception as e:
            logger.exception(f"Error in {name}")
            return error_response(
                str(e),
                code="TOOL_EXECUTION_ERROR",
                details={"tool": name, "arguments": arguments}
            )

    async def _get_entity(self, args: dict) -> dict:
        collection = self.connector.metadata_collection
        if args.get("summary", False):
            entity = collection.get_entity_summary(args["guid"])
        else:
            entity = collection.get_entity_detail(args["guid"])
        if entity is None:
            return error_response(f"Entity {args['guid']} has no generic mapping", code="NOT_MAPPED")
        return success_response(_dump(entity))

    async def _get_relationship(self, args: dict) -> dict:
        relationship = self.connector.metadata_collection.get_relationship(args["guid"])
        if relationship is None:
            return error_response(f"Relationship {args['guid']} has no generic mapping", code="NOT_MAPPED")
        return success_response(_dump(relationship))

    async def _entity_relationships(self, args: dict) -> dict:
        relationships = self.connector.metadata_collection.get_relationships_for_entity(
            args["entity_guid"],
            relationship_type_guid=args.get("relationship_type_guid"),
            from_element=args.get("from_element", 0),
            sequencing_property=args.get("sequencing_property"),
            sequencing_order=args.get("sequencing_order"),
            page_size=args.get("page_size", 0),
        )
        data = _dump(relationships) or []
        return success_response({"relationships": data, "count": len(data)})

    async def _find_entities(self, args: dict) -> dict:
        request = EntitySearchRequest.model_validate(args)
        entities = self.connector.metadata_collection.find_entities(request)
        data = _dump(entities) or []
        return success_response({"entities": data, "count": len(data)})

    async def _list_type_mappings(self, args: dict) -> dict:
        registry = self.connector.registry
        catalog_type: Optional[str] = args.get("catalog_type")
        records = [
            record.model_dump(mode="json")
            for record in registry.table.records
            if catalog_type is None or record.catalog == catalog_type
        ]
        return success_response({
            "mappings": records,
            "implemented": sorted(t.name for t in registry.implemented_type_defs()),
            "unimplemented": sorted(t.name for t in registry.unimplemented_type_defs()),
            "reserved": sorted(registry.table.reserved)
        })

    async def _decode_guid(self, args: dict) -> dict:
        decoded = decode_guid(args["guid"])
        result: Dict[str, Any] = {
            "native_id": decoded.native_id,
            "generated_prefix": decoded.generated_prefix,
            "is_generated": decoded.is_generated
        }
        if decoded.is_generated:
            result["generic_type"] = self.connector.registry.generic_name_for_prefix(decoded.generated_prefix)
        return success_response(result)
