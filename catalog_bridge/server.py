"""MCP server exposing the catalog bridge read facade."""

import asyncio
import json
import logging
from typing import Optional

from mcp import Tool
from mcp.server import Server, NotificationOptions
from mcp.server.models import InitializationOptions
from mcp.types import TextContent

from . import __version__
from .config.settings import get_setting
from .core.connector import CatalogConnector
from .tools.catalog_tools import CatalogTools

logger = logging.getLogger(__name__)


class CatalogBridgeMCPServer:
    """MCP Server for browsing catalog metadata in the generic model."""

    def __init__(self, connector: Optional[CatalogConnector] = None):
        """Initialize with a started connector, or one built from settings."""
        if connector is None:
            connector = CatalogConnector.from_settings()
            connector.initialize()
            outcome = connector.start()
            logger.info(
                f"Negotiated {len(outcome['implemented'])} implemented and "
                f"{len(outcome['unimplemented'])} unimplemented generic types"
            )
        self.connector = connector
        self.catalog_tools = CatalogTools(connector)

        self.server = Server("catalog-bridge")
        self._register_handlers()

    def _register_handlers(self):
        """Register all MCP handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> list[Tool]:
            """List all available tools."""
            tools = []
            tools.extend(self.catalog_tools.get_tools())
            return tools

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
            """Route tool calls to appropriate handlers."""
            try:
                if name.startswith("catalog_"):
                    result = await self.catalog_tools.handle_tool(name, arguments)
                else:
                    raise ValueError(f"Unknown tool: {name}")

                return [TextContent(type="text", text=json.dumps(result, indent=2))]

            except Exception as e:
                logger.error(f"Error executing tool {name}: {e}")
                error_result = {
                    "error": str(e),
                    "tool": name,
                    "arguments": arguments
                }
                return [TextContent(type="text", text=json.dumps(error_result, indent=2))]

    async def run(self):
        """Run the MCP server."""
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name="catalog-bridge",
                    server_version=__version__,
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={}
                    )
                )
            )


def main():
    """Main entry point for the MCP server."""
    logging.basicConfig(level=get_setting('log_level'))
    server = CatalogBridgeMCPServer()
    try:
        asyncio.run(server.run())
    finally:
        server.connector.stop()


if __name__ == "__main__":
    main()
