"""MCP tool providers."""

from .catalog_tools import CatalogTools

__all__ = ['CatalogTools']
