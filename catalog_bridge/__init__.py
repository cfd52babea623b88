"""
catalog-bridge: translates a proprietary data catalog's metadata into a
generic open-metadata model.

Packages:
    core    - GUID codec, type mapping registry, translators, search, connector
    client  - catalog-access capability (REST and in-memory)
    models  - pydantic generic-model records
    events  - catalog change event mapping
    tools   - MCP tools over the read facade
"""

__version__ = "0.1.0"
