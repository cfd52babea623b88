"""
Connector settings read from the environment.

Values are read once at import. Tests override them with ``set_setting``.

Usage:
    from catalog_bridge.config.settings import get_setting

    base_url = get_setting('catalog_base_url')

Environment Variables:
    CATALOG_BASE_URL               - Catalog REST API base URL (unset: in-memory catalog)
    CATALOG_USERNAME               - Logon user for the password grant
    CATALOG_PASSWORD               - Logon password
    CATALOG_LOGON_URL              - Token endpoint (default: <base url>/SASLogon/oauth/token)
    CATALOG_TYPE_MAPPINGS          - Path to a mapping table YAML file
    CATALOG_GENERIC_TYPES          - Path to a generic types YAML file
    CATALOG_METADATA_COLLECTION_ID - Id stamped on every translated instance
    CATALOG_SEARCH_WORKERS         - Concurrent sub-type queries per search (default 4)
    CATALOG_REQUEST_TIMEOUT        - Seconds per catalog HTTP request (default 30)
    CATALOG_LOG_LEVEL              - Logging level for the MCP server (default INFO)
"""

import os
from typing import Any, Dict


SETTINGS: Dict[str, Any] = {
    'catalog_base_url': os.getenv('CATALOG_BASE_URL'),
    'catalog_username': os.getenv('CATALOG_USERNAME'),
    'catalog_password': os.getenv('CATALOG_PASSWORD'),
    'catalog_logon_url': os.getenv('CATALOG_LOGON_URL'),
    'type_mappings_path': os.getenv('CATALOG_TYPE_MAPPINGS'),
    'generic_types_path': os.getenv('CATALOG_GENERIC_TYPES'),
    'metadata_collection_id': os.getenv('CATALOG_METADATA_COLLECTION_ID', 'catalog-bridge'),
    'search_workers': int(os.getenv('CATALOG_SEARCH_WORKERS', '4')),
    'request_timeout': float(os.getenv('CATALOG_REQUEST_TIMEOUT', '30')),
    'log_level': os.getenv('CATALOG_LOG_LEVEL', 'INFO').upper(),
}


def get_setting(name: str) -> Any:
    """
    Get a setting value.

    Raises:
        KeyError: If the setting name is not recognized
    """
    if name not in SETTINGS:
        available = ', '.join(SETTINGS.keys())
        raise KeyError(
            f"Unknown setting: '{name}'. "
            f"Available settings: {available}"
        )

    return SETTINGS[name]


def get_all_settings() -> Dict[str, Any]:
    """All settings, with the password masked."""
    settings = SETTINGS.copy()
    if settings.get('catalog_password'):
        settings['catalog_password'] = '***'
    return settings


def set_setting(name: str, value: Any):
    """
    Override a setting at runtime (for tests).

    Raises:
        KeyError: If the setting name is not recognized
    """
    if name not in SETTINGS:
        available = ', '.join(SETTINGS.keys())
        raise KeyError(
            f"Unknown setting: '{name}'. "
            f"Available settings: {available}"
        )

    SETTINGS[name] = value
