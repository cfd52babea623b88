"""Catalog-access capability implementations."""

from .base import CatalogClient, matches_attribute_filter
from .memory import InMemoryCatalogClient
from .rest import CatalogRestClient

__all__ = [
    'CatalogClient',
    'InMemoryCatalogClient',
    'CatalogRestClient',
    'matches_attribute_filter',
]
