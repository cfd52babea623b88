"""Shared fixtures: an in-memory catalog and a started connector over it."""

import pytest

from catalog_bridge.client.memory import InMemoryCatalogClient
from catalog_bridge.core.connector import CatalogConnector
from catalog_bridge.core.type_mapping import TypeMappingRegistry, load_generic_types
from catalog_bridge.events.publisher import RecordingEventPublisher
from tests.fixtures.catalog_objects import BASE_URL, COLLECTION_ID


@pytest.fixture
def generic_types():
    """Generic type defs shipped with the package, keyed by name."""
    return {type_def.name: type_def for type_def in load_generic_types()}


@pytest.fixture
def catalog_client():
    """Empty in-memory catalog."""
    return InMemoryCatalogClient()


@pytest.fixture
def publisher():
    return RecordingEventPublisher()


@pytest.fixture
def connector(catalog_client, publisher):
    """Connector over the in-memory catalog, started with the shipped types."""
    connector = CatalogConnector(
        catalog_client,
        registry=TypeMappingRegistry.from_yaml(),
        base_url=BASE_URL,
        metadata_collection_id=COLLECTION_ID,
        publisher=publisher,
    )
    connector.initialize()
    connector.start()
    return connector


@pytest.fixture
def collection(connector):
    return connector.metadata_collection


@pytest.fixture
def registry(connector):
    """Registry after type negotiation."""
    return connector.registry
