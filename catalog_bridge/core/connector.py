"""
Catalog Connector - wires the catalog client, registry and translators.

Every component receives its collaborators at construction; there is no
process-wide connector handle.

Usage:
    connector = CatalogConnector.from_settings()
    connector.initialize()
    connector.start()          # negotiates the shipped generic types
    connector.metadata_collection.get_entity_detail(guid)
    connector.stop()
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..client.base import CatalogClient
from ..client.memory import InMemoryCatalogClient
from ..client.rest import CatalogRestClient
from ..config.settings import get_setting
from ..events.mapper import RepositoryEventMapper
from ..events.publisher import EventPublisher, LoggingEventPublisher
from ..models.events import RepositoryEvent
from .entities import EntityTranslator
from .errors import LifecycleError
from .lifecycle import Lifecycle, LifecycleState
from .metadata_collection import MetadataCollection
from .relationships import RelationshipTranslator
from .search import DEFAULT_SEARCH_WORKERS, EntitySearch
from .type_mapping import TypeMappingRegistry, load_generic_types

logger = logging.getLogger(__name__)


class CatalogConnector:
    """Owns one catalog client and everything that translates its objects."""

    def __init__(
        self,
        client: CatalogClient,
        registry: Optional[TypeMappingRegistry] = None,
        base_url: str = "",
        metadata_collection_id: Optional[str] = None,
        search_workers: int = DEFAULT_SEARCH_WORKERS,
        generic_types_path: Optional[Union[str, Path]] = None,
        publisher: Optional[EventPublisher] = None
    ):
        self.client = client
        self.registry = registry or TypeMappingRegistry.from_yaml()
        self.generic_types_path = generic_types_path
        self.lifecycle = Lifecycle("catalog connector")

        self.entities = EntityTranslator(self.registry, base_url, metadata_collection_id)
        self.relationships = RelationshipTranslator(self.registry, self.entities, client)
        self.search = EntitySearch(self.registry, self.entities, client, search_workers)
        self._metadata_collection = MetadataCollection(
            self.registry, client, self.entities, self.relationships, self.search
        )
        self.event_mapper = RepositoryEventMapper(
            self.registry, self.entities, self.relationships, publisher or LoggingEventPublisher()
        )

    @classmethod
    def from_settings(cls, publisher: Optional[EventPublisher] = None) -> "CatalogConnector":
        """
        Build a connector from environment settings.

        Without ``catalog_base_url`` the connector runs against an empty
        in-memory catalog.
        """
        base_url = get_setting('catalog_base_url')
        if base_url:
            client = CatalogRestClient(
                base_url,
                get_setting('catalog_username'),
                get_setting('catalog_password'),
                logon_url=get_setting('catalog_logon_url'),
                timeout=get_setting('request_timeout'),
            )
        else:
            logger.warning("CATALOG_BASE_URL is not set; using an empty in-memory catalog")
            client = InMemoryCatalogClient()

        mappings_path = get_setting('type_mappings_path')
        return cls(
            client,
            registry=TypeMappingRegistry.from_yaml(Path(mappings_path) if mappings_path else None),
            base_url=base_url or "",
            metadata_collection_id=get_setting('metadata_collection_id'),
            search_workers=get_setting('search_workers'),
            generic_types_path=get_setting('generic_types_path'),
            publisher=publisher,
        )

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    @property
    def metadata_collection(self) -> MetadataCollection:
        """
        Raises:
            LifecycleError: If the connector has not been started
        """
        self.lifecycle.require_started()
        return self._metadata_collection

    def initialize(self):
        self.lifecycle.initialize()

    def start(self) -> Dict[str, List[str]]:
        """
        Negotiate the generic types and start serving.

        Returns:
            Implemented and unimplemented type names

        Raises:
            LifecycleError: If the connector is not initialized
            MappingConfigurationError: If the generic types file is invalid
        """
        if self.lifecycle.state != LifecycleState.INITIALIZED:
            raise LifecycleError(
                f"Cannot start the catalog connector from {self.lifecycle.state.value}",
                code="ILLEGAL_LIFECYCLE_TRANSITION",
            )
        path = Path(self.generic_types_path) if self.generic_types_path else None
        outcome = self._metadata_collection.negotiate_types(load_generic_types(path))
        self.lifecycle.start()
        return outcome

    def stop(self):
        self.lifecycle.stop()

    def process_event(self, payload: Union[str, Dict[str, Any]]) -> List[RepositoryEvent]:
        """Map one catalog change event; the connector must be started."""
        self.lifecycle.require_started()
        return self.event_mapper.process_event(payload)
