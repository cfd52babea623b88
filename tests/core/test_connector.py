"""Tests for connector wiring, lifecycle and settings."""

import pytest

from catalog_bridge.client.memory import InMemoryCatalogClient
from catalog_bridge.client.rest import CatalogRestClient
from catalog_bridge.config import settings
from catalog_bridge.core.connector import CatalogConnector
from catalog_bridge.core.errors import LifecycleError, MappingConfigurationError
from catalog_bridge.core.lifecycle import Lifecycle, LifecycleState


class TestLifecycle:
    """State transitions."""

    def test_happy_path(self):
        lifecycle = Lifecycle("test")
        lifecycle.initialize()
        lifecycle.start()
        assert lifecycle.is_started
        lifecycle.stop()
        assert lifecycle.state == LifecycleState.STOPPED

    def test_cannot_start_before_initialize(self):
        with pytest.raises(LifecycleError, match="created to started"):
            Lifecycle("test").start()

    def test_stopped_is_final(self):
        lifecycle = Lifecycle("test")
        lifecycle.stop()
        with pytest.raises(LifecycleError):
            lifecycle.initialize()

    def test_require_started(self):
        with pytest.raises(LifecycleError):
            Lifecycle("test").require_started()


class TestCatalogConnector:
    """Connector construction and startup."""

    def test_start_negotiates_shipped_types(self):
        connector = CatalogConnector(InMemoryCatalogClient())
        connector.initialize()
        outcome = connector.start()

        assert connector.state == LifecycleState.STARTED
        assert "RelationalTable" in outcome["implemented"]
        assert "Referenceable" in outcome["implemented"]
        assert outcome["unimplemented"] == ["Memento", "Process"]

    def test_facade_requires_start(self):
        connector = CatalogConnector(InMemoryCatalogClient())
        with pytest.raises(LifecycleError):
            connector.metadata_collection

    def test_start_requires_initialize(self):
        connector = CatalogConnector(InMemoryCatalogClient())
        with pytest.raises(LifecycleError):
            connector.start()
        assert connector.state == LifecycleState.CREATED

    def test_stopped_connector_rejects_reads(self, connector):
        connector.stop()
        with pytest.raises(LifecycleError):
            connector.metadata_collection

    def test_missing_generic_types_file(self, tmp_path):
        connector = CatalogConnector(InMemoryCatalogClient(), generic_types_path=tmp_path / "absent.yaml")
        connector.initialize()
        with pytest.raises(MappingConfigurationError):
            connector.start()
        assert connector.state == LifecycleState.INITIALIZED


class TestFromSettings:
    """Building a connector from settings."""

    @pytest.fixture
    def restore_settings(self):
        saved = dict(settings.SETTINGS)
        yield settings
        settings.SETTINGS.clear()
        settings.SETTINGS.update(saved)

    def test_without_base_url_uses_memory(self, restore_settings):
        restore_settings.set_setting('catalog_base_url', None)
        connector = CatalogConnector.from_settings()
        assert isinstance(connector.client, InMemoryCatalogClient)

    def test_with_base_url_uses_rest(self, restore_settings):
        restore_settings.set_setting('catalog_base_url', "https://catalog.example.com/")
        restore_settings.set_setting('metadata_collection_id', "prod")
        connector = CatalogConnector.from_settings()
        assert isinstance(connector.client, CatalogRestClient)
        assert connector.client.logon_url == "https://catalog.example.com/SASLogon/oauth/token"
        assert connector.entities.metadata_collection_id == "prod"

    def test_unknown_setting(self):
        with pytest.raises(KeyError, match="Available settings"):
            settings.get_setting('no_such_setting')

    def test_password_masked(self, restore_settings):
        restore_settings.set_setting('catalog_password', "secret")
        assert restore_settings.get_all_settings()['catalog_password'] == "***"
