"""
Tests for the entity and relationship translators.

Tests cover:
1. Entity detail, summary and proxy shapes per prefix
2. Property mapping: constants, additional properties, typed coercion
3. Catalog relationships and relationships synthesized from one entity
"""

from datetime import datetime, timezone

import pytest

from catalog_bridge.core.catalog_object import CatalogKind, CatalogObject
from catalog_bridge.core.errors import (
    EntityNotKnownError,
    InvalidRelationshipEndsError,
    MissingProxyNameError,
)
from catalog_bridge.core.guid import CompositeGuid
from catalog_bridge.models.instances import InstanceStatus
from catalog_bridge.models.type_defs import PrimitiveKind
from tests.fixtures.catalog_objects import (
    BASE_URL,
    COLLECTION_ID,
    COLUMN_DEFINITION,
    DATA_FIELDS_DEFINITION,
    DATA_FLOW_DEFINITION,
    REFERENCE_DEFINITION,
    TABLE_DEFINITION,
    column_instance,
    glossary_instance,
    relationship_instance,
    table_instance,
)


@pytest.fixture
def entities(connector):
    return connector.entities


@pytest.fixture
def relationships(connector):
    return connector.relationships


@pytest.fixture
def table():
    return CatalogObject.from_payload(table_instance("t1", "SALES"), TABLE_DEFINITION)


# ============================================================================
# Entities
# ============================================================================

class TestEntityTranslator:
    """Catalog entities to generic entities."""

    def test_plain_detail(self, entities, table):
        """The unprefixed mapping carries the typed properties."""
        detail = entities.to_detail(table)

        assert detail.guid == "t1"
        assert detail.type.type_def_name == "RelationalTable"
        assert [link.name for link in detail.type.super_types] == ["DataSet", "Asset", "Referenceable"]
        assert detail.properties["name"].value == "SALES"
        assert detail.properties["displayName"].value == "SALES table"
        assert detail.properties["rowCount"].primitive_kind == PrimitiveKind.LONG
        assert detail.properties["rowCount"].value == 1200
        assert detail.properties["isView"].value is False
        assert detail.properties["createTime"].value == datetime(2021, 3, 4, 10, 11, 12, 123000, tzinfo=timezone.utc)
        assert detail.additional_properties == {"library": "PUBLIC"}

    def test_header_fields(self, entities, table):
        detail = entities.to_detail(table)

        assert detail.instance_url == f"{BASE_URL}/catalog/instances/t1"
        assert detail.metadata_collection_id == COLLECTION_ID
        assert detail.created_by == "alice"
        assert detail.updated_by == "bob"
        assert detail.version == 2
        assert detail.status == InstanceStatus.ACTIVE
        assert detail.classifications == []

    def test_prefixed_detail(self, entities, table):
        """A generated-type prefix selects its own property mapping."""
        detail = entities.to_detail(table, "RTT")

        assert detail.guid == "RTT!t1"
        assert detail.type.type_def_name == "RelationalTableType"
        assert detail.properties["displayName"].value == "SALES"
        assert detail.additional_properties["schemaKind"] == "table"
        assert "rowCount" not in detail.properties

    def test_unmapped_attributes_fold_into_additional_properties(self, entities):
        table = CatalogObject.from_payload(
            table_instance("t2", attributes={"rowCount": 5, "owner": "finance"}),
            TABLE_DEFINITION,
        )
        detail = entities.to_detail(table)
        assert detail.additional_properties["owner"] == "finance"
        assert "rowCount" not in detail.additional_properties

    def test_relationship_prefix_yields_no_entity(self, entities, table):
        """AST maps to a relationship type, so there is no AST entity."""
        assert entities.to_detail(table, "AST") is None

    def test_unmapped_type_yields_none(self, entities):
        obj = CatalogObject.from_payload(
            table_instance("x1"), {"id": "def-model", "name": "analyticsModel"}
        )
        assert entities.to_detail(obj) is None
        assert entities.to_summary(obj) is None

    def test_summary_has_no_properties(self, entities, table):
        summary = entities.to_summary(table, "RTT")
        assert summary.guid == "RTT!t1"
        assert not hasattr(summary, "properties")

    def test_reference_entity(self, entities):
        glossary = CatalogObject.from_payload(glossary_instance("g1"), REFERENCE_DEFINITION)
        detail = entities.to_detail(glossary)

        assert detail.type.type_def_name == "Glossary"
        assert detail.properties["qualifiedName"].value == "g1"
        assert detail.properties["displayName"].value == "Finance terms"

    def test_malformed_value_skipped(self, entities):
        """A value that cannot be coerced is left out, not fatal."""
        table = CatalogObject.from_payload(
            table_instance("t3", attributes={"rowCount": "many"}), TABLE_DEFINITION
        )
        detail = entities.to_detail(table)
        assert "rowCount" not in detail.properties

    def test_proxy(self, entities, table):
        proxy = entities.to_proxy(table, "RTT")
        assert proxy.guid == "RTT!t1"
        assert proxy.unique_properties["qualifiedName"].value == "SALES"

    def test_proxy_requires_name(self, entities):
        nameless = CatalogObject.from_payload(table_instance("t4", name=None), TABLE_DEFINITION)
        with pytest.raises(MissingProxyNameError):
            entities.to_proxy(nameless)


# ============================================================================
# Relationships
# ============================================================================

class TestSynthesizedRelationships:
    """Relationships between generic entities split from one catalog entity."""

    def test_asset_schema_type(self, relationships, table):
        relationship = relationships.synthesize_self_referencing(table, "AST")

        assert relationship.guid == "AST!t1"
        assert relationship.type.type_def_name == "AssetSchemaType"
        assert relationship.entity_one_proxy.guid == "t1"
        assert relationship.entity_one_proxy.type.type_def_name == "RelationalTable"
        assert relationship.entity_two_proxy.guid == "RTT!t1"
        assert relationship.entity_two_proxy.type.type_def_name == "RelationalTableType"
        assert relationship.properties == {}

    def test_version_is_update_time_millis(self, relationships, table):
        relationship = relationships.synthesize_self_referencing(table, "AST")
        expected = int(datetime(2021, 3, 5, 8, 0, tzinfo=timezone.utc).timestamp() * 1000)
        assert relationship.version == expected

    def test_none_prefix_yields_none(self, relationships, table):
        assert relationships.synthesize_self_referencing(table, None) is None

    def test_entity_prefix_yields_none(self, relationships, table):
        """RTT names an entity type, not a relationship type."""
        assert relationships.synthesize_self_referencing(table, "RTT") is None

    def test_all_for_entity(self, relationships, table):
        assert [r.guid for r in relationships.synthesized_for_entity(table)] == ["AST!t1"]


class TestCatalogRelationships:
    """Catalog relationship objects to generic relationships."""

    @pytest.fixture
    def populated(self, catalog_client):
        catalog_client.add_entity(table_instance("t1", "SALES"), TABLE_DEFINITION)
        catalog_client.add_entity(column_instance("c1", "AMOUNT"), COLUMN_DEFINITION)
        catalog_client.add_entity(table_instance("t2", "SALES_SUMMARY"), TABLE_DEFINITION)
        return catalog_client

    def test_endpoint_prefixes_applied(self, relationships, populated):
        """Endpoint mappings pick the generated type at each end."""
        rel = CatalogObject.from_payload(
            relationship_instance("r1", "dataSetDataFields", "t1", "c1"),
            DATA_FIELDS_DEFINITION,
            CatalogKind.RELATIONSHIP,
        )
        relationship = relationships.from_catalog_relationship(rel)

        assert relationship.guid == "r1"
        assert relationship.type.type_def_name == "NestedSchemaAttribute"
        assert relationship.entity_one_proxy.guid == "RTT!t1"
        assert relationship.entity_two_proxy.guid == "c1"

    def test_properties_mapped(self, relationships, populated):
        rel = CatalogObject.from_payload(
            relationship_instance("f1", "dataFlow", "t1", "t2", {"transformation": "SUM(AMOUNT)"}),
            DATA_FLOW_DEFINITION,
            CatalogKind.RELATIONSHIP,
        )
        relationship = relationships.from_catalog_relationship(rel, CompositeGuid("f1"))

        assert relationship.type.type_def_name == "DataFlow"
        assert relationship.properties["formula"].value == "SUM(AMOUNT)"
        assert relationship.entity_two_proxy.guid == "t2"

    def test_missing_endpoint_raises(self, relationships, populated):
        rel = CatalogObject.from_payload(
            relationship_instance("f2", "dataFlow", "t1", "gone"),
            DATA_FLOW_DEFINITION,
            CatalogKind.RELATIONSHIP,
        )
        with pytest.raises(EntityNotKnownError):
            relationships.from_catalog_relationship(rel)

    def test_unmapped_endpoint_raises(self, relationships, populated):
        """An endpoint whose type has no mapping cannot be a proxy."""
        populated.add_entity(table_instance("m1", "MODEL"), {"id": "def-model", "name": "analyticsModel"})
        rel = CatalogObject.from_payload(
            relationship_instance("f3", "dataFlow", "t1", "m1"),
            DATA_FLOW_DEFINITION,
            CatalogKind.RELATIONSHIP,
        )
        with pytest.raises(InvalidRelationshipEndsError):
            relationships.from_catalog_relationship(rel)

    def test_unmapped_relationship_type(self, relationships, populated):
        rel = CatalogObject.from_payload(
            relationship_instance("x1", "dependsOn", "t1", "t2"),
            {"id": "def-dependsOn", "name": "dependsOn"},
            CatalogKind.RELATIONSHIP,
        )
        assert relationships.from_catalog_relationship(rel) is None
