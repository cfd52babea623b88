"""
Tests for entity search: compilation into catalog queries and result assembly.

The catalog holds 15 tables (SALES_00..SALES_14, rowCount = 100 * index) and
10 columns (AMOUNT_n for even n, COST_n for odd n).
"""

from datetime import datetime, timezone

import pytest

from catalog_bridge.client.memory import InMemoryCatalogClient
from catalog_bridge.core.catalog_object import CatalogKind
from catalog_bridge.core.errors import FunctionNotSupportedError
from catalog_bridge.core.search import EntitySearch, SearchCompiler, query_limit
from catalog_bridge.models.instances import InstanceStatus, PrimitiveValue
from catalog_bridge.models.search import EntitySearchRequest, MatchCriteria, SequencingOrder
from tests.fixtures.catalog_objects import (
    COLUMN_DEFINITION,
    REFERENCE_DEFINITION,
    TABLE_DEFINITION,
    column_instance,
    glossary_instance,
    table_instance,
)


def string(value):
    return PrimitiveValue(primitive_kind="string", value=value)


def long(value):
    return PrimitiveValue(primitive_kind="long", value=value)


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture
def populated(catalog_client):
    """Catalog with 15 tables and 10 columns."""
    for index in range(15):
        catalog_client.add_entity(
            table_instance(
                f"tbl-{index:02d}",
                f"SALES_{index:02d}",
                attributes={"rowCount": index * 100, "isView": False},
            ),
            TABLE_DEFINITION,
        )
    for index in range(10):
        name = f"AMOUNT_{index}" if index % 2 == 0 else f"COST_{index}"
        catalog_client.add_entity(column_instance(f"col-{index:02d}", name, position=index), COLUMN_DEFINITION)
    return catalog_client


@pytest.fixture
def guid_of(generic_types):
    return lambda name: generic_types[name].guid


def guids(results):
    return [entity.guid for entity in results or []]


# ============================================================================
# Compilation
# ============================================================================

class TestSearchCompiler:
    """Search requests to catalog queries."""

    @pytest.fixture
    def compiler(self, registry):
        return SearchCompiler(registry)

    def test_direct_mapping(self, compiler):
        assert compiler.mappings_to_search("RelationalTable") == [(None, "casTable")]

    def test_subtype_mappings(self, compiler):
        """A supertype searches the catalog types of its mapped subtypes."""
        assert compiler.mappings_to_search("SchemaElement") == [(None, "casColumn"), ("RTT", "casTable")]

    def test_untyped_mappings_skip_relationship_types(self, compiler):
        pairs = compiler.mappings_to_search(None)
        assert ("AST", "casTable") not in pairs
        assert (None, "reference.Glossary") in pairs

    def test_reference_type_clause(self, compiler):
        clause, attributes = compiler.type_clause("reference.Glossary")
        assert clause == "eq(type,reference)"
        assert attributes == {"referencedType": "Glossary"}

    def test_types_sharing_a_prefix_are_ored(self, compiler, guid_of):
        """Plain types sharing a prefix share a query; reference types get their own."""
        plan = compiler.compile(EntitySearchRequest(entity_type_guid=guid_of("Referenceable")))
        compiled = [(q.prefix, q.filter_expression, q.attribute_filter) for q in plan.queries]
        assert compiled == [
            (None, "eq(type,reference)", {"referencedType": "Glossary"}),
            (None, "or(eq(type,casColumn),eq(type,casTable))", {}),
            ("RTT", "eq(type,casTable)", {}),
        ]

    def test_properties_become_contains_and_post_filter(self, compiler, guid_of):
        """Instance fields are filtered by the catalog; free-form attributes by the post-filter."""
        request = EntitySearchRequest(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"name": string("SALES_03"), "rowCount": long(300)},
        )
        (query,) = compiler.compile(request).queries
        assert query.filter_expression == "and(eq(type,casTable),contains(name,SALES_03))"
        assert query.attribute_filter == {"rowCount": 300}

    def test_value_passed_to_contains_verbatim(self, compiler, guid_of):
        request = EntitySearchRequest(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"name": string("^SALES_0.*")},
        )
        (query,) = compiler.compile(request).queries
        assert query.filter_expression == 'and(eq(type,casTable),contains(name,"^SALES_0.*"))'

    def test_any_criteria_splits_attribute_alternatives(self, compiler, guid_of):
        request = EntitySearchRequest(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"name": string("SALES_01"), "rowCount": long(500)},
            match_criteria=MatchCriteria.ANY,
        )
        compiled = [(q.filter_expression, q.attribute_filter) for q in compiler.compile(request).queries]
        assert compiled == [
            ("and(eq(type,casTable),contains(name,SALES_01))", {}),
            ("eq(type,casTable)", {"rowCount": 500}),
        ]

    def test_untyped_search_has_no_type_clause(self, compiler):
        """Without type or properties one query covers every catalog type."""
        (query,) = compiler.compile(EntitySearchRequest(search_criteria="SALES.*")).queries
        assert query.prefix is None
        assert query.filter_expression is None
        assert "casTable" in query.catalog_types

    def test_limit_applied_to_queries(self, compiler, guid_of):
        plan = compiler.compile(EntitySearchRequest(entity_type_guid=guid_of("SchemaElement")), limit=20)
        assert [query.limit for query in plan.queries] == [20, 20]

    def test_query_limit_only_for_unordered_typed_pages(self, guid_of):
        typed = guid_of("RelationalTable")
        assert query_limit(EntitySearchRequest(entity_type_guid=typed, from_element=10, page_size=10)) == 20
        assert query_limit(EntitySearchRequest(entity_type_guid=typed)) is None
        assert query_limit(EntitySearchRequest(page_size=10)) is None
        assert query_limit(EntitySearchRequest(
            entity_type_guid=typed, page_size=10, sequencing_order=SequencingOrder.GUID
        )) is None
        assert query_limit(EntitySearchRequest(entity_type_guid=typed, page_size=10, search_criteria="S.*")) is None

    def test_unmapped_property_under_all_skips_type(self, compiler, guid_of):
        request = EntitySearchRequest(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"owner": string("finance")},
        )
        assert compiler.compile(request).queries == []

    def test_unknown_type_compiles_to_nothing(self, compiler):
        plan = compiler.compile(EntitySearchRequest(entity_type_guid="no-such-guid"))
        assert plan.queries == []


# ============================================================================
# Execution
# ============================================================================

class TestFindEntities:
    """End-to-end searches over the in-memory catalog."""

    def test_pagination_across_subtypes(self, collection, populated, guid_of):
        """25 matches across two catalog types, page 2 of size 10 by GUID."""
        everything = collection.find_entities(
            EntitySearchRequest(entity_type_guid=guid_of("SchemaElement"))
        )
        assert len(everything) == 25

        page = collection.find_entities(EntitySearchRequest(
            entity_type_guid=guid_of("SchemaElement"),
            from_element=10,
            page_size=10,
            sequencing_order=SequencingOrder.GUID,
        ))
        assert guids(page) == [f"RTT!tbl-{i}" for i in range(10, 15)] + [f"col-0{i}" for i in range(5)]

    def test_past_the_end_is_none(self, collection, populated, guid_of):
        result = collection.find_entities(
            EntitySearchRequest(entity_type_guid=guid_of("RelationalTable"), from_element=40)
        )
        assert result is None

    def test_contains_match(self, collection, populated, guid_of):
        """Instance field values match by substring."""
        result = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"name": string("SALES_1")},
            sequencing_order=SequencingOrder.GUID,
        )
        assert guids(result) == [f"tbl-{i}" for i in range(10, 15)]

    def test_pattern_characters_are_literal(self, collection, populated, guid_of):
        result = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"name": string("^SALES_0.*")},
        )
        assert result is None

    def test_all_criteria(self, collection, populated, guid_of):
        result = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"name": string("SALES_"), "rowCount": long(300)},
        )
        assert guids(result) == ["tbl-03"]

    def test_any_criteria(self, collection, populated, guid_of):
        result = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTable"),
            match_properties={"name": string("SALES_01"), "rowCount": long(500)},
            match_criteria=MatchCriteria.ANY,
            sequencing_order=SequencingOrder.GUID,
        )
        assert guids(result) == ["tbl-01", "tbl-05"]

    def test_constant_mapping(self, collection, populated, guid_of):
        """A property mapped to a constant matches all or nothing."""
        matching = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTableType"),
            match_properties={"additionalProperties.schemaKind": string("table")},
        )
        assert len(matching) == 15

        not_matching = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTableType"),
            match_properties={"additionalProperties.schemaKind": string("view")},
        )
        assert not_matching is None

    def test_value_search(self, collection, populated, guid_of):
        result = collection.find_entities_by_property_value(
            guid_of("RelationalColumn"), "AMOUNT.*", sequencing_order=SequencingOrder.GUID
        )
        assert guids(result) == ["col-00", "col-02", "col-04", "col-06", "col-08"]

    def test_property_ordering(self, collection, populated, guid_of):
        result = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTable"),
            sequencing_property="rowCount",
            sequencing_order=SequencingOrder.PROPERTY_DESCENDING,
            page_size=3,
        )
        assert guids(result) == ["tbl-14", "tbl-13", "tbl-12"]

    def test_reference_type(self, collection, catalog_client, guid_of):
        catalog_client.add_entity(glossary_instance("g1"), REFERENCE_DEFINITION)
        catalog_client.add_entity(glossary_instance("x1", "Terms", referenced_type="Term"), REFERENCE_DEFINITION)
        result = collection.find_entities(EntitySearchRequest(entity_type_guid=guid_of("Glossary")))
        assert guids(result) == ["g1"]

    def test_untyped_search_without_properties_reads_first_prefix_only(self, collection, populated):
        """Every catalog type is read, but only through the first mapping's prefix."""
        result = collection.find_entities(EntitySearchRequest())
        assert len(result) == 25
        assert {entity.type.type_def_name for entity in result} == {"RelationalColumn", "RelationalTable"}
        assert not any(entity.guid.startswith("RTT!") for entity in result)

    def test_untyped_value_search_issues_one_query(self, collection, catalog_client):
        catalog_client.add_entity(table_instance("t1", "SALES_01"), TABLE_DEFINITION)
        catalog_client.add_entity(column_instance("c1", "SALES_AMOUNT"), COLUMN_DEFINITION)
        calls_before = len(catalog_client.calls)

        result = collection.find_entities_by_property_value(
            None, "SALES.*", sequencing_order=SequencingOrder.GUID
        )
        assert guids(result) == ["c1", "t1"]
        assert catalog_client.calls[calls_before:] == ["list_by_filter:entity:None"]

    def test_page_limit_pushed_to_catalog(self, collection, populated, guid_of, monkeypatch):
        """An unordered typed search asks the catalog for no more than the page end."""
        issued = []
        list_by_filter = populated.list_by_filter

        def recording_list_by_filter(*args):
            issued.append(args)
            return list_by_filter(*args)

        monkeypatch.setattr(populated, "list_by_filter", recording_list_by_filter)
        result = collection.find_entities(EntitySearchRequest(
            entity_type_guid=guid_of("RelationalTable"), from_element=10, page_size=10
        ))

        assert issued == [("eq(type,casTable)", None, CatalogKind.ENTITY, 20)]
        assert len(result) == 5

    def test_untyped_search_with_properties(self, collection, populated):
        result = collection.find_entities_by_property(match_properties={"name": string("AMOUNT_2")})
        assert guids(result) == ["col-02"]

    def test_classifications_never_match(self, collection, populated, guid_of):
        result = collection.find_entities_by_property(
            entity_type_guid=guid_of("RelationalTable"), classifications=["Confidential"]
        )
        assert result is None


class TestUnsupportedSearches:
    """Requests rejected before any catalog call."""

    def test_history_rejected(self, collection, populated, guid_of):
        calls_before = len(populated.calls)
        with pytest.raises(FunctionNotSupportedError):
            collection.find_entities(EntitySearchRequest(
                entity_type_guid=guid_of("RelationalTable"),
                as_of_time=datetime(2020, 1, 1, tzinfo=timezone.utc),
            ))
        assert len(populated.calls) == calls_before

    def test_non_active_status_rejected(self, collection, populated):
        with pytest.raises(FunctionNotSupportedError):
            collection.find_entities(EntitySearchRequest(status_filter=[InstanceStatus.DELETED]))

    def test_active_status_allowed(self, collection, populated, guid_of):
        result = collection.find_entities(EntitySearchRequest(
            entity_type_guid=guid_of("RelationalTable"), status_filter=[InstanceStatus.ACTIVE]
        ))
        assert len(result) == 15


class TestFailingQueries:
    """A failed sub-query contributes no results."""

    def test_failed_query_is_empty(self, connector):
        class FailingClient(InMemoryCatalogClient):
            def list_by_filter(self, *args, **kwargs):
                raise ConnectionError("catalog unavailable")

        search = EntitySearch(connector.registry, connector.entities, FailingClient())
        assert search.find(EntitySearchRequest()) is None
