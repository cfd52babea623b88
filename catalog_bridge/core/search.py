"""
Search Compiler & Result Assembler

Turns a generic ``EntitySearchRequest`` into catalog queries and assembles
one ordered, paginated list of generic entities.

Compilation:

1. Resolve the (prefix, catalog type) pairs to search: the direct mappings
   of the requested type, else the mappings of its implemented subtypes,
   else every mapped type when no type is requested.
2. Per pair, build a type clause (``reference.<X>`` types filter on the
   physical ``reference`` type plus a ``referencedType`` attribute filter).
   Each match property becomes a ``contains(field, value)`` clause, except
   free-form ``attribute.*`` keys, which go to the attribute post-filter.
   Clauses are ANDed or ORed per the match criteria. Plain type clauses
   that share a prefix are ORed into one query.
3. Apply ``limit`` when given.

Assembly runs the queries concurrently, translates each result, drops those
outside the requested type hierarchy, sorts and slices.

Known limitation: a search without a type constraint and without match
properties issues a single query with no type clause and translates every
result with the prefix of the first mapped type; entities that exist only
under other prefixes are not returned.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..client.base import CatalogClient
from ..models.instances import EntityDetail, PrimitiveValue
from ..models.mapping import CONSTANT_PREFIX
from ..models.search import EntitySearchRequest, MatchCriteria, SequencingOrder
from ..models.type_defs import PrimitiveKind, TypeDefCategory
from .attributes import values_match
from .catalog_object import CatalogKind, CatalogObject, Namespace, split_property_key
from .entities import EntityTranslator
from .filters import and_, contains, eq, or_
from .sequencing import check_supported, page, sort_instances
from .type_mapping import TypeMappingRegistry

logger = logging.getLogger(__name__)

TYPE_FIELD = "type"
REFERENCE_TYPE = "reference"
REFERENCE_TYPE_PREFIX = "reference."
REFERENCED_TYPE_ATTRIBUTE = "referencedType"

# Instance fields searched by a value search
SEARCHABLE_INSTANCE_FIELDS = ("name", "label", "description")

DEFAULT_SEARCH_WORKERS = 4


@dataclass(frozen=True)
class CatalogQuery:
    """One catalog query issued for one prefix.

    Attributes:
        prefix: Prefix results are translated with
        catalog_types: Catalog types the query covers
        filter_expression: Compiled filter, or None for no filter
        attribute_filter: Free-form attributes results must equal
        limit: Maximum results
    """
    prefix: Optional[str]
    catalog_types: Tuple[str, ...]
    filter_expression: Optional[str]
    attribute_filter: Dict[str, Any] = field(default_factory=dict)
    limit: Optional[int] = None




@dataclass
class SearchPlan:
    """Queries to issue plus what results must satisfy."""
    queries: List[CatalogQuery] = field(default_factory=list)
    expected_type: Optional[str] = None
    search_criteria: Optional[str] = None


class SearchCompiler:
    """Compiles entity search requests into catalog queries."""

    def __init__(self, registry: TypeMappingRegistry):
        self.registry = registry

    def mappings_to_search(self, type_name: Optional[str]) -> List[Tuple[Optional[str], str]]:
        """(prefix, catalog type) pairs to query for a generic type, or for all types."""
        if type_name is None:
            pairs = []
            for generic_name in self.registry.mapped_generic_names():
                type_def = self.registry.type_def_by_name(generic_name)
                if type_def is not None and type_def.category == TypeDefCategory.ENTITY_DEF:
                    pairs.extend(self.registry.all_catalog_names_for(generic_name).items())
            return _ordered(pairs)

        direct = self.registry.table.generic_to_catalog.get(type_name)
        if direct:
            return _ordered(direct.items())

        subtypes = [
            pair for pair in self.registry.mapped_subtype_catalog_names(type_name)
            if pair[1] in self.registry.table.catalog_to_generic
        ]
        if subtypes:
            return _ordered(subtypes)

        return _ordered(self.registry.all_catalog_names_for(type_name).items())

    def type_clause(self, catalog_type: str) -> Tuple[str, Dict[str, Any]]:
        """Filter clause and attribute filter selecting one catalog type."""
        if catalog_type.startswith(REFERENCE_TYPE_PREFIX):
            referenced = catalog_type[len(REFERENCE_TYPE_PREFIX):]
            return eq(TYPE_FIELD, REFERENCE_TYPE), {REFERENCED_TYPE_ATTRIBUTE: referenced}
        return eq(TYPE_FIELD, catalog_type), {}

    def compile(self, request: EntitySearchRequest, limit: Optional[int] = None) -> SearchPlan:
        """
        Compile a search request.

        Args:
            request: Search request
            limit: Maximum results per catalog query

        Raises:
            FunctionNotSupportedError: For historical or non-ACTIVE requests
        """
        check_supported(request, "find_entities")

        plan = SearchPlan(search_criteria=request.search_criteria)
        if request.entity_type_guid is not None:
            type_def = self.registry.type_def_by_guid(request.entity_type_guid)
            if type_def is None:
                logger.warning(f"Entity type {request.entity_type_guid} is not implemented; nothing to search")
                return plan
            plan.expected_type = type_def.name

        pairs = self.mappings_to_search(plan.expected_type)
        if plan.expected_type is None and not request.match_properties:
            # One type-agnostic query, read through the first mapping's prefix
            if pairs:
                catalog_types = tuple(dict.fromkeys(catalog_type for _, catalog_type in pairs))
                plan.queries.append(CatalogQuery(pairs[0][0], catalog_types, None, limit=limit))
            return plan

        grouped: Dict[Optional[str], List[str]] = {}
        for prefix, catalog_type in pairs:
            if catalog_type.startswith(REFERENCE_TYPE_PREFIX):
                plan.queries.extend(self._compile_pair(request, prefix, (catalog_type,), limit))
            else:
                grouped.setdefault(prefix, []).append(catalog_type)

        for prefix, catalog_types in grouped.items():
            if request.match_properties:
                # Property mappings differ per catalog type
                for catalog_type in catalog_types:
                    plan.queries.extend(self._compile_pair(request, prefix, (catalog_type,), limit))
            else:
                plan.queries.extend(self._compile_pair(request, prefix, tuple(catalog_types), limit))

        logger.debug(f"Compiled {len(plan.queries)} catalog queries for type {plan.expected_type}")
        return plan

    def _compile_pair(
        self,
        request: EntitySearchRequest,
        prefix: Optional[str],
        catalog_types: Tuple[str, ...],
        limit: Optional[int]
    ) -> List[CatalogQuery]:
        type_clauses = []
        attribute_filter: Dict[str, Any] = {}
        for catalog_type in catalog_types:
            clause, attributes = self.type_clause(catalog_type)
            type_clauses.append(clause)
            attribute_filter.update(attributes)
        type_filter = or_(*type_clauses)

        if not request.match_properties:
            return [CatalogQuery(prefix, catalog_types, type_filter, attribute_filter, limit)]

        mapping = self.registry.property_mapping(catalog_types[0], prefix)
        match_any = request.match_criteria == MatchCriteria.ANY

        clauses: List[str] = []
        attribute_equalities: Dict[str, Any] = {}
        satisfied_by_constant = False
        for generic_property, expected in request.match_properties.items():
            catalog_key = mapping.get(generic_property)
            if catalog_key is None or expected.value is None:
                if not match_any:
                    logger.debug(f"'{generic_property}' cannot be searched for {catalog_types[0]}; no matches possible")
                    return []
                continue

            if catalog_key.startswith(CONSTANT_PREFIX):
                matched = values_match(expected, catalog_key[len(CONSTANT_PREFIX):])
                if not matched and not match_any:
                    return []
                satisfied_by_constant = satisfied_by_constant or matched
                continue

            namespace, name = split_property_key(catalog_key)
            if namespace is Namespace.ATTRIBUTE:
                attribute_equalities[name] = expected.value
            else:
                clauses.append(contains(name, expected.value))

        if not match_any:
            return [CatalogQuery(
                prefix, catalog_types, and_(type_filter, *clauses),
                {**attribute_filter, **attribute_equalities}, limit
            )]

        if satisfied_by_constant:
            return [CatalogQuery(prefix, catalog_types, type_filter, attribute_filter, limit)]

        # The post-filter is conjunctive, so each attribute alternative gets its own query
        queries = []
        if clauses:
            queries.append(CatalogQuery(
                prefix, catalog_types, and_(type_filter, or_(*clauses)), attribute_filter, limit
            ))
        for name, value in attribute_equalities.items():
            queries.append(CatalogQuery(
                prefix, catalog_types, type_filter, {**attribute_filter, name: value}, limit
            ))
        return queries


def _ordered(pairs) -> List[Tuple[Optional[str], str]]:
    unique = dict.fromkeys(pairs)
    return sorted(unique, key=lambda pair: (pair[0] is not None, pair[0] or "", pair[1]))


def query_limit(request: EntitySearchRequest) -> Optional[int]:
    """
    Per-query result limit, or None when every match must be fetched.

    Only a typed, unordered search without search criteria can stop early:
    sorting and local filtering need the full result set. Offsets are never
    pushed down because results of several queries are merged.
    """
    if request.page_size <= 0 or request.entity_type_guid is None or request.search_criteria:
        return None
    if request.sequencing_order not in (None, SequencingOrder.ANY):
        return None
    return request.from_element + request.page_size


class EntitySearch:
    """Executes compiled search plans and assembles the result page."""

    def __init__(
        self,
        registry: TypeMappingRegistry,
        entities: EntityTranslator,
        client: CatalogClient,
        max_workers: int = DEFAULT_SEARCH_WORKERS
    ):
        self.registry = registry
        self.entities = entities
        self.client = client
        self.compiler = SearchCompiler(registry)
        self.max_workers = max_workers

    def find(self, request: EntitySearchRequest) -> Optional[List[EntityDetail]]:
        """
        Find entities matching a search request.

        Returns:
            Page of entities, or None when nothing matches

        Raises:
            FunctionNotSupportedError: For historical or non-ACTIVE requests
        """
        plan = self.compiler.compile(request, limit=query_limit(request))
        if request.classifications:
            logger.info("Classification filters never match catalog entities; returning no results")
            return None

        results = self._execute(plan.queries)

        entities: List[EntityDetail] = []
        seen = set()
        for query, catalog_objects in results:
            for catalog_object in catalog_objects:
                if plan.search_criteria and not matches_search_criteria(catalog_object, plan.search_criteria):
                    continue
                entity = self.entities.to_detail(catalog_object, query.prefix)
                if entity is None or entity.guid in seen:
                    continue
                if plan.expected_type and not self.registry.is_type_or_subtype(
                    entity.type.type_def_name, plan.expected_type
                ):
                    logger.debug(f"Dropping {entity.guid}: {entity.type.type_def_name} is not a {plan.expected_type}")
                    continue
                seen.add(entity.guid)
                entities.append(entity)

        ordered = sort_instances(entities, request.sequencing_property, request.sequencing_order)
        paged = page(ordered, request.from_element, request.page_size)
        return paged or None

    def _execute(self, queries: List[CatalogQuery]) -> List[Tuple[CatalogQuery, List[CatalogObject]]]:
        if not queries:
            return []
        workers = max(1, min(self.max_workers, len(queries)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(self._run_query, queries))
        return list(zip(queries, results))

    def _run_query(self, query: CatalogQuery) -> List[CatalogObject]:
        logger.debug(f"Catalog query: filter={query.filter_expression} attributes={query.attribute_filter}")
        try:
            return self.client.list_by_filter(
                query.filter_expression,
                query.attribute_filter or None,
                CatalogKind.ENTITY,
                query.limit,
            )
        except Exception as e:
            logger.warning(f"Catalog query for {query.catalog_types} failed; treating as empty: {e}")
            return []


def matches_search_criteria(catalog_object: CatalogObject, criteria: str) -> bool:
    """True when any string value of the object matches the criteria pattern."""
    pattern = PrimitiveValue(primitive_kind=PrimitiveKind.STRING, value=criteria)
    candidates = [catalog_object.instance.get(name) for name in SEARCHABLE_INSTANCE_FIELDS]
    candidates.extend(catalog_object.attributes.values())
    return any(
        isinstance(value, str) and values_match(pattern, value)
        for value in candidates
    )
