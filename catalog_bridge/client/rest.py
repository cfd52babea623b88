"""
Catalog REST client.

Talks to the catalog's HTTP API with a bearer token obtained through an
OAuth password grant. A 401 response refreshes the token and retries the
request once; a 404 means "absent"; every other failure is raised as
``CatalogClientError``.

Usage:
    client = CatalogRestClient("https://catalog.example.com", "user", "secret")
    table = client.get_by_id("2f0e...", CatalogKind.ENTITY)
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..core.catalog_object import REFERENCE_TYPE, RELATED_OBJECTS_TYPE, CatalogKind, CatalogObject
from ..core.errors import CatalogClientError
from ..core.filters import and_, eq
from .base import CatalogClient, matches_attribute_filter

logger = logging.getLogger(__name__)

INSTANCES_PATH = "/catalog/instances"
DEFINITIONS_PATH = "/catalog/definitions"
LOGON_PATH = "/SASLogon/oauth/token"

INSTANCE_MEDIA_TYPE = "application/vnd.sas.metadata.instance.{kind}+json"
DEFINITION_MEDIA_TYPE = "application/vnd.sas.metadata.definition.{kind}+json"

DEFAULT_CLIENT_ID = "sas.ec"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_LIMIT = 100

RELATIONSHIP_ROLE_ATTRIBUTE = "relationshipRole"


class CatalogRestClient(CatalogClient):
    """Catalog client backed by the catalog REST API."""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        logon_url: Optional[str] = None,
        client_id: str = DEFAULT_CLIENT_ID,
        client_secret: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.logon_url = logon_url or f"{self.base_url}{LOGON_PATH}"
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.session = session or requests.Session()
        self._token: Optional[str] = None
        logger.info(f"Creating catalog client with base URL: {self.base_url}")

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def authenticate(self) -> str:
        """
        Fetch a new access token.

        Raises:
            CatalogClientError: If the logon endpoint rejects the request or
                returns no token
        """
        try:
            response = self.session.post(
                self.logon_url,
                data={"grant_type": "password", "username": self.username, "password": self.password},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CatalogClientError(f"Logon request failed: {e}") from e

        logger.info(f"Get auth token: HTTP {response.status_code}")
        if response.status_code != 200:
            raise CatalogClientError(f"Logon failed with HTTP {response.status_code}", code="AUTHENTICATION_FAILED")

        token = self._json(response).get("access_token")
        if not token:
            raise CatalogClientError("Logon response does not contain an access token", code="AUTHENTICATION_FAILED")
        self._token = token
        return token

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None):
        url = f"{self.base_url}{path}"
        if self._token is None:
            self.authenticate()

        for attempt in range(2):
            request_headers = {"Authorization": f"Bearer {self._token}", **(headers or {})}
            try:
                response = self.session.get(url, params=params, headers=request_headers, timeout=self.timeout)
            except requests.RequestException as e:
                raise CatalogClientError(f"GET {url} failed: {e}") from e

            logger.debug(f"GET {url} {params or ''}: HTTP {response.status_code}")
            if response.status_code != 401:
                return response
            if attempt == 0:
                logger.info("Access token rejected; refreshing")
                self.authenticate()

        raise CatalogClientError(f"GET {url} still unauthorized after refreshing the token", code="AUTHENTICATION_FAILED")

    def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Optional[Dict[str, Any]]:
        response = self._get(path, params, headers)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise CatalogClientError(f"GET {path} failed with HTTP {response.status_code}")
        return self._json(response)

    @staticmethod
    def _json(response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise CatalogClientError(f"Catalog returned a non-JSON body: {e}") from e

    # ------------------------------------------------------------------
    # CatalogClient
    # ------------------------------------------------------------------

    def get_by_id(self, native_id: str, kind: CatalogKind = CatalogKind.ENTITY) -> Optional[CatalogObject]:
        if kind is CatalogKind.DEFINITION:
            definition = self._get_json(f"{DEFINITIONS_PATH}/{native_id}")
            return CatalogObject.from_payload(None, definition) if definition else None

        instance = self._get_json(
            f"{INSTANCES_PATH}/{native_id}",
            headers={"Accept": INSTANCE_MEDIA_TYPE.format(kind=kind.value)},
        )
        if instance is None:
            return None
        return self._to_catalog_object(instance, kind, {})

    def list_by_filter(
        self,
        filter_expression: Optional[str],
        attribute_filter: Optional[Dict[str, Any]] = None,
        kind: CatalogKind = CatalogKind.ENTITY,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> List[CatalogObject]:
        headers = {"Accept-Item": INSTANCE_MEDIA_TYPE.format(kind=kind.value)}
        start = offset or 0
        items: List[Dict[str, Any]] = []

        while limit is None or len(items) < limit:
            params: Dict[str, Any] = {"start": start, "limit": DEFAULT_PAGE_LIMIT}
            if limit is not None:
                params["limit"] = limit - len(items)
            if filter_expression:
                params["filter"] = filter_expression

            page = self._get_json(INSTANCES_PATH, params, headers) or {}
            page_items = page.get("items") or []
            items.extend(page_items)
            start += len(page_items)

            count = page.get("count")
            if not page_items or count is None or start >= count:
                break

        definitions: Dict[str, Optional[Dict[str, Any]]] = {}
        results = []
        for item in items:
            catalog_object = self._to_catalog_object(item, kind, definitions)
            if matches_attribute_filter(catalog_object, attribute_filter):
                results.append(catalog_object)
        return results

    def definition_exists_by_name(self, name: str, kind: CatalogKind = CatalogKind.ENTITY) -> bool:
        if name.startswith(f"{REFERENCE_TYPE}."):
            name = REFERENCE_TYPE
        body = self._get_json(
            DEFINITIONS_PATH,
            {"filter": and_(eq("name", name), eq("definitionType", kind.value))},
        ) or {}
        return (body.get("count") or 0) >= 1

    # ------------------------------------------------------------------
    # Payload conversion
    # ------------------------------------------------------------------

    def _definition(
        self,
        definition_id: Optional[str],
        kind: CatalogKind,
        cache: Dict[str, Optional[Dict[str, Any]]]
    ) -> Optional[Dict[str, Any]]:
        if not definition_id:
            return None
        if definition_id not in cache:
            cache[definition_id] = self._get_json(
                f"{DEFINITIONS_PATH}/{definition_id}",
                headers={"Accept": DEFINITION_MEDIA_TYPE.format(kind=kind.value)},
            )
        return cache[definition_id]

    def _to_catalog_object(
        self,
        instance: Dict[str, Any],
        kind: CatalogKind,
        cache: Dict[str, Optional[Dict[str, Any]]]
    ) -> CatalogObject:
        instance = dict(instance)
        if instance.get("type") is None:
            instance["type"] = ""
        if kind is CatalogKind.RELATIONSHIP and instance.get("type") == RELATED_OBJECTS_TYPE:
            role = (instance.get("attributes") or {}).get(RELATIONSHIP_ROLE_ATTRIBUTE)
            instance["type"] = f"{RELATED_OBJECTS_TYPE}.{role}"

        definition = self._definition(instance.get("definitionId"), kind, cache)
        return CatalogObject.from_payload(instance, definition, kind)
