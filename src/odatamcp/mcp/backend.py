"""HTTP backend executing OData queries for MCP tools."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

import httpx

from odatamcp.mcp import errors
from odatamcp.mcp.limits import parse_int_text
from odatamcp.mcp.query import ODataQuery

LOG = logging.getLogger("odatamcp.mcp.backend")


@dataclass(frozen=True)
class CountOutcome:
    """Parsed ``$count`` response."""

    collection: str
    count: int


@dataclass(frozen=True)
class EntitiesOutcome:
    """
    Parsed listing response.

    ``entities`` holds the ``value`` array of the OData envelope, or ``None``
    when the body did not follow the envelope and is passed through as-is.
    """

    query: ODataQuery
    raw_body: str
    entities: list[object] | None = None

    @property
    def collection(self) -> str:
        """Entity set the query targeted."""
        return self.query.collection


def _extract_entities(payload: object) -> list[object] | None:
    if not isinstance(payload, dict):
        return None
    value = payload.get("value")
    if isinstance(value, list):
        return value
    return None


@dataclass
class ODataBackend:
    """OData service client shared by all concurrent tool calls."""

    base_url: str
    timeout: float = 30.0
    client: httpx.AsyncClient | None = None
    _owns_client: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        """Create an HTTP client unless one was supplied."""
        self.base_url = self.base_url.rstrip("/")
        if self.client is None:
            self.client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
            self._owns_client = True

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this backend created it."""
        if self._owns_client and self.client is not None:
            await self.client.aclose()

    def url_for(self, query: ODataQuery) -> str:
        """Absolute URL for a query."""
        return f"{self.base_url}{query.relative_url}"

    async def _get_text(self, query: ODataQuery) -> str:
        if self.client is None:
            message = "HTTP client is not initialized"
            raise errors.upstream_error(query.collection, message)
        url = self.url_for(query)
        LOG.info("Querying %s from: %s", query.kind.value, url)
        try:
            response = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise errors.upstream_error(query.collection, str(exc) or type(exc).__name__) from exc
        if not response.is_success:
            message = f"Response status code does not indicate success: {response.status_code} ({response.reason_phrase})"
            raise errors.upstream_error(
                query.collection,
                message,
                status=response.status_code,
                body=response.text,
            )
        return response.text

    async def fetch_count(self, query: ODataQuery) -> CountOutcome:
        """
        Execute a ``$count`` query.

        Returns
        -------
        CountOutcome
            Collection name and parsed count.

        Raises
        ------
        errors.McpError
            ``upstream_error`` for transport or status failures,
            ``count_parse_failure`` when the body is not an integer.
        """
        text = await self._get_text(query)
        count = parse_int_text(text)
        if count is None:
            raise errors.count_parse_failure(query.collection, text)
        return CountOutcome(collection=query.collection, count=count)

    async def fetch_entities(self, query: ODataQuery) -> EntitiesOutcome:
        """
        Execute a listing query and unwrap the ``value`` envelope.

        Returns
        -------
        EntitiesOutcome
            Entities when the envelope is present, otherwise the raw body only.

        Raises
        ------
        errors.McpError
            ``upstream_error`` for transport or status failures,
            ``malformed_response_body`` when the body is not JSON or nests too deeply.
        """
        text = await self._get_text(query)
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise errors.malformed_response_body(query.collection, str(exc) or type(exc).__name__) from exc
        entities = _extract_entities(payload)
        if entities is None:
            LOG.warning("Response from %s has no value array; passing body through", query.collection)
        return EntitiesOutcome(query=query, raw_body=text, entities=entities)
