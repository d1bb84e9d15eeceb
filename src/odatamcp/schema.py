"""Load the OData CSDL document and reduce it to the entity set catalog."""

from __future__ import annotations

import logging
from typing import Literal

import httpx
from lxml import etree
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

LOG = logging.getLogger("odatamcp.schema")

SchemaLoadErrorKind = Literal["transport", "parse"]


class SchemaLoadError(Exception):
    """Failure to fetch or parse the service metadata document."""

    def __init__(self, kind: SchemaLoadErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class CollectionInfo(BaseModel):
    """One entity set exposed by the service."""

    model_config = ConfigDict(frozen=True)

    name: str
    entity_type: str | None = None


class SchemaModel(BaseModel):
    """Immutable view of the service's entity sets in document order."""

    model_config = ConfigDict(frozen=True)

    collections: tuple[CollectionInfo, ...] = Field(default_factory=tuple)
    _by_lower: dict[str, str] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: object) -> None:
        """Precompute the case-insensitive name lookup."""
        lookup: dict[str, str] = {}
        for collection in self.collections:
            lookup.setdefault(collection.name.lower(), collection.name)
        self._by_lower = lookup

    @classmethod
    def from_names(cls, names: list[str] | tuple[str, ...]) -> SchemaModel:
        """Build a schema from bare entity set names."""
        return cls(collections=tuple(CollectionInfo(name=name) for name in names))

    @property
    def collection_names(self) -> list[str]:
        """Entity set names with canonical casing."""
        return [collection.name for collection in self.collections]

    def resolve(self, token: str) -> str | None:
        """
        Resolve a tool-name token to the canonical entity set name.

        Parameters
        ----------
        token:
            Collection token taken from a tool name (usually lower case).

        Returns
        -------
        str | None
            Canonically cased name, or ``None`` when no entity set matches.
        """
        return self._by_lower.get(token.lower())


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def parse_schema(document: bytes) -> SchemaModel:
    """
    Parse a CSDL ``$metadata`` document into a SchemaModel.

    Every ``EntityContainer`` is scanned regardless of EDM namespace version, so
    OData V2, V3 and V4 documents are all accepted.

    Parameters
    ----------
    document:
        Raw XML bytes of the metadata document.

    Returns
    -------
    SchemaModel
        Entity sets in document order; duplicates keep their first occurrence.

    Raises
    ------
    SchemaLoadError
        When the XML is malformed or contains no entity container.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(document, parser=parser)
    except etree.XMLSyntaxError as exc:
        message = f"Failed to parse OData metadata: {exc}"
        raise SchemaLoadError("parse", message) from exc

    containers = [el for el in root.iter() if isinstance(el.tag, str) and _local_name(el) == "EntityContainer"]
    if not containers:
        message = "No entity container found in the model"
        raise SchemaLoadError("parse", message)

    seen: set[str] = set()
    collections: list[CollectionInfo] = []
    for container in containers:
        for child in container:
            if not isinstance(child.tag, str) or _local_name(child) != "EntitySet":
                continue
            name = child.get("Name")
            if not name or name in seen:
                continue
            seen.add(name)
            collections.append(CollectionInfo(name=name, entity_type=child.get("EntityType")))

    LOG.info("Found %d entity sets", len(collections))
    if not collections:
        LOG.warning("OData metadata declares no entity sets; no tools will be generated")
    return SchemaModel(collections=tuple(collections))


async def load_schema(url: str, client: httpx.AsyncClient) -> SchemaModel:
    """
    Fetch and parse the service metadata document.

    Parameters
    ----------
    url:
        Absolute ``$metadata`` URL.
    client:
        Shared HTTP client.

    Returns
    -------
    SchemaModel
        Parsed schema.

    Raises
    ------
    SchemaLoadError
        ``kind="transport"`` when the request fails or returns a non-2xx status,
        ``kind="parse"`` when the document cannot be interpreted.
    """
    LOG.info("Loading OData metadata from: %s", url)
    try:
        response = await client.get(url, headers={"Accept": "application/xml"})
        response.raise_for_status()
    except httpx.HTTPError as exc:
        LOG.error("Failed to fetch OData metadata from %s", url)
        message = f"Failed to fetch OData metadata: {exc}"
        raise SchemaLoadError("transport", message) from exc
    schema = parse_schema(response.content)
    LOG.info("OData metadata loaded successfully")
    return schema
