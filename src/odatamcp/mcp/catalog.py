"""Derive the immutable tool catalog from the schema and tool toggles."""

from __future__ import annotations

import logging
from typing import Any

from odatamcp.config.serving_models import ToolToggles
from odatamcp.mcp import errors
from odatamcp.mcp.limits import DEFAULT_LIMITS
from odatamcp.mcp.models import OperationDescriptor, OperationKind
from odatamcp.schema import SchemaModel

LOG = logging.getLogger("odatamcp.mcp.catalog")

_TOP_PROPERTY: dict[str, Any] = {
    "type": "integer",
    "description": (
        f"Number of entities to retrieve (default: {DEFAULT_LIMITS.default_top}, "
        f"max: {DEFAULT_LIMITS.max_top})"
    ),
    "minimum": DEFAULT_LIMITS.min_top,
    "maximum": DEFAULT_LIMITS.max_top,
    "default": DEFAULT_LIMITS.default_top,
}


def _count_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}, "required": []}


def _get_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {"top": dict(_TOP_PROPERTY)}, "required": []}


def _filter_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "filter": {
                "type": "string",
                "description": "OData $filter expression (e.g., \"Country eq 'USA'\", 'Price gt 20')",
            },
            "select": {
                "type": "string",
                "description": (
                    "OData $select expression to specify which properties to return "
                    "(e.g., 'Name,Price')"
                ),
            },
            "orderby": {
                "type": "string",
                "description": "OData $orderby expression (e.g., 'Name asc', 'Price desc')",
            },
            "top": dict(_TOP_PROPERTY),
            "skip": {
                "type": "integer",
                "description": "Number of entities to skip for paging",
                "minimum": DEFAULT_LIMITS.min_skip,
                "default": DEFAULT_LIMITS.min_skip,
            },
        },
        "required": [],
    }


_DESCRIPTIONS: dict[OperationKind, str] = {
    OperationKind.COUNT: "Count the number of entities in the {name} entity set",
    OperationKind.GET: "Get entities from the {name} entity set with optional top parameter",
    OperationKind.FILTER: "List and filter {name} entities with OData query options",
}

_SCHEMAS = {
    OperationKind.COUNT: _count_schema,
    OperationKind.GET: _get_schema,
    OperationKind.FILTER: _filter_schema,
}


def build_descriptor(kind: OperationKind, collection: str) -> OperationDescriptor:
    """
    Build the descriptor for one kind of tool over one entity set.

    Returns
    -------
    OperationDescriptor
        Descriptor named ``kind.prefix + lower(collection)``.
    """
    return OperationDescriptor(
        name=kind.prefix + collection.lower(),
        kind=kind,
        target_collection=collection,
        description=_DESCRIPTIONS[kind].format(name=collection),
        input_schema=_SCHEMAS[kind](),
    )


def build_catalog(
    schema: SchemaModel | None,
    toggles: ToolToggles,
) -> tuple[OperationDescriptor, ...]:
    """
    Derive the ordered tool catalog.

    For each entity set in schema order the enabled kinds are appended as
    count, get, then filter, so identical inputs give identical catalogs.

    Parameters
    ----------
    schema:
        Loaded schema model.
    toggles:
        Enabled tool kinds.

    Returns
    -------
    tuple[OperationDescriptor, ...]
        Immutable catalog; empty when the schema has no entity sets.

    Raises
    ------
    errors.McpError
        ``schema_unavailable`` when no schema has been loaded.
    """
    if schema is None:
        raise errors.schema_unavailable()

    LOG.info(
        "Tool configuration - Count: %s, Get: %s, Filter: %s",
        toggles.count,
        toggles.get,
        toggles.filter,
    )
    if not schema.collections:
        LOG.warning("Schema has no entity sets; the tool catalog is empty")

    descriptors: list[OperationDescriptor] = []
    for collection in schema.collection_names:
        for kind in OperationKind:
            if not toggles.enabled(kind):
                continue
            descriptor = build_descriptor(kind, collection)
            LOG.info("Registering tool: %s", descriptor.name)
            descriptors.append(descriptor)
    return tuple(descriptors)
