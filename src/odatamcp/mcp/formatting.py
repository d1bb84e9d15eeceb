"""Render backend outcomes into the text returned by each tool."""

from __future__ import annotations

import json

from odatamcp.mcp.backend import CountOutcome, EntitiesOutcome


def pretty_json(value: object) -> str:
    """Serialize with stable two-space indentation."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def format_count(outcome: CountOutcome) -> str:
    """Render a ``count_*`` result."""
    return f"The {outcome.collection} entity set contains {outcome.count} entities."


def format_get(outcome: EntitiesOutcome) -> str:
    """Render a ``get_*`` result, passing non-envelope bodies through."""
    top = outcome.query.top
    if outcome.entities is None:
        return f"Retrieved data from {outcome.collection} (top {top}):\n\n{outcome.raw_body}"
    return (
        f"Retrieved {len(outcome.entities)} entities from {outcome.collection} (top {top}):"
        f"\n\n{pretty_json(outcome.entities)}"
    )


def format_filter(outcome: EntitiesOutcome) -> str:
    """Render a ``filter_*`` result including the query that produced it."""
    if outcome.entities is None:
        return f"Filtered data from {outcome.collection}:\n\n{outcome.raw_body}"
    query_string = outcome.query.query_string
    suffix = f" with query: {query_string}" if outcome.query.params else ""
    return (
        f"Filtered {len(outcome.entities)} entities from {outcome.collection}{suffix}:"
        f"\n\n{pretty_json(outcome.entities)}"
    )
