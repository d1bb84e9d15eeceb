"""Translate tool arguments into OData query paths and ordered parameters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import quote

from odatamcp.mcp.limits import DEFAULT_LIMITS, QueryLimits, clamp_skip, clamp_top, coerce_text
from odatamcp.mcp.models import OperationKind

# Evaluated in this order whatever order the arguments arrive in.
FILTER_TEXT_OPTIONS: tuple[str, ...] = ("filter", "select", "orderby")


@dataclass(frozen=True)
class ODataQuery:
    """A single GET against one entity set."""

    collection: str
    kind: OperationKind
    path: str
    params: tuple[tuple[str, str], ...] = ()
    top: int | None = None

    @property
    def query_string(self) -> str:
        """Parameters joined as ``key=value`` pairs with ``&``."""
        return "&".join(f"{key}={value}" for key, value in self.params)

    @property
    def relative_url(self) -> str:
        """Path plus query string, relative to the service root."""
        if not self.params:
            return self.path
        return f"{self.path}?{self.query_string}"


def escape_data(value: str) -> str:
    """Percent-escape everything except RFC 3986 unreserved characters."""
    return quote(value, safe="")


def build_count_query(collection: str) -> ODataQuery:
    """
    Build the ``/{collection}/$count`` query.

    Returns
    -------
    ODataQuery
        Query without parameters.
    """
    return ODataQuery(collection=collection, kind=OperationKind.COUNT, path=f"/{collection}/$count")


def build_get_query(
    collection: str,
    arguments: Mapping[str, object] | None,
    limits: QueryLimits = DEFAULT_LIMITS,
) -> ODataQuery:
    """
    Build ``/{collection}?$top=N`` with ``top`` coerced and clamped.

    Returns
    -------
    ODataQuery
        Query carrying the applied ``top``.
    """
    args = arguments or {}
    top = clamp_top(args.get("top"), limits)
    return ODataQuery(
        collection=collection,
        kind=OperationKind.GET,
        path=f"/{collection}",
        params=(("$top", str(top)),),
        top=top,
    )


def build_filter_query(
    collection: str,
    arguments: Mapping[str, object] | None,
    limits: QueryLimits = DEFAULT_LIMITS,
) -> ODataQuery:
    """
    Build a filtered listing query with a stable parameter order.

    Parameters are emitted as filter, select, orderby, top, skip. Text options
    are kept only when they are non-blank strings. ``$top`` is always emitted,
    clamped when the ``top`` key is present and defaulted otherwise, so every
    query is bounded. ``$skip`` is emitted only when it clamps above zero.

    Parameters
    ----------
    collection:
        Entity set name, already resolved.
    arguments:
        Raw tool-call arguments.
    limits:
        Bounds for ``$top``/``$skip``.

    Returns
    -------
    ODataQuery
        Query with ordered, escaped parameters.
    """
    args = arguments or {}
    params: list[tuple[str, str]] = []

    for option in FILTER_TEXT_OPTIONS:
        text = coerce_text(args.get(option))
        if text is not None:
            params.append((f"${option}", escape_data(text)))

    # An absent top still takes its slot so $skip always follows $top.
    top = clamp_top(args["top"], limits) if "top" in args else limits.default_top
    params.append(("$top", str(top)))

    if "skip" in args:
        skip = clamp_skip(args["skip"], limits)
        if skip > 0:
            params.append(("$skip", str(skip)))

    return ODataQuery(
        collection=collection,
        kind=OperationKind.FILTER,
        path=f"/{collection}",
        params=tuple(params),
        top=top,
    )


def build_query(
    kind: OperationKind,
    collection: str,
    arguments: Mapping[str, object] | None = None,
    limits: QueryLimits = DEFAULT_LIMITS,
) -> ODataQuery:
    """
    Build the query for the given operation kind.

    Returns
    -------
    ODataQuery
        Query ready for the backend.
    """
    if kind is OperationKind.COUNT:
        return build_count_query(collection)
    if kind is OperationKind.GET:
        return build_get_query(collection, arguments, limits)
    return build_filter_query(collection, arguments, limits)
