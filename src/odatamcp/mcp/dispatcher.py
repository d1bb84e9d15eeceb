"""Route tool calls by name to the query builder, backend, and formatter."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from odatamcp.config.serving_models import ToolToggles
from odatamcp.mcp import errors
from odatamcp.mcp.backend import ODataBackend
from odatamcp.mcp.catalog import build_catalog
from odatamcp.mcp.formatting import format_count, format_filter, format_get
from odatamcp.mcp.limits import DEFAULT_LIMITS, QueryLimits
from odatamcp.mcp.models import InvocationResult, OperationDescriptor, OperationKind
from odatamcp.mcp.observability import ServiceCallMetrics, ServiceObservability
from odatamcp.mcp.query import build_query
from odatamcp.schema import SchemaModel

LOG = logging.getLogger("odatamcp.mcp.dispatcher")

# Prefixes are matched in this order.
PREFIX_PRIORITY: tuple[OperationKind, ...] = (
    OperationKind.COUNT,
    OperationKind.GET,
    OperationKind.FILTER,
)


@dataclass(frozen=True)
class ResolvedOperation:
    """Kind and target entity set decoded from a tool name."""

    kind: OperationKind
    collection: str
    resolved: bool


@dataclass
class OperationDispatcher:
    """
    Entry point for ``tools/list`` and ``tools/call``.

    Schema, toggles, and catalog are fixed at construction and only read
    afterwards, so one dispatcher serves concurrent calls without locking.
    """

    schema: SchemaModel
    toggles: ToolToggles
    backend: ODataBackend
    limits: QueryLimits = DEFAULT_LIMITS
    observability: ServiceObservability = field(default_factory=ServiceObservability)
    catalog: tuple[OperationDescriptor, ...] = field(init=False, default=())

    def __post_init__(self) -> None:
        """Build the catalog once."""
        self.catalog = build_catalog(self.schema, self.toggles)

    def list_operations(self) -> tuple[OperationDescriptor, ...]:
        """Return the catalog in registration order."""
        return self.catalog

    def resolve_operation(self, name: str | None) -> ResolvedOperation:
        """
        Decode a tool name into kind and entity set.

        Unknown entity set tokens are passed through unresolved so the service
        itself reports the missing resource.

        Parameters
        ----------
        name:
            Tool name from the call.

        Returns
        -------
        ResolvedOperation
            Decoded operation.

        Raises
        ------
        errors.McpError
            ``missing_operation_name``, ``unknown_operation`` or
            ``operation_disabled``.
        """
        if not name:
            raise errors.missing_operation_name()
        kind = next((k for k in PREFIX_PRIORITY if name.startswith(k.prefix)), None)
        if kind is None:
            raise errors.unknown_operation(name)
        if not self.toggles.enabled(kind):
            raise errors.operation_disabled(kind)
        token = name[len(kind.prefix) :]
        canonical = self.schema.resolve(token)
        if canonical is None:
            LOG.warning("Tool %s does not match a known entity set; using %r as-is", name, token)
            return ResolvedOperation(kind=kind, collection=token, resolved=False)
        return ResolvedOperation(kind=kind, collection=canonical, resolved=True)

    async def _execute(
        self, operation: ResolvedOperation, arguments: Mapping[str, object]
    ) -> tuple[str, int | None]:
        query = build_query(operation.kind, operation.collection, arguments, self.limits)
        if operation.kind is OperationKind.COUNT:
            count = await self.backend.fetch_count(query)
            return format_count(count), None
        outcome = await self.backend.fetch_entities(query)
        rows = len(outcome.entities) if outcome.entities is not None else None
        if operation.kind is OperationKind.GET:
            return format_get(outcome), rows
        return format_filter(outcome), rows

    async def invoke_operation(
        self,
        name: str | None,
        arguments: Mapping[str, object] | None = None,
    ) -> InvocationResult:
        """
        Validate, execute, and format one tool call.

        Failures are returned as error results rather than raised.

        Parameters
        ----------
        name:
            Tool name.
        arguments:
            Loosely-typed tool arguments.

        Returns
        -------
        InvocationResult
            Text on success, a problem payload on failure.
        """
        started = time.perf_counter()
        operation: ResolvedOperation | None = None
        try:
            operation = self.resolve_operation(name)
            body, rows = await self._execute(operation, arguments or {})
        except errors.McpError as exc:
            errors.log_problem(LOG, exc.detail)
            self._record(name, operation, started, error=exc.detail.code)
            return InvocationResult.failure(exc.detail)
        self._record(name, operation, started, rows=rows)
        return InvocationResult.text(body)

    def _record(
        self,
        name: str | None,
        operation: ResolvedOperation | None,
        started: float,
        *,
        rows: int | None = None,
        error: str | None = None,
    ) -> None:
        self.observability.record(
            ServiceCallMetrics(
                name=name or "",
                duration_ms=(time.perf_counter() - started) * 1000,
                kind=operation.kind.value if operation is not None else None,
                collection=operation.collection if operation is not None else None,
                rows=rows,
                error=error,
            )
        )
