"""Structured per-call logging for tool invocations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

LOG = logging.getLogger("odatamcp.mcp.calls")


@dataclass(frozen=True)
class ServiceCallMetrics:
    """Outcome of one tool invocation."""

    name: str
    duration_ms: float
    kind: str | None = None
    collection: str | None = None
    rows: int | None = None
    error: str | None = None


@dataclass
class ServiceObservability:
    """Configuration for call-level observability."""

    enabled: bool = True
    logger: logging.Logger = field(default_factory=lambda: LOG)

    def record(self, metrics: ServiceCallMetrics) -> None:
        """
        Emit a structured log line for a tool call.

        Parameters
        ----------
        metrics:
            Call metrics describing the invocation outcome.
        """
        if not self.enabled or not self.logger.isEnabledFor(logging.INFO):
            return
        payload: dict[str, object] = {
            "name": metrics.name,
            "duration_ms": round(metrics.duration_ms, 2),
        }
        if metrics.kind is not None:
            payload["kind"] = metrics.kind
        if metrics.collection is not None:
            payload["collection"] = metrics.collection
        if metrics.rows is not None:
            payload["rows"] = metrics.rows
        if metrics.error is not None:
            payload["error"] = metrics.error
        self.logger.info("service_call %s", payload)
