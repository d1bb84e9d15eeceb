"""MCP error taxonomy and helpers for Problem Details responses."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum

from odatamcp.mcp.models import OperationKind, ProblemDetail

PROBLEM_TYPE_ROOT = "https://problems.odatamcp.dev"
BODY_SNIPPET_CHARS = 500


class ErrorKind(str, Enum):
    """Stable error codes surfaced to the calling protocol."""

    MISSING_OPERATION_NAME = "missing_operation_name"
    UNKNOWN_OPERATION = "unknown_operation"
    OPERATION_DISABLED = "operation_disabled"
    SCHEMA_UNAVAILABLE = "schema_unavailable"
    COUNT_PARSE_FAILURE = "count_parse_failure"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED_RESPONSE_BODY = "malformed_response_body"


@dataclass
class McpError(Exception):
    """Base MCP error carrying a ProblemDetail payload."""

    detail: ProblemDetail

    def __str__(self) -> str:
        """
        Return a concise string for logging/diagnostics.

        Returns
        -------
        str
            Concise representation of the problem.
        """
        return f"{self.detail.title}: {self.detail.detail or ''}".strip()

    @property
    def kind(self) -> ErrorKind | None:
        """Error kind recorded on the problem, when known."""
        if self.detail.code is None:
            return None
        return ErrorKind(self.detail.code)


def _problem(
    kind: ErrorKind,
    title: str,
    message: str,
    *,
    status: int,
    data: dict[str, object] | None = None,
) -> McpError:
    return McpError(
        detail=ProblemDetail(
            type=f"{PROBLEM_TYPE_ROOT}/{kind.value}",
            title=title,
            detail=message,
            status=status,
            code=kind.value,
            data=data,
        )
    )


def missing_operation_name() -> McpError:
    """
    Construct the problem for a call without a tool name.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem(
        ErrorKind.MISSING_OPERATION_NAME,
        "Invalid params",
        "Tool name is required",
        status=400,
    )


def unknown_operation(name: str) -> McpError:
    """
    Construct the problem for a tool name with no recognized prefix.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem(
        ErrorKind.UNKNOWN_OPERATION,
        "Invalid request",
        f"Unknown tool: '{name}'",
        status=404,
        data={"name": name},
    )


def operation_disabled(kind: OperationKind) -> McpError:
    """
    Construct the problem for a tool whose kind is switched off.

    The message names the flag an operator must pass to enable the kind.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    label = kind.value.capitalize()
    return _problem(
        ErrorKind.OPERATION_DISABLED,
        "Invalid request",
        f"{label} tools are not enabled. Use {kind.flag} to enable {kind.value} capabilities.",
        status=403,
        data={"kind": kind.value, "flag": kind.flag},
    )


def schema_unavailable(message: str = "OData schema is not loaded") -> McpError:
    """
    Construct the problem raised when no schema model exists.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem(ErrorKind.SCHEMA_UNAVAILABLE, "Schema unavailable", message, status=503)


def count_parse_failure(collection: str, body: str) -> McpError:
    """
    Construct the problem for a ``$count`` body that is not an integer.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem(
        ErrorKind.COUNT_PARSE_FAILURE,
        "Internal error",
        f"Could not parse count result for {collection}: {body[:BODY_SNIPPET_CHARS]}",
        status=502,
        data={"collection": collection},
    )


def upstream_error(
    collection: str,
    message: str,
    *,
    status: int | None = None,
    body: str | None = None,
) -> McpError:
    """
    Construct the problem for a failed or non-2xx OData request.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    data: dict[str, object] = {"collection": collection}
    if status is not None:
        data["upstream_status"] = status
    if body:
        data["body"] = body[:BODY_SNIPPET_CHARS]
    return _problem(
        ErrorKind.UPSTREAM_ERROR,
        "Upstream error",
        f"Error querying {collection}: {message}",
        status=502,
        data=data,
    )


def malformed_response_body(collection: str, message: str) -> McpError:
    """
    Construct the problem for a response body that is not valid JSON.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem(
        ErrorKind.MALFORMED_RESPONSE_BODY,
        "Malformed response body",
        f"Response from {collection} is not valid JSON: {message}",
        status=502,
        data={"collection": collection},
    )


def log_problem(logger: logging.Logger | logging.LoggerAdapter, detail: ProblemDetail) -> None:
    """Emit a Problem Detail as a structured error log."""
    logger.error(json.dumps(detail.model_dump(exclude_none=True)))
