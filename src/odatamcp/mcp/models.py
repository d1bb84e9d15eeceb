"""Typed MCP tool descriptors, invocation results, and error payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from mcp import types
from pydantic import BaseModel, ConfigDict, Field, model_validator


class OperationKind(str, Enum):
    """Kinds of tools generated per entity set, in registration order."""

    COUNT = "count"
    GET = "get"
    FILTER = "filter"

    @property
    def prefix(self) -> str:
        """Tool-name prefix for this kind, e.g. ``count_``."""
        return f"{self.value}_"

    @property
    def flag(self) -> str:
        """CLI flag an operator passes to enable this kind."""
        return f"+{self.value[0]}"


class ProblemDetail(BaseModel):
    """Problem Details payload for MCP error responses."""

    type: str = Field(default="about:blank")
    title: str
    detail: str | None = None
    status: int | None = None
    code: str | None = None
    data: dict[str, object] | None = None


class OperationDescriptor(BaseModel):
    """Catalog entry describing one invocable tool and its argument schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: OperationKind
    target_collection: str
    description: str
    input_schema: dict[str, Any]

    @model_validator(mode="after")
    def _validate_name(self) -> OperationDescriptor:
        """
        Ensure the tool name is derived from kind and collection.

        Returns
        -------
        OperationDescriptor
            The validated descriptor.

        Raises
        ------
        ValueError
            When ``name`` does not equal ``kind.prefix + lower(target_collection)``.
        """
        expected = self.kind.prefix + self.target_collection.lower()
        if self.name != expected:
            message = f"Tool name {self.name!r} does not match expected {expected!r}"
            raise ValueError(message)
        return self

    def to_tool(self) -> types.Tool:
        """
        Convert the descriptor into the MCP wire representation.

        Returns
        -------
        mcp.types.Tool
            Tool definition advertised through ``tools/list``.
        """
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )


class InvocationResult(BaseModel):
    """Outcome of a single tool call: either text or a problem."""

    kind: Literal["text", "error"]
    body: str | None = None
    problem: ProblemDetail | None = None

    @classmethod
    def text(cls, body: str) -> InvocationResult:
        """Build a successful text result."""
        return cls(kind="text", body=body)

    @classmethod
    def failure(cls, problem: ProblemDetail) -> InvocationResult:
        """Build an error result carrying a problem payload."""
        return cls(kind="error", problem=problem)

    @property
    def is_error(self) -> bool:
        """Whether the call failed."""
        return self.kind == "error"
