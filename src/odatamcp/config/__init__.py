"""Configuration models for the OData MCP bridge."""

from odatamcp.config.serving_models import (
    ServerConfig,
    ToolToggles,
    normalize_metadata_url,
    parse_tool_options,
    service_base_url,
)

__all__ = [
    "ServerConfig",
    "ToolToggles",
    "normalize_metadata_url",
    "parse_tool_options",
    "service_base_url",
]
