"""MCP surface: tool catalog, dispatch, OData backend, and stdio server."""
