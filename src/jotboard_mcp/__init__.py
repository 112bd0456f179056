"""MCP tool bridge for Jotboard."""
