"""MCP tool groups for chuk-mcp-osm."""
