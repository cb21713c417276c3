"""
chuk-mcp-osm: OpenStreetMap Feature Acquisition & 3D Model Conversion MCP Server

Fetches buildings, roads, water, and green areas from the Overpass API for a
bounding box, polygon, or route, and converts them into height-annotated
local-frame features plus a GeoJSON overlay.
"""
