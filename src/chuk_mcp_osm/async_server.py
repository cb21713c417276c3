#!/usr/bin/env python3
"""
Async OSM MCP Server using chuk-mcp-server

OpenStreetMap feature acquisition and 3D model conversion.
Fetches buildings, roads, water, and green areas from Overpass mirrors and
converts them into height-annotated features with a GeoJSON overlay.

Upstream endpoints, retries, tiling, and cache files are configured through
OVERPASS_* / OSM_* environment variables.
"""

import logging

from chuk_mcp_server import ChukMCPServer

from .constants import ServerConfig
from .core.model_manager import ModelManager
from .tools.discovery import register_discovery_tools
from .tools.model import register_model_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer(ServerConfig.NAME)

# Create model manager instance
manager = ModelManager.from_env()

# Register all tool modules
register_discovery_tools(mcp, manager)
register_model_tools(mcp, manager)

# Run the server
if __name__ == "__main__":
    logger.info("Starting OSM MCP Server...")
    logger.info(f"Overpass endpoints: {', '.join(manager.client.endpoints)}")
    mcp.run(stdio=True)
