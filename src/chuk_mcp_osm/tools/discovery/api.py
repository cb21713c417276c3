"""
Discovery tools — server status and capabilities.

These tools require no network I/O and return information about the
upstream configuration, caches, and supported feature types.
"""

import logging

from ...constants import (
    ALL_ELEMENT_TYPES,
    ALL_FEATURE_TYPES,
    LLM_GUIDANCE,
    OUTPUT_MODES,
    TOOL_NAMES,
    ServerConfig,
    SuccessMessages,
)
from ...models.responses import (
    CapabilitiesResponse,
    ErrorResponse,
    StatusResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_discovery_tools(mcp, manager):
    """Register discovery tools with the MCP server."""

    @mcp.tool()
    async def osm_status(output_mode: str = "json") -> str:
        """Get server status including Overpass endpoints, retry settings, and cache sizes.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status information
        """
        try:
            status = manager.status()
            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                **status,
                message=SuccessMessages.STATUS.format(
                    ServerConfig.VERSION, len(status["endpoints"]), status["concurrency"]
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"osm_status failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def osm_capabilities(output_mode: str = "json") -> str:
        """Get full server capabilities including element types, feature types,
        default widths, and output formats.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Complete server capabilities
        """
        try:
            widths = manager.widths.as_dict()
            response = CapabilitiesResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                element_types=ALL_ELEMENT_TYPES,
                feature_types=ALL_FEATURE_TYPES,
                road_widths=widths["road"],
                waterway_widths=widths["waterway"],
                output_formats=OUTPUT_MODES,
                tool_count=len(TOOL_NAMES),
                llm_guidance=LLM_GUIDANCE,
                message=f"{ServerConfig.NAME} v{ServerConfig.VERSION}: {len(TOOL_NAMES)} tools",
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"osm_capabilities failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
