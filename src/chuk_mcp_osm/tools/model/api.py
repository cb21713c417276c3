"""
Model tools — build height-annotated features from OpenStreetMap data.

These tools perform network I/O against the Overpass API and cache results
per tile and per request.
"""

import logging
from typing import Any

from ...constants import (
    DEFAULT_BASE_HEIGHT,
    DEFAULT_BUILDING_MULTIPLIER,
    DEFAULT_LAYER_HEIGHT_MM,
    DEFAULT_ROUTE_BUFFER_M,
    DEFAULT_SCALE,
    DEFAULT_UPSTREAM_ERROR_STATUS,
    OUTPUT_MODES,
    RATE_LIMITED_STATUS,
    TIMEOUT_STATUS,
    VALIDATION_ERROR_STATUS,
    ErrorMessages,
    SuccessMessages,
)
from ...core.retry import UpstreamError
from ...models.requests import GeneratorOptions, ModelRequest
from ...models.responses import ErrorResponse, ModelResponse, format_response

logger = logging.getLogger(__name__)


def error_response(error: Exception) -> ErrorResponse:
    """Map a failure to an ErrorResponse with an HTTP-style status."""
    if isinstance(error, UpstreamError):
        status = error.status or DEFAULT_UPSTREAM_ERROR_STATUS
        if status == RATE_LIMITED_STATUS:
            message = ErrorMessages.RATE_LIMITED.format(error)
        elif status == TIMEOUT_STATUS:
            message = ErrorMessages.TIMEOUT.format(error)
        else:
            message = ErrorMessages.PROVIDER_UNAVAILABLE.format(error)
        return ErrorResponse(error=message, status=status)
    if isinstance(error, ValueError):
        return ErrorResponse(error=str(error), status=VALIDATION_ERROR_STATUS)
    return ErrorResponse(error=str(error))


def register_model_tools(mcp, manager):
    """Register model build tools with the MCP server."""

    @mcp.tool()
    async def osm_build_model(
        scale: float = DEFAULT_SCALE,
        elements: list[str] | None = None,
        base_height: float = DEFAULT_BASE_HEIGHT,
        building_multiplier: float = DEFAULT_BUILDING_MULTIPLIER,
        bbox: list[float] | None = None,
        shape: Any = None,
        route: Any = None,
        route_buffer_m: float = DEFAULT_ROUTE_BUFFER_M,
        min_building_area_m2: float | None = None,
        min_building_height_mm: float = 0.0,
        water_height_mm: float = DEFAULT_LAYER_HEIGHT_MM,
        greenery_height_mm: float = DEFAULT_LAYER_HEIGHT_MM,
        beach_height_mm: float = DEFAULT_LAYER_HEIGHT_MM,
        pier_height_mm: float = DEFAULT_LAYER_HEIGHT_MM,
        min_water_area_m2: float = 0.0,
        footpath_roads_enabled: bool = True,
        ocean_enabled: bool = True,
        beach_enabled: bool = False,
        piers_enabled: bool = False,
        clip_to_shape: bool = False,
        custom_road_widths: dict[str, float] | None = None,
        custom_waterway_widths: dict[str, float] | None = None,
        invalidate: bool = False,
        output_mode: str = "json",
    ) -> str:
        """Build 3D-ready features (buildings, roads, water, green) for an area.

        Give exactly one area: a polygon shape wins over a route, and a route
        wins over a bbox. Areas over the tiling threshold are fetched tile by tile.

        Args:
            scale: Units per degree for local coordinates (x = lon*scale, z = lat*scale)
            elements: Element types to fetch (buildings, roads, water, green; None = all)
            base_height: Shared base elevation added to every height
            building_multiplier: Multiplier applied to raw building heights
            bbox: Bounding box [west, south, east, north] in EPSG:4326
            shape: GeoJSON Polygon or bare ring of [lon, lat] pairs
            route: GeoJSON LineString or list of [lon, lat] pairs
            route_buffer_m: Buffer distance around the route in metres
            min_building_area_m2: Drop building pieces smaller than this
            min_building_height_mm: Minimum building height in millimetres
            water_height_mm: Water layer height in millimetres
            greenery_height_mm: Green layer height in millimetres
            beach_height_mm: Beach/sand layer height in millimetres
            pier_height_mm: Pier layer height in millimetres
            min_water_area_m2: Drop water pieces smaller than this
            footpath_roads_enabled: Include footways, paths, steps, and cycleways
            ocean_enabled: Include sea/ocean water areas
            beach_enabled: Include beaches and sand
            piers_enabled: Include piers
            clip_to_shape: Clip every feature to the requested area
            custom_road_widths: Per-highway width overrides in metres
            custom_waterway_widths: Per-waterway width overrides in metres
            invalidate: Ignore cached results and refetch
            output_mode: "json" or "text"

        Returns:
            Features, GeoJSON overlay, and fetch metadata
        """
        try:
            if output_mode not in OUTPUT_MODES:
                raise ValueError(
                    ErrorMessages.INVALID_OUTPUT_MODE.format(output_mode, ", ".join(OUTPUT_MODES))
                )

            option_fields: dict[str, Any] = {
                "min_building_area_m2": min_building_area_m2,
                "min_building_height_mm": min_building_height_mm,
                "water_height_mm": water_height_mm,
                "greenery_height_mm": greenery_height_mm,
                "beach_height_mm": beach_height_mm,
                "pier_height_mm": pier_height_mm,
                "min_water_area_m2": min_water_area_m2,
                "footpath_roads_enabled": footpath_roads_enabled,
                "ocean_enabled": ocean_enabled,
                "beach_enabled": beach_enabled,
                "piers_enabled": piers_enabled,
                "clip_to_shape": clip_to_shape,
                "custom_road_widths": custom_road_widths or {},
                "custom_waterway_widths": custom_waterway_widths or {},
            }
            if elements is not None:
                option_fields["elements"] = elements

            request = ModelRequest(
                scale=scale,
                base_height=base_height,
                building_multiplier=building_multiplier,
                bbox=bbox,
                shape=shape,
                route=route,
                route_buffer_m=route_buffer_m,
                options=GeneratorOptions(**option_fields),
                invalidate=invalidate,
            )

            result = await manager.build_model(request)

            if result.meta.get("cached"):
                message = SuccessMessages.MODEL_CACHED.format(len(result.features))
            else:
                message = SuccessMessages.MODEL_BUILT.format(
                    len(result.features),
                    len(result.geojson.get("features", [])),
                    result.meta.get("tiles", 0),
                )

            response = ModelResponse(
                features=result.features,
                geojson=result.geojson,
                meta=result.meta,
                message=message,
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"osm_build_model failed: {e}")
            return format_response(error_response(e), output_mode)
