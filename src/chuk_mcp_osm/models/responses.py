"""
Response models for chuk-mcp-osm tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")
    status: int | None = Field(None, description="HTTP-style status code for the failure")

    def to_text(self) -> str:
        if self.status is not None:
            return f"Error ({self.status}): {self.error}"
        return f"Error: {self.error}"


class ModelResponse(BaseModel):
    """Response model for a model build."""

    model_config = ConfigDict(extra="forbid")

    features: list[dict[str, Any]] = Field(
        ..., description="Local-frame features with rings and absolute heights"
    )
    geojson: dict[str, Any] = Field(..., description="GeoJSON FeatureCollection overlay")
    meta: dict[str, Any] = Field(default_factory=dict, description="Tiling and fetch metadata")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        counts: dict[str, int] = {}
        for feature in self.features:
            kind = str(feature.get("type", "other"))
            counts[kind] = counts.get(kind, 0) + 1
        lines = [self.message]
        for kind, count in sorted(counts.items()):
            lines.append(f"  {kind}: {count}")
        if self.meta:
            lines.append(
                f"Tiles: {self.meta.get('tiles', 0)} "
                f"(cache hits: {self.meta.get('tile_cache_hits', 0)})"
            )
            lines.append(f"Area: {self.meta.get('area_km2', 0)} km2")
            if self.meta.get("cached"):
                lines.append("Served from request cache")
        return "\n".join(lines)


class StatusResponse(BaseModel):
    """Response model for server status queries."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(default="chuk-mcp-osm", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")
    endpoints: list[str] = Field(..., description="Overpass endpoints in rotation order")
    concurrency: int = Field(..., description="Maximum concurrent upstream requests", ge=1)
    max_retries: int = Field(..., description="Retries after the first attempt", ge=0)
    timeout_ms: float = Field(..., description="Per-attempt timeout in milliseconds")
    max_area_km2: float = Field(..., description="Largest area fetched without tiling")
    tile_size_deg: float = Field(..., description="Tile edge length in degrees")
    tile_cache_entries: int = Field(default=0, description="Live tile cache entries", ge=0)
    request_cache_entries: int = Field(default=0, description="Live request cache entries", ge=0)
    inflight_requests: int = Field(default=0, description="Upstream requests in flight", ge=0)
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Endpoints: {', '.join(self.endpoints)}",
            f"Concurrency: {self.concurrency}, retries: {self.max_retries}, "
            f"timeout: {self.timeout_ms:.0f} ms",
            f"Tiling: > {self.max_area_km2} km2 in {self.tile_size_deg} deg tiles",
            f"Cache: {self.tile_cache_entries} tile(s), {self.request_cache_entries} request(s)",
            f"In flight: {self.inflight_requests}",
        ]
        return "\n".join(lines)


class CapabilitiesResponse(BaseModel):
    """Response model for server capabilities listing."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    element_types: list[str] = Field(..., description="Requestable element types")
    feature_types: list[str] = Field(..., description="Feature types that may be emitted")
    road_widths: dict[str, float] = Field(..., description="Default road widths in metres")
    waterway_widths: dict[str, float] = Field(
        ..., description="Default waterway widths in metres"
    )
    output_formats: list[str] = Field(..., description="Supported output formats")
    tool_count: int = Field(..., description="Number of available tools", ge=0)
    llm_guidance: str = Field(..., description="LLM-friendly usage guidance for the server")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Tools: {self.tool_count}",
            f"Element types: {', '.join(self.element_types)}",
            f"Feature types: {', '.join(self.feature_types)}",
            "Road widths: "
            + ", ".join(f"{k}={v:g}m" for k, v in self.road_widths.items()),
            "Waterway widths: "
            + ", ".join(f"{k}={v:g}m" for k, v in self.waterway_widths.items()),
            f"Output formats: {', '.join(self.output_formats)}",
            f"Guidance: {self.llm_guidance}",
        ]
        return "\n".join(lines)
