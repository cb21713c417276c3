"""
Request models for chuk-mcp-osm.

Areas, generator options, and model build requests are immutable Pydantic
models. Field names are snake_case; camelCase aliases are accepted so raw
JSON bodies validate directly.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..constants import (
    ALL_ELEMENT_TYPES,
    DEFAULT_BASE_HEIGHT,
    DEFAULT_BUILDING_MULTIPLIER,
    DEFAULT_LAYER_HEIGHT_MM,
    DEFAULT_ROUTE_BUFFER_M,
    ErrorMessages,
)
from ..core.polygon import parse_polygon, polygon_to_bbox

_FROZEN = ConfigDict(
    extra="forbid",
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class AreaOfInterest(BaseModel):
    """A bbox (west, south, east, north) or a closed lon/lat polygon ring."""

    model_config = _FROZEN

    bbox: tuple[float, float, float, float] | None = Field(
        None, description="Bounding box [west, south, east, north] in EPSG:4326"
    )
    polygon: list[list[float]] | None = Field(
        None, description="Closed ring of [lon, lat] pairs; wins over bbox"
    )

    @field_validator("bbox", mode="before")
    @classmethod
    def _check_bbox(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, (list, tuple)) or len(value) != 4:
            raise ValueError(ErrorMessages.INVALID_BBOX)
        west, south, east, north = (float(v) for v in value)
        if not all(math.isfinite(v) for v in (west, south, east, north)):
            raise ValueError(ErrorMessages.INVALID_BBOX)
        if west > east:
            raise ValueError(ErrorMessages.INVALID_BBOX_VALUES.format(west, east))
        if south > north:
            raise ValueError(ErrorMessages.INVALID_BBOX_LAT.format(south, north))
        if west < -180 or east > 180 or south < -90 or north > 90:
            raise ValueError(ErrorMessages.BBOX_OUT_OF_RANGE.format(list(value)))
        return (west, south, east, north)

    @field_validator("polygon", mode="before")
    @classmethod
    def _check_polygon(cls, value: Any) -> Any:
        if value is None:
            return None
        return parse_polygon(value)

    @model_validator(mode="after")
    def _require_area(self) -> "AreaOfInterest":
        if self.bbox is None and self.polygon is None:
            raise ValueError(ErrorMessages.MISSING_AREA)
        return self

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Bounding box of the authoritative geometry."""
        if self.polygon is not None:
            return polygon_to_bbox(self.polygon)
        assert self.bbox is not None
        return self.bbox

    def identity(self) -> dict[str, Any]:
        """Stable description used in cache keys."""
        if self.polygon is not None:
            return {"polygon": self.polygon}
        return {"bbox": list(self.bounds)}


class GeneratorOptions(BaseModel):
    """Per-request toggles and heights controlling what is fetched and how it is dimensioned."""

    model_config = _FROZEN

    elements: tuple[str, ...] = Field(
        tuple(ALL_ELEMENT_TYPES), description="Element types to fetch"
    )
    min_building_area_m2: float | None = Field(
        None, ge=0, description="Drop building pieces smaller than this (None = keep all)"
    )
    min_building_height_mm: float = Field(0.0, ge=0, description="Building height floor")
    water_height_mm: float = Field(DEFAULT_LAYER_HEIGHT_MM, ge=0)
    greenery_height_mm: float = Field(DEFAULT_LAYER_HEIGHT_MM, ge=0)
    beach_height_mm: float = Field(DEFAULT_LAYER_HEIGHT_MM, ge=0)
    pier_height_mm: float = Field(DEFAULT_LAYER_HEIGHT_MM, ge=0)
    min_water_area_m2: float = Field(0.0, ge=0)
    footpath_roads_enabled: bool = True
    ocean_enabled: bool = True
    beach_enabled: bool = False
    piers_enabled: bool = False
    clip_to_shape: bool = False
    custom_road_widths: dict[str, float] = Field(default_factory=dict)
    custom_waterway_widths: dict[str, float] = Field(default_factory=dict)

    @field_validator("elements", mode="before")
    @classmethod
    def _check_elements(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        requested = set()
        for item in value:
            if item not in ALL_ELEMENT_TYPES:
                raise ValueError(
                    ErrorMessages.UNKNOWN_ELEMENT.format(item, ", ".join(ALL_ELEMENT_TYPES))
                )
            requested.add(item)
        return tuple(e for e in ALL_ELEMENT_TYPES if e in requested)


# Request fields that are not generator options
_REQUEST_FIELDS = {
    "scale", "base_height", "building_multiplier", "bbox", "shape",
    "route", "route_buffer_m", "invalidate",
}


class ModelRequest(BaseModel):
    """A full model build request: area, dimensions, and generator options."""

    model_config = _FROZEN

    scale: float = Field(..., gt=0, description="Local projection scale (units per degree)")
    base_height: float = Field(DEFAULT_BASE_HEIGHT, description="Shared base elevation")
    building_multiplier: float = Field(DEFAULT_BUILDING_MULTIPLIER, ge=0)
    bbox: list[float] | None = None
    shape: Any = Field(None, description="GeoJSON Polygon or bare [lon, lat] ring")
    route: list[list[float]] | None = Field(None, description="LineString coordinates")
    route_buffer_m: float = Field(DEFAULT_ROUTE_BUFFER_M)
    options: GeneratorOptions = Field(default_factory=GeneratorOptions)
    invalidate: bool = False

    @field_validator("route", mode="before")
    @classmethod
    def _check_route(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get("coordinates")
        if not isinstance(value, (list, tuple)) or len(value) < 2:
            raise ValueError(ErrorMessages.INVALID_ROUTE)
        for p in value:
            if (
                not isinstance(p, (list, tuple))
                or len(p) < 2
                or not all(isinstance(v, (int, float)) and math.isfinite(v) for v in p[:2])
            ):
                raise ValueError(ErrorMessages.INVALID_ROUTE)
        return [[float(p[0]), float(p[1])] for p in value]

    @model_validator(mode="after")
    def _check_area(self) -> "ModelRequest":
        if self.bbox is None and self.shape is None and self.route is None:
            raise ValueError(ErrorMessages.MISSING_AREA)
        if self.shape is None and self.route is not None:
            if self.route_buffer_m <= 0:
                raise ValueError(ErrorMessages.INVALID_ROUTE_BUFFER.format(self.route_buffer_m))
        else:
            self.area_of_interest()
        return self

    def area_of_interest(self) -> AreaOfInterest:
        """Area for bbox/shape requests; route requests are buffered by the manager."""
        return AreaOfInterest(bbox=self.bbox, polygon=self.shape)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ModelRequest":
        """Build a request from a flat JSON body (camelCase or snake_case keys)."""
        if not isinstance(payload, dict):
            raise ValueError(ErrorMessages.INVALID_BODY)
        request_fields: dict[str, Any] = {}
        option_fields: dict[str, Any] = {}
        for key, value in payload.items():
            if value is None:
                continue
            name = _PAYLOAD_NAMES.get(_squash(key), key)
            if name in _REQUEST_FIELDS:
                request_fields[name] = value
            else:
                option_fields[name] = value
        return cls(**request_fields, options=GeneratorOptions(**option_fields))


def _squash(name: str) -> str:
    return name.replace("_", "").lower()


# Normalized body key -> field name, e.g. "minBuildingHeightMM" -> min_building_height_mm
_PAYLOAD_NAMES: dict[str, str] = {
    _squash(name): name
    for name in list(GeneratorOptions.model_fields) + sorted(_REQUEST_FIELDS)
}
_PAYLOAD_NAMES.update({
    "minarea": "min_building_area_m2",
    "minbuildingarea": "min_building_area_m2",
    "routebuffermeters": "route_buffer_m",
})
