"""
Geometry converter — OSM elements to height-annotated features.

Classifies raw Overpass elements, resolves heights and widths, clips and
filters polygons, and emits two parallel outputs: local 3D features
([lon*scale, base_height, lat*scale] rings with absolute heights) and a
GeoJSON overlay in geographic coordinates.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypedDict, cast

from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from ..constants import (
    BEACH_NATURAL_VALUES,
    COMMERCIAL_BUILDING_VALUES,
    DEFAULT_BUILDING_HEIGHT_M,
    FOOTPATH_HIGHWAY_TYPES,
    INDUSTRIAL_BUILDING_VALUES,
    METERS_PER_LEVEL,
    OCEAN_WATER_VALUES,
    PIER_HALF_WIDTH_M,
    RESIDENTIAL_BUILDING_VALUES,
    ROAD_HEIGHT_OFFSET_M,
    BuildingSubtype,
    FeatureType,
)
from ..models.requests import GeneratorOptions
from .geometry import buffer_line_m, clip_pieces, lines_to_polygons, ring_to_polygon
from .polygon import ring_area_m2
from .widths import WidthTable

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[0-9]+(?:\.[0-9]+)?")

# Tags the converter reads; any other key is carried along and ignored
OsmTags = TypedDict(
    "OsmTags",
    {
        "building": str,
        "building:levels": str,
        "height": str,
        "shop": str,
        "amenity": str,
        "highway": str,
        "waterway": str,
        "natural": str,
        "water": str,
        "man_made": str,
        "leisure": str,
        "landuse": str,
        "name": str,
    },
    total=False,
)


class FeatureKind:
    """Classification outcome of one element (waterway lines render as water)."""

    BUILDING = "building"
    ROAD = "road"
    WATERWAY = "waterway"
    WATER = "water"
    SAND = "sand"
    PIER = "pier"
    GREEN = "green"


_KIND_TO_TYPE = {
    FeatureKind.BUILDING: FeatureType.BUILDING,
    FeatureKind.ROAD: FeatureType.ROAD,
    FeatureKind.WATERWAY: FeatureType.WATER,
    FeatureKind.WATER: FeatureType.WATER,
    FeatureKind.SAND: FeatureType.SAND,
    FeatureKind.PIER: FeatureType.PIER,
    FeatureKind.GREEN: FeatureType.GREEN,
}


@dataclass
class RawElement:
    """An Overpass element with its geometry as (lon, lat) points."""

    id: int | str | None
    osm_type: str
    tags: OsmTags
    geometry: list[tuple[float, float]] = field(default_factory=list)
    outer_lines: list[list[tuple[float, float]]] = field(default_factory=list)

    @classmethod
    def from_overpass(cls, element: Mapping[str, Any]) -> "RawElement":
        """Parse one entry of an Overpass `out geom` elements array."""
        geometry = [
            (float(p["lon"]), float(p["lat"]))
            for p in element.get("geometry") or []
            if p is not None
        ]
        outer_lines = []
        for member in element.get("members") or []:
            if member.get("role", "outer") not in ("outer", "") or not member.get("geometry"):
                continue
            outer_lines.append(
                [(float(p["lon"]), float(p["lat"])) for p in member["geometry"] if p is not None]
            )
        tags = {str(k): str(v) for k, v in (element.get("tags") or {}).items()}
        return cls(
            id=element.get("id"),
            osm_type=element.get("type", "way"),
            tags=cast(OsmTags, tags),
            geometry=geometry,
            outer_lines=outer_lines,
        )

    @property
    def is_closed(self) -> bool:
        return len(self.geometry) >= 4 and self.geometry[0] == self.geometry[-1]


@dataclass
class ConversionResult:
    """Converted features plus the GeoJSON overlay collection."""

    features: list[dict[str, Any]] = field(default_factory=list)
    geojson: dict[str, Any] = field(
        default_factory=lambda: {"type": "FeatureCollection", "features": []}
    )
    stats: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"features": self.features, "geojson": self.geojson, "stats": self.stats}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversionResult":
        return cls(
            features=list(data.get("features", [])),
            geojson=dict(data.get("geojson") or {"type": "FeatureCollection", "features": []}),
            stats=dict(data.get("stats", {})),
        )


# ---------------------------------------------------------------------------
# Tag classification (pure functions)
# ---------------------------------------------------------------------------


def _truthy(value: str | None) -> bool:
    return bool(value) and value != "no"


def classify_element(tags: OsmTags, options: GeneratorOptions) -> str | None:
    """
    Classify an element by its tags; first match wins.

    Returns a FeatureKind value, or None when the element is dropped.
    """
    if _truthy(tags.get("building")):
        return FeatureKind.BUILDING
    if tags.get("highway"):
        if not options.footpath_roads_enabled and tags["highway"] in FOOTPATH_HIGHWAY_TYPES:
            return None
        return FeatureKind.ROAD
    if tags.get("waterway"):
        return FeatureKind.WATERWAY
    if tags.get("natural") == "water":
        if not options.ocean_enabled and tags.get("water") in OCEAN_WATER_VALUES:
            return None
        return FeatureKind.WATER
    if tags.get("natural") in BEACH_NATURAL_VALUES:
        return FeatureKind.SAND if options.beach_enabled else None
    if tags.get("man_made") == "pier":
        return FeatureKind.PIER if options.piers_enabled else None
    if tags.get("leisure") == "park" or tags.get("landuse") == "grass":
        return FeatureKind.GREEN
    return None


def building_subtype(tags: OsmTags) -> str:
    kind = (tags.get("building") or "").lower()
    if kind in RESIDENTIAL_BUILDING_VALUES:
        return BuildingSubtype.RESIDENTIAL
    if tags.get("shop") or tags.get("amenity") or kind in COMMERCIAL_BUILDING_VALUES:
        return BuildingSubtype.COMMERCIAL
    if kind in INDUSTRIAL_BUILDING_VALUES:
        return BuildingSubtype.INDUSTRIAL
    return BuildingSubtype.GENERIC


def _leading_number(value: str | None) -> float | None:
    if not value:
        return None
    match = _NUMBER.search(value.replace(",", "."))
    return float(match.group(0)) if match else None


def building_height_m(tags: OsmTags) -> float:
    """Raw building height: height tag, else levels x 3 m, else 10 m."""
    height = _leading_number(tags.get("height"))
    if height is not None:
        return height
    levels = _leading_number(tags.get("building:levels"))
    if levels is not None:
        return levels * METERS_PER_LEVEL
    return DEFAULT_BUILDING_HEIGHT_M


# ---------------------------------------------------------------------------
# Converter
# ---------------------------------------------------------------------------


class GeometryConverter:
    """Turns raw elements into 3D features and overlay polygons."""

    def __init__(self, widths: WidthTable | None = None) -> None:
        self.widths = widths or WidthTable()

    def convert(
        self,
        elements: Iterable[RawElement | Mapping[str, Any]],
        scale: float,
        base_height: float,
        building_multiplier: float,
        options: GeneratorOptions,
        clip_polygon: BaseGeometry | None = None,
        region_polygon: BaseGeometry | None = None,
    ) -> ConversionResult:
        """
        Convert elements into features and a GeoJSON overlay.

        Args:
            elements: RawElements or raw Overpass element dicts
            scale: Local projection scale applied to lon/lat
            base_height: Shared base elevation; all heights are absolute
            building_multiplier: Vertical exaggeration for buildings
            options: Generator options (filters, layer heights, toggles)
            clip_polygon: Lon/lat geometry every piece is intersected with
            region_polygon: Lon/lat geometry elements must touch to be kept

        Returns:
            ConversionResult with features, geojson and per-type stats
        """
        result = ConversionResult()
        dropped = 0

        for item in elements:
            element = item if isinstance(item, RawElement) else RawElement.from_overpass(item)
            kind = classify_element(element.tags, options)
            if kind is None:
                dropped += 1
                continue

            polygons, width_m = self._element_polygons(element, kind)
            if not polygons:
                logger.debug(f"Skipping {element.osm_type}/{element.id}: degenerate geometry")
                dropped += 1
                continue

            if region_polygon is not None and not any(
                p.intersects(region_polygon) for p in polygons
            ):
                dropped += 1
                continue

            if clip_polygon is not None:
                pieces = [piece for p in polygons for piece in clip_pieces(p, clip_polygon)]
            else:
                pieces = polygons

            emitted = self._emit(
                result, element, kind, pieces, width_m,
                scale, base_height, building_multiplier, options,
            )
            if not emitted:
                dropped += 1

        result.stats["dropped"] = dropped
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _element_polygons(self, element: RawElement, kind: str) -> tuple[list[Polygon], float | None]:
        """Lon/lat polygons for an element plus the ribbon width for line kinds."""
        if kind == FeatureKind.ROAD:
            width = self.widths.road_width(element.tags)
            return buffer_line_m(element.geometry, width / 2.0), width
        if kind == FeatureKind.WATERWAY:
            width = self.widths.waterway_width(element.tags)
            return buffer_line_m(element.geometry, width / 2.0), width
        if kind == FeatureKind.PIER and element.geometry and not element.is_closed:
            return buffer_line_m(element.geometry, PIER_HALF_WIDTH_M), PIER_HALF_WIDTH_M * 2

        if element.is_closed:
            return ring_to_polygon(element.geometry), None
        if element.outer_lines:
            return lines_to_polygons(element.outer_lines), None
        return [], None

    def _heights(
        self,
        kind: str,
        tags: OsmTags,
        base_height: float,
        building_multiplier: float,
        options: GeneratorOptions,
    ) -> tuple[float, float]:
        """Return (raw height in metres, absolute final height)."""
        if kind == FeatureKind.BUILDING:
            raw = building_height_m(tags)
            height_mm = max(options.min_building_height_mm, raw * 1000.0 * building_multiplier)
            return raw, base_height + height_mm / 1000.0
        if kind == FeatureKind.ROAD:
            return ROAD_HEIGHT_OFFSET_M, base_height + ROAD_HEIGHT_OFFSET_M

        layer_mm = {
            FeatureKind.WATERWAY: options.water_height_mm,
            FeatureKind.WATER: options.water_height_mm,
            FeatureKind.SAND: options.beach_height_mm,
            FeatureKind.PIER: options.pier_height_mm,
            FeatureKind.GREEN: options.greenery_height_mm,
        }[kind]
        return layer_mm / 1000.0, base_height + layer_mm / 1000.0

    @staticmethod
    def _min_area(kind: str, options: GeneratorOptions) -> float:
        if kind == FeatureKind.BUILDING:
            return options.min_building_area_m2 or 0.0
        if kind in (FeatureKind.WATER, FeatureKind.WATERWAY):
            return options.min_water_area_m2
        return 0.0

    def _emit(
        self,
        result: ConversionResult,
        element: RawElement,
        kind: str,
        pieces: list[Polygon],
        width_m: float | None,
        scale: float,
        base_height: float,
        building_multiplier: float,
        options: GeneratorOptions,
    ) -> int:
        feature_type = _KIND_TO_TYPE[kind]
        subtype = building_subtype(element.tags) if kind == FeatureKind.BUILDING else None
        height_raw, height_final = self._heights(
            kind, element.tags, base_height, building_multiplier, options
        )
        min_area = self._min_area(kind, options)

        part = 0
        for piece in pieces:
            exterior = [[x, y] for x, y in piece.exterior.coords]
            area_m2 = ring_area_m2(exterior)
            if area_m2 <= 0 or area_m2 < min_area:
                continue

            feature: dict[str, Any] = {
                "id": element.id,
                "osm_type": element.osm_type,
                "part": part,
                "type": feature_type,
                "geometry": [[lon * scale, base_height, lat * scale] for lon, lat in exterior],
                "height": height_final,
            }
            if subtype:
                feature["subtype"] = subtype
            result.features.append(feature)

            properties: dict[str, Any] = {
                "id": element.id,
                "osm_type": element.osm_type,
                "part": part,
                "featureType": feature_type,
                "height_raw": height_raw,
                "base_height": base_height,
                "height_final": height_final,
                "area_m2": round(area_m2, 2),
            }
            if element.tags.get("name"):
                properties["name"] = element.tags["name"]
            if subtype:
                properties["subtype"] = subtype
            if width_m is not None:
                properties["width_m"] = width_m

            rings = [exterior] + [[[x, y] for x, y in hole.coords] for hole in piece.interiors]
            result.geojson["features"].append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Polygon", "coordinates": rings},
                    "properties": properties,
                }
            )
            result.stats[feature_type] = result.stats.get(feature_type, 0) + 1
            part += 1

        return part
