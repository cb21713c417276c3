"""
Polygon math on lon/lat rings.

Pure functions: geodesic area via spherical excess, bounding boxes,
and ring parsing. Rings are sequences of [lon, lat] pairs.
"""

import math
from collections.abc import Sequence
from typing import Any

import numpy as np

from ..constants import EARTH_RADIUS_M, ErrorMessages

BBox = tuple[float, float, float, float]
Ring = list[list[float]]


def ring_area_m2(ring: Sequence[Sequence[float]]) -> float:
    """
    Geodesic area of a closed lon/lat ring in square metres.

    Uses the spherical-excess approximation, accurate while the ring is small
    relative to the Earth's radius. Orientation does not matter.
    """
    if len(ring) < 3:
        return 0.0
    coords = np.asarray(ring, dtype=np.float64)[:, :2]
    lon = np.radians(coords[:, 0])
    lat = np.radians(coords[:, 1])
    lon_next = np.roll(lon, -1)
    lat_next = np.roll(lat, -1)
    total = np.sum((lon_next - lon) * (2.0 + np.sin(lat) + np.sin(lat_next)))
    return float(abs(total * EARTH_RADIUS_M * EARTH_RADIUS_M / 2.0))


def polygon_area_km2(ring: Sequence[Sequence[float]]) -> float:
    """Geodesic area of a lon/lat ring in square kilometres."""
    return ring_area_m2(ring) / 1_000_000.0


def bbox_to_ring(bbox: BBox) -> Ring:
    west, south, east, north = bbox
    return [
        [west, south],
        [east, south],
        [east, north],
        [west, north],
        [west, south],
    ]


def bbox_area_km2(bbox: BBox) -> float:
    """Geodesic area of a bounding box in square kilometres."""
    return polygon_area_km2(bbox_to_ring(bbox))


def polygon_to_bbox(ring: Sequence[Sequence[float]]) -> BBox:
    """Bounding box (west, south, east, north) of a lon/lat ring."""
    coords = np.asarray(ring, dtype=np.float64)[:, :2]
    west, south = coords.min(axis=0)
    east, north = coords.max(axis=0)
    return float(west), float(south), float(east), float(north)


def _is_coordinate(point: Any) -> bool:
    return (
        isinstance(point, (list, tuple))
        and len(point) == 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in point)
        and all(math.isfinite(v) for v in point)
    )


def parse_polygon(value: Any) -> Ring:
    """
    Parse a GeoJSON Polygon mapping or a bare coordinate ring.

    The ring is closed if needed. Raises ValueError when fewer than four
    points are given or a point is not a finite [lon, lat] pair.
    """
    if isinstance(value, dict):
        if value.get("type") != "Polygon" or not value.get("coordinates"):
            raise ValueError(ErrorMessages.INVALID_POLYGON)
        ring = value["coordinates"][0]
    else:
        ring = value

    if not isinstance(ring, (list, tuple)) or len(ring) < 4:
        raise ValueError(ErrorMessages.INVALID_POLYGON)
    if not all(_is_coordinate(p) for p in ring):
        raise ValueError(ErrorMessages.INVALID_POLYGON)

    coords = [[float(p[0]), float(p[1])] for p in ring]
    if coords[0] != coords[-1]:
        coords.append(list(coords[0]))
    return coords
