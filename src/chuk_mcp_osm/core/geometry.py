"""
Planar geometry helpers built on shapely and pyproj.

Lines are buffered in a local azimuthal-equidistant projection so widths
are true metres; clipping and repair go through shapely.
"""

import logging
from collections.abc import Sequence
from functools import lru_cache

from pyproj import CRS, Transformer
from shapely.geometry import GeometryCollection, LineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge, polygonize, transform, unary_union
from shapely.validation import make_valid

logger = logging.getLogger(__name__)

# Projection centres are snapped to this many decimals so nearby lines share transformers
_CENTRE_DECIMALS = 2


@lru_cache(maxsize=256)
def _local_transformers(lon: float, lat: float) -> tuple[Transformer, Transformer]:
    local = CRS.from_proj4(
        f"+proj=aeqd +lat_0={lat} +lon_0={lon} +datum=WGS84 +units=m +no_defs"
    )
    forward = Transformer.from_crs("EPSG:4326", local, always_xy=True)
    inverse = Transformer.from_crs(local, "EPSG:4326", always_xy=True)
    return forward, inverse


def polygon_pieces(geom: BaseGeometry | None) -> list[Polygon]:
    """Flatten a geometry into its non-empty polygon parts."""
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        pieces: list[Polygon] = []
        for part in geom.geoms:
            pieces.extend(polygon_pieces(part))
        return pieces
    return []


def ring_to_polygon(ring: Sequence[Sequence[float]]) -> list[Polygon]:
    """
    Build polygon(s) from a lon/lat ring, repairing invalid rings.

    Returns an empty list for degenerate input.
    """
    coords = [(float(p[0]), float(p[1])) for p in ring]
    if len(coords) >= 3 and coords[0] != coords[-1]:
        coords.append(coords[0])
    if len(set(coords)) < 3:
        return []
    polygon = Polygon(coords)
    if polygon.is_valid:
        return [polygon] if polygon.area > 0 else []
    return [p for p in polygon_pieces(make_valid(polygon)) if p.area > 0]


def lines_to_polygons(lines: Sequence[Sequence[Sequence[float]]]) -> list[Polygon]:
    """Stitch open way segments (relation outer members) into polygons."""
    segments = [LineString(line) for line in lines if len(line) >= 2]
    if not segments:
        return []
    merged = linemerge(segments)
    return [p for p in polygonize(merged) if p.area > 0]


def buffer_line_m(coords: Sequence[Sequence[float]], half_width_m: float) -> list[Polygon]:
    """
    Buffer a lon/lat line by half_width_m metres on each side.

    Returns the ribbon as lon/lat polygon(s); empty for degenerate lines.
    """
    points = [(float(p[0]), float(p[1])) for p in coords]
    if len(set(points)) < 2 or half_width_m <= 0:
        return []
    line = LineString(points)
    centre = line.centroid
    forward, inverse = _local_transformers(
        round(centre.x, _CENTRE_DECIMALS), round(centre.y, _CENTRE_DECIMALS)
    )
    projected = transform(forward.transform, line)
    ribbon = projected.buffer(half_width_m, cap_style=2)
    return polygon_pieces(transform(inverse.transform, ribbon))


def clip_pieces(polygon: Polygon, clip: BaseGeometry) -> list[Polygon]:
    """Intersect a polygon with a clip geometry; no overlap yields no pieces."""
    try:
        return [p for p in polygon_pieces(polygon.intersection(clip)) if p.area > 0]
    except Exception as e:
        logger.debug(f"Clip intersection failed: {e}")
        return []


def union_area(polygons: Sequence[Polygon]) -> BaseGeometry:
    return unary_union(list(polygons))
