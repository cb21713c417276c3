"""
Area tiling — keeps single Overpass requests within an area budget.

Small areas go out as one request (polygon filter kept); large areas are
split into a grid of bbox tiles over the area's bounding box.
"""

import logging
import math
from dataclasses import dataclass

from ..constants import DEFAULT_MAX_AREA_KM2, DEFAULT_TILE_SIZE_DEG, TILE_EPSILON
from ..models.requests import AreaOfInterest
from .polygon import BBox, bbox_area_km2, polygon_area_km2

logger = logging.getLogger(__name__)


@dataclass
class TilePlan:
    """Result of a tiling decision."""

    tiles: list[BBox]
    use_polygon_filter: bool
    area_km2: float

    @property
    def tiled(self) -> bool:
        return len(self.tiles) > 1


def bbox_to_tiles(bbox: BBox, tile_size_deg: float) -> list[BBox]:
    """
    Partition a bbox into tile_size_deg cells, column by column from the south-west.

    The last row/column is clipped to the original bounds.
    """
    if tile_size_deg <= 0:
        raise ValueError(f"tile_size_deg must be > 0, got {tile_size_deg}")

    west, south, east, north = bbox
    n_cols = max(1, math.ceil((east - west) / tile_size_deg - TILE_EPSILON))
    n_rows = max(1, math.ceil((north - south) / tile_size_deg - TILE_EPSILON))

    tiles: list[BBox] = []
    for i in range(n_cols):
        lon = west + i * tile_size_deg
        lon_end = east if i == n_cols - 1 else min(lon + tile_size_deg, east)
        for j in range(n_rows):
            lat = south + j * tile_size_deg
            lat_end = north if j == n_rows - 1 else min(lat + tile_size_deg, north)
            tiles.append((lon, lat, lon_end, lat_end))
    return tiles


def area_km2(area: AreaOfInterest) -> float:
    """Geodesic area of the area's ring (polygon, or the bbox ring)."""
    if area.polygon is not None:
        return polygon_area_km2(area.polygon)
    return bbox_area_km2(area.bounds)


def decide_tiles(
    area: AreaOfInterest,
    max_area_km2: float = DEFAULT_MAX_AREA_KM2,
    tile_size_deg: float = DEFAULT_TILE_SIZE_DEG,
) -> TilePlan:
    """Decide whether an area fits one request or must be split into tiles."""
    size = area_km2(area)
    bounds = area.bounds

    if size <= max_area_km2:
        return TilePlan(
            tiles=[bounds],
            use_polygon_filter=area.polygon is not None,
            area_km2=size,
        )

    tiles = bbox_to_tiles(bounds, tile_size_deg)
    logger.info(
        f"Area {size:.1f} km² exceeds {max_area_km2:.1f} km², "
        f"split into {len(tiles)} tiles of {tile_size_deg}°"
    )
    return TilePlan(tiles=tiles, use_polygon_filter=False, area_km2=size)
