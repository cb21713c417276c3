"""
Overpass QL query construction.

Queries are rendered deterministically: identical inputs always produce
byte-identical text, so query text doubles as a stable cache/dedup key.
"""

from collections.abc import Iterable, Sequence

from ..constants import (
    ALL_ELEMENT_TYPES,
    FOOTPATH_HIGHWAY_TYPES,
    OCEAN_WATER_VALUES,
    QUERY_TIMEOUT_S,
    ElementType,
)
from ..models.requests import GeneratorOptions
from .polygon import BBox


def _format_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def bbox_filter(bbox: BBox) -> str:
    """Overpass bbox filter; Overpass expects (south, west, north, east)."""
    west, south, east, north = bbox
    return "(" + ",".join(_format_number(v) for v in (south, west, north, east)) + ")"


def polygon_filter(ring: Sequence[Sequence[float]]) -> str:
    """Overpass poly filter; points are written as "lat lon" pairs."""
    points = " ".join(f"{_format_number(lat)} {_format_number(lon)}" for lon, lat in ring)
    return f'(poly:"{points}")'


def _negative_regex(key: str, values: Iterable[str]) -> str:
    return f'["{key}"!~"^({"|".join(values)})$"]'


def build_overpass_query(
    elements: Iterable[str],
    bbox: BBox | None = None,
    polygon: Sequence[Sequence[float]] | None = None,
    options: GeneratorOptions | None = None,
) -> str:
    """
    Render an Overpass QL query for the requested element types.

    A polygon filter wins over a bbox filter; with neither, clauses are
    unfiltered. Element types are emitted in canonical order.
    """
    opts = options or GeneratorOptions()
    if polygon is not None:
        area = polygon_filter(polygon)
    elif bbox is not None:
        area = bbox_filter(bbox)
    else:
        area = ""

    requested = set(elements)
    clauses: list[str] = []
    for element in ALL_ELEMENT_TYPES:
        if element not in requested:
            continue
        if element == ElementType.BUILDINGS:
            clauses.append(f'way["building"]{area};')
            clauses.append(f'relation["building"]{area};')
        elif element == ElementType.ROADS:
            footpaths = (
                "" if opts.footpath_roads_enabled
                else _negative_regex("highway", FOOTPATH_HIGHWAY_TYPES)
            )
            clauses.append(f'way["highway"]{footpaths}{area};')
        elif element == ElementType.WATER:
            ocean = "" if opts.ocean_enabled else _negative_regex("water", OCEAN_WATER_VALUES)
            clauses.append(f'way["natural"="water"]{ocean}{area};')
            clauses.append(f'relation["natural"="water"]{ocean}{area};')
            clauses.append(f'way["waterway"]{area};')
            if opts.piers_enabled:
                clauses.append(f'way["man_made"="pier"]{area};')
            if opts.beach_enabled:
                clauses.append(f'way["natural"="beach"]{area};')
                clauses.append(f'way["natural"="sand"]{area};')
        elif element == ElementType.GREEN:
            clauses.append(f'way["leisure"="park"]{area};')
            clauses.append(f'relation["leisure"="park"]{area};')
            clauses.append(f'way["landuse"="grass"]{area};')
            clauses.append(f'relation["landuse"="grass"]{area};')

    return f"[out:json][timeout:{QUERY_TIMEOUT_S}];({''.join(clauses)});out geom;"
