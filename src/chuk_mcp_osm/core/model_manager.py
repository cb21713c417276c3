"""
Model Manager — central orchestrator for OSM model builds.

Ties tiling, query construction, the Overpass client, the geometry converter,
and the two cache levels (per tile and per request) together, and merges
per-tile results by feature identity.
"""

import asyncio
import json
import logging
import os
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from shapely.geometry import MultiPolygon, box
from shapely.geometry.base import BaseGeometry

from ..constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_AREA_KM2,
    DEFAULT_MAX_RETRIES,
    DEFAULT_OVERPASS_ENDPOINTS,
    DEFAULT_RETRY_BASE_MS,
    DEFAULT_TILE_SIZE_DEG,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_USER_AGENT,
    REQUEST_CACHE_MAX_ENTRIES,
    REQUEST_CACHE_TTL_MS,
    TILE_CACHE_MAX_ENTRIES,
    TILE_CACHE_TTL_MS,
    EnvVar,
    ErrorMessages,
)
from ..models.requests import AreaOfInterest, ModelRequest
from .cache import TTLCache
from .converter import ConversionResult, GeometryConverter
from .geometry import buffer_line_m, ring_to_polygon, union_area
from .overpass_client import OverpassClient
from .polygon import BBox
from .query import build_overpass_query
from .tiling import TilePlan, decide_tiles
from .widths import WidthTable

logger = logging.getLogger(__name__)


@dataclass
class ModelResult:
    """Result of a model build."""

    features: list[dict[str, Any]]
    geojson: dict[str, Any]
    meta: dict[str, Any] = field(default_factory=dict)


def _env_number(environ: Mapping[str, str], name: str, default: float) -> float:
    try:
        value = float(environ[name])
    except (KeyError, ValueError):
        return default
    return value if value == value and abs(value) != float("inf") else default


class ModelManager:
    """Central manager for OSM acquisition and conversion."""

    def __init__(
        self,
        client: OverpassClient | None = None,
        widths: WidthTable | None = None,
        tile_cache: TTLCache | None = None,
        request_cache: TTLCache | None = None,
        max_area_km2: float = DEFAULT_MAX_AREA_KM2,
        tile_size_deg: float = DEFAULT_TILE_SIZE_DEG,
    ) -> None:
        self.client = client or OverpassClient()
        self.widths = widths or WidthTable()
        self.tile_cache = tile_cache or TTLCache(TILE_CACHE_TTL_MS, TILE_CACHE_MAX_ENTRIES)
        self.request_cache = request_cache or TTLCache(
            REQUEST_CACHE_TTL_MS, REQUEST_CACHE_MAX_ENTRIES
        )
        self.max_area_km2 = max_area_km2
        self.tile_size_deg = tile_size_deg

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ModelManager":
        """Build a manager from OVERPASS_* / OSM_* environment variables."""
        env = os.environ if environ is None else environ

        endpoints = [
            e.strip() for e in env.get(EnvVar.OVERPASS_ENDPOINTS, "").split(",") if e.strip()
        ] or list(DEFAULT_OVERPASS_ENDPOINTS)

        client = OverpassClient(
            endpoints=endpoints,
            timeout_ms=_env_number(env, EnvVar.OVERPASS_TIMEOUT_MS, DEFAULT_TIMEOUT_MS),
            max_retries=int(_env_number(env, EnvVar.OVERPASS_MAX_RETRIES, DEFAULT_MAX_RETRIES)),
            retry_base_ms=_env_number(env, EnvVar.OVERPASS_RETRY_BASE_MS, DEFAULT_RETRY_BASE_MS),
            concurrency=int(_env_number(env, EnvVar.OVERPASS_CONCURRENCY, DEFAULT_CONCURRENCY)),
            user_agent=env.get(EnvVar.OVERPASS_USER_AGENT) or DEFAULT_USER_AGENT,
        )
        return cls(
            client=client,
            tile_cache=TTLCache(
                TILE_CACHE_TTL_MS,
                TILE_CACHE_MAX_ENTRIES,
                persist_file=env.get(EnvVar.TILE_CACHE_FILE) or None,
            ),
            request_cache=TTLCache(
                REQUEST_CACHE_TTL_MS,
                REQUEST_CACHE_MAX_ENTRIES,
                persist_file=env.get(EnvVar.REQUEST_CACHE_FILE) or None,
            ),
            max_area_km2=_env_number(env, EnvVar.OVERPASS_MAX_AREA_KM2, DEFAULT_MAX_AREA_KM2),
            tile_size_deg=_env_number(env, EnvVar.OVERPASS_TILE_DEG, DEFAULT_TILE_SIZE_DEG),
        )

    # ------------------------------------------------------------------
    # Discovery (sync, no I/O)
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Client configuration and cache occupancy."""
        return {
            "endpoints": list(self.client.endpoints),
            "concurrency": self.client.concurrency,
            "max_retries": self.client.max_retries,
            "timeout_ms": self.client.timeout_ms,
            "max_area_km2": self.max_area_km2,
            "tile_size_deg": self.tile_size_deg,
            "tile_cache_entries": len(self.tile_cache),
            "request_cache_entries": len(self.request_cache),
            "inflight_requests": self.client.inflight_count,
        }

    def plan(self, request: ModelRequest) -> TilePlan:
        """Tiling decision for a request, without fetching anything."""
        return decide_tiles(self.resolve_area(request), self.max_area_km2, self.tile_size_deg)

    def resolve_area(self, request: ModelRequest) -> AreaOfInterest:
        """Area for a request; routes are buffered into a polygon."""
        if request.shape is None and request.route is not None:
            merged = union_area(buffer_line_m(request.route, request.route_buffer_m))
            if merged.is_empty:
                raise ValueError(ErrorMessages.INVALID_ROUTE)
            if isinstance(merged, MultiPolygon):
                merged = max(merged.geoms, key=lambda g: g.area)
            return AreaOfInterest(polygon=[[x, y] for x, y in merged.exterior.coords])
        return request.area_of_interest()

    # ------------------------------------------------------------------
    # Build (async)
    # ------------------------------------------------------------------

    async def build_model(self, request: ModelRequest) -> ModelResult:
        """Fetch, convert, and merge features for a request's area."""
        start = time.perf_counter()
        area = self.resolve_area(request)
        options = request.options

        request_key = self._request_key(request, area)
        if not request.invalidate:
            cached = self.request_cache.get(request_key)
            if cached is not None:
                logger.info("Request cache hit")
                return ModelResult(
                    features=cached["features"],
                    geojson=cached["geojson"],
                    meta={**cached["meta"], "cached": True},
                )

        plan = decide_tiles(area, self.max_area_km2, self.tile_size_deg)
        converter = GeometryConverter(
            self.widths.with_overrides(options.custom_road_widths, options.custom_waterway_widths)
        )
        area_shape = self._area_shape(area)
        clip = area_shape if options.clip_to_shape else None
        # Tiled polygon requests lose the upstream polygon filter; re-apply it locally
        region = (
            area_shape
            if clip is None and plan.tiled and area.polygon is not None
            else None
        )

        tile_outcomes = await asyncio.gather(
            *(
                self._tile_result(tile, plan, area, request, converter, clip, region)
                for tile in plan.tiles
            )
        )

        features, overlay = self._merge([conversion for conversion, _ in tile_outcomes])
        upstream = [meta for _, meta in tile_outcomes if not meta.get("cached")]
        meta = {
            "tiles": len(plan.tiles),
            "tiled": plan.tiled,
            "use_polygon_filter": plan.use_polygon_filter,
            "area_km2": round(plan.area_km2, 3),
            "tile_cache_hits": len(plan.tiles) - len(upstream),
            "upstream": upstream,
            "attempts": sum(m.get("attempts", 0) for m in upstream),
            "feature_count": len(features),
            "overlay_count": len(overlay),
            "duration_ms": round((time.perf_counter() - start) * 1000.0, 1),
            "cached": False,
        }
        geojson = {"type": "FeatureCollection", "features": overlay}

        self.request_cache.set(
            request_key, {"features": features, "geojson": geojson, "meta": meta}
        )
        logger.info(
            f"Built model: {len(features)} features from {len(plan.tiles)} tile(s) "
            f"in {meta['duration_ms']:.0f} ms"
        )
        return ModelResult(features=features, geojson=geojson, meta=meta)

    async def aclose(self) -> None:
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _tile_result(
        self,
        tile: BBox,
        plan: TilePlan,
        area: AreaOfInterest,
        request: ModelRequest,
        converter: GeometryConverter,
        clip: BaseGeometry | None,
        region: BaseGeometry | None,
    ) -> tuple[ConversionResult, dict[str, Any]]:
        """Conversion result for one tile, from cache or upstream."""
        options = request.options
        query = build_overpass_query(
            options.elements,
            bbox=tile,
            polygon=area.polygon if plan.use_polygon_filter else None,
            options=options,
        )
        key = self._tile_key(query, request, area, clip is not None, region is not None)

        if not request.invalidate:
            cached = self.tile_cache.get(key)
            if cached is not None:
                logger.debug(f"Tile cache hit for {tile}")
                return ConversionResult.from_dict(cached), {"cached": True}

        fetched = await self.client.fetch(query)
        conversion = converter.convert(
            fetched.data.get("elements") or [],
            scale=request.scale,
            base_height=request.base_height,
            building_multiplier=request.building_multiplier,
            options=options,
            clip_polygon=clip,
            region_polygon=region,
        )
        self.tile_cache.set(key, conversion.to_dict())
        return conversion, {"cached": False, **fetched.meta.to_dict()}

    @staticmethod
    def _area_shape(area: AreaOfInterest) -> BaseGeometry:
        if area.polygon is not None:
            return union_area(ring_to_polygon(area.polygon))
        return box(*area.bounds)

    @staticmethod
    def _merge(
        conversions: list[ConversionResult],
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Merge tile outputs by feature identity; the first tile to report a feature wins."""
        features: dict[str, dict[str, Any]] = {}
        overlay: dict[str, dict[str, Any]] = {}
        for conversion in conversions:
            for feature in conversion.features:
                features.setdefault(_identity(feature.get("type"), feature), feature)
            for geo_feature in conversion.geojson.get("features", []):
                props = geo_feature.get("properties") or {}
                overlay.setdefault(_identity(props.get("featureType"), props), geo_feature)
        return list(features.values()), list(overlay.values())

    @staticmethod
    def _dimension_params(request: ModelRequest) -> dict[str, Any]:
        return {
            "scale": request.scale,
            "base_height": request.base_height,
            "building_multiplier": request.building_multiplier,
            "options": request.options.model_dump(mode="json"),
        }

    def _tile_key(
        self,
        query: str,
        request: ModelRequest,
        area: AreaOfInterest,
        clipped: bool,
        filtered: bool,
    ) -> str:
        return json.dumps(
            {
                "query": query,
                **self._dimension_params(request),
                "area": area.identity() if clipped or filtered else None,
                "clipped": clipped,
                "filtered": filtered,
            },
            sort_keys=True,
        )

    def _request_key(self, request: ModelRequest, area: AreaOfInterest) -> str:
        return json.dumps(
            {
                "area": area.identity(),
                **self._dimension_params(request),
                "max_area_km2": self.max_area_km2,
                "tile_size_deg": self.tile_size_deg,
            },
            sort_keys=True,
        )


def _identity(feature_type: Any, record: Mapping[str, Any]) -> str:
    """
    Merge key for a feature or overlay properties; random when no id is present.

    Ways and relations number independently, so the OSM element type is part
    of the key.
    """
    if record.get("id") is None:
        return uuid.uuid4().hex
    osm_type = record.get("osm_type", "way")
    return f"{feature_type}:{osm_type}/{record['id']}:{record.get('part', 0)}"
