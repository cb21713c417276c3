"""
Constants for chuk-mcp-osm server.

All magic strings, upstream defaults, width tables, and configuration values live here.
"""


class ServerConfig:
    NAME = "chuk-mcp-osm"
    VERSION = "0.1.0"
    DESCRIPTION = "OpenStreetMap Feature Acquisition & 3D Model Conversion MCP Server"
    HTTP_HOST = "localhost"
    HTTP_PORT = 8004


class EnvVar:
    OVERPASS_ENDPOINTS = "OVERPASS_ENDPOINTS"
    OVERPASS_TIMEOUT_MS = "OVERPASS_TIMEOUT_MS"
    OVERPASS_MAX_RETRIES = "OVERPASS_MAX_RETRIES"
    OVERPASS_RETRY_BASE_MS = "OVERPASS_RETRY_BASE_MS"
    OVERPASS_MAX_AREA_KM2 = "OVERPASS_MAX_AREA_KM2"
    OVERPASS_TILE_DEG = "OVERPASS_TILE_DEG"
    OVERPASS_CONCURRENCY = "OVERPASS_CONCURRENCY"
    OVERPASS_USER_AGENT = "OVERPASS_USER_AGENT"
    TILE_CACHE_FILE = "OSM_TILE_CACHE_FILE"
    REQUEST_CACHE_FILE = "OSM_REQUEST_CACHE_FILE"
    MCP_STDIO = "MCP_STDIO"


class ElementType:
    BUILDINGS = "buildings"
    ROADS = "roads"
    WATER = "water"
    GREEN = "green"


# Canonical order used when rendering queries and cache keys
ALL_ELEMENT_TYPES = [
    ElementType.BUILDINGS,
    ElementType.ROADS,
    ElementType.WATER,
    ElementType.GREEN,
]


class FeatureType:
    BUILDING = "building"
    ROAD = "road"
    WATER = "water"
    GREEN = "green"
    SAND = "sand"
    PIER = "pier"
    OTHER = "other"


ALL_FEATURE_TYPES = [
    FeatureType.BUILDING,
    FeatureType.ROAD,
    FeatureType.WATER,
    FeatureType.GREEN,
    FeatureType.SAND,
    FeatureType.PIER,
    FeatureType.OTHER,
]


class BuildingSubtype:
    RESIDENTIAL = "building_residential"
    COMMERCIAL = "building_commercial"
    INDUSTRIAL = "building_industrial"
    GENERIC = "building_generic"


# Building classification tag values
RESIDENTIAL_BUILDING_VALUES = frozenset({
    "residential", "house", "apartments", "detached", "semidetached_house",
    "terrace", "bungalow", "dormitory", "cabin", "farm",
})
COMMERCIAL_BUILDING_VALUES = frozenset({
    "commercial", "retail", "office", "supermarket", "kiosk", "hotel", "mall",
})
INDUSTRIAL_BUILDING_VALUES = frozenset({
    "industrial", "warehouse", "factory", "manufacture", "hangar", "storage_tank",
})

# Highway values treated as footpaths (excluded when footpaths are disabled)
FOOTPATH_HIGHWAY_TYPES = [
    "footway", "path", "pedestrian", "steps", "cycleway", "bridleway", "corridor",
]

# water=* values that mark an ocean/sea area
OCEAN_WATER_VALUES = ["sea", "ocean"]

BEACH_NATURAL_VALUES = frozenset({"beach", "sand"})

# Upstream (Overpass) defaults
DEFAULT_OVERPASS_ENDPOINTS = [
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
]
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_BASE_MS = 500
DEFAULT_CONCURRENCY = 1
DEFAULT_USER_AGENT = "chuk-mcp-osm/0.1 (+https://github.com/chrishayuk)"
QUERY_TIMEOUT_S = 25
RETRYABLE_STATUSES = frozenset({429, 503, 504})
RETRY_JITTER_MS = 100.0
TIMEOUT_STATUS = 504
PROVIDER_FAILURE_STATUS = 503

# Tiling defaults
DEFAULT_MAX_AREA_KM2 = 25.0
DEFAULT_TILE_SIZE_DEG = 0.05
TILE_EPSILON = 1e-9

# Cache budgets
TILE_CACHE_TTL_MS = 6 * 60 * 60 * 1000  # 6 hours
TILE_CACHE_MAX_ENTRIES = 500
REQUEST_CACHE_TTL_MS = 60 * 60 * 1000  # 1 hour
REQUEST_CACHE_MAX_ENTRIES = 100

# Geodesy
EARTH_RADIUS_M = 6378137.0

# Model defaults
DEFAULT_SCALE = 500.0
DEFAULT_BASE_HEIGHT = 0.0
DEFAULT_BUILDING_MULTIPLIER = 1.0
DEFAULT_BUILDING_HEIGHT_M = 10.0
METERS_PER_LEVEL = 3.0
ROAD_HEIGHT_OFFSET_M = 0.1
PIER_HALF_WIDTH_M = 3.0
DEFAULT_LAYER_HEIGHT_MM = 100.0
DEFAULT_ROUTE_BUFFER_M = 75.0

# Width tables (metres)
DEFAULT_ROAD_WIDTHS: dict[str, float] = {
    "motorway": 25.0,
    "trunk": 20.0,
    "primary": 15.0,
    "secondary": 12.0,
    "tertiary": 10.0,
    "residential": 6.0,
    "service": 5.0,
    "footway": 2.5,
    "path": 2.5,
}
DEFAULT_WATERWAY_WIDTHS: dict[str, float] = {
    "river": 20.0,
    "canal": 12.0,
    "stream": 4.0,
    "ditch": 2.0,
    "drain": 2.0,
}
ROAD_FALLBACK_KEY = "residential"
WATERWAY_FALLBACK_KEY = "stream"

OUTPUT_MODES = ["json", "text"]


class ErrorMessages:
    INVALID_BBOX = "Invalid bounding box: must be [west, south, east, north]"
    INVALID_BBOX_VALUES = "Invalid bounding box values: west ({}) must be <= east ({})"
    INVALID_BBOX_LAT = "Invalid bounding box values: south ({}) must be <= north ({})"
    BBOX_OUT_OF_RANGE = "Bounding box {} is outside [-180, -90, 180, 90]"
    INVALID_POLYGON = "Invalid polygon: need at least 4 finite [lon, lat] points"
    INVALID_ROUTE = "Invalid route: need at least 2 finite [lon, lat] points"
    INVALID_ROUTE_BUFFER = "route_buffer_m must be > 0, got {}"
    INVALID_BODY = "Request body must be a JSON object"
    MISSING_AREA = "No area given: supply bbox, shape, or route"
    UNKNOWN_ELEMENT = "Unknown element type '{}'. Available: {}"
    INVALID_OUTPUT_MODE = "Invalid output mode '{}'. Available: {}"
    INVALID_WIDTH = "Width for '{}' must be > 0, got {}"
    UPSTREAM_HTTP = "Overpass returned HTTP {}"
    UPSTREAM_TIMEOUT = "Overpass request timed out after {} ms"
    UPSTREAM_BAD_BODY = "Overpass returned a non-JSON response"
    UPSTREAM_NETWORK = "Overpass network error: {}"
    RATE_LIMITED = "Overpass rate limited the request (HTTP 429): {}"
    TIMEOUT = "Overpass timed out (HTTP 504): {}"
    PROVIDER_UNAVAILABLE = "Overpass provider unavailable: {}"


class SuccessMessages:
    MODEL_BUILT = "Built {} features ({} overlay) from {} tile(s)"
    MODEL_CACHED = "Returned cached model with {} features"
    STATUS = "OSM MCP Server v{} ({} endpoints, concurrency {})"


TOOL_NAMES = ["osm_build_model", "osm_status", "osm_capabilities"]
DEFAULT_UPSTREAM_ERROR_STATUS = 502
VALIDATION_ERROR_STATUS = 400
RATE_LIMITED_STATUS = 429

LLM_GUIDANCE = (
    "Call osm_build_model with a bbox [west, south, east, north], a GeoJSON polygon "
    "shape, or a route line. Large areas are split into tiles automatically; keep "
    "requests small where possible and reuse identical parameters to hit the cache. "
    "Features carry local [lon*scale, base, lat*scale] rings and absolute heights; "
    "the geojson overlay keeps geographic coordinates."
)
