"""Shared test fixtures for chuk-mcp-osm."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from chuk_mcp_osm.core.cache import TTLCache
from chuk_mcp_osm.core.model_manager import ModelManager, ModelResult
from chuk_mcp_osm.core.overpass_client import FetchMeta, FetchResult, OverpassClient
from chuk_mcp_osm.core.widths import WidthTable
from chuk_mcp_osm.models.requests import GeneratorOptions


class FakeClock:
    """Manually advanced clock (epoch seconds) for cache tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def options():
    """Default generator options."""
    return GeneratorOptions()


@pytest.fixture
def small_bbox():
    """Roughly 0.6 km2 around central London."""
    return [-0.130, 51.500, -0.120, 51.508]


@pytest.fixture
def square_ring():
    """Closed ~1.1 km square ring near the equator."""
    return [[0.0, 0.0], [0.01, 0.0], [0.01, 0.01], [0.0, 0.01], [0.0, 0.0]]


@pytest.fixture
def building_way():
    """Overpass way element for a closed two-level house."""
    return {
        "type": "way",
        "id": 1001,
        "tags": {"building": "house", "building:levels": "2", "name": "Test House"},
        "geometry": [
            {"lat": 51.5010, "lon": -0.1250},
            {"lat": 51.5010, "lon": -0.1248},
            {"lat": 51.5012, "lon": -0.1248},
            {"lat": 51.5012, "lon": -0.1250},
            {"lat": 51.5010, "lon": -0.1250},
        ],
    }


@pytest.fixture
def road_way():
    """Overpass way element for an open residential street."""
    return {
        "type": "way",
        "id": 2001,
        "tags": {"highway": "residential", "name": "Test Street"},
        "geometry": [
            {"lat": 51.5020, "lon": -0.1260},
            {"lat": 51.5020, "lon": -0.1240},
        ],
    }


@pytest.fixture
def overpass_payload(building_way, road_way):
    """Decoded Overpass JSON response."""
    return {"version": 0.6, "elements": [building_way, road_way]}


@pytest.fixture
def mock_transport_client():
    """Factory building an OverpassClient whose HTTP layer is an httpx.MockTransport."""

    def factory(handler, **kwargs):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("endpoints", ["https://a.example/api", "https://b.example/api"])
        kwargs.setdefault("retry_base_ms", 1)
        return OverpassClient(http_client=http_client, **kwargs)

    return factory


@pytest.fixture
def fake_client(overpass_payload):
    """OverpassClient stand-in whose fetch returns a fixed payload."""
    client = MagicMock(spec=OverpassClient)
    client.endpoints = ["https://a.example/api"]
    client.concurrency = 1
    client.max_retries = 2
    client.timeout_ms = 30_000
    client.inflight_count = 0
    client.fetch = AsyncMock(
        return_value=FetchResult(
            data=overpass_payload,
            meta=FetchMeta(endpoint_used="https://a.example/api", attempts=1, duration_ms=5.0),
        )
    )
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def manager(fake_client, clock):
    """ModelManager over a fake client and clock-driven caches."""
    return ModelManager(
        client=fake_client,
        tile_cache=TTLCache(60_000, 10, clock=clock),
        request_cache=TTLCache(60_000, 10, clock=clock),
    )


@pytest.fixture
def mock_manager():
    """ModelManager double for tool tests."""
    manager = MagicMock(spec=ModelManager)
    manager.build_model = AsyncMock(
        return_value=ModelResult(
            features=[
                {
                    "id": 1001,
                    "part": 0,
                    "type": "building",
                    "geometry": [[0.0, 0.0, 0.0]],
                    "height": 6.0,
                    "subtype": "building_residential",
                }
            ],
            geojson={"type": "FeatureCollection", "features": [{"type": "Feature"}]},
            meta={"tiles": 1, "tile_cache_hits": 0, "area_km2": 0.9, "cached": False},
        )
    )
    manager.status = MagicMock(
        return_value={
            "endpoints": ["https://a.example/api", "https://b.example/api"],
            "concurrency": 1,
            "max_retries": 2,
            "timeout_ms": 30_000,
            "max_area_km2": 25.0,
            "tile_size_deg": 0.05,
            "tile_cache_entries": 3,
            "request_cache_entries": 1,
            "inflight_requests": 0,
        }
    )
    manager.widths = WidthTable()
    return manager


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer."""
    mcp = MagicMock()
    mcp.tool = MagicMock(return_value=lambda fn: fn)
    return mcp

