"""Tests for chuk_mcp_osm.tools.discovery.api module.

Tests both discovery tools: osm_status and osm_capabilities. Covers
JSON/text output modes, error handling, and response structure.
"""

import json

import pytest
from unittest.mock import MagicMock

from chuk_mcp_osm.constants import (
    ALL_ELEMENT_TYPES,
    ALL_FEATURE_TYPES,
    OUTPUT_MODES,
    TOOL_NAMES,
    ServerConfig,
)
from chuk_mcp_osm.tools.discovery.api import register_discovery_tools


# ── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def discovery_tools_with_manager(mock_manager):
    """Return both the tools dict and the mock manager for tests that need to modify it."""
    tools = {}
    mcp = MagicMock()

    def capture_tool(**kwargs):
        def decorator(fn):
            tools[fn.__name__] = fn
            return fn

        return decorator

    mcp.tool = capture_tool
    register_discovery_tools(mcp, mock_manager)
    return tools, mock_manager


@pytest.fixture
def discovery_tools(discovery_tools_with_manager):
    tools, _ = discovery_tools_with_manager
    return tools


# ── Registration tests ─────────────────────────────────────────────


class TestRegistration:
    def test_registers_two_tools(self, discovery_tools):
        assert sorted(discovery_tools) == ["osm_capabilities", "osm_status"]

    def test_all_tools_are_async(self, discovery_tools):
        import asyncio

        for fn in discovery_tools.values():
            assert asyncio.iscoroutinefunction(fn)


# ── osm_status ─────────────────────────────────────────────────────


class TestOsmStatus:
    @pytest.mark.asyncio
    async def test_json_structure(self, discovery_tools):
        data = json.loads(await discovery_tools["osm_status"]())
        assert data["server"] == ServerConfig.NAME
        assert data["version"] == ServerConfig.VERSION
        assert len(data["endpoints"]) == 2
        assert data["concurrency"] == 1
        assert data["max_retries"] == 2
        assert data["tile_cache_entries"] == 3
        assert data["request_cache_entries"] == 1
        assert "2 endpoints" in data["message"]

    @pytest.mark.asyncio
    async def test_text_mode(self, discovery_tools):
        text = await discovery_tools["osm_status"](output_mode="text")
        assert text.startswith(f"{ServerConfig.NAME} v{ServerConfig.VERSION}")
        assert "https://a.example/api, https://b.example/api" in text
        assert "Cache: 3 tile(s), 1 request(s)" in text
        assert "timeout: 30000 ms" in text

    @pytest.mark.asyncio
    async def test_error_returns_error_response(self, discovery_tools_with_manager):
        tools, manager = discovery_tools_with_manager
        manager.status.side_effect = RuntimeError("cache unavailable")
        data = json.loads(await tools["osm_status"]())
        assert data["error"] == "cache unavailable"

    @pytest.mark.asyncio
    async def test_error_text_mode(self, discovery_tools_with_manager):
        tools, manager = discovery_tools_with_manager
        manager.status.side_effect = RuntimeError("cache unavailable")
        text = await tools["osm_status"](output_mode="text")
        assert text == "Error: cache unavailable"


# ── osm_capabilities ───────────────────────────────────────────────


class TestOsmCapabilities:
    @pytest.mark.asyncio
    async def test_json_structure(self, discovery_tools):
        data = json.loads(await discovery_tools["osm_capabilities"]())
        assert data["server"] == ServerConfig.NAME
        assert data["element_types"] == ALL_ELEMENT_TYPES
        assert data["feature_types"] == ALL_FEATURE_TYPES
        assert data["output_formats"] == OUTPUT_MODES
        assert data["tool_count"] == len(TOOL_NAMES)
        assert data["road_widths"]["primary"] == 15.0
        assert data["road_widths"]["residential"] == 6.0
        assert data["llm_guidance"]

    @pytest.mark.asyncio
    async def test_widths_follow_manager_table(self, discovery_tools_with_manager):
        tools, manager = discovery_tools_with_manager
        manager.widths = manager.widths.with_overrides(road={"primary": 22})
        data = json.loads(await tools["osm_capabilities"]())
        assert data["road_widths"]["primary"] == 22.0

    @pytest.mark.asyncio
    async def test_text_mode(self, discovery_tools):
        text = await discovery_tools["osm_capabilities"](output_mode="text")
        assert f"Tools: {len(TOOL_NAMES)}" in text
        assert "primary=15m" in text
        assert "Element types: buildings, roads, water, green" in text

    @pytest.mark.asyncio
    async def test_error_returns_error_response(self, discovery_tools_with_manager):
        tools, manager = discovery_tools_with_manager
        manager.widths = MagicMock()
        manager.widths.as_dict.side_effect = RuntimeError("no widths")
        data = json.loads(await tools["osm_capabilities"]())
        assert data["error"] == "no widths"
