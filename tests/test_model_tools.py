"""Tests for chuk_mcp_osm.tools.model.api module.

Covers osm_build_model argument handling, JSON/text output modes, and the
mapping of upstream and validation failures to error responses.
"""

import json

import pytest
from unittest.mock import MagicMock

from chuk_mcp_osm.core.retry import UpstreamError
from chuk_mcp_osm.models.requests import ModelRequest
from chuk_mcp_osm.tools.model.api import error_response, register_model_tools


@pytest.fixture
def model_tools(mock_manager):
    """Register model tools and return a dict mapping name -> coroutine function."""
    tools = {}
    mcp = MagicMock()

    def capture_tool(**kwargs):
        def decorator(fn):
            tools[fn.__name__] = fn
            return fn

        return decorator

    mcp.tool = capture_tool
    register_model_tools(mcp, mock_manager)
    return tools


@pytest.fixture
def build(model_tools):
    return model_tools["osm_build_model"]


class TestRegistration:
    def test_registers_build_tool(self, model_tools):
        assert list(model_tools) == ["osm_build_model"]


class TestBuildModelJson:
    @pytest.mark.asyncio
    async def test_success(self, build, mock_manager, small_bbox):
        data = json.loads(await build(bbox=small_bbox))
        assert "error" not in data
        assert len(data["features"]) == 1
        assert data["geojson"]["type"] == "FeatureCollection"
        assert data["meta"]["tiles"] == 1
        assert data["message"] == "Built 1 features (1 overlay) from 1 tile(s)"

    @pytest.mark.asyncio
    async def test_request_passed_to_manager(self, build, mock_manager, small_bbox):
        await build(
            scale=250.0,
            bbox=small_bbox,
            elements=["roads", "buildings"],
            min_building_height_mm=2000,
            custom_road_widths={"primary": 12},
            clip_to_shape=True,
            invalidate=True,
        )
        request = mock_manager.build_model.await_args.args[0]
        assert isinstance(request, ModelRequest)
        assert request.scale == 250.0
        assert request.bbox == small_bbox
        assert request.invalidate is True
        assert request.options.elements == ("buildings", "roads")
        assert request.options.min_building_height_mm == 2000
        assert request.options.custom_road_widths == {"primary": 12.0}
        assert request.options.clip_to_shape is True

    @pytest.mark.asyncio
    async def test_default_elements_are_all(self, build, mock_manager, small_bbox):
        await build(bbox=small_bbox)
        request = mock_manager.build_model.await_args.args[0]
        assert request.options.elements == ("buildings", "roads", "water", "green")

    @pytest.mark.asyncio
    async def test_cached_message(self, build, mock_manager, small_bbox):
        result = mock_manager.build_model.return_value
        result.meta = {**result.meta, "cached": True}
        data = json.loads(await build(bbox=small_bbox))
        assert data["message"] == "Returned cached model with 1 features"
        assert data["meta"]["cached"] is True


class TestBuildModelText:
    @pytest.mark.asyncio
    async def test_text_summary(self, build, small_bbox):
        text = await build(bbox=small_bbox, output_mode="text")
        assert "Built 1 features" in text
        assert "building: 1" in text
        assert "Tiles: 1 (cache hits: 0)" in text
        assert "Area: 0.9 km2" in text


class TestBuildModelErrors:
    @pytest.mark.asyncio
    async def test_missing_area_is_validation_error(self, build, mock_manager):
        data = json.loads(await build())
        assert data["status"] == 400
        mock_manager.build_model.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_bbox_is_validation_error(self, build):
        data = json.loads(await build(bbox=[10.0, 0.0, 5.0, 1.0]))
        assert data["status"] == 400
        assert "error" in data

    @pytest.mark.asyncio
    async def test_unknown_element_is_validation_error(self, build, small_bbox):
        data = json.loads(await build(bbox=small_bbox, elements=["trees"]))
        assert data["status"] == 400
        assert "trees" in data["error"]

    @pytest.mark.asyncio
    async def test_invalid_output_mode(self, build, mock_manager, small_bbox):
        data = json.loads(await build(bbox=small_bbox, output_mode="xml"))
        assert data["status"] == 400
        assert "xml" in data["error"]
        mock_manager.build_model.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,fragment",
        [(429, "rate limited"), (504, "timed out"), (503, "unavailable")],
    )
    async def test_upstream_status_mapping(self, build, mock_manager, small_bbox, status, fragment):
        mock_manager.build_model.side_effect = UpstreamError("upstream said no", status=status)
        data = json.loads(await build(bbox=small_bbox))
        assert data["status"] == status
        assert fragment in data["error"]

    @pytest.mark.asyncio
    async def test_network_failure_maps_to_502(self, build, mock_manager, small_bbox):
        mock_manager.build_model.side_effect = UpstreamError("connection reset")
        data = json.loads(await build(bbox=small_bbox))
        assert data["status"] == 502
        assert "connection reset" in data["error"]

    @pytest.mark.asyncio
    async def test_error_text_mode(self, build, mock_manager, small_bbox):
        mock_manager.build_model.side_effect = UpstreamError("busy", status=429)
        text = await build(bbox=small_bbox, output_mode="text")
        assert text.startswith("Error (429):")

    @pytest.mark.asyncio
    async def test_unexpected_error_has_no_status(self, build, mock_manager, small_bbox):
        mock_manager.build_model.side_effect = RuntimeError("boom")
        data = json.loads(await build(bbox=small_bbox))
        assert data == {"error": "boom", "status": None}


class TestErrorResponse:
    def test_value_error(self):
        response = error_response(ValueError("bad"))
        assert response.status == 400
        assert response.error == "bad"

    def test_upstream_error_keeps_status(self):
        assert error_response(UpstreamError("x", status=400)).status == 400

    def test_other_error(self):
        assert error_response(KeyError("k")).status is None
