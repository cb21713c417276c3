"""Tests for chuk_mcp_osm.core.polygon module."""

import pytest

from chuk_mcp_osm.core.polygon import (
    bbox_area_km2,
    bbox_to_ring,
    parse_polygon,
    polygon_area_km2,
    polygon_to_bbox,
    ring_area_m2,
)


class TestRingArea:
    def test_one_hundredth_degree_square_at_equator(self, square_ring):
        # 0.01 deg of arc at R=6378137 is ~1113.2 m
        area = ring_area_m2(square_ring)
        assert area == pytest.approx(1113.2 * 1113.2, rel=0.01)

    def test_orientation_does_not_matter(self, square_ring):
        assert ring_area_m2(square_ring) == pytest.approx(ring_area_m2(square_ring[::-1]))

    def test_fewer_than_three_points_is_zero(self):
        assert ring_area_m2([[0.0, 0.0], [1.0, 1.0]]) == 0.0

    def test_shrinks_with_latitude(self):
        equator = bbox_area_km2((0.0, 0.0, 0.1, 0.1))
        north = bbox_area_km2((0.0, 60.0, 0.1, 60.1))
        assert north == pytest.approx(equator * 0.5, rel=0.01)

    def test_zero_area_box(self):
        assert bbox_area_km2((1.0, 1.0, 1.0, 1.0)) == 0.0

    def test_km2_conversion(self, square_ring):
        assert polygon_area_km2(square_ring) == pytest.approx(ring_area_m2(square_ring) / 1e6)


class TestBBoxHelpers:
    def test_bbox_to_ring_is_closed(self):
        ring = bbox_to_ring((1.0, 2.0, 3.0, 4.0))
        assert ring[0] == ring[-1]
        assert len(ring) == 5

    def test_polygon_to_bbox(self):
        ring = [[1.0, 5.0], [3.0, 2.0], [2.0, 7.0], [1.0, 5.0]]
        assert polygon_to_bbox(ring) == (1.0, 2.0, 3.0, 7.0)


class TestParsePolygon:
    def test_geojson_polygon(self, square_ring):
        ring = parse_polygon({"type": "Polygon", "coordinates": [square_ring]})
        assert ring == square_ring

    def test_open_ring_is_closed(self):
        ring = parse_polygon([[0, 0], [1, 0], [1, 1], [0, 1]])
        assert ring[0] == ring[-1] == [0.0, 0.0]
        assert len(ring) == 5

    def test_too_few_points(self):
        with pytest.raises(ValueError, match="Invalid polygon"):
            parse_polygon([[0, 0], [1, 0], [0, 0]])

    def test_non_finite_point(self):
        with pytest.raises(ValueError):
            parse_polygon([[0, 0], [1, 0], [float("nan"), 1], [0, 0]])

    def test_wrong_geojson_type(self):
        with pytest.raises(ValueError):
            parse_polygon({"type": "LineString", "coordinates": [[0, 0], [1, 1]]})

    def test_booleans_rejected(self):
        with pytest.raises(ValueError):
            parse_polygon([[True, 0], [1, 0], [1, 1], [0, 0]])
