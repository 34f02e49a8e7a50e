"""
Unit tests for station placement along a polyline.
"""

import pytest

from conftest import make_station
from metroscan.core.models import LayoutPoint
from metroscan.layout.station_placer import place_stations, point_along_polyline

LINE = [LayoutPoint(0, 0), LayoutPoint(100, 0)]


class TestPointAlongPolyline:
    def test_interpolates(self):
        point = point_along_polyline([LayoutPoint(0, 0), LayoutPoint(0, 10), LayoutPoint(10, 10)], 15)
        assert (point.x, point.y) == (5, 10)

    def test_past_end_returns_last_point(self):
        point = point_along_polyline(LINE, 500)
        assert (point.x, point.y) == (100, 0)


class TestPlaceStations:
    def test_single_station_at_midpoint(self):
        placed = place_stations([make_station("tech", "API", "/api")], LINE, 100)
        assert len(placed) == 1
        assert placed[0].x == pytest.approx(50)
        assert placed[0].label_side == "above"

    def test_padding_and_alternating_labels(self):
        stations = [make_station("tech", "API", f"/api/{i}") for i in range(3)]
        placed = place_stations(stations, LINE, 100)

        assert [p.x for p in placed] == pytest.approx([6, 50, 94])
        assert [p.label_side for p in placed] == ["above", "below", "above"]
        assert [p.id for p in placed] == [s.id for s in stations]

    def test_empty_inputs(self):
        assert place_stations([], LINE, 100) == []
        assert place_stations([make_station("tech", "API", "/api")], [], 0) == []
