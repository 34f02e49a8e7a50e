"""
Unit tests for the metro layout.
"""

import pytest

from conftest import make_station
from metroscan.core.models import LayoutPoint, LayoutSegment, Line, ScanResult, Transfer
from metroscan.layout import compute_layout
from metroscan.layout.metro_layout import closest_point_on_polyline, place_transfers
from metroscan.layout.station_placer import PlacedStation
from metroscan.layout.transfer_detector import MAX_TRANSFERS, LayoutLine


@pytest.fixture
def scan_result() -> ScanResult:
    return ScanResult(
        url="https://acme.com",
        title="Acme",
        lines=[
            Line(id="identity", name="Identity", stations=[
                make_station("identity", "Business Name", "Acme"),
                make_station("identity", "Location", "Chicago, IL"),
            ]),
            Line(id="contacts", name="Contacts", stations=[
                make_station("contacts", "Email", "info@acme.com"),
                make_station("contacts", "Phone", "555-1234"),
                make_station("contacts", "Address", "1 Main St, Chicago, IL"),
            ]),
            Line(id="tech", name="Tech", stations=[
                make_station("tech", "API", "https://acme.com/api/config"),
            ]),
        ],
    )


def straight_line(line_id: str, start: tuple, end: tuple, stations=None) -> LayoutLine:
    a, b = LayoutPoint(*start), LayoutPoint(*end)
    return LayoutLine(
        line_id=line_id,
        path="",
        segments=[LayoutSegment(from_=a, to=b)],
        stations=stations or [],
        polyline=[a, b],
    )


class TestComputeLayout:
    """Full layout from a scan result."""

    def test_every_line_and_station_placed(self, scan_result):
        layout = compute_layout(scan_result)

        assert [line.line_id for line in layout.lines] == ["identity", "contacts", "tech"]
        for laid_out, line in zip(layout.lines, scan_result.lines):
            assert [p.id for p in laid_out.stations] == [s.id for s in line.stations]
            assert laid_out.path.startswith("M ")

    def test_canvas_size(self, scan_result):
        layout = compute_layout(scan_result)
        assert (layout.width, layout.height) == (1400, 900)

    def test_transfers_bounded(self, scan_result):
        layout = compute_layout(scan_result)
        assert len(layout.transfers) <= MAX_TRANSFERS

    def test_deterministic(self, scan_result):
        first = compute_layout(scan_result)
        second = compute_layout(scan_result)
        assert [line.path for line in first.lines] == [line.path for line in second.lines]
        assert [t.transfer for t in first.transfers] == [t.transfer for t in second.transfers]

    def test_empty_scan(self):
        layout = compute_layout(ScanResult(url="https://acme.com", title="Acme", lines=[]))
        assert layout.lines == []
        assert layout.transfers == []


class TestClosestPointOnPolyline:
    def test_projection(self):
        point = closest_point_on_polyline(LayoutPoint(50, 30), [LayoutPoint(0, 0), LayoutPoint(100, 0)])
        assert (point.x, point.y) == (50, 0)

    def test_clamped_to_segment(self):
        point = closest_point_on_polyline(LayoutPoint(-40, 10), [LayoutPoint(0, 0), LayoutPoint(100, 0)])
        assert (point.x, point.y) == (0, 0)


class TestPlaceTransfers:
    """Transfer positions."""

    def test_real_transfer_at_station_midpoint(self):
        a = PlacedStation(make_station("identity", "Email", "x@y.com"), 0, 0, "above")
        b = PlacedStation(make_station("contacts", "Email", "x@y.com"), 100, 50, "above")
        lines = [
            straight_line("identity", (0, 0), (100, 0), [a]),
            straight_line("contacts", (100, 0), (100, 100), [b]),
        ]
        transfer = Transfer("transfer-1", (a.id, b.id), ("identity", "contacts"), "Exact match")

        placed = place_transfers([transfer], lines)
        assert (placed[0].x, placed[0].y) == (50, 25)

    def test_virtual_transfer_at_crossing(self):
        lines = [
            straight_line("identity", (0, 100), (200, 100)),
            straight_line("contacts", (100, 0), (100, 200)),
        ]
        transfer = Transfer(
            "virtual-transfer-1",
            ("virtual-identity-contacts-A", "virtual-identity-contacts-B"),
            ("identity", "contacts"),
            "Intersection: Business contact information",
        )

        placed = place_transfers([transfer], lines)
        assert (placed[0].x, placed[0].y) == (100, 100)

    def test_virtual_transfer_without_crossing(self):
        lines = [
            straight_line("identity", (0, 0), (100, 0)),
            straight_line("contacts", (50, 40), (150, 40)),
        ]
        transfer = Transfer("virtual-transfer-1", ("va", "vb"), ("identity", "contacts"), "Intersection")

        placed = place_transfers([transfer], lines)
        assert (placed[0].x, placed[0].y) == (50, 20)

    def test_unknown_line_skipped(self):
        lines = [straight_line("identity", (0, 0), (100, 0))]
        transfer = Transfer("virtual-transfer-1", ("va", "vb"), ("identity", "pages"), "Intersection")
        assert place_transfers([transfer], lines) == []
