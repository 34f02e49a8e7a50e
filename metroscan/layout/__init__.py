"""
Transit map layout for scan results.

- line_router: deterministic per-line routes (segments, SVG path, polyline)
- station_placer: stations spread along a route
- transfer_detector: semantic transfers where lines cross
- metro_layout: compute_layout entry point
"""

from metroscan.layout.line_router import RouteResult, route_line
from metroscan.layout.metro_layout import (
    LayoutResult,
    PlacedTransfer,
    compute_layout,
    place_transfers,
)
from metroscan.layout.station_placer import PlacedStation, place_stations
from metroscan.layout.transfer_detector import (
    LayoutLine,
    detect_transfers,
    find_station_relationship,
)

__all__ = [
    "LayoutLine",
    "LayoutResult",
    "PlacedStation",
    "PlacedTransfer",
    "RouteResult",
    "compute_layout",
    "detect_transfers",
    "find_station_relationship",
    "place_stations",
    "place_transfers",
    "route_line",
]
