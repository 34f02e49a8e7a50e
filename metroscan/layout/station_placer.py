"""
Station placement along a routed polyline.
"""

import math
from dataclasses import dataclass

from metroscan.core.models import LayoutPoint, Station
from metroscan.layout.constants import STATION_PADDING


@dataclass
class PlacedStation:
    station: Station
    x: float
    y: float
    label_side: str  # "above" | "below"

    @property
    def id(self) -> str:
        return self.station.id

    @property
    def point(self) -> LayoutPoint:
        return LayoutPoint(self.x, self.y)


def point_along_polyline(polyline: list[LayoutPoint], target: float) -> LayoutPoint:
    """Point at arc length ``target``; the last point when past the end."""
    accumulated = 0.0
    for i in range(1, len(polyline)):
        a, b = polyline[i - 1], polyline[i]
        seg_len = math.hypot(b.x - a.x, b.y - a.y)
        if accumulated + seg_len >= target:
            frac = (target - accumulated) / seg_len if seg_len > 0 else 0
            return LayoutPoint(a.x + (b.x - a.x) * frac, a.y + (b.y - a.y) * frac)
        accumulated += seg_len

    last = polyline[-1]
    return LayoutPoint(last.x, last.y)


def place_stations(
    stations: list[Station],
    polyline: list[LayoutPoint],
    total_length: float,
) -> list[PlacedStation]:
    """
    Spread stations evenly along a polyline.

    The first and last 6% of the path stay empty; a lone station sits at
    the midpoint. Labels alternate above/below starting with above.
    """
    if not stations or not polyline:
        return []

    usable = 1 - 2 * STATION_PADDING
    last = len(stations) - 1
    placed = []

    for i, station in enumerate(stations):
        t = 0.5 if last == 0 else STATION_PADDING + (i / last) * usable
        point = point_along_polyline(polyline, t * total_length)
        placed.append(PlacedStation(
            station=station,
            x=point.x,
            y=point.y,
            label_side="above" if i % 2 == 0 else "below",
        ))

    return placed
