"""
Metro layout: routes lines, places stations and positions transfers.

Usage:
    from metroscan.layout import compute_layout

    layout = compute_layout(scan_result)
    scan_result.transfers = [t.transfer for t in layout.transfers]
"""

import math
from dataclasses import dataclass

import structlog

from metroscan.core.models import LayoutPoint, ScanResult, Transfer
from metroscan.layout.constants import CANVAS_HEIGHT, CANVAS_WIDTH
from metroscan.layout.line_router import route_line
from metroscan.layout.station_placer import place_stations
from metroscan.layout.transfer_detector import (
    LayoutLine,
    detect_transfers,
    segment_intersection,
)

logger = structlog.get_logger()


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class PlacedTransfer:
    transfer: Transfer
    x: float
    y: float


@dataclass
class LayoutResult:
    lines: list[LayoutLine]
    transfers: list[PlacedTransfer]
    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT


# =============================================================================
# Transfer placement
# =============================================================================


def closest_point_on_polyline(target: LayoutPoint, polyline: list[LayoutPoint]) -> LayoutPoint:
    """Projection of ``target`` onto the nearest polyline segment."""
    best = LayoutPoint(polyline[0].x, polyline[0].y)
    best_dist = math.inf

    for p1, p2 in zip(polyline, polyline[1:]):
        dx, dy = p2.x - p1.x, p2.y - p1.y
        length_sq = dx * dx + dy * dy
        t = 0.0
        if length_sq > 0:
            t = ((target.x - p1.x) * dx + (target.y - p1.y) * dy) / length_sq
            t = max(0.0, min(1.0, t))
        candidate = LayoutPoint(p1.x + t * dx, p1.y + t * dy)
        d = math.hypot(target.x - candidate.x, target.y - candidate.y)
        if d < best_dist:
            best, best_dist = candidate, d

    return best


def _virtual_anchor(line_a: LayoutLine, line_b: LayoutLine) -> LayoutPoint:
    for seg_a in line_a.segments:
        for seg_b in line_b.segments:
            point = segment_intersection(seg_a, seg_b)
            if point is not None:
                return point

    if not line_a.polyline or not line_b.polyline:
        return LayoutPoint(0, 0)

    on_b = line_b.polyline[0]
    on_a = closest_point_on_polyline(on_b, line_a.polyline)
    return LayoutPoint((on_a.x + on_b.x) / 2, (on_a.y + on_b.y) / 2)


def place_transfers(transfers: list[Transfer], lines: list[LayoutLine]) -> list[PlacedTransfer]:
    """
    Position transfers on the canvas.

    Real transfers sit at the midpoint of their two stations; virtual ones
    at the crossing of their two lines.
    """
    positions = {p.id: p.point for line in lines for p in line.stations}
    by_line = {line.line_id: line for line in lines}

    placed = []
    for transfer in transfers:
        a = positions.get(transfer.station_ids[0])
        b = positions.get(transfer.station_ids[1])

        if a is not None and b is not None:
            placed.append(PlacedTransfer(transfer, (a.x + b.x) / 2, (a.y + b.y) / 2))
            continue

        line_a = by_line.get(transfer.line_ids[0])
        line_b = by_line.get(transfer.line_ids[1])
        if line_a is None or line_b is None:
            logger.warning("Transfer references unknown line", transfer_id=transfer.id)
            continue

        anchor = _virtual_anchor(line_a, line_b)
        placed.append(PlacedTransfer(transfer, anchor.x, anchor.y))

    return placed


# =============================================================================
# Layout
# =============================================================================


def compute_layout(scan_result: ScanResult) -> LayoutResult:
    """
    Lay out a scan result as a transit map.

    Args:
        scan_result: Completed scan; its lines are laid out in order

    Returns:
        LayoutResult with routed lines, placed stations and placed transfers
    """
    lines: list[LayoutLine] = []
    total = len(scan_result.lines)

    for index, line in enumerate(scan_result.lines):
        route = route_line(line.id, len(line.stations), index, total)
        lines.append(LayoutLine(
            line_id=line.id,
            path=route.path,
            segments=route.segments,
            stations=place_stations(line.stations, route.polyline, route.total_length),
            polyline=route.polyline,
        ))

    transfers = detect_transfers(lines)
    logger.info("Computed layout", lines=len(lines), transfers=len(transfers))

    return LayoutResult(lines=lines, transfers=place_transfers(transfers, lines))
