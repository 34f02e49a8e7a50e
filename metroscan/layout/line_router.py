"""
Line Router - deterministic procedural routes for transit map lines.

Each line becomes straight / bend / straight. The bend direction and
proportions come from one of four pattern tables (one per column), tuned
by a seed derived from the line id, so distinct lines get distinct shapes
while identical inputs always give identical output.

Output per line:
- segments: straight segments between waypoints (used for intersections)
- path: SVG path with rounded corners
- polyline: the same rounded path sampled as points (used for placement)
- total_length: length of the polyline
"""

import math
from dataclasses import dataclass

from metroscan.core.models import LayoutPoint, LayoutSegment
from metroscan.layout.constants import (
    BOTTOM_MARGIN,
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CLAMP_MARGIN,
    CORNER_RADIUS,
    DIRECTION_VECTORS,
    LEFT_MARGIN,
    MAX_LINE_SPACING,
    MAX_LINES_PER_COLUMN,
    MIN_LINE_SPACING,
    RIGHT_MARGIN,
    TOP_MARGIN,
    Direction,
    LineRoute,
    RouteSegment,
)


@dataclass
class RouteResult:
    segments: list[LayoutSegment]
    path: str
    total_length: float
    polyline: list[LayoutPoint]


# =============================================================================
# Bend patterns
# =============================================================================

# (direction, base factor, seed modulus): factor = base + (seed % modulus) * 0.01
PatternSpec = tuple[Direction, float, int]

COLUMN_PATTERNS: list[list[PatternSpec]] = [
    [
        (Direction.DOWN_RIGHT, 0.18, 10),
        (Direction.UP_RIGHT, 0.16, 8),
        (Direction.DOWN_RIGHT, 0.14, 12),
        (Direction.UP_RIGHT, 0.12, 15),
        (Direction.DOWN_RIGHT, 0.20, 7),
        (Direction.UP_RIGHT, 0.15, 9),
        (Direction.DOWN_RIGHT, 0.13, 11),
        (Direction.UP_RIGHT, 0.17, 6),
        (Direction.RIGHT, 0.22, 8),
        (Direction.DOWN, 0.18, 6),
        (Direction.UP, 0.16, 7),
        (Direction.DOWN_LEFT, 0.14, 9),
        (Direction.UP_LEFT, 0.12, 10),
    ],
    # More straight runs
    [
        (Direction.RIGHT, 0.25, 5),
        (Direction.DOWN, 0.15, 4),
        (Direction.UP, 0.15, 6),
        (Direction.DOWN_RIGHT, 0.18, 7),
        (Direction.UP_RIGHT, 0.12, 8),
    ],
    # Diagonals
    [
        (Direction.DOWN_LEFT, 0.12, 6),
        (Direction.UP_LEFT, 0.12, 7),
        (Direction.DOWN_RIGHT, 0.16, 5),
        (Direction.UP_RIGHT, 0.14, 9),
        (Direction.RIGHT, 0.20, 4),
    ],
    # Subtle bends
    [
        (Direction.DOWN_RIGHT, 0.10, 8),
        (Direction.UP_RIGHT, 0.08, 6),
        (Direction.RIGHT, 0.25, 7),
        (Direction.DOWN, 0.20, 5),
        (Direction.UP, 0.18, 4),
    ],
]


def line_seed(line_id: str, line_index: int) -> int:
    """(sum of code points + index) % 100."""
    return (sum(ord(ch) for ch in line_id) + line_index) % 100


# =============================================================================
# Geometry helpers
# =============================================================================


def _dist(a: LayoutPoint, b: LayoutPoint) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def _sample_quadratic(p0: LayoutPoint, p1: LayoutPoint, p2: LayoutPoint, samples: int) -> list[LayoutPoint]:
    points = []
    for i in range(1, samples + 1):
        t = i / samples
        mt = 1 - t
        points.append(LayoutPoint(
            x=mt * mt * p0.x + 2 * mt * t * p1.x + t * t * p2.x,
            y=mt * mt * p0.y + 2 * mt * t * p1.y + t * t * p2.y,
        ))
    return points


def _num(value: float) -> str:
    """Stable number formatting for SVG paths."""
    value = round(value, 3)
    if value == int(value):
        return str(int(value))
    return repr(value)


def station_spacing(station_count: int) -> float:
    """Distance budget per station; tighter for dense lines."""
    if station_count > 20:
        return max(25.0, min(40.0, 1500 / station_count))
    return max(45.0, min(65.0, 1200 / max(1, station_count)))


# =============================================================================
# Routing
# =============================================================================


def generate_route(line_index: int, total_lines: int, line_id: str = "") -> LineRoute:
    """Abstract straight/bend/straight route for one line slot."""
    usable_height = CANVAS_HEIGHT - TOP_MARGIN - BOTTOM_MARGIN
    usable_width = CANVAS_WIDTH - LEFT_MARGIN - RIGHT_MARGIN

    seed = line_seed(line_id, line_index)

    multi_column = total_lines > MAX_LINES_PER_COLUMN
    if multi_column:
        column_index, index_in_column = divmod(line_index, MAX_LINES_PER_COLUMN)
        columns = math.ceil(total_lines / MAX_LINES_PER_COLUMN)
        lines_in_column = min(MAX_LINES_PER_COLUMN, total_lines - column_index * MAX_LINES_PER_COLUMN)
    else:
        column_index, index_in_column = 0, line_index
        columns = 1
        lines_in_column = total_lines

    column_width = usable_width / columns

    spacing = usable_height / max(1, lines_in_column - 1)
    spacing = max(MIN_LINE_SPACING, min(MAX_LINE_SPACING, spacing))

    y_variation = (seed % 20) - 10
    if lines_in_column == 1:
        y = CANVAS_HEIGHT / 2 + y_variation
    else:
        y = TOP_MARGIN + index_in_column * spacing + y_variation

    x_variation = (index_in_column % 3) * 12 + (seed % 15)
    x = LEFT_MARGIN + column_index * column_width + x_variation

    patterns = COLUMN_PATTERNS[column_index % len(COLUMN_PATTERNS)]
    direction, base, modulus = patterns[index_in_column % len(patterns)]
    factor = base + (seed % modulus) * 0.01

    available_width = column_width - x_variation - 20
    total_width = min(available_width, usable_width / columns)

    bend_len = total_width * factor
    straight_len = (total_width - bend_len) / 2

    min_segment = max(80, 300 / max(1, lines_in_column))
    straight_len = max(min_segment, straight_len)
    bend_len = max(min_segment / 2, bend_len)

    return LineRoute(
        start=LayoutPoint(x=x, y=y),
        segments=[
            RouteSegment(Direction.RIGHT, straight_len),
            RouteSegment(direction, bend_len),
            RouteSegment(Direction.RIGHT, straight_len),
        ],
    )


def build_route(route: LineRoute, station_count: int) -> RouteResult:
    """Scale a route to fit its stations and render path + polyline."""
    spacing = station_spacing(station_count)
    min_length = max(1, station_count) * spacing
    base_total = sum(s.length for s in route.segments)
    scale = max(1.0, min_length / base_total) if base_total > 0 else 1.0

    points = [LayoutPoint(route.start.x, route.start.y)]
    current = points[0]
    for seg in route.segments:
        dx, dy = DIRECTION_VECTORS[seg.direction]
        length = seg.length * scale
        current = LayoutPoint(current.x + dx * length, current.y + dy * length)
        points.append(current)

    # Start point is left as generated
    max_x = CANVAS_WIDTH - CLAMP_MARGIN
    max_y = CANVAS_HEIGHT - CLAMP_MARGIN
    for point in points[1:]:
        point.x = max(CLAMP_MARGIN, min(point.x, max_x))
        point.y = max(CLAMP_MARGIN, min(point.y, max_y))

    segments = [
        LayoutSegment(from_=points[i], to=points[i + 1])
        for i in range(len(points) - 1)
    ]

    radius = min(CORNER_RADIUS, spacing / 2)
    path = [f"M {_num(points[0].x)} {_num(points[0].y)}"]
    polyline = [LayoutPoint(points[0].x, points[0].y)]

    for i in range(1, len(points) - 1):
        prev, curr, nxt = points[i - 1], points[i], points[i + 1]

        d1x, d1y = curr.x - prev.x, curr.y - prev.y
        d2x, d2y = nxt.x - curr.x, nxt.y - curr.y
        len1 = math.hypot(d1x, d1y)
        len2 = math.hypot(d2x, d2y)
        if len1 == 0 or len2 == 0:
            continue

        r = min(radius, len1 / 2, len2 / 2)
        before = LayoutPoint(curr.x - d1x / len1 * r, curr.y - d1y / len1 * r)
        after = LayoutPoint(curr.x + d2x / len2 * r, curr.y + d2y / len2 * r)

        path.append(
            f"L {_num(before.x)} {_num(before.y)} "
            f"Q {_num(curr.x)} {_num(curr.y)} {_num(after.x)} {_num(after.y)}"
        )
        polyline.append(before)
        polyline.extend(_sample_quadratic(
            before,
            LayoutPoint(curr.x, curr.y),
            after,
            max(5, math.floor(r / 2)),
        ))

    last = points[-1]
    path.append(f"L {_num(last.x)} {_num(last.y)}")
    polyline.append(LayoutPoint(last.x, last.y))

    total_length = sum(_dist(polyline[i - 1], polyline[i]) for i in range(1, len(polyline)))

    return RouteResult(
        segments=segments,
        path=" ".join(path),
        total_length=total_length,
        polyline=polyline,
    )


def route_line(line_id: str, station_count: int, line_index: int, total_lines: int) -> RouteResult:
    """
    Route one line.

    Args:
        line_id: Line id (seeds the shape)
        station_count: Number of stations the route must hold
        line_index: Position of the line among all lines
        total_lines: Number of lines on the map

    Returns:
        RouteResult; identical inputs give identical output
    """
    route = generate_route(line_index, total_lines, line_id)
    return build_route(route, station_count)
