"""
Transit map geometry constants.
"""

from dataclasses import dataclass
from enum import Enum

from metroscan.core.models import LayoutPoint


CANVAS_WIDTH = 1400
CANVAS_HEIGHT = 900
CORNER_RADIUS = 22

# Route generation margins
TOP_MARGIN = 100
BOTTOM_MARGIN = 60
LEFT_MARGIN = 80
RIGHT_MARGIN = 80

# Waypoints are clamped to this distance from the canvas edge
CLAMP_MARGIN = 60

MAX_LINES_PER_COLUMN = 8
MIN_LINE_SPACING = 70
MAX_LINE_SPACING = 120

# Station placement
STATION_PADDING = 0.06  # fraction of the path left empty at each end


class Direction(str, Enum):
    RIGHT = "right"
    DOWN_RIGHT = "down-right"
    DOWN = "down"
    DOWN_LEFT = "down-left"
    LEFT = "left"
    UP_LEFT = "up-left"
    UP = "up"
    UP_RIGHT = "up-right"


DIRECTION_VECTORS: dict[Direction, tuple[float, float]] = {
    Direction.RIGHT: (1, 0),
    Direction.DOWN_RIGHT: (0.707, 0.707),
    Direction.DOWN: (0, 1),
    Direction.DOWN_LEFT: (-0.707, 0.707),
    Direction.LEFT: (-1, 0),
    Direction.UP_LEFT: (-0.707, -0.707),
    Direction.UP: (0, -1),
    Direction.UP_RIGHT: (0.707, -0.707),
}


@dataclass
class RouteSegment:
    direction: Direction
    length: float


@dataclass
class LineRoute:
    """Abstract route: a start point and directed segments."""
    start: LayoutPoint
    segments: list[RouteSegment]
