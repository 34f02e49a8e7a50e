"""
Transfer Detector - semantic connections where routed lines cross.

Steps:
1. Intersect every segment of every line pair
2. Snap each intersection to the nearest station on both lines (within 150px)
3. Greedily cluster intersections (radius 40px, clusters kept 120px apart)
4. Singleton clusters: classify the station pair, or fall back to the
   whitelist of meaningful line pairs when a side has no nearby station
5. Multi-intersection clusters: one hub transfer between exactly two lines

At most MAX_TRANSFERS are returned. Intersections are visited in line-pair
then segment order, so identical layouts give identical transfers.
"""

import math
import re
from dataclasses import dataclass, field

import structlog

from metroscan.core.models import LayoutPoint, LayoutSegment, Station, Transfer
from metroscan.layout.station_placer import PlacedStation
from metroscan.services.normalizer import edit_similarity

logger = structlog.get_logger()


MAX_TRANSFERS = 15
SNAP_DISTANCE = 150
CLUSTER_RADIUS = 40
MIN_CLUSTER_DISTANCE = 120
PARALLEL_EPSILON = 0.001
SIMILARITY_THRESHOLD = 0.7

MEANINGFUL_PAIRS: dict[frozenset[str], str] = {
    frozenset(("identity", "contacts")): "Business contact information",
    frozenset(("identity", "services")): "Business services offered",
    frozenset(("contacts", "pages")): "Contact page connection",
    frozenset(("services", "pages")): "Service page information",
    frozenset(("entities", "identity")): "Person/organization details",
    frozenset(("entities", "contacts")): "Contact person information",
    frozenset(("tech", "services")): "Technology services",
    frozenset(("tech", "pages")): "Technical documentation",
}

SERVICE_KEYWORDS = ("catering", "delivery", "consulting")

CITIES = [
    "new york", "los angeles", "chicago", "houston", "phoenix",
    "philadelphia", "san antonio", "san diego", "dallas", "san jose",
]
STATES = ["ny", "ca", "il", "tx", "az", "pa", "fl", "oh", "ga", "nc"]

ZIP_CODE = re.compile(r"\b\d{5}\b")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class LayoutLine:
    """A routed line with its placed stations."""
    line_id: str
    path: str
    segments: list[LayoutSegment]
    stations: list[PlacedStation]
    polyline: list[LayoutPoint] = field(default_factory=list)


@dataclass
class Intersection:
    point: LayoutPoint
    line_a: str
    line_b: str
    station_a: PlacedStation | None = None
    station_b: PlacedStation | None = None


# =============================================================================
# Geometry
# =============================================================================


def _distance(a: LayoutPoint, b: LayoutPoint) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def segment_intersection(seg1: LayoutSegment, seg2: LayoutSegment) -> LayoutPoint | None:
    """Crossing point of two segments, None when parallel or disjoint."""
    x1, y1 = seg1.from_.x, seg1.from_.y
    x2, y2 = seg1.to.x, seg1.to.y
    x3, y3 = seg2.from_.x, seg2.from_.y
    x4, y4 = seg2.to.x, seg2.to.y

    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < PARALLEL_EPSILON:
        return None

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom

    if 0 <= t <= 1 and 0 <= u <= 1:
        return LayoutPoint(x1 + t * (x2 - x1), y1 + t * (y2 - y1))
    return None


def closest_station(point: LayoutPoint, stations: list[PlacedStation]) -> PlacedStation | None:
    if not stations:
        return None
    best = min(stations, key=lambda s: _distance(point, s.point))
    return best if _distance(point, best.point) < SNAP_DISTANCE else None


def find_intersections(lines: list[LayoutLine]) -> list[Intersection]:
    found = []
    for i, line_a in enumerate(lines):
        for line_b in lines[i + 1:]:
            for seg_a in line_a.segments:
                for seg_b in line_b.segments:
                    point = segment_intersection(seg_a, seg_b)
                    if point is None:
                        continue
                    found.append(Intersection(
                        point=point,
                        line_a=line_a.line_id,
                        line_b=line_b.line_id,
                        station_a=closest_station(point, line_a.stations),
                        station_b=closest_station(point, line_b.stations),
                    ))
    return found


def _center(cluster: list[Intersection]) -> LayoutPoint:
    return LayoutPoint(
        sum(i.point.x for i in cluster) / len(cluster),
        sum(i.point.y for i in cluster) / len(cluster),
    )


def cluster_intersections(intersections: list[Intersection]) -> list[list[Intersection]]:
    """
    Greedy clustering in visit order.

    A point joins the first cluster within CLUSTER_RADIUS whose center is at
    least MIN_CLUSTER_DISTANCE from every other cluster center. Otherwise it
    starts a new cluster, unless that would sit closer than
    MIN_CLUSTER_DISTANCE to an existing one, in which case it is dropped.
    """
    clusters: list[list[Intersection]] = []

    for intersection in intersections:
        assigned = False
        for cluster in clusters:
            center = _center(cluster)
            if _distance(intersection.point, center) >= CLUSTER_RADIUS:
                continue
            crowded = any(
                _distance(center, _center(other)) < MIN_CLUSTER_DISTANCE
                for other in clusters
                if other is not cluster
            )
            if not crowded:
                cluster.append(intersection)
                assigned = True
                break

        if assigned:
            continue

        too_close = any(
            _distance(intersection.point, _center(existing)) < MIN_CLUSTER_DISTANCE
            for existing in clusters
        )
        if not too_close:
            clusters.append([intersection])

    return clusters


# =============================================================================
# Relationships
# =============================================================================


def line_pair_reason(line_a: str, line_b: str) -> str | None:
    """Canned reason for a whitelisted line pair, None otherwise."""
    return MEANINGFUL_PAIRS.get(frozenset((line_a, line_b)))


def _cross_category(a: Station, b: Station) -> str | None:
    value_a, value_b = a.value.lower(), b.value.lower()
    label_a, label_b = a.label.lower(), b.label.lower()

    for name_label, name, service_label, service in (
        (label_a, value_a, label_b, value_b),
        (label_b, value_b, label_a, value_a),
    ):
        if name_label in ("business name", "name") and service_label == "service":
            if any(k in service for k in SERVICE_KEYWORDS):
                return f"Business service: {name} offers {service}"

    for place_label, place, other_label in (
        (label_a, value_a, label_b),
        (label_b, value_b, label_a),
    ):
        if ("address" in place_label or "location" in place_label) and "phone" in other_label:
            return f"Contact location: Phone for {place}"

    if label_a == "service" and label_b == "page":
        return f"Service page: {value_a} on {value_b}"
    if label_b == "service" and label_a == "page":
        return f"Service page: {value_b} on {value_a}"

    return None


def _geographic(a: Station, b: Station) -> str | None:
    value_a, value_b = a.value.lower(), b.value.lower()

    for city in CITIES:
        if city in value_a and city in value_b:
            return f"Location: Both in {city}"

    for state in STATES:
        if state in value_a and state in value_b:
            return f"Location: Both in {state.upper()}"

    zip_a = ZIP_CODE.search(value_a)
    zip_b = ZIP_CODE.search(value_b)
    if zip_a and zip_b and zip_a.group(0) == zip_b.group(0):
        return f"Location: Same postal code {zip_a.group(0)}"

    return None


def find_station_relationship(a: Station, b: Station) -> str | None:
    """
    Explain why two stations are related, or None.

    Checks run in order: exact value, containment, same-label edit
    similarity, cross-category label pairs, shared geography.
    """
    value_a = a.value.strip().lower()
    value_b = b.value.strip().lower()
    label_a = a.label.lower()

    if value_a == value_b and len(value_a) > 3:
        return f'Exact match: "{value_a}"'

    if len(value_a) > 5 and value_a in value_b:
        return f'Location match: "{a.value}" in "{b.value}"'
    if len(value_b) > 5 and value_b in value_a:
        return f'Location match: "{b.value}" in "{a.value}"'

    if label_a == b.label.lower() and len(value_a) > 2 and len(value_b) > 2:
        score = edit_similarity(value_a, value_b)
        if score > SIMILARITY_THRESHOLD:
            return f"Business connection: {label_a} ({round(score * 100)}% match)"

    return _cross_category(a, b) or _geographic(a, b)


# =============================================================================
# Transfers
# =============================================================================


def _virtual_transfer(intersection: Intersection, n: int) -> Transfer | None:
    reason = line_pair_reason(intersection.line_a, intersection.line_b)
    if reason is None:
        return None
    a, b = intersection.line_a, intersection.line_b
    return Transfer(
        id=f"virtual-transfer-{n}",
        station_ids=(f"virtual-{a}-{b}-A", f"virtual-{a}-{b}-B"),
        line_ids=(a, b),
        reason=f"Intersection: {reason}",
    )


def _hub_transfer(cluster: list[Intersection], n: int) -> Transfer | None:
    stations: dict[str, PlacedStation] = {}
    for intersection in cluster:
        for placed in (intersection.station_a, intersection.station_b):
            if placed is not None:
                stations[placed.id] = placed

    line_ids = list(dict.fromkeys(p.station.line_id for p in stations.values()))
    station_ids = list(stations)
    if len(line_ids) != 2 or len(station_ids) != 2:
        return None

    return Transfer(
        id=f"hub-{n}",
        station_ids=(station_ids[0], station_ids[1]),
        line_ids=(line_ids[0], line_ids[1]),
        reason=f"Hub: {line_ids[0]} ↔ {line_ids[1]}",
    )


def detect_transfers(layout_lines: list[LayoutLine] | None) -> list[Transfer]:
    """
    Detect transfers between routed lines.

    Args:
        layout_lines: Routed lines with placed stations

    Returns:
        Up to MAX_TRANSFERS transfers; empty without layout information
    """
    if not layout_lines:
        return []

    intersections = find_intersections(layout_lines)
    clusters = cluster_intersections(intersections)

    transfers: list[Transfer] = []
    n = 0

    for cluster in clusters:
        if len(cluster) > 1:
            n += 1
            hub = _hub_transfer(cluster, n)
            if hub:
                transfers.append(hub)
            continue

        intersection = cluster[0]
        if intersection.station_a is None or intersection.station_b is None:
            n += 1
            virtual = _virtual_transfer(intersection, n)
            if virtual:
                transfers.append(virtual)
            continue

        a = intersection.station_a.station
        b = intersection.station_b.station
        reason = find_station_relationship(a, b)
        if reason:
            n += 1
            transfers.append(Transfer(
                id=f"transfer-{n}",
                station_ids=(a.id, b.id),
                line_ids=(a.line_id, b.line_id),
                reason=reason,
            ))

    logger.debug(
        "Detected transfers",
        intersections=len(intersections),
        clusters=len(clusters),
        transfers=len(transfers),
    )
    return transfers[:MAX_TRANSFERS]
