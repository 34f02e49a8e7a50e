"""
Per-page station collection and source weighting.
"""

import json
import re
from typing import Any

from metroscan.core.models import Evidence, LineId, Station
from metroscan.services.extraction.merge import add_station


MAX_STATIONS_PER_LINE = 25
DEFAULT_FIELD_CONFIDENCE = 0.8
SNIPPET_LENGTH = 200

# (pattern, weight) - first match wins
SOURCE_WEIGHTS: list[tuple[re.Pattern, float]] = [
    (re.compile(r"ld\+json|schema|json-ld", re.IGNORECASE), 0.9),
    (re.compile(r"meta|og|twitter", re.IGNORECASE), 0.7),
    (re.compile(r"link|nav|footer", re.IGNORECASE), 0.55),
    (re.compile(r"body|text", re.IGNORECASE), 0.45),
]
DEFAULT_SOURCE_WEIGHT = 0.4


def source_weight(source: str) -> float:
    """Weight of an evidence source in [0.4, 0.9]."""
    for pattern, weight in SOURCE_WEIGHTS:
        if pattern.search(source):
            return weight
    return DEFAULT_SOURCE_WEIGHT


def json_snippet(data: Any, limit: int = SNIPPET_LENGTH) -> str:
    """Compact JSON, truncated."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)[:limit]


def schema_type(item: dict[str, Any]) -> str | None:
    """The @type of a structured-data item (first entry for lists)."""
    value = item.get("@type")
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, str) else None


class StationCollector:
    """Per-page station bucket with in-page de-duplication."""

    def __init__(self) -> None:
        self.stations: list[Station] = []
        self._index: dict[str, Station] = {}

    def add(
        self,
        line_id: LineId | str,
        label: str,
        value: str,
        source: str,
        selector: str,
        confidence: float = DEFAULT_FIELD_CONFIDENCE,
        raw: str | None = None,
    ) -> Station | None:
        """Weight confidence by source and add (or fold) the station."""
        line = line_id.value if isinstance(line_id, LineId) else line_id
        return add_station(
            self.stations,
            self._index,
            line,
            label,
            value,
            source_weight(source) * confidence,
            [Evidence(source=source, selector=selector, raw=raw if raw is not None else value)],
        )

    def has_label(self, line_id: LineId | str, label: str) -> bool:
        line = line_id.value if isinstance(line_id, LineId) else line_id
        return any(s.line_id == line and s.label == label for s in self.stations)

    def capped(self, per_line: int = MAX_STATIONS_PER_LINE) -> list[Station]:
        """Stations in insertion order, at most ``per_line`` per line."""
        counts: dict[str, int] = {}
        kept = []
        for station in self.stations:
            if counts.get(station.line_id, 0) < per_line:
                counts[station.line_id] = counts.get(station.line_id, 0) + 1
                kept.append(station)
        return kept
