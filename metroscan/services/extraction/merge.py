"""
Station de-duplication.

Two levels:
- add_station(): within one page, a repeated key nudges confidence up by
  20% of the new signal and appends its evidence
- merge_stations(): across pages, corroboration adds a flat boost, plus a
  second boost when the new evidence comes from structured data
"""

import re
from copy import copy

from metroscan.core.models import Evidence, Station, station_key

STRUCTURED_SOURCE = re.compile(r"json-ld|schema|rdfa|microdata|app-state", re.IGNORECASE)

PAGE_REPEAT_FACTOR = 0.2
CORROBORATION_BOOST = 0.1
STRUCTURED_BOOST = 0.1


def add_station(
    bucket: list[Station],
    index: dict[str, Station],
    line_id: str,
    label: str,
    value: str,
    confidence: float,
    evidence: list[Evidence],
) -> Station | None:
    """
    Add a station to a page bucket, folding repeats into the existing one.

    Args:
        bucket: Ordered stations for the page
        index: key -> station lookup kept in sync with bucket
        line_id: Target line
        label: Field name
        value: Extracted value (empty values are ignored)
        confidence: Already weighted confidence
        evidence: Evidence for this signal

    Returns:
        The new or updated station, None for empty values
    """
    value = value.strip() if value else ""
    if not value:
        return None

    key = station_key(line_id, label, value)
    existing = index.get(key)
    if existing is not None:
        existing.confidence = min(1.0, existing.confidence + confidence * PAGE_REPEAT_FACTOR)
        existing.evidence.extend(evidence)
        return existing

    station = Station(
        id=key,
        line_id=line_id,
        label=label,
        value=value,
        confidence=min(1.0, max(0.0, confidence)),
        evidence=list(evidence),
    )
    bucket.append(station)
    index[key] = station
    return station


def merge_stations(stations: list[Station]) -> list[Station]:
    """
    Merge stations sharing a normalized line:label:value key.

    Input stations are not mutated. Output keeps first-seen order.
    """
    merged: dict[str, Station] = {}

    for station in stations:
        key = station.key
        existing = merged.get(key)
        if existing is None:
            clone = copy(station)
            clone.evidence = list(station.evidence)
            merged[key] = clone
            continue

        existing.evidence.extend(station.evidence)
        boost = CORROBORATION_BOOST
        if any(STRUCTURED_SOURCE.search(e.source) for e in station.evidence):
            boost += STRUCTURED_BOOST
        existing.confidence = min(1.0, max(existing.confidence, station.confidence) + boost)

    return list(merged.values())
