"""
Extraction Module for MetroScan.

Converts ParsedPage objects into scored, de-duplicated stations.

Main components:
- stations_from_page: per-page extraction with source weighting and caps
- merge_stations: cross-page de-duplication with corroboration boosts
- TitleBeautifier: pluggable display titles for link/script URLs
"""

from metroscan.services.extraction.collector import StationCollector, source_weight
from metroscan.services.extraction.merge import add_station, merge_stations
from metroscan.services.extraction.stations import stations_from_page
from metroscan.services.extraction.titles import (
    DefaultTitleBeautifier,
    TitleBeautifier,
    default_title_beautifier,
)

__all__ = [
    "StationCollector",
    "source_weight",
    "add_station",
    "merge_stations",
    "stations_from_page",
    "TitleBeautifier",
    "DefaultTitleBeautifier",
    "default_title_beautifier",
]
