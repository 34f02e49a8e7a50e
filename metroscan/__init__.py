"""
MetroScan - website intelligence scanner.

Scans a site into categorised "lines" of extracted facts ("stations") and
lays them out as a transit map with inferred "transfers" between lines.
"""

__version__ = "0.1.0"
