#!/usr/bin/env python3
"""
Scan one website and print the laid-out transit map as JSON.

Usage:
    python scripts/scan_site.py example.com [--max-pages 8] [--dev] [--json-logs]
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from metroscan.core.config import get_settings
from metroscan.core.logging import configure_logging
from metroscan.core.models import ScanOptions
from metroscan.layout import compute_layout
from metroscan.services.orchestrator import run_scan

logger = structlog.get_logger()


def print_progress(status: str, progress: float) -> None:
    logger.info("Progress", status=status, progress=f"{progress:.0%}")


async def main(url: str, max_pages: int | None, dev_mode: bool) -> dict:
    overrides = {"dev_mode": dev_mode}
    if max_pages:
        overrides["max_pages"] = max_pages

    result = await run_scan(url, on_progress=print_progress, options=ScanOptions(**overrides))
    layout = compute_layout(result)
    result.transfers = [placed.transfer for placed in layout.transfers]

    return {
        "scan": result.to_dict(),
        "layout": {
            "width": layout.width,
            "height": layout.height,
            "lines": [
                {
                    "id": line.line_id,
                    "path": line.path,
                    "stations": [
                        {"id": p.id, "x": p.x, "y": p.y, "label_side": p.label_side}
                        for p in line.stations
                    ],
                }
                for line in layout.lines
            ],
            "transfers": [
                {**asdict(placed.transfer), "x": placed.x, "y": placed.y}
                for placed in layout.transfers
            ],
        },
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Scan a website into a transit map")
    parser.add_argument("url", help="Site URL (https:// assumed)")
    parser.add_argument("--max-pages", type=int, default=None, help="Maximum pages to fetch")
    parser.add_argument("--dev", action="store_true", help="Ignore robots.txt")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(json_logs=args.json_logs, log_level=settings.log_level)

    output = asyncio.run(main(args.url, args.max_pages, args.dev))
    print(json.dumps(output, indent=2, ensure_ascii=False))
