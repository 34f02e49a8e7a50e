"""
Discovery Module for MetroScan.

Finds the pages worth scanning on a site.

Main components:
- discover_sitemap_urls: sitemap.xml discovery with fallback page guesses
- prioritize_pages: URL scoring used to trim the candidate list

Usage:
    from metroscan.services.discovery import discover_sitemap_urls, prioritize_pages

    async with httpx.AsyncClient() as client:
        urls = await discover_sitemap_urls(client, "https://example.com")
        urls = prioritize_pages(urls, "https://example.com", max_pages=12)
"""

from metroscan.services.discovery.scorer import prioritize_pages, score_page_url
from metroscan.services.discovery.sitemap import (
    discover_sitemap_urls,
    filter_important_pages,
    generate_fallback_pages,
    parse_sitemap_locs,
)

__all__ = [
    "discover_sitemap_urls",
    "filter_important_pages",
    "generate_fallback_pages",
    "parse_sitemap_locs",
    "prioritize_pages",
    "score_page_url",
]
