"""
Services layer for MetroScan scanning logic.

MODULES:
- discovery/: Candidate page discovery (sitemap + fallback guesses, scoring)
- extraction/: Station extraction, title beautification, merging

STANDALONE SERVICES:
- fetcher: Resilient page retrieval (robots gate, proxies, guards, probes)
- parser: HTML to ParsedPage
- normalizer: Value normalization and similarity metrics
- robots_parser: Robots.txt parsing
- encoding_utils: Charset detection for fetched bytes
- user_agent: User-Agent rotation
- orchestrator: run_scan entry point

ARCHITECTURE:
1. Discovery: discovery.discover_sitemap_urls → prioritize_pages
2. Retrieval: fetcher.fetch_page under a scan-wide ByteBudget
3. Parsing: parser.parse_page
4. Extraction: extraction.stations_from_page → merge_stations → lines
"""
