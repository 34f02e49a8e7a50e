"""
Discovery Module - Sitemap Discovery Strategy.

Finds candidate pages for a scan:
1. Try a few well-known sitemap filenames (first usable one wins)
2. Keep same-host <loc> entries, drop files/admin/feeds/tracking URLs
3. Sort by page-type priority, then by path length
4. Without a usable sitemap, guess common page paths
"""

import re
from dataclasses import replace
from urllib.parse import urljoin, urlparse

import httpx
import structlog

from metroscan.core.config import get_settings
from metroscan.core.exceptions import BudgetExceededError, FetchError
from metroscan.services.fetcher import (
    MIN_BODY_LENGTH,
    ByteBudget,
    FetchOptions,
    RobotsChecker,
    fetch_page,
)

logger = structlog.get_logger()


SITEMAP_CANDIDATES = ["sitemap.xml", ".sitemap.xml", "sitemap_index.xml"]

MAX_SITEMAP_URLS = 50

_LOC_PATTERN = re.compile(r"<loc>([^<]+)</loc>", re.IGNORECASE)

# Index in this list is the priority rank (lower is better)
PRIORITY_PATTERNS = [
    re.compile(r"^/$"),
    re.compile(r"/(index|home|main)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(about|about-us)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(contact|contact-us)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(services|service)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(products|product)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(pricing|price)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(team|staff)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(blog|news)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(faq|help)(\.[a-z]+)?/?$", re.IGNORECASE),
    re.compile(r"/(api|docs)(\.[a-z]+)?/?$", re.IGNORECASE),
]

UNRANKED = 100

EXCLUDE_PATTERNS = [
    re.compile(r"\.(pdf|doc|docx|xls|xlsx|zip|tar|gz)$", re.IGNORECASE),
    re.compile(r"\.(jpg|jpeg|png|gif|svg|webp)$", re.IGNORECASE),
    re.compile(r"\.(css|js|json|xml)$", re.IGNORECASE),
    re.compile(r"/(wp-admin|wp-login|admin|login)", re.IGNORECASE),
    re.compile(r"/(cart|checkout|payment)", re.IGNORECASE),
    re.compile(r"/(search|s\?)", re.IGNORECASE),
    re.compile(r"/(feed|rss|atom)", re.IGNORECASE),
    re.compile(r"\?utm_", re.IGNORECASE),
    re.compile(r"/(tag|category)/[^/]+/$", re.IGNORECASE),
]

FALLBACK_PAGES = [
    "/",
    "/index.html",
    "/index.htm",
    "/home",
    "/about",
    "/about-us",
    "/contact",
    "/contact-us",
    "/services",
    "/service",
    "/products",
    "/product",
    "/pricing",
    "/price",
    "/team",
    "/staff",
    "/blog",
    "/news",
    "/faq",
    "/help",
    "/api",
    "/docs",
    "/documentation",
    "/support",
    "/resources",
    "/portfolio",
    "/gallery",
    "/testimonials",
    "/reviews",
    "/locations",
    "/careers",
    "/jobs",
    "/privacy",
    "/terms",
]


def _priority_rank(path: str) -> int:
    rank = UNRANKED
    for index, pattern in enumerate(PRIORITY_PATTERNS):
        if pattern.search(path):
            rank = index
    return rank


def filter_important_pages(urls: list[str], base_url: str) -> list[str]:
    """
    Drop unwanted URLs and sort the rest by importance.

    Args:
        urls: URLs from a sitemap
        base_url: Site base URL (defines the allowed hostname)

    Returns:
        Same-host URLs sorted by priority rank, then path length
    """
    hostname = urlparse(base_url).hostname
    kept: list[tuple[int, int, str]] = []

    for url in urls:
        try:
            parsed = urlparse(url)
        except ValueError:
            continue

        if parsed.hostname != hostname:
            continue

        path = parsed.path or "/"
        # Query string included so tracking/search patterns can match
        target = f"{path}?{parsed.query}" if parsed.query else path
        if any(pattern.search(target) for pattern in EXCLUDE_PATTERNS):
            continue

        kept.append((_priority_rank(path), len(path), url))

    kept.sort(key=lambda item: (item[0], item[1]))
    return [url for _, _, url in kept]


def generate_fallback_pages(base_url: str) -> list[str]:
    """Common page guesses, resolved against base_url and kept on its host."""
    hostname = urlparse(base_url).hostname
    pages = []
    for path in FALLBACK_PAGES:
        url = urljoin(base_url, path)
        if urlparse(url).hostname == hostname:
            pages.append(url)
    return pages


def parse_sitemap_locs(xml: str, hostname: str) -> list[str]:
    """Extract <loc> URLs that mention the given hostname."""
    urls = []
    for match in _LOC_PATTERN.finditer(xml):
        url = match.group(1).strip()
        if url and hostname in url:
            urls.append(url)
    return urls


async def discover_sitemap_urls(
    client: httpx.AsyncClient,
    base_url: str,
    options: FetchOptions | None = None,
    robots: RobotsChecker | None = None,
    budget: ByteBudget | None = None,
) -> list[str]:
    """
    Discover candidate page URLs for a site.

    Args:
        client: HTTP client
        base_url: Site base URL
        options: Fetch options; timeout/retries/backoff are overridden
        robots: Shared robots checker
        budget: Scan byte budget; sitemap bodies are charged to it

    Returns:
        De-duplicated URL list (sitemap results or fallback guesses)
    """
    options = options or FetchOptions()
    settings = get_settings()
    log = logger.bind(component="SitemapDiscovery", base_url=base_url[:60])
    hostname = urlparse(base_url).hostname or ""

    sitemap_options = replace(
        options,
        timeout=settings.sitemap_timeout,
        retries=2,
        backoff=0.3,
    )

    options.report("Looking for sitemap...")
    roots: list[str] = []

    for candidate in SITEMAP_CANDIDATES:
        if budget is not None and budget.exhausted:
            log.info("Budget exhausted, skipping remaining sitemaps")
            break

        sitemap_url = urljoin(base_url, candidate)
        options.report(f"Checking {candidate}...")
        if budget is not None:
            sitemap_options = replace(sitemap_options, request_budget=budget.remaining)
        try:
            xml = await fetch_page(client, sitemap_url, sitemap_options, robots=robots)
            if budget is not None:
                budget.consume(len(xml))
        except BudgetExceededError as e:
            if budget is not None:
                budget.exhaust()
            log.info("Sitemap exceeds budget", candidate=candidate, error=str(e))
            break
        except FetchError as e:
            log.debug("Sitemap candidate failed", candidate=candidate, error=str(e))
            options.report(f"{candidate} failed: {e}")
            continue

        if len(xml) < MIN_BODY_LENGTH:
            options.report(f"{candidate} not found or empty")
            continue

        urls = parse_sitemap_locs(xml, hostname)
        if not urls:
            continue

        filtered = filter_important_pages(urls, base_url)
        roots.extend(filtered[:MAX_SITEMAP_URLS])
        options.report(f"Found {len(urls)} URLs in {candidate}, filtered to {len(filtered)}")
        log.info("Parsed sitemap", candidate=candidate, url_count=len(urls), kept=len(filtered))
        break

    if not roots:
        options.report("No sitemap found, using smart page discovery...")
        log.info("No usable sitemap, using fallback pages")
        roots = generate_fallback_pages(base_url)

    # dict preserves insertion order
    return list(dict.fromkeys(roots))
