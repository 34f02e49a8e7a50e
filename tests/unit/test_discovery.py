"""
Unit tests for candidate page discovery (sitemap + scoring).
"""

import pytest

from conftest import site_handler
from metroscan.services.discovery import (
    discover_sitemap_urls,
    filter_important_pages,
    generate_fallback_pages,
    parse_sitemap_locs,
    prioritize_pages,
    score_page_url,
)
from metroscan.services.fetcher import ByteBudget, FetchOptions

BASE = "https://example.com"

SITEMAP_XML = (
    "<urlset>"
    "<url><loc>https://example.com/about</loc></url>"
    "<url><loc>https://example.com/contact</loc></url>"
    "</urlset>"
)

XML_HEADERS = {"content-type": "application/xml"}


def options() -> FetchOptions:
    return FetchOptions(use_proxies=False, respect_robots=True, proxies=[])


# =============================================================================
# Sitemap
# =============================================================================


@pytest.mark.asyncio
class TestDiscoverSitemapUrls:
    """Sitemap discovery against a mocked site."""

    async def test_sitemap_urls_in_priority_order(self, make_client):
        routes = {f"{BASE}/sitemap.xml": (200, SITEMAP_XML, XML_HEADERS)}
        async with make_client(site_handler(routes)) as client:
            urls = await discover_sitemap_urls(client, BASE, options())
        assert urls == ["https://example.com/about", "https://example.com/contact"]

    async def test_second_candidate_used(self, make_client):
        routes = {f"{BASE}/sitemap_index.xml": (200, SITEMAP_XML, XML_HEADERS)}
        async with make_client(site_handler(routes)) as client:
            urls = await discover_sitemap_urls(client, BASE, options())
        assert urls == ["https://example.com/about", "https://example.com/contact"]

    async def test_fallback_without_sitemap(self, make_client):
        async with make_client(site_handler({})) as client:
            urls = await discover_sitemap_urls(client, BASE, options())
        assert urls == generate_fallback_pages(BASE)
        assert urls[0] == "https://example.com/"

    async def test_foreign_hosts_ignored(self, make_client):
        xml = (
            "<urlset>"
            "<url><loc>https://other.org/about</loc></url>"
            "<url><loc>https://other.org/contact</loc></url>"
            "<url><loc>https://other.org/pricing</loc></url>"
            "</urlset>"
        )
        routes = {f"{BASE}/sitemap.xml": (200, xml, XML_HEADERS)}
        async with make_client(site_handler(routes)) as client:
            urls = await discover_sitemap_urls(client, BASE, options())
        assert urls == generate_fallback_pages(BASE)

    async def test_sitemap_charged_to_budget(self, make_client):
        routes = {f"{BASE}/sitemap.xml": (200, SITEMAP_XML, XML_HEADERS)}
        budget = ByteBudget(10_000)
        async with make_client(site_handler(routes)) as client:
            await discover_sitemap_urls(client, BASE, options(), budget=budget)
        assert budget.remaining == 10_000 - len(SITEMAP_XML)

    async def test_oversized_sitemap_exhausts_budget(self, make_client):
        routes = {
            f"{BASE}/sitemap.xml": (200, SITEMAP_XML, XML_HEADERS),
            f"{BASE}/sitemap_index.xml": (200, SITEMAP_XML, XML_HEADERS),
        }
        handler = site_handler(routes)
        requested = []

        def recording(request):
            requested.append(request.url.path)
            return handler(request)

        budget = ByteBudget(50)
        async with make_client(recording) as client:
            urls = await discover_sitemap_urls(client, BASE, options(), budget=budget)

        assert budget.exhausted
        assert "/sitemap_index.xml" not in requested
        assert urls == generate_fallback_pages(BASE)


class TestSitemapHelpers:
    """Pure helpers used by discovery."""

    def test_parse_locs_filters_hostname(self):
        xml = "<loc> https://example.com/a </loc><loc>https://cdn.net/b</loc>"
        assert parse_sitemap_locs(xml, "example.com") == ["https://example.com/a"]

    def test_filter_excludes_unwanted(self):
        urls = [
            "https://example.com/files/report.pdf",
            "https://example.com/wp-admin/settings",
            "https://example.com/cart",
            "https://example.com/page?utm_source=x",
            "https://example.com/feed",
            "https://example.com/team",
        ]
        assert filter_important_pages(urls, BASE) == ["https://example.com/team"]

    def test_filter_sorts_by_rank_then_length(self):
        urls = [
            "https://example.com/blog/a-long-post",
            "https://example.com/pricing",
            "https://example.com/",
            "https://example.com/x",
        ]
        assert filter_important_pages(urls, BASE) == [
            "https://example.com/",
            "https://example.com/pricing",
            "https://example.com/x",
            "https://example.com/blog/a-long-post",
        ]

    def test_fallback_pages_resolved(self):
        pages = generate_fallback_pages("https://example.com/shop/")
        assert "https://example.com/about" in pages
        assert len(pages) == len(set(pages))


# =============================================================================
# Scoring
# =============================================================================


class TestScorePageUrl:
    """URL scoring for scan priority."""

    def test_root_scores_highest(self):
        root = score_page_url("https://example.com/", "example.com")
        about = score_page_url("https://example.com/about", "example.com")
        assert root > about > 0

    def test_cross_host_invalid(self):
        assert score_page_url("https://other.com/about", "example.com") == -1

    def test_penalties(self):
        assert score_page_url("https://example.com/admin", "example.com") < 0
        assert score_page_url("https://example.com/logo.png", "example.com") < 0

    def test_shorter_paths_preferred(self):
        short = score_page_url("https://example.com/about", "example.com")
        long = score_page_url("https://example.com/about/history/founders", "example.com")
        assert short > long


class TestPrioritizePages:
    def test_keeps_top_scores(self):
        urls = [
            "https://example.com/random-page",
            "https://example.com/admin",
            "https://example.com/contact",
            "https://example.com/",
            "https://other.com/about",
        ]
        assert prioritize_pages(urls, BASE, 2) == [
            "https://example.com/",
            "https://example.com/contact",
        ]

    def test_negative_scores_dropped(self):
        assert prioritize_pages(["https://example.com/login"], BASE, 5) == []
