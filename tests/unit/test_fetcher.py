"""
Unit tests for the Fetcher service.

HTTP is mocked with httpx.MockTransport; no network access.
"""

import httpx
import pytest

from conftest import html_page, site_handler
from metroscan.core.exceptions import (
    BudgetExceededError,
    FetchError,
    RobotsDisallowedError,
)
from metroscan.services.fetcher import (
    ByteBudget,
    FetchOptions,
    RobotsChecker,
    fetch_page,
    probe_apis,
    probe_resources,
    proxy_url,
)

PAGE_URL = "https://example.com/about"
PAGE_HTML = html_page("<h1>About us</h1>")
PROXY = "https://proxy.test/raw?url={url}"


def direct_options(**overrides) -> FetchOptions:
    """Direct fetches only, no sleeping between retries."""
    defaults = dict(retries=1, backoff=0, use_proxies=False, respect_robots=False, proxies=[])
    defaults.update(overrides)
    return FetchOptions(**defaults)


class TestByteBudget:
    """Test the scan-wide byte budget."""

    def test_consume(self):
        budget = ByteBudget(100)
        budget.consume(60)
        assert budget.remaining == 40
        assert budget.exhausted is False

    def test_overdraw_raises_and_exhausts(self):
        budget = ByteBudget(100)
        budget.consume(40)
        with pytest.raises(BudgetExceededError):
            budget.consume(61)
        assert budget.remaining == 0
        assert budget.exhausted is True

    def test_exhaust(self):
        budget = ByteBudget(100)
        budget.exhaust()
        assert budget.exhausted is True

    def test_exhausted(self):
        budget = ByteBudget(10)
        budget.consume(10)
        assert budget.exhausted is True


class TestProxyUrl:
    def test_url_is_encoded(self):
        assert proxy_url(PROXY, "https://a.com/x?y=1") == (
            "https://proxy.test/raw?url=https%3A%2F%2Fa.com%2Fx%3Fy%3D1"
        )


@pytest.mark.asyncio
class TestRobots:
    """robots.txt gate."""

    async def test_robots_failure_is_allowed(self, make_client):
        """A robots.txt request that throws still lets the page through."""
        routes = {
            "https://example.com/robots.txt": httpx.ConnectError("DNS failure"),
            PAGE_URL: (200, PAGE_HTML),
        }
        async with make_client(site_handler(routes)) as client:
            html = await fetch_page(client, PAGE_URL, direct_options(respect_robots=True))
        assert "About us" in html

    async def test_missing_robots_is_allowed(self, make_client):
        async with make_client(site_handler({PAGE_URL: (200, PAGE_HTML)})) as client:
            html = await fetch_page(client, PAGE_URL, direct_options(respect_robots=True))
        assert "About us" in html

    async def test_disallowed_path_raises(self, make_client):
        routes = {
            "https://example.com/robots.txt": (200, "User-agent: *\nDisallow: /about\n", {"content-type": "text/plain"}),
            PAGE_URL: (200, PAGE_HTML),
        }
        async with make_client(site_handler(routes)) as client:
            with pytest.raises(RobotsDisallowedError):
                await fetch_page(client, PAGE_URL, direct_options(respect_robots=True))

    async def test_dev_mode_skips_robots(self, make_client):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, text=PAGE_HTML, headers={"content-type": "text/html"})

        async with make_client(handler) as client:
            checker = RobotsChecker(client)
            allowed = await checker.can_fetch(PAGE_URL, direct_options(dev_mode=True))
        assert allowed is True
        assert requested == []

    async def test_rules_cached_per_origin(self, make_client):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, text="User-agent: *\nDisallow: /x\n")

        async with make_client(handler) as client:
            checker = RobotsChecker(client)
            options = direct_options(respect_robots=True)
            assert await checker.can_fetch("https://example.com/a", options) is True
            assert await checker.can_fetch("https://example.com/x/1", options) is False
        assert requested == ["/robots.txt"]


@pytest.mark.asyncio
class TestFetchPage:
    """Direct fetching, retries and proxy fallback."""

    async def test_direct_success(self, make_client):
        async with make_client(site_handler({PAGE_URL: (200, PAGE_HTML)})) as client:
            html = await fetch_page(client, PAGE_URL, direct_options())
        assert html == PAGE_HTML

    async def test_retries_then_succeeds(self, make_client):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) < 3:
                return httpx.Response(500, text="error")
            return httpx.Response(200, text=PAGE_HTML, headers={"content-type": "text/html"})

        async with make_client(handler) as client:
            html = await fetch_page(client, PAGE_URL, direct_options(retries=3))
        assert html == PAGE_HTML
        assert len(calls) == 3

    async def test_all_attempts_fail(self, make_client):
        async with make_client(site_handler({})) as client:
            with pytest.raises(FetchError, match="All fetch attempts failed"):
                await fetch_page(client, PAGE_URL, direct_options(retries=2))

    async def test_blocked_direct_falls_back_to_proxy(self, make_client):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            if request.url.host == "example.com":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, text=PAGE_HTML, headers={"content-type": "text/html"})

        options = direct_options(retries=3, use_proxies=True, proxies=[PROXY])
        async with make_client(handler) as client:
            html = await fetch_page(client, PAGE_URL, options)

        assert html == PAGE_HTML
        # Blocked direct fetch is not retried
        assert calls == ["example.com", "proxy.test"]

    async def test_prefer_proxies_tries_proxy_first(self, make_client):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            return httpx.Response(200, text=PAGE_HTML, headers={"content-type": "text/html"})

        options = direct_options(use_proxies=True, prefer_proxies=True, proxies=[PROXY])
        async with make_client(handler) as client:
            await fetch_page(client, PAGE_URL, options)
        assert calls == ["proxy.test"]

    async def test_progress_messages(self, make_client):
        messages = []
        options = direct_options(use_proxies=True, proxies=[PROXY], on_progress=messages.append)
        async with make_client(site_handler({})) as client:
            with pytest.raises(FetchError):
                await fetch_page(client, PAGE_URL, options)
        assert "Trying proxy 1/1..." in messages


@pytest.mark.asyncio
class TestGuards:
    """Content-type, size and budget guards."""

    async def test_binary_content_rejected(self, make_client):
        routes = {PAGE_URL: (200, PAGE_HTML, {"content-type": "application/pdf"})}
        async with make_client(site_handler(routes)) as client:
            with pytest.raises(FetchError):
                await fetch_page(client, PAGE_URL, direct_options())

    async def test_short_body_rejected(self, make_client):
        async with make_client(site_handler({PAGE_URL: (200, "<p>tiny</p>")})) as client:
            with pytest.raises(FetchError, match="too short"):
                await fetch_page(client, PAGE_URL, direct_options())

    async def test_oversized_body_rejected(self, make_client):
        async with make_client(site_handler({PAGE_URL: (200, PAGE_HTML)})) as client:
            with pytest.raises(FetchError, match="too large"):
                await fetch_page(client, PAGE_URL, direct_options(max_content_length_bytes=50))

    async def test_budget_exceeded_propagates(self, make_client):
        async with make_client(site_handler({PAGE_URL: (200, PAGE_HTML)})) as client:
            with pytest.raises(BudgetExceededError):
                await fetch_page(client, PAGE_URL, direct_options(request_budget=50))


@pytest.mark.asyncio
class TestProbes:
    """Resource and API probes."""

    async def test_probe_apis_keeps_successes(self, make_client):
        routes = {
            "https://example.com/api/config": (200, '{"theme": "dark"}', {"content-type": "application/json"}),
        }
        async with make_client(site_handler(routes)) as client:
            results = await probe_apis(client, "https://example.com", direct_options())

        assert len(results) == 1
        assert results[0].url == "https://example.com/api/config"
        assert results[0].status == 200
        assert results[0].body_snippet == '{"theme": "dark"}'

    async def test_probe_errors_are_swallowed(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        async with make_client(handler) as client:
            results = await probe_resources(client, "https://example.com", direct_options())
        assert results == []

    async def test_probe_binary_skipped(self, make_client):
        routes = {
            "https://example.com/manifest.json": (200, "binary", {"content-type": "application/octet-stream"}),
        }
        async with make_client(site_handler(routes)) as client:
            results = await probe_resources(client, "https://example.com", direct_options())
        assert results == []

    async def test_exhausted_budget_skips_probes(self, make_client):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, text="{}")

        budget = ByteBudget(1)
        budget.consume(1)
        async with make_client(handler) as client:
            results = await probe_apis(client, "https://example.com", direct_options(), budget)
        assert results == []
        assert calls == []

    async def test_probe_consumes_budget(self, make_client):
        manifest = '{"name": "Acme"}'

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/manifest.json":
                return httpx.Response(200, text=manifest, headers={"content-type": "application/json"})
            return httpx.Response(404)

        budget = ByteBudget(1000)
        async with make_client(handler) as client:
            results = await probe_resources(client, "https://example.com", direct_options(), budget)
        assert [r.url for r in results] == ["https://example.com/manifest.json"]
        assert budget.remaining == 1000 - len(manifest)
