"""
Resilient page retrieval for MetroScan.

Features:
- robots.txt gate that fails open (only an explicit Disallow blocks)
- direct fetch and CORS-proxy fallback, in configurable order
- User-Agent rotation per attempt
- linear retry backoff for direct fetches
- content-type, size and byte-budget guards
- lightweight resource/API probes
"""

import asyncio
import math
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import quote, urljoin, urlparse

import httpx
import structlog

from metroscan.core.config import get_settings
from metroscan.core.exceptions import (
    BlockedError,
    BudgetExceededError,
    ContentRejectedError,
    FetchError,
    ProbeError,
    RobotsDisallowedError,
)
from metroscan.services.encoding_utils import decode_content
from metroscan.services.robots_parser import is_path_allowed, parse_robots_txt
from metroscan.services.user_agent import build_headers

logger = structlog.get_logger()


# =============================================================================
# Constants
# =============================================================================

BINARY_CONTENT_TYPE = re.compile(r"image|audio|video|pdf|zip|tar|gzip|octet-stream", re.IGNORECASE)

# Anything shorter is almost always an error stub or an empty shell
MIN_BODY_LENGTH = 100

RESOURCE_PROBES = [
    "/manifest.json",
    "/.well-known/security.txt",
    "/.well-known/assetlinks.json",
]

API_PROBES = [
    "/api/config",
    "/api/navigation",
    "/api/search?q=site",
    "/api/products?limit=20",
    "/wp-json/wp/v2/pages",
]

PROBE_ACCEPT = "application/json,text/html;q=0.8,*/*;q=0.5"


# =============================================================================
# Data Classes
# =============================================================================


def _setting(name: str) -> Callable:
    return lambda: getattr(get_settings(), name)


@dataclass
class FetchOptions:
    """Per-call fetch configuration. Defaults come from settings."""
    timeout: float = field(default_factory=_setting("fetch_timeout"))
    retries: int = field(default_factory=_setting("fetch_retries"))
    backoff: float = field(default_factory=_setting("fetch_backoff"))
    respect_robots: bool = field(default_factory=_setting("respect_robots"))
    dev_mode: bool = False
    use_proxies: bool = field(default_factory=_setting("use_proxies"))
    prefer_proxies: bool = field(default_factory=_setting("prefer_proxies"))
    proxies: list[str] = field(default_factory=lambda: list(get_settings().cors_proxies))
    max_content_length_bytes: int = field(default_factory=_setting("fetch_max_content_length_bytes"))
    request_budget: int | None = None  # total characters allowed for this call
    on_progress: Callable[[str], None] | None = None

    def report(self, message: str) -> None:
        if self.on_progress:
            self.on_progress(message)


@dataclass
class ProbeResult:
    """Successful response from a well-known resource/API path."""
    url: str
    status: int
    ok: bool
    body_snippet: str = ""


class ByteBudget:
    """Scan-wide running byte budget.

    consume() checks and decrements under a lock, so the counter stays
    consistent even if fetches are ever dispatched from worker threads.
    A refused overdraft spends the budget: nothing further is fetched.
    """

    def __init__(self, total: int):
        self.total = total
        self._remaining = total
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def exhausted(self) -> bool:
        return self._remaining <= 0

    def exhaust(self) -> None:
        """Mark the budget spent."""
        with self._lock:
            self._remaining = 0

    def consume(self, amount: int) -> None:
        """Deduct ``amount``; an overdraft exhausts the budget and raises."""
        with self._lock:
            if self._remaining - amount < 0:
                remaining, self._remaining = self._remaining, 0
                raise BudgetExceededError(
                    f"Request budget exceeded ({amount} > {remaining} remaining)"
                )
            self._remaining -= amount


# =============================================================================
# Robots.txt
# =============================================================================


def proxy_url(template: str, url: str) -> str:
    """Expand a proxy template with the URL-encoded target."""
    return template.replace("{url}", quote(url, safe=""))


class RobotsChecker:
    """Check robots.txt compliance before fetching.

    Caches disallow rules per origin for the lifetime of the instance.
    Any failure to load or parse robots.txt counts as "allowed".
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self._cache: dict[str, list[str]] = {}
        self.log = logger.bind(component="RobotsChecker")

    async def can_fetch(self, url: str, options: FetchOptions) -> bool:
        """Check if URL can be fetched according to robots.txt.

        Args:
            url: URL to check
            options: Fetch options (proxy order, progress reporting)

        Returns:
            False only if a Disallow rule explicitly matches the path
        """
        if options.dev_mode:
            return True
        try:
            parsed = urlparse(url)
            origin = f"{parsed.scheme}://{parsed.netloc}"

            if origin not in self._cache:
                self._cache[origin] = await self._load_disallows(origin, options)

            return is_path_allowed(parsed.path, self._cache[origin])
        except Exception as e:
            self.log.debug("robots.txt check failed", url=url[:80], error=str(e))
            options.report("robots.txt check failed, continuing")
            return True

    async def _load_disallows(self, origin: str, options: FetchOptions) -> list[str]:
        """Fetch robots.txt for origin; empty rule list when unavailable."""
        robots_url = f"{origin}/robots.txt"
        options.report("Checking robots.txt...")

        targets = [robots_url]
        if options.prefer_proxies and options.use_proxies:
            targets = [proxy_url(p, robots_url) for p in options.proxies] + targets

        settings = get_settings()
        for target in targets:
            try:
                response = await self.client.get(
                    target,
                    headers=build_headers("text/plain,*/*;q=0.5"),
                    timeout=settings.robots_timeout,
                    follow_redirects=True,
                )
            except httpx.HTTPError as e:
                self.log.debug("Failed to fetch robots.txt", target=target[:80], error=str(e))
                continue

            if not response.is_success:
                continue

            _, disallows = parse_robots_txt(response.text)
            self.log.debug("Loaded robots.txt", origin=origin, disallow_rules=len(disallows))
            return disallows

        options.report("No robots.txt found, continuing...")
        return []


# =============================================================================
# Page Fetching
# =============================================================================


async def _try_fetch(
    client: httpx.AsyncClient,
    target_url: str,
    timeout: float,
    max_content_length_bytes: int,
) -> str:
    """Single GET attempt with content guards.

    Raises:
        BlockedError: network-level failure or timeout
        ContentRejectedError: bad status, binary content, oversized body
        FetchError: any other transport error
    """
    try:
        async with client.stream(
            "GET",
            target_url,
            headers=build_headers(),
            timeout=timeout,
            follow_redirects=True,
        ) as response:
            if not response.is_success:
                raise ContentRejectedError(f"HTTP {response.status_code}")

            content_type = response.headers.get("content-type", "")
            if BINARY_CONTENT_TYPE.search(content_type):
                raise ContentRejectedError(f"Blocked binary content-type: {content_type}")

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > max_content_length_bytes:
                raise ContentRejectedError("Content too large")

            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > max_content_length_bytes:
                    raise ContentRejectedError("Content too large")
                chunks.append(chunk)

    except (httpx.TimeoutException, httpx.NetworkError) as e:
        raise BlockedError(f"{type(e).__name__}: {e}") from e
    except httpx.HTTPError as e:
        raise FetchError(f"{type(e).__name__}: {e}") from e

    return decode_content(b"".join(chunks), content_type)


async def fetch_page(
    client: httpx.AsyncClient,
    url: str,
    options: FetchOptions | None = None,
    robots: RobotsChecker | None = None,
) -> str:
    """
    Fetch a page as text, trying direct and proxy strategies.

    Args:
        client: httpx AsyncClient for requests
        url: Absolute URL to fetch
        options: Fetch options (defaults from settings)
        robots: Shared robots checker (a fresh one is used if omitted)

    Returns:
        Decoded page body

    Raises:
        RobotsDisallowedError: robots.txt explicitly disallows the path
        BudgetExceededError: the body would overdraw ``request_budget``
        FetchError: every attempt in every strategy failed
    """
    options = options or FetchOptions()
    log = logger.bind(component="Fetcher", url=url[:80])

    if options.respect_robots:
        robots = robots or RobotsChecker(client)
        if not await robots.can_fetch(url, options):
            log.info("Blocked by robots.txt")
            raise RobotsDisallowedError(f"Blocked by robots.txt: {url}")

    budget_remaining = options.request_budget if options.request_budget is not None else math.inf
    errors: list[str] = []

    def accept(html: str) -> str:
        nonlocal budget_remaining
        if len(html) < MIN_BODY_LENGTH:
            raise ContentRejectedError("Response too short")
        if budget_remaining - len(html) < 0:
            raise BudgetExceededError("Request budget exceeded")
        budget_remaining -= len(html)
        return html

    async def attempt_direct() -> str:
        last_error: FetchError | None = None
        for attempt in range(1, options.retries + 1):
            try:
                html = await _try_fetch(client, url, options.timeout, options.max_content_length_bytes)
                return accept(html)
            except BudgetExceededError:
                raise
            except FetchError as e:
                last_error = e
                errors.append(f"direct #{attempt}: {e}")
                if isinstance(e, BlockedError) and options.use_proxies:
                    options.report("Direct fetch blocked, switching to proxies...")
                    break
                options.report(f"Direct fetch failed (attempt {attempt}/{options.retries}): {e}")
                log.debug("Direct fetch failed", attempt=attempt, error=str(e))
                if attempt < options.retries:
                    await asyncio.sleep(options.backoff * attempt)
        raise last_error or FetchError("Direct fetch failed")

    async def attempt_proxies() -> str:
        last_error: FetchError | None = None
        for i, template in enumerate(options.proxies, start=1):
            options.report(f"Trying proxy {i}/{len(options.proxies)}...")
            try:
                html = await _try_fetch(
                    client,
                    proxy_url(template, url),
                    options.timeout,
                    options.max_content_length_bytes,
                )
                html = accept(html)
                options.report(f"Proxy {i} succeeded!")
                return html
            except BudgetExceededError:
                raise
            except FetchError as e:
                last_error = e
                errors.append(f"proxy #{i}: {e}")
                options.report(f"Proxy {i} failed: {e}")
                log.debug("Proxy fetch failed", proxy=i, error=str(e))
        raise last_error or FetchError("Proxy fetch failed")

    if not options.use_proxies:
        strategies = [attempt_direct]
    elif options.prefer_proxies:
        strategies = [attempt_proxies, attempt_direct]
    else:
        strategies = [attempt_direct, attempt_proxies]

    for strategy in strategies:
        try:
            return await strategy()
        except BudgetExceededError:
            raise
        except FetchError:
            continue

    detail = "; ".join(errors) or "no attempts made"
    log.debug("All fetch attempts failed", attempts=len(errors))
    raise FetchError(f"All fetch attempts failed: {detail}")


# =============================================================================
# Resource + API probes
# =============================================================================


async def _safe_probe(
    client: httpx.AsyncClient,
    url: str,
    options: FetchOptions,
) -> ProbeResult:
    """GET one probe path.

    Raises:
        ProbeError: on any transport failure or rejected content
    """
    settings = get_settings()
    try:
        response = await client.get(
            url,
            headers=build_headers(PROBE_ACCEPT),
            timeout=options.timeout,
            follow_redirects=True,
        )
    except httpx.HTTPError as e:
        raise ProbeError(f"{type(e).__name__}: {e}") from e

    content_type = response.headers.get("content-type", "")
    if BINARY_CONTENT_TYPE.search(content_type):
        raise ProbeError(f"Binary content-type: {content_type}")

    max_length = settings.probe_max_content_length_bytes
    declared = response.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_length:
        raise ProbeError("Content too large")

    snippet = response.text[: min(settings.probe_snippet_chars, max_length)]
    return ProbeResult(
        url=url,
        status=response.status_code,
        ok=response.is_success,
        body_snippet=snippet,
    )


async def _run_probes(
    client: httpx.AsyncClient,
    base_url: str,
    paths: list[str],
    kind: str,
    options: FetchOptions | None,
    budget: ByteBudget | None,
) -> list[ProbeResult]:
    options = options or FetchOptions()
    log = logger.bind(component="Prober", kind=kind)
    results: list[ProbeResult] = []

    for path in paths:
        if budget is not None and budget.exhausted:
            log.debug("Budget exhausted, skipping remaining probes")
            break

        full = urljoin(base_url, path)
        options.report(f"Probing {kind} {full}")
        try:
            result = await _safe_probe(client, full, options)
            if budget is not None:
                budget.consume(len(result.body_snippet))
        except (ProbeError, BudgetExceededError) as e:
            log.debug("Probe skipped", url=full[:80], error=str(e))
            continue

        if result.ok:
            results.append(result)

    return results


async def probe_resources(
    client: httpx.AsyncClient,
    base_url: str,
    options: FetchOptions | None = None,
    budget: ByteBudget | None = None,
) -> list[ProbeResult]:
    """Probe well-known resource files (manifest, security.txt, ...)."""
    return await _run_probes(client, base_url, RESOURCE_PROBES, "resource", options, budget)


async def probe_apis(
    client: httpx.AsyncClient,
    base_url: str,
    options: FetchOptions | None = None,
    budget: ByteBudget | None = None,
) -> list[ProbeResult]:
    """Probe common JSON API endpoints (/api/*, /wp-json/*)."""
    return await _run_probes(client, base_url, API_PROBES, "API", options, budget)
