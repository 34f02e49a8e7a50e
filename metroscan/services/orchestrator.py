"""
Scan orchestration.

Pipeline:
1. Discover candidate pages (sitemap or fallback guesses) and trim them
2. Fetch + parse + extract in batches of ``concurrency`` under a byte budget
3. Probe well-known API/resource paths
4. Merge stations across pages and assemble the ten base lines

Transfers are left empty here; they need 2D positions and are computed by
metroscan.layout.

Usage:
    from metroscan.services.orchestrator import run_scan

    result = await run_scan("example.com", on_progress=print)
    for line in result.lines:
        print(line.name, len(line.stations))
"""

import asyncio
from dataclasses import dataclass, replace

import httpx
import structlog

from metroscan.core.config import get_settings
from metroscan.core.exceptions import BudgetExceededError, DiscoveryError
from metroscan.core.logging import bind_scan_context, clear_scan_context
from metroscan.core.models import (
    BASE_LINES,
    Evidence,
    Line,
    LineId,
    ProgressCallback,
    ScanOptions,
    ScanResult,
    ScanStatus,
    Station,
)
from metroscan.services.discovery import discover_sitemap_urls, prioritize_pages
from metroscan.services.extraction import (
    TitleBeautifier,
    add_station,
    default_title_beautifier,
    merge_stations,
    stations_from_page,
)
from metroscan.services.fetcher import (
    ByteBudget,
    FetchOptions,
    ProbeResult,
    RobotsChecker,
    fetch_page,
    probe_apis,
    probe_resources,
)
from metroscan.services.parser import ParsedPage, parse_page

logger = structlog.get_logger()


@dataclass
class PageScan:
    """One successfully fetched page and its stations."""
    page: ParsedPage
    stations: list[Station]


def normalize_scan_url(url: str) -> str:
    url = url.strip()
    if not url.startswith("http"):
        url = "https://" + url
    return url


class ScanOrchestrator:
    """Runs one scan against one site."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        options: ScanOptions,
        on_progress: ProgressCallback | None = None,
        beautify: TitleBeautifier = default_title_beautifier,
    ):
        self.client = client
        self.url = url
        self.options = options
        self.on_progress = on_progress
        self.beautify = beautify
        self.budget = ByteBudget(options.request_budget)
        self.robots = RobotsChecker(client)
        self.log = logger.bind(component="Orchestrator")

        self.fetch_options = FetchOptions(
            respect_robots=not options.dev_mode,
            dev_mode=options.dev_mode,
            on_progress=lambda message: self.log.debug("Fetch progress", message=message),
        )

    def report(self, status: ScanStatus, progress: float) -> None:
        self.log.debug("Scan progress", status=status.value, progress=round(progress, 3))
        if self.on_progress:
            self.on_progress(status.value, progress)

    async def run(self) -> ScanResult:
        candidates = await self.discover()
        scans = await self.fetch_pages(candidates)
        api_results, resource_results = await self.probe()

        self.report(ScanStatus.NORMALIZING, 0.6)
        stations = merge_stations([s for scan in scans for s in scan.stations])
        self._add_probe_stations(stations, api_results, resource_results)
        lines = self.build_lines(stations)

        # Transfers need layout positions; see metroscan.layout
        self.report(ScanStatus.DETECTING_CONNECTIONS, 0.8)

        first = scans[0].page if scans else None
        result = ScanResult(
            url=self.url,
            lines=lines,
            transfers=[],
            title=(first.title if first else "") or self.url,
            favicon=first.meta_tags.get("og:image") if first else None,
        )

        self.report(ScanStatus.DONE, 1.0)
        self.log.info(
            "Scan complete",
            pages=len(scans),
            lines=len(lines),
            stations=len(stations),
            budget_remaining=self.budget.remaining,
        )
        return result

    async def discover(self) -> list[str]:
        """Candidate URLs, trimmed to max_pages by priority."""
        self.report(ScanStatus.DISCOVERING, 0.05)
        try:
            candidates = await discover_sitemap_urls(
                self.client, self.url, self.fetch_options, robots=self.robots, budget=self.budget
            )
        except Exception as e:
            self.log.error("Discovery failed", error=str(e))
            self.report(ScanStatus.ERROR, 0.05)
            raise DiscoveryError(f"Discovery failed for {self.url}: {e}") from e

        if not candidates:
            self.report(ScanStatus.ERROR, 0.05)
            raise DiscoveryError(f"No candidate pages found for {self.url}")

        max_pages = self.options.max_pages
        candidates = candidates[: max_pages * self.options.max_depth]
        if len(candidates) > max_pages:
            candidates = prioritize_pages(candidates, self.url, max_pages)
            self.log.info("Prioritized candidates", count=len(candidates))

        self.log.info("Discovered candidates", count=len(candidates))
        return candidates

    async def fetch_pages(self, candidates: list[str]) -> list[PageScan]:
        """Fetch, parse and extract in sequential batches."""
        scans: list[PageScan] = []
        concurrency = self.options.concurrency
        max_pages = self.options.max_pages

        for start in range(0, len(candidates), concurrency):
            if len(scans) >= max_pages:
                break

            batch = candidates[start:start + concurrency]
            self.report(ScanStatus.FETCHING, 0.1 + (start / len(candidates)) * 0.2)

            results = await asyncio.gather(
                *(self._scan_page(target) for target in batch),
                return_exceptions=True,
            )

            for target, result in zip(batch, results):
                if isinstance(result, Exception):
                    self.log.info("Dropped page", url=target[:80], error=str(result))
                    continue
                if isinstance(result, BaseException):
                    raise result
                scans.append(result)
                if len(scans) >= max_pages:
                    break

        return scans

    async def _scan_page(self, target: str) -> PageScan:
        """Fetch one URL and turn it into stations. Any failure drops the page."""
        if self.budget.exhausted:
            raise BudgetExceededError("Request budget exceeded")

        options = replace(
            self.fetch_options,
            max_content_length_bytes=self.options.max_content_length_bytes,
            request_budget=self.budget.remaining,
        )
        try:
            html = await fetch_page(self.client, target, options, robots=self.robots)
        except BudgetExceededError:
            self.budget.exhaust()
            raise
        self.budget.consume(len(html))

        page = parse_page(html, target)
        return PageScan(page=page, stations=stations_from_page(page, self.beautify))

    async def probe(self) -> tuple[list[ProbeResult], list[ProbeResult]]:
        self.report(ScanStatus.PROBING, 0.32)
        if self.budget.exhausted:
            self.log.info("Budget exhausted, skipping probes")
            return [], []

        api_results = await probe_apis(self.client, self.url, self.fetch_options, self.budget)
        resource_results = await probe_resources(self.client, self.url, self.fetch_options, self.budget)
        return api_results, resource_results

    def _add_probe_stations(
        self,
        stations: list[Station],
        api_results: list[ProbeResult],
        resource_results: list[ProbeResult],
    ) -> None:
        index = {s.key: s for s in stations}
        tech = LineId.TECH.value

        for i, res in enumerate(api_results):
            evidence = [Evidence(source="api-probe", selector=f"api#{i}", raw=res.body_snippet)]
            add_station(stations, index, tech, "API", res.url, 0.6, evidence)
        for i, res in enumerate(resource_results):
            evidence = [Evidence(source="resource-probe", selector=f"res#{i}", raw=res.body_snippet)]
            add_station(stations, index, tech, "Resource", res.url, 0.55, evidence)

    @staticmethod
    def build_lines(stations: list[Station]) -> list[Line]:
        """The fixed line vocabulary, empty lines dropped."""
        lines = []
        for line_id, name in BASE_LINES:
            members = [s for s in stations if s.line_id == line_id.value]
            if members:
                lines.append(Line(id=line_id.value, name=name, stations=members))
        return lines


async def run_scan(
    url: str,
    on_progress: ProgressCallback | None = None,
    options: ScanOptions | None = None,
    client: httpx.AsyncClient | None = None,
    beautify: TitleBeautifier = default_title_beautifier,
) -> ScanResult:
    """
    Scan a website and return its lines and stations.

    Args:
        url: Site URL; https:// is assumed when no scheme is given
        on_progress: Called with (status, progress in [0, 1]) at milestones
        options: Scan options (defaults from settings)
        client: HTTP client to use; one is created (and closed) if omitted
        beautify: Title strategy for link/script stations

    Returns:
        ScanResult with ``transfers`` left empty

    Raises:
        DiscoveryError: no candidate pages could be determined
    """
    url = normalize_scan_url(url)
    options = options or ScanOptions()
    bind_scan_context(url)
    logger.info("Starting scan", url=url[:80], max_pages=options.max_pages)

    try:
        if client is not None:
            return await ScanOrchestrator(client, url, options, on_progress, beautify).run()

        settings = get_settings()
        async with httpx.AsyncClient(
            timeout=settings.fetch_timeout,
            follow_redirects=True,
        ) as owned_client:
            return await ScanOrchestrator(owned_client, url, options, on_progress, beautify).run()
    finally:
        clear_scan_context()
