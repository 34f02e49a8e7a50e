"""
Pytest configuration and fixtures for MetroScan tests.
"""

from collections.abc import Callable

import httpx
import pytest

from metroscan.core.models import Station, station_key


# A body comfortably above the fetcher's minimum length
FILLER = "<p>" + "Lorem ipsum dolor sit amet. " * 8 + "</p>"


def html_page(body: str = "", head: str = "", lang: str = "en") -> str:
    """Wrap fragments into a complete HTML document."""
    return f'<!DOCTYPE html><html lang="{lang}"><head>{head}</head><body>{body}{FILLER}</body></html>'


Route = tuple[int, str] | tuple[int, str, dict[str, str]]


def site_handler(routes: dict[str, Route]) -> Callable[[httpx.Request], httpx.Response]:
    """Build a MockTransport handler serving ``routes`` keyed by full URL.

    Unknown URLs get a 404. A route value may also be an exception
    instance, which is raised for that request.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        status, body, *rest = route
        headers = rest[0] if rest else {"content-type": "text/html; charset=utf-8"}
        return httpx.Response(status, text=body, headers=headers)

    return handler


@pytest.fixture
def make_client() -> Callable[..., httpx.AsyncClient]:
    """Factory for AsyncClients backed by a MockTransport."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


def make_station(line_id: str, label: str, value: str, confidence: float = 0.8) -> Station:
    """Station with its content-key id."""
    return Station(
        id=station_key(line_id, label, value),
        line_id=line_id,
        label=label,
        value=value,
        confidence=confidence,
    )
