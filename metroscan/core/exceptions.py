"""
Exception taxonomy for MetroScan.

Only DiscoveryError is fatal for a scan. Everything deriving from FetchError
is per-URL: the orchestrator drops the page and carries on.
"""


class ScanError(Exception):
    """Base class for all scanner errors."""

    pass


class DiscoveryError(ScanError):
    """Candidate URL discovery failed; the scan cannot continue."""

    pass


class FetchError(ScanError):
    """A single URL could not be retrieved."""

    pass


class RobotsDisallowedError(FetchError):
    """robots.txt explicitly disallows the path."""

    pass


class BlockedError(FetchError):
    """Network-level refusal (connect failure, timeout, reset).

    Plays the role of a browser CORS rejection: retrying the same direct
    request is pointless, so the fetcher moves straight to proxies.
    """

    pass


class ContentRejectedError(FetchError):
    """Response arrived but failed a guard (status, content-type, size)."""

    pass


class BudgetExceededError(FetchError):
    """The scan-wide byte budget would be overdrawn."""

    pass


class ProbeError(ScanError):
    """A resource/API probe failed. Never escapes the probing functions."""

    pass


class ParseError(ScanError):
    """The page parser failed on fetched content."""

    pass
