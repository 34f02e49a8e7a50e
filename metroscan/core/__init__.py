"""
Core package initialization.
"""

from metroscan.core.config import Settings, get_settings, settings
from metroscan.core.exceptions import (
    BlockedError,
    BudgetExceededError,
    ContentRejectedError,
    DiscoveryError,
    FetchError,
    ParseError,
    ProbeError,
    RobotsDisallowedError,
    ScanError,
)
from metroscan.core.models import (
    BASE_LINES,
    Evidence,
    LayoutPoint,
    LayoutSegment,
    Line,
    LineId,
    ScanOptions,
    ScanResult,
    ScanStatus,
    Station,
    Transfer,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "settings",
    # Errors
    "ScanError",
    "DiscoveryError",
    "FetchError",
    "RobotsDisallowedError",
    "BlockedError",
    "ContentRejectedError",
    "BudgetExceededError",
    "ProbeError",
    "ParseError",
    # Enums
    "LineId",
    "ScanStatus",
    "BASE_LINES",
    # Models
    "Evidence",
    "Station",
    "Line",
    "Transfer",
    "ScanResult",
    "LayoutPoint",
    "LayoutSegment",
    "ScanOptions",
]
