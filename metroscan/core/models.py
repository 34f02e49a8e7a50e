"""
Core models and types for MetroScan.

Domain objects are plain dataclasses (stations are mutated during merging);
scan options are a pydantic model so caller-provided values are validated.
"""

import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from metroscan.core.config import get_settings
from metroscan.services.normalizer import canonical_value, normalize_value


# =============================================================================
# Enums
# =============================================================================


class LineId(str, Enum):
    """Fixed vocabulary of base lines."""
    IDENTITY = "identity"
    LANGUAGE = "language"
    CONTACTS = "contacts"
    SERVICES = "services"
    PRODUCTS = "products"
    PAGES = "pages"
    TECH = "tech"
    SOCIAL = "social"
    BRANDING = "branding"
    SCHEMA = "schema"


# Display names, in the order lines appear in a result
BASE_LINES: list[tuple[LineId, str]] = [
    (LineId.IDENTITY, "Identity"),
    (LineId.LANGUAGE, "Language"),
    (LineId.CONTACTS, "Contacts"),
    (LineId.SERVICES, "Services"),
    (LineId.PRODUCTS, "Products"),
    (LineId.PAGES, "Pages"),
    (LineId.TECH, "Tech"),
    (LineId.SOCIAL, "Social"),
    (LineId.BRANDING, "Branding"),
    (LineId.SCHEMA, "Schema"),
]


class ScanStatus(str, Enum):
    """Coarse scan milestones reported through the progress callback."""
    DISCOVERING = "discovering"
    FETCHING = "fetching"
    PROBING = "probing"
    NORMALIZING = "normalizing"
    DETECTING_CONNECTIONS = "detecting-connections"
    DONE = "done"
    ERROR = "error"


# =============================================================================
# Scan data
# =============================================================================


@dataclass
class Evidence:
    """One signal that contributed to a station. Never mutated."""
    source: str
    selector: str
    raw: str


@dataclass
class Station:
    """One atomic extracted fact."""
    id: str
    line_id: str
    label: str
    value: str
    confidence: float
    evidence: list[Evidence] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Normalized dedup key."""
        return station_key(self.line_id, self.label, self.value)


def station_key(line_id: str, label: str, value: str) -> str:
    """Build the dedup key shared by stations and their ids."""
    label_key = normalize_value(label) or label.strip().lower()
    return f"{line_id}:{label_key}:{canonical_value(label, value)}"


@dataclass
class Line:
    """A named category bucket of stations."""
    id: str
    name: str
    stations: list[Station] = field(default_factory=list)
    visible: bool = True


@dataclass
class Transfer:
    """Inferred relationship between two stations on two different lines."""
    id: str
    station_ids: tuple[str, str]
    line_ids: tuple[str, str]
    reason: str


@dataclass
class ScanResult:
    """Top-level artifact of a completed scan."""
    url: str
    lines: list[Line]
    title: str
    transfers: list[Transfer] = field(default_factory=list)
    favicon: str | None = None
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def stations(self) -> list[Station]:
        """All stations across lines."""
        return [s for line in self.lines for s in line.stations]

    def get_line(self, line_id: str) -> Line | None:
        return next((line for line in self.lines if line.id == line_id), None)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable representation for external storage."""
        return asdict(self)


# =============================================================================
# Layout geometry
# =============================================================================


@dataclass
class LayoutPoint:
    x: float
    y: float


@dataclass
class LayoutSegment:
    from_: LayoutPoint
    to: LayoutPoint


# =============================================================================
# Options
# =============================================================================


ProgressCallback = Callable[[str, float], None]


def _setting(name: str) -> Callable[[], Any]:
    return lambda: getattr(get_settings(), name)


class ScanOptions(BaseModel):
    """Options accepted by run_scan. Defaults come from settings."""

    model_config = ConfigDict(frozen=True)

    max_pages: int = Field(default_factory=_setting("max_pages"), ge=1)
    max_depth: int = Field(default_factory=_setting("max_depth"), ge=1)
    request_budget: int = Field(default_factory=_setting("request_budget"), ge=1)
    dev_mode: bool = False
    max_content_length_bytes: int = Field(
        default_factory=_setting("max_content_length_bytes"), ge=1
    )
    concurrency: int = Field(default_factory=_setting("concurrency"), ge=1)
