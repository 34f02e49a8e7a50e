"""
Logging configuration for MetroScan.

Structured logging via structlog. Every scan binds a short ``scan_id`` into
the context variables so all log lines emitted while the scan runs
(fetcher attempts, discovery, extraction) can be correlated.
"""

import logging
import sys
import uuid
from typing import Any

import structlog
from structlog.types import Processor


def bind_scan_context(url: str, scan_id: str | None = None) -> str:
    """Bind scan-scoped fields into structlog context variables.

    Returns:
        The scan id that was bound.
    """
    scan_id = scan_id or str(uuid.uuid4())[:8]
    structlog.contextvars.bind_contextvars(scan_id=scan_id, scan_url=url[:80])
    return scan_id


def clear_scan_context() -> None:
    """Remove scan-scoped fields bound by bind_scan_context."""
    structlog.contextvars.unbind_contextvars("scan_id", "scan_url")


def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Processor to tag every entry with the service name."""
    event_dict.setdefault("service", "metroscan")
    return event_dict


def configure_logging(json_logs: bool = False, log_level: str = "INFO") -> None:
    """
    Configure structlog.

    Args:
        json_logs: If True, output JSON format (for production).
                   If False, output colored console format (for development).
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_service_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO through the stdlib logger
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
