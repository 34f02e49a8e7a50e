"""
Encoding detection for fetched pages.

Detects character encoding for HTML and text content using:
1. HTTP Content-Type charset header
2. BOM (Byte Order Mark) detection
3. HTML <meta charset> tag
4. Statistical detection via charset_normalizer
"""

import re

import structlog
from charset_normalizer import from_bytes

logger = structlog.get_logger()


_ALIASES = {
    "iso_8859_1": "iso-8859-1",
    "latin1": "iso-8859-1",
    "latin-1": "iso-8859-1",
    "windows-1252": "cp1252",
    "win-1252": "cp1252",
    "utf8": "utf-8",
    "us-ascii": "ascii",
}

_CHARSET_HEADER = re.compile(r'charset\s*=\s*"?([^";,\s]+)"?', re.IGNORECASE)
_META_CHARSET = re.compile(r'<meta\s+charset\s*=\s*["\']?([^"\'>\s]+)', re.IGNORECASE)
_META_HTTP_EQUIV = re.compile(
    r'<meta\s+[^>]*content\s*=\s*["\'][^"\']*charset\s*=\s*([^"\';\s]+)',
    re.IGNORECASE,
)

_BOMS = [
    (b"\xef\xbb\xbf", "utf-8"),
    (b"\xff\xfe\x00\x00", "utf-32-le"),
    (b"\x00\x00\xfe\xff", "utf-32-be"),
    (b"\xff\xfe", "utf-16-le"),
    (b"\xfe\xff", "utf-16-be"),
]


def detect_encoding(
    content: bytes,
    content_type: str | None = None,
    default: str = "utf-8",
) -> str:
    """
    Detect content encoding with multiple fallback strategies.

    Args:
        content: Raw bytes to detect encoding for
        content_type: Content-Type header value (optional)
        default: Default encoding if detection fails

    Returns:
        Detected encoding name (normalized)
    """
    if content_type:
        match = _CHARSET_HEADER.search(content_type)
        if match:
            return _normalize_encoding(match.group(1))

    for bom, encoding in _BOMS:
        if content.startswith(bom):
            return encoding

    head = content[:1024].decode("ascii", errors="ignore")
    match = _META_CHARSET.search(head) or _META_HTTP_EQUIV.search(head)
    if match:
        return _normalize_encoding(match.group(1))

    # Only use first 10KB for statistical detection
    detected = from_bytes(content[:10240]).best()
    if detected and detected.encoding:
        return _normalize_encoding(detected.encoding)

    return default


def decode_content(
    content: bytes,
    content_type: str | None = None,
    default_encoding: str = "utf-8",
) -> str:
    """Decode bytes to text, falling back to the default encoding."""
    encoding = detect_encoding(content, content_type, default_encoding)
    try:
        return content.decode(encoding, errors="replace")
    except LookupError:
        logger.debug("Unknown encoding, using default", encoding=encoding)
        return content.decode(default_encoding, errors="replace")


def _normalize_encoding(encoding: str) -> str:
    """Normalize encoding name to Python-compatible format."""
    encoding = encoding.lower().strip()
    return _ALIASES.get(encoding, encoding)
