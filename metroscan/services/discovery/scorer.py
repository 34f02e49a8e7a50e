"""
Discovery Module - Page Scoring.

Ranks candidate page URLs for a scan. Purely URL based, no HTTP requests.
"""

import re
from urllib.parse import urlparse


# (path predicate keywords, bonus) - first matching tier wins
PAGE_TIERS: list[tuple[tuple[str, ...], int]] = [
    (("/about", "/contact"), 90),
    (("/services", "/products"), 80),
    (("/pricing", "/team"), 70),
    (("/blog", "/news"), 60),
    (("/faq", "/help"), 50),
    (("/api", "/docs"), 40),
]

ROOT_PATHS = {"/", "/index.html", "/home"}
ROOT_BONUS = 100

ASSET_EXTENSION = re.compile(r"\.(pdf|doc|jpg|png|css|js)$", re.IGNORECASE)

# (keywords, penalty) - all matching penalties apply
PENALTIES: list[tuple[tuple[str, ...], int]] = [
    (("/admin", "/login"), -40),
    (("/cart", "/checkout"), -30),
    (("/search", "/feed"), -20),
]

INVALID_SCORE = -1.0


def score_page_url(url: str, hostname: str) -> float:
    """
    Score a page URL for scan priority.

    Args:
        url: Candidate URL
        hostname: Hostname of the scanned site

    Returns:
        Score (negative means "do not scan")
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return INVALID_SCORE

    if not parsed.hostname or parsed.hostname != hostname:
        return INVALID_SCORE

    path = (parsed.path or "/").lower()
    score = 0.0

    if path in ROOT_PATHS:
        score += ROOT_BONUS
    else:
        for keywords, bonus in PAGE_TIERS:
            if any(kw in path for kw in keywords):
                score += bonus
                break

    # Prefer shorter URLs (higher level pages)
    score -= len(path) * 0.1

    if ASSET_EXTENSION.search(path):
        score -= 50
    for keywords, penalty in PENALTIES:
        if any(kw in path for kw in keywords):
            score += penalty

    return score


def prioritize_pages(urls: list[str], base_url: str, max_pages: int) -> list[str]:
    """
    Keep the ``max_pages`` highest scoring same-host URLs.

    Ties keep their discovery order.
    """
    hostname = urlparse(base_url).hostname or ""
    scored = [(url, score_page_url(url, hostname)) for url in urls]
    kept = [item for item in scored if item[1] >= 0]
    kept.sort(key=lambda item: item[1], reverse=True)
    return [url for url, _ in kept[:max_pages]]
