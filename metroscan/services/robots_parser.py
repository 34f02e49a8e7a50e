"""
Robots.txt parsing for MetroScan.

Disallow rules from every User-agent group are collected and matched as
path prefixes. A bare "Disallow: /" is recorded but not enforced.
"""


def parse_robots_txt(content: str) -> tuple[list[str], list[str]]:
    """
    Parse robots.txt content.

    Args:
        content: Raw robots.txt content

    Returns:
        (sitemap_urls, disallow_paths)
    """
    sitemap_urls = []
    disallow_paths = []

    for line in content.splitlines():
        line = line.strip()

        # Skip comments and empty lines
        if not line or line.startswith("#"):
            continue

        lowered = line.lower()

        if lowered.startswith("sitemap:"):
            url = line.split(":", 1)[1].strip()
            if url:
                sitemap_urls.append(url)
            continue

        if lowered.startswith("disallow:"):
            path = line.split(":", 1)[1].split("#", 1)[0].strip()
            if path:
                disallow_paths.append(path)

    return sitemap_urls, disallow_paths


def is_path_allowed(path: str, disallow_paths: list[str]) -> bool:
    """Check a URL path against Disallow rules (prefix match, "/" ignored)."""
    path = path or "/"
    return not any(rule != "/" and path.startswith(rule) for rule in disallow_paths)
