"""
Human-readable titles for link and script URLs.

Purely cosmetic. The station pipeline depends only on the TitleBeautifier
protocol, so the name tables below can be swapped or extended without
touching extraction.
"""

import re
from typing import Protocol
from urllib.parse import urlparse


class TitleBeautifier(Protocol):
    """Turns a URL (plus optional link text) into a display title."""

    def __call__(self, url: str, text: str | None = None) -> str: ...


# Substring of file name -> display name. Checked in order.
MEDIA_LIBRARY_NAMES = {
    "jquery-migrate": "jQuery Migrate",
    "jquery": "jQuery",
    "bootstrap5": "Bootstrap 5",
    "bootstrap": "Bootstrap",
    "popper": "Popper.js",
    "fontawesome": "Font Awesome",
    "slick": "Slick Carousel",
    "owl": "Owl Carousel",
    "moment": "Moment.js",
    "lodash": "Lodash",
    "axios": "Axios",
    "swiper": "Swiper",
    "gsap": "GSAP",
    "three": "Three.js",
    "chart": "Chart.js",
    "leaflet": "Leaflet",
    "mapbox": "Mapbox",
    "d3": "D3.js",
    "select2": "Select2",
    "datatables": "DataTables",
    "ckeditor": "CKEditor",
    "tinymce": "TinyMCE",
}

RESOURCE_LIBRARY_NAMES = {
    "bsky embed es": "Bluesky Embed ES Module",
    "bsky embed": "Bluesky Embed",
    "bsky": "Bluesky",
    "bootstrap": "Bootstrap",
    "jquery": "jQuery",
    "react": "React",
    "vue": "Vue.js",
    "angular": "Angular",
    "lodash": "Lodash",
    "moment": "Moment.js",
    "axios": "Axios",
    "webpack": "Webpack",
    "babel": "Babel",
    "eslint": "ESLint",
    "prettier": "Prettier",
    "typescript": "TypeScript",
    "tailwind": "Tailwind CSS",
}

CDN_HOSTS = ("cdn.jsdelivr.net", "unpkg.com", "cdnjs.cloudflare.com")
CODE_HOSTS = ("github.com", "gitlab.com", "bitbucket.org")

_SITE_SUFFIX = re.compile(r"\s*[-|]\s*.+$")
_PAGE_EXTENSION = re.compile(r"\.(php|html|htm|aspx|jsp|js|css|json|xml|txt)$", re.IGNORECASE)
_BUILD_SUFFIX = re.compile(r"\.(min|prod|dev|test|latest)$", re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_GENERIC_SUFFIX = re.compile(r"\s+(Page|Index|Main)$", re.IGNORECASE)
_ASSET_EXTENSION = re.compile(r"\.(js|css|min)$", re.IGNORECASE)
_SOURCE_EXTENSION = re.compile(
    r"\.(js|css|json|xml|html|htm|php|aspx|jsp|ts|tsx|jsx|vue|svelte)$", re.IGNORECASE
)
_BUILD_INFIX = re.compile(r"\.(min|prod|dev|test|latest)\.")

_CDN_PATTERNS = [
    re.compile(r"/npm/([^@]+)@([^/]+)/(.+)"),
    re.compile(r"/([^@]+)@([^/]+)/(.+)"),
]
_CDN_UNVERSIONED = re.compile(r"/([^/]+)/(.+)")

_GITHUB_BLOB = re.compile(r"/([^/]+)/([^/]+)/blob/([^/]+)/(.+)")
_GITLAB_BLOB = re.compile(r"/([^/]+)/([^/]+)/-/blob/([^/]+)/(.+)")


def _package_title(package: str, file_path: str) -> str:
    file_name = _ASSET_EXTENSION.sub("", file_path.split("/")[-1])
    return f"{package} ({file_name})" if file_name else package


class DefaultTitleBeautifier:
    """Heuristic titles from page text, CDN paths, repo paths and file names."""

    def __call__(self, url: str, text: str | None = None) -> str:
        try:
            parsed = urlparse(url)
        except ValueError:
            return url

        path = parsed.path
        hostname = parsed.hostname or ""

        if text and text != url:
            cleaned = _SITE_SUFFIX.sub("", text).strip()
            if 0 < len(cleaned) < 100:
                return cleaned

        if any(host in hostname for host in CDN_HOSTS):
            return self.library_title(path)
        if any(host in hostname for host in CODE_HOSTS):
            return self.code_hosting_title(path, hostname)
        if ".js" in path or ".css" in path or ".min" in path:
            return self.resource_title(path)

        segments = [s for s in path.split("/") if s]
        if segments:
            title = self.title_from_segment(segments[-1])
            if 0 < len(title) < 80:
                return title

        return re.sub(r"^www\.", "", hostname) or url

    def title_from_segment(self, segment: str) -> str:
        """'our-team.html' -> 'Our Team'."""
        title = _PAGE_EXTENSION.sub("", segment)
        title = _BUILD_SUFFIX.sub("", title)
        title = _CAMEL_BOUNDARY.sub(" ", title.replace("_", " ").replace("-", " "))
        title = " ".join(word.capitalize() for word in title.split())
        return _GENERIC_SUFFIX.sub("", title)

    def library_title(self, path: str) -> str:
        """Package name from jsdelivr/unpkg/cdnjs style paths."""
        path = path.split("?")[0]

        for pattern in _CDN_PATTERNS:
            match = pattern.match(path)
            if match:
                return _package_title(match.group(1), match.group(3))

        match = _CDN_UNVERSIONED.match(path)
        if match:
            return _package_title(match.group(1), match.group(2))

        file_name = path.split("/")[-1]
        clean = _ASSET_EXTENSION.sub("", file_name)
        if any(d in path for d in ("/media/", "/js/", "/css/")):
            lowered = clean.lower()
            for key, name in MEDIA_LIBRARY_NAMES.items():
                if key in lowered:
                    return name
        return clean or file_name or path

    def code_hosting_title(self, path: str, hostname: str) -> str:
        """'user/repo (file)' for GitHub and GitLab blob links."""
        pattern = _GITHUB_BLOB if "github.com" in hostname else _GITLAB_BLOB
        if "github.com" in hostname or "gitlab.com" in hostname:
            match = pattern.match(path)
            if match:
                user, repo, _, file_path = match.groups()
                file_name = re.sub(r"\.(js|css|md|txt)$", "", file_path.split("/")[-1], flags=re.IGNORECASE)
                return f"{user}/{repo} ({file_name})" if file_name else f"{user}/{repo}"
        return "/".join(path.split("/")[-2:])

    def resource_title(self, path: str) -> str:
        """Title-cased file name with known library names substituted."""
        file_name = path.split("/")[-1] or path
        title = _SOURCE_EXTENSION.sub("", file_name)
        title = _BUILD_INFIX.sub(".", title)
        title = re.sub(r"[-_]", " ", title)
        title = re.sub(r"\b\w", lambda m: m.group(0).upper(), title)

        lowered = title.lower().replace(".", " ")
        for key, name in RESOURCE_LIBRARY_NAMES.items():
            if key in lowered:
                return name
        return title or file_name


default_title_beautifier = DefaultTitleBeautifier()
