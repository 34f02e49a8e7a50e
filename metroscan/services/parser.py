"""
Page Parser

Turns fetched HTML into a ParsedPage: metadata, structured data, links,
contact details, marketing blocks and asset references.

Extraction is heuristic and best-effort. Anything that fails to parse
(malformed JSON blocks, odd attributes) is skipped; only a failure of the
parser itself surfaces as ParseError.

Usage:
    from metroscan.services.parser import parse_page

    page = parse_page(html, "https://example.com/about")
    print(page.title, page.contacts.emails)
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlparse

import structlog
from bs4 import BeautifulSoup, Tag

from metroscan.core.exceptions import ParseError

logger = structlog.get_logger()


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class Link:
    href: str
    text: str


@dataclass
class FaqItem:
    question: str
    answer: str


@dataclass
class PricingBlock:
    title: str
    price: str | None = None
    features: list[str] = field(default_factory=list)


@dataclass
class Testimonial:
    quote: str
    author: str | None = None


@dataclass
class Contacts:
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    hours: list[str] = field(default_factory=list)
    socials: list[str] = field(default_factory=list)
    maps: list[str] = field(default_factory=list)


@dataclass
class Assets:
    logos: list[str] = field(default_factory=list)
    icons: list[str] = field(default_factory=list)


@dataclass
class Styles:
    css_vars: dict[str, str] = field(default_factory=dict)
    colors: list[str] = field(default_factory=list)


@dataclass
class Perf:
    preloads: list[str] = field(default_factory=list)
    critical_css: list[str] = field(default_factory=list)
    lazy_images: list[str] = field(default_factory=list)


@dataclass
class ParsedPage:
    """Structured view of one fetched page."""
    url: str
    base_url: str = ""
    title: str = ""
    lang: str | None = None
    canonical: str | None = None
    meta_tags: dict[str, str] = field(default_factory=dict)
    open_graph: dict[str, str] = field(default_factory=dict)
    twitter: dict[str, str] = field(default_factory=dict)
    json_ld: list[dict[str, Any]] = field(default_factory=list)
    microdata: list[dict[str, Any]] = field(default_factory=list)
    rdfa: list[dict[str, str]] = field(default_factory=list)
    embedded_json: list[dict[str, Any]] = field(default_factory=list)
    app_state: dict[str, Any] = field(default_factory=dict)
    links: list[Link] = field(default_factory=list)
    nav_links: list[Link] = field(default_factory=list)
    footer_links: list[Link] = field(default_factory=list)
    contact_links: list[str] = field(default_factory=list)  # tel:/mailto: hrefs
    scripts: list[str] = field(default_factory=list)
    stylesheets: list[str] = field(default_factory=list)
    contacts: Contacts = field(default_factory=Contacts)
    pricing_blocks: list[PricingBlock] = field(default_factory=list)
    ctas: list[str] = field(default_factory=list)
    faq_items: list[FaqItem] = field(default_factory=list)
    testimonials: list[Testimonial] = field(default_factory=list)
    hero_text: str | None = None
    assets: Assets = field(default_factory=Assets)
    styles: Styles = field(default_factory=Styles)
    perf: Perf = field(default_factory=Perf)
    body_text: str = ""


# =============================================================================
# Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(r"[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}", re.IGNORECASE)

PHONE_PATTERNS = [
    re.compile(r"\+?[1-9]\d{1,4}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{1,9}"),
    re.compile(r"\(\d{3}\)[-.\s]?\d{3}[-.\s]?\d{4}\b"),
    re.compile(r"\b\d{3}[-.\s]\d{3}[-.\s]\d{4}\b"),
    re.compile(r"\b\d{2,4}[-.\s]\d{2,4}[-.\s]\d{3,4}\b"),
]

ADDRESS_PATTERNS = [
    re.compile(r"\d+\s+[^,\n]+,\s*[^,\n]+,\s*[A-Z]{2}\s*\d{5}-\d{4}", re.IGNORECASE),
    re.compile(r"\d+\s+[^,\n]+,\s*[^,\n]+,\s*[A-Z]{2}\s*\d{5}", re.IGNORECASE),
    re.compile(r"\d+\s+[^,\n]+,\s*[^,\n]+,\s*[A-Za-z]{2,}\s*\d{4,}", re.IGNORECASE),
]

HOURS_PATTERNS = [
    re.compile(r"(mon|tue|wed|thu|fri|sat|sun)[^\n]{0,60}?\d{1,2}:\d{2}\s?(am|pm)?", re.IGNORECASE),
    re.compile(r"\d{1,2}:\d{2}\s?(am|pm)?\s*-\s*\d{1,2}:\d{2}\s?(am|pm)?", re.IGNORECASE),
]

SOCIAL_PATTERN = re.compile(
    r"(facebook|twitter|instagram|linkedin|youtube|tiktok|pinterest|reddit|github|discord|"
    r"slack|telegram|whatsapp|x)\.com|fb\.me|t\.co/|lnkd\.in|youtu\.be|ig\.me",
    re.IGNORECASE,
)
MAP_PATTERN = re.compile(r"goo\.gl/maps|maps\.google\.com|google\.com/maps|geo:", re.IGNORECASE)

CTA_PATTERN = re.compile(r"get started|sign up|contact|buy|book|demo|start", re.IGNORECASE)
PRICE_PATTERN = re.compile(r"[$€£]\s?\d[\d.,]*")
CSS_VAR_PATTERN = re.compile(r"(--[\w-]+)\s*:\s*([^;{}]+)")
COLOR_VALUE_PATTERN = re.compile(r"^(#[0-9a-f]{3,8}|rgba?\(|hsla?\()", re.IGNORECASE)
GENERIC_LINK_TEXT = re.compile(r"^(click|here|learn|more|read)$", re.IGNORECASE)

BRAND_COLOR_VARS = ["--color-primary", "--primary", "--brand", "--accent"]

NAV_SELECTOR = ", ".join([
    "nav a[href]",
    ".nav a[href]",
    ".navigation a[href]",
    ".menu a[href]",
    ".navbar a[href]",
    "header a[href]",
    ".header a[href]",
    '[role="navigation"] a[href]',
])

APP_STATE_SELECTORS = {
    "next": "script#__NEXT_DATA__",
    "remix": "script[data-remix-entry]",
    "astro": 'script[type="application/astro"]',
    "shopify": "script[data-shopify-api-key], script[data-storefront-api-key]",
    "wordpress": 'script[id^="__wordpress__"]',
}

MAX_LINKS = 100


# =============================================================================
# Helpers
# =============================================================================


def _text(tag: Tag) -> str:
    return " ".join(tag.get_text(" ").split())


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return (value or "").strip()


def _rel(tag: Tag) -> str:
    return _attr(tag, "rel").lower()


def _load_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        return None


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


def _resolve(base_url: str, href: str) -> str:
    """Absolute URL for href, '' when it cannot be parsed."""
    try:
        return urljoin(base_url, href)
    except ValueError:
        return ""


# =============================================================================
# Extractors
# =============================================================================


def _extract_meta(soup: BeautifulSoup) -> tuple[dict[str, str], dict[str, str], dict[str, str]]:
    meta_tags: dict[str, str] = {}
    open_graph: dict[str, str] = {}
    twitter: dict[str, str] = {}

    for meta in soup.find_all("meta"):
        name = (_attr(meta, "name") or _attr(meta, "property")).lower()
        content = _attr(meta, "content")
        if not name or not content:
            continue
        meta_tags[name] = content
        if name.startswith("og:"):
            open_graph[name] = content
        elif name.startswith("twitter:"):
            twitter[name] = content

    return meta_tags, open_graph, twitter


def _extract_json_ld(soup: BeautifulSoup) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        data = _load_json(script.string or script.get_text())
        if data is None:
            continue
        for item in data if isinstance(data, list) else [data]:
            if not isinstance(item, dict):
                continue
            graph = item.get("@graph")
            if isinstance(graph, list):
                items.extend(g for g in graph if isinstance(g, dict))
            else:
                items.append(item)
    return items


def _extract_embedded_json(soup: BeautifulSoup) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = []
    for script in soup.find_all("script", attrs={"type": "application/json"}):
        if _attr(script, "id") == "__NEXT_DATA__":
            continue
        data = _load_json(script.get_text())
        if isinstance(data, list):
            blocks.extend(d for d in data if isinstance(d, dict))
        elif isinstance(data, dict):
            blocks.append(data)
    return blocks


def _extract_app_state(soup: BeautifulSoup) -> dict[str, Any]:
    """Framework hydration payloads (Next.js, Remix, Astro, Shopify, WordPress)."""
    state: dict[str, Any] = {}
    for framework, selector in APP_STATE_SELECTORS.items():
        script = soup.select_one(selector)
        if script is None:
            continue
        data = _load_json(script.get_text())
        if data is not None:
            state[framework] = data
    return state


def _itemprop_value(prop: Tag) -> Any:
    value = _attr(prop, "content") or _attr(prop, "datetime")
    if not value and prop.name in ("a", "link"):
        value = _attr(prop, "href")
    if not value and prop.name in ("img", "source"):
        value = _attr(prop, "src")
    if value:
        return value

    text = _text(prop)
    if text[:1] in ("{", "["):
        parsed = _load_json(text)
        if parsed is not None:
            return parsed
    return text


def _extract_microdata(soup: BeautifulSoup) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for scope in soup.find_all(attrs={"itemscope": True}):
        item: dict[str, Any] = {}
        item_type = _attr(scope, "itemtype")
        if item_type:
            item["@type"] = item_type
        for prop in scope.find_all(attrs={"itemprop": True}):
            key = _attr(prop, "itemprop")
            if key and key not in item:
                item[key] = _itemprop_value(prop)
        if len(item) > 1:
            items.append(item)
    return items


def _extract_rdfa(soup: BeautifulSoup) -> list[dict[str, str]]:
    items: list[dict[str, str]] = []
    for el in soup.find_all(attrs={"property": True}):
        prop = _attr(el, "property")
        # OpenGraph/Twitter/Facebook meta tags are collected separately
        if el.name == "meta" and prop.lower().startswith(("og:", "twitter:", "fb:", "article:")):
            continue
        content = _attr(el, "content") or _text(el)
        if prop and content:
            items.append({"property": prop, "content": content})
    return items


def _link_list(anchors: list[Tag], skip_contact_schemes: bool = False) -> list[Link]:
    links: list[Link] = []
    seen: set[tuple[str, str]] = set()
    for a in anchors:
        href = _attr(a, "href")
        text = _text(a)
        if not href or not text:
            continue
        if skip_contact_schemes and href.startswith(("tel:", "mailto:")):
            continue
        if (href, text) in seen:
            continue
        seen.add((href, text))
        links.append(Link(href=href, text=text))
    return links


def _extract_links(soup: BeautifulSoup) -> list[Link]:
    candidates = []
    for a in soup.find_all("a", href=True):
        href = _attr(a, "href")
        text = _text(a)
        if href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        if not 2 <= len(text) <= 100 or GENERIC_LINK_TEXT.match(text):
            continue
        candidates.append(a)
    return _link_list(candidates)[:MAX_LINKS]


def _extract_nav(soup: BeautifulSoup) -> list[Link]:
    anchors = list(soup.select(NAV_SELECTOR))

    # Menus built from plain lists with a menu/nav class
    for a in soup.select("ul li a[href], ol li a[href]"):
        parent = a.find_parent(["ul", "ol"])
        if parent is None:
            continue
        classes = set(parent.get("class") or [])
        if parent.parent is not None and isinstance(parent.parent, Tag):
            classes |= set(parent.parent.get("class") or [])
        if classes & {"menu", "nav"}:
            anchors.append(a)

    return _link_list(anchors, skip_contact_schemes=True)


def _extract_footer(soup: BeautifulSoup) -> list[Link]:
    return _link_list(list(soup.select("footer a[href]")))


def _is_valid_phone(phone: str) -> bool:
    digits = re.sub(r"[^\d+]", "", phone)
    if not 7 <= len(digits) <= 15:
        return False
    if re.fullmatch(r"(19|20)\d{2}", phone):
        return False

    return bool(
        ("(" in phone and ")" in phone)
        or "-" in phone
        or "." in phone
        or len(phone.split()) >= 2
        or phone.startswith("+")
    )


def _site_name(url: str) -> str:
    hostname = (urlparse(url).hostname or "").lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname.split(".")[0]


def _extract_contacts(soup: BeautifulSoup, text: str, url: str) -> Contacts:
    contacts = Contacts()

    for match in EMAIL_PATTERN.finditer(text):
        email = match.group(0).strip().lower().rstrip(".")
        if len(email) > 6 and email not in contacts.emails:
            contacts.emails.append(email)

    for pattern in PHONE_PATTERNS:
        for match in pattern.finditer(text):
            phone = " ".join(match.group(0).split())
            if _is_valid_phone(phone) and phone not in contacts.phones:
                contacts.phones.append(phone)

    for pattern in ADDRESS_PATTERNS:
        for match in pattern.finditer(text):
            address = match.group(0).strip()
            if len(address) > 10 and address not in contacts.addresses:
                contacts.addresses.append(address)

    for pattern in HOURS_PATTERNS:
        for match in pattern.finditer(text):
            hours = match.group(0).strip()
            if len(hours) > 5 and hours not in contacts.hours:
                contacts.hours.append(hours)

    site_name = _site_name(url)
    seen_social: set[tuple[str, str]] = set()

    for a in soup.find_all("a", href=True):
        href = _attr(a, "href")

        if SOCIAL_PATTERN.search(href):
            clean = href.split("?")[0].split("#")[0]
            if clean.startswith("//"):
                clean = "https:" + clean
            elif clean.startswith("/"):
                continue
            elif not clean.startswith("http"):
                clean = "https://" + clean

            try:
                parsed = urlparse(clean)
                hostname = parsed.hostname or ""
            except ValueError:
                continue
            key = (hostname.lower(), parsed.path.lower())
            official = (
                site_name in key[1]
                or site_name in _text(a).lower()
                or a.find_parent(["header", "footer"]) is not None
                or a.find_parent(class_=re.compile(r"^(social|social-media|contact)$")) is not None
                or "me" in (a.get("rel") or [])
            )
            if (official or len(contacts.socials) < 3) and key not in seen_social:
                seen_social.add(key)
                contacts.socials.append(clean)

        if MAP_PATTERN.search(href):
            clean = href.strip()
            if clean.startswith("//"):
                clean = "https:" + clean
            elif clean.startswith("/"):
                continue
            elif not clean.startswith(("http", "geo:")):
                clean = "https://" + clean
            if clean not in contacts.maps:
                contacts.maps.append(clean)

    return contacts


def _extract_hero(soup: BeautifulSoup) -> str | None:
    hero = soup.select_one("main h1") or soup.select_one("header h1") or soup.find("h1")
    if hero is None:
        return None
    return _text(hero) or None


def _extract_faq(soup: BeautifulSoup) -> list[FaqItem]:
    faqs: list[FaqItem] = []
    for entity in soup.select('[itemtype*="FAQPage"] [itemprop="mainEntity"]'):
        question = entity.select_one('[itemprop="name"]')
        answer = entity.select_one('[itemprop="acceptedAnswer"]')
        q = _text(question) if question else ""
        a = _text(answer) if answer else ""
        if q or a:
            faqs.append(FaqItem(question=q, answer=a))

    # <details><summary>Question</summary>Answer</details>
    for details in soup.find_all("details"):
        summary = details.find("summary")
        if summary is None:
            continue
        q = _text(summary)
        a = _text(details)[len(q):].strip()
        if q and a:
            faqs.append(FaqItem(question=q, answer=a))

    return faqs


def _extract_pricing(soup: BeautifulSoup) -> list[PricingBlock]:
    blocks: list[PricingBlock] = []
    for el in soup.select('[class*="pricing"], [data-pricing]'):
        heading = el.find(["h2", "h3"])
        title = _text(heading) if heading else ""
        price_match = PRICE_PATTERN.search(_text(el))
        features = [t for t in (_text(li) for li in el.find_all("li")) if t]
        if title or price_match or features:
            blocks.append(PricingBlock(
                title=title,
                price=price_match.group(0) if price_match else None,
                features=features,
            ))
    return blocks


def _extract_testimonials(soup: BeautifulSoup) -> list[Testimonial]:
    items: list[Testimonial] = []
    for el in soup.select('[class*="testimonial"], blockquote'):
        quote = _text(el)
        if not quote:
            continue
        author_tag = el.select_one("cite, .author, .name")
        items.append(Testimonial(quote=quote, author=_text(author_tag) if author_tag else None))
    return items


def _extract_ctas(soup: BeautifulSoup) -> list[str]:
    return _unique([
        text for text in (_text(el) for el in soup.find_all(["a", "button"]))
        if CTA_PATTERN.search(text)
    ])


def _extract_assets(soup: BeautifulSoup, base_url: str) -> Assets:
    logos = []
    for img in soup.find_all("img"):
        src = _attr(img, "src")
        if src and ("logo" in src.lower() or "logo" in _attr(img, "alt").lower()):
            logos.append(_resolve(base_url, src))

    icons = [
        _resolve(base_url, _attr(link, "href"))
        for link in soup.find_all("link", href=True)
        if "icon" in _rel(link)
    ]
    return Assets(logos=_unique(logos), icons=_unique(icons))


def _extract_styles(soup: BeautifulSoup) -> Styles:
    css_vars: dict[str, str] = {}
    sources = [style.get_text() for style in soup.find_all("style")]
    sources += [_attr(el, "style") for el in soup.find_all(style=True)]

    for css in sources:
        for match in CSS_VAR_PATTERN.finditer(css):
            css_vars.setdefault(match.group(1), match.group(2).strip())

    colors = [css_vars[name] for name in BRAND_COLOR_VARS if name in css_vars]
    colors += [v for v in css_vars.values() if COLOR_VALUE_PATTERN.match(v)]
    return Styles(css_vars=css_vars, colors=_unique(colors))


def _extract_perf(soup: BeautifulSoup, base_url: str) -> Perf:
    perf = Perf()
    for link in soup.find_all("link", href=True):
        rel = _rel(link)
        href = _resolve(base_url, _attr(link, "href"))
        if not href:
            continue
        if rel == "preload":
            perf.preloads.append(href)
        elif rel == "stylesheet" and _attr(link, "media") in ("", "all"):
            perf.critical_css.append(href)

    for img in soup.select("img[loading=lazy], img[data-src], img[data-lazy]"):
        src = _attr(img, "src") or _attr(img, "data-src")
        if src:
            perf.lazy_images.append(_resolve(base_url, src))

    perf.preloads = _unique(perf.preloads)
    perf.critical_css = _unique(perf.critical_css)
    perf.lazy_images = _unique(perf.lazy_images)
    return perf


# =============================================================================
# Entry point
# =============================================================================


def parse_page(html: str, url: str) -> ParsedPage:
    """
    Parse an HTML document.

    Args:
        html: Page source
        url: Final URL of the page (used to resolve relative references)

    Returns:
        ParsedPage

    Raises:
        ParseError: if the document cannot be processed at all
    """
    try:
        return _parse(html, url)
    except Exception as e:
        logger.warning("Page parse failed", url=url[:80], error=str(e))
        raise ParseError(f"Failed to parse {url}: {e}") from e


def _parse(html: str, url: str) -> ParsedPage:
    soup = BeautifulSoup(html, "lxml")
    parsed_url = urlparse(url)
    base_url = f"{parsed_url.scheme}://{parsed_url.netloc}"

    title_tag = soup.find("title")
    html_tag = soup.find("html")
    canonical = next(
        (_attr(link, "href") for link in soup.find_all("link", href=True) if _rel(link) == "canonical"),
        None,
    )
    meta_tags, open_graph, twitter = _extract_meta(soup)

    page = ParsedPage(
        url=url,
        base_url=base_url,
        title=_text(title_tag) if title_tag else "",
        lang=(_attr(html_tag, "lang") or None) if html_tag else None,
        canonical=canonical,
        meta_tags=meta_tags,
        open_graph=open_graph,
        twitter=twitter,
        json_ld=_extract_json_ld(soup),
        microdata=_extract_microdata(soup),
        rdfa=_extract_rdfa(soup),
        embedded_json=_extract_embedded_json(soup),
        app_state=_extract_app_state(soup),
        scripts=[_attr(s, "src") for s in soup.find_all("script", src=True)],
        stylesheets=[_attr(l, "href") for l in soup.find_all("link", href=True) if _rel(l) == "stylesheet"],
        assets=_extract_assets(soup, base_url),
        styles=_extract_styles(soup),
        perf=_extract_perf(soup, base_url),
    )

    # Everything below works on visible content only
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()

    body = soup.body or soup
    contact_text = body.get_text("\n")

    page.body_text = " ".join(contact_text.split())
    page.links = _extract_links(soup)
    page.nav_links = _extract_nav(soup)
    page.footer_links = _extract_footer(soup)
    page.contact_links = _unique([
        _attr(a, "href") for a in soup.find_all("a", href=True)
        if _attr(a, "href").lower().startswith(("tel:", "mailto:"))
    ])
    page.contacts = _extract_contacts(soup, contact_text, url)
    page.hero_text = _extract_hero(soup)
    page.faq_items = _extract_faq(soup)
    page.pricing_blocks = _extract_pricing(soup)
    page.testimonials = _extract_testimonials(soup)
    page.ctas = _extract_ctas(soup)

    return page
