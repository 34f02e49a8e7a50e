"""
Focused extractors that feed the per-page station collector.

- extract_identity: business name/type/location from JSON-LD and meta tags
- extract_structured_contacts: JSON-LD contact points and tel:/mailto: links
- extract_offerings: schema.org Product and Service items
- classify_page_links: same-site links grouped into page categories
"""

import re
from typing import Any
from urllib.parse import unquote, urljoin, urlparse

from metroscan.core.models import LineId
from metroscan.services.extraction.collector import StationCollector, json_snippet, schema_type
from metroscan.services.parser import ParsedPage


# =============================================================================
# Identity
# =============================================================================

_TITLE_SEPARATORS = re.compile(r"[|–—-]")


def _location(address: Any) -> str:
    if not isinstance(address, dict):
        return ""
    locality = address.get("addressLocality")
    if not isinstance(locality, str):
        return ""
    region = address.get("addressRegion")
    return ", ".join(p for p in (locality, region) if isinstance(p, str) and p)


def extract_identity(page: ParsedPage, c: StationCollector) -> None:
    """Business name, type, location and category."""
    for item in page.json_ld:
        raw = json_snippet(item)
        name = item.get("name")
        if isinstance(name, str):
            c.add(LineId.IDENTITY, "Business Name", name, "json-ld", "name", 0.95, raw=raw)
        item_type = schema_type(item)
        if item_type:
            c.add(LineId.IDENTITY, "Business Type", item_type, "json-ld", "@type", 0.85)
        location = _location(item.get("address"))
        if location:
            c.add(
                LineId.IDENTITY, "Location", location, "json-ld", "address", 0.85,
                raw=json_snippet(item.get("address")),
            )

    site_name = page.open_graph.get("og:site_name")
    if site_name:
        c.add(LineId.IDENTITY, "Business Name", site_name, "og-site-name", "og:site_name", 0.9)

    # Fallbacks only when nothing better named the business
    if not c.has_label(LineId.IDENTITY, "Business Name"):
        if page.title:
            cleaned = _TITLE_SEPARATORS.split(page.title)[0].strip()
            if cleaned:
                c.add(LineId.IDENTITY, "Business Name", cleaned, "meta-title", "title", 0.6, raw=page.title)
        elif page.hero_text:
            c.add(LineId.IDENTITY, "Business Name", page.hero_text, "hero", "h1", 0.6)

    keywords = page.meta_tags.get("keywords")
    if keywords:
        category = ", ".join(k.strip() for k in keywords.split(",")[:3] if k.strip())
        c.add(LineId.IDENTITY, "Category", category, "meta-keywords", "keywords", 0.7, raw=keywords)


# =============================================================================
# Contacts
# =============================================================================


def _day_name(day: Any) -> str:
    if isinstance(day, list):
        return ", ".join(_day_name(d) for d in day)
    return str(day).rsplit("/", 1)[-1]


def extract_structured_contacts(page: ParsedPage, c: StationCollector) -> None:
    """Contact details stated explicitly in markup."""
    for item in page.json_ld:
        telephone = item.get("telephone")
        if isinstance(telephone, str):
            c.add(LineId.CONTACTS, "Phone", telephone, "json-ld", "telephone", 0.9)

        email = item.get("email")
        if isinstance(email, str):
            c.add(LineId.CONTACTS, "Email", email.removeprefix("mailto:"), "json-ld", "email", 0.9)

        address = item.get("address")
        if isinstance(address, dict) and isinstance(address.get("streetAddress"), str):
            parts = [
                address.get(k) for k in ("streetAddress", "addressLocality", "addressRegion", "postalCode")
            ]
            value = ", ".join(str(p) for p in parts if p)
            c.add(LineId.CONTACTS, "Address", value, "json-ld", "address", 0.9, raw=json_snippet(address))
        elif isinstance(address, str):
            c.add(LineId.CONTACTS, "Address", address, "json-ld", "address", 0.9)

        hours = item.get("openingHoursSpecification")
        if isinstance(hours, dict):
            hours = [hours]
        if isinstance(hours, list) and hours:
            formatted = "; ".join(
                f"{_day_name(h.get('dayOfWeek'))}: {h.get('opens')}-{h.get('closes')}"
                for h in hours[:3]
                if isinstance(h, dict)
            )
            c.add(
                LineId.CONTACTS, "Hours", formatted, "json-ld", "openingHoursSpecification", 0.9,
                raw=json_snippet(hours),
            )
        elif isinstance(item.get("openingHours"), (str, list)):
            opening = item["openingHours"]
            value = "; ".join(opening) if isinstance(opening, list) else opening
            c.add(LineId.CONTACTS, "Hours", value, "json-ld", "openingHours", 0.9)

    for href in page.contact_links:
        scheme, _, target = href.partition(":")
        target = unquote(target.split("?")[0]).strip()
        if not target:
            continue
        if scheme.lower() == "tel":
            c.add(LineId.CONTACTS, "Phone", target, "link-tel", 'a[href^="tel:"]', 0.9, raw=href)
        else:
            c.add(LineId.CONTACTS, "Email", target.lower(), "link-mailto", 'a[href^="mailto:"]', 0.9, raw=href)


# =============================================================================
# Products and services
# =============================================================================


def _offer_price(offers: Any) -> str:
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return ""
    price = offers.get("price") or offers.get("lowPrice")
    if price in (None, ""):
        return ""
    currency = offers.get("priceCurrency") or ""
    return f"{price} {currency}".strip()


def extract_offerings(page: ParsedPage, c: StationCollector) -> None:
    """schema.org Product/Service items from JSON-LD and microdata."""
    sources = [("json-ld", item) for item in page.json_ld]
    sources += [("microdata", item) for item in page.microdata]

    for source, item in sources:
        item_type = schema_type(item) or ""
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            continue

        if item_type.endswith("Product"):
            price = _offer_price(item.get("offers"))
            value = f"{name} | {price}" if price else name
            c.add(LineId.PRODUCTS, "Product", value, source, "Product", 0.9, raw=json_snippet(item))
        elif item_type.endswith("Service"):
            c.add(LineId.SERVICES, "Service", name, source, "Service", 0.9, raw=json_snippet(item))


# =============================================================================
# Page classification
# =============================================================================

PAGE_CATEGORIES: dict[str, list[str]] = {
    "About": ["about", "about-us", "our-story", "who-we-are"],
    "Contact": ["contact", "contact-us", "get-in-touch", "reach-us"],
    "Services": ["services", "what-we-do", "offerings", "solutions"],
    "Products": ["products", "shop", "store", "catalog", "catalogue"],
    "Blog": ["blog", "news", "articles", "posts", "insights"],
    "FAQ": ["faq", "faqs", "help", "support", "questions"],
    "Team": ["team", "our-team", "staff", "people", "leadership"],
    "Careers": ["careers", "jobs", "hiring", "work-with-us"],
    "Privacy": ["privacy", "privacy-policy"],
    "Terms": ["terms", "terms-of-service", "tos"],
    "Portfolio": ["portfolio", "work", "projects", "case-studies"],
    "Pricing": ["pricing", "plans", "packages", "rates"],
    "Testimonials": ["testimonials", "reviews", "clients"],
    "Gallery": ["gallery", "photos", "images"],
    "Login": ["login", "signin", "sign-in", "account"],
}

MAX_CLASSIFIED_LINKS = 15

_STATIC_FILE = re.compile(r"\.(jpg|jpeg|png|gif|svg|pdf|css|js|ico|woff|woff2|ttf|eot)$", re.IGNORECASE)


def classify_path(path: str) -> str:
    """Category for the first path segment, 'Page' if none matches."""
    segment = path.lower().strip("/").split("/")[0]
    for category, patterns in PAGE_CATEGORIES.items():
        if any(p in segment for p in patterns):
            return category
    return "Page"


def classify_page_links(page: ParsedPage, c: StationCollector) -> None:
    """Same-origin links as categorised page stations (one per path)."""
    base = urlparse(page.base_url)
    seen: set[str] = set()

    for link in page.links:
        try:
            target = urlparse(urljoin(page.url, link.href))
        except ValueError:
            continue
        if (target.scheme, target.netloc) != (base.scheme, base.netloc):
            continue

        path = target.path
        if path in ("", "/") or path in seen or _STATIC_FILE.search(path):
            continue

        seen.add(path)
        display = link.text.strip()[:50] or path
        c.add(
            LineId.PAGES, classify_path(path), display, "link-classifier",
            f'a[href="{link.href}"]', 0.7, raw=path,
        )
        if len(seen) >= MAX_CLASSIFIED_LINKS:
            break
