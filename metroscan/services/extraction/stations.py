"""
Station extraction from parsed pages.

Every signal becomes a station with
    confidence = source_weight(source) * field_confidence
where the source weight ranks structured data above meta tags, link
collections and plain body text. Each array has its own cap and a page
contributes at most MAX_STATIONS_PER_LINE stations to any line.
"""

import re
from typing import Any

import structlog

from metroscan.core.models import LineId, Station
from metroscan.services.extraction.collector import (
    SNIPPET_LENGTH,
    StationCollector,
    json_snippet,
    schema_type,
)
from metroscan.services.extraction.extractors import (
    classify_page_links,
    extract_identity,
    extract_offerings,
    extract_structured_contacts,
)
from metroscan.services.extraction.titles import TitleBeautifier, default_title_beautifier
from metroscan.services.parser import Link, ParsedPage

logger = structlog.get_logger()


SOCIAL_PLATFORM = re.compile(
    r"(facebook|twitter|instagram|linkedin|youtube|tiktok|pinterest|reddit|github|discord|slack|telegram|whatsapp)",
    re.IGNORECASE,
)

PERSON_TYPES = {"Person", "http://schema.org/Person", "https://schema.org/Person"}


def _person_details(item: dict[str, Any]) -> str:
    fields = [
        ("Name", item.get("name")),
        ("Title", item.get("jobTitle")),
        ("Description", item.get("description")),
        ("URL", item.get("url")),
        ("Email", item.get("email")),
        ("Phone", item.get("telephone")),
        ("Address", item.get("address")),
        ("Profiles", item.get("sameAs")),
    ]
    parts = []
    for name, value in fields:
        if not value:
            continue
        if isinstance(value, list):
            value = ",".join(str(v) for v in value)
        elif isinstance(value, dict):
            value = json_snippet(value)
        parts.append(f"{name}: {value}")
    return " | ".join(parts)[:SNIPPET_LENGTH]


def _schema_title(item: dict[str, Any], fallback: str) -> str:
    for key in ("title", "headline", "name"):
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


def _link_value(link: Link, beautify: TitleBeautifier) -> str:
    title = beautify(link.href, link.text)
    if link.text and link.text != link.href:
        return f"{title} -> {link.href}"
    return title


def _add_structured(page: ParsedPage, collector: StationCollector) -> None:
    """JSON-LD, microdata, RDFa, embedded JSON and app state."""
    for i, item in enumerate(page.json_ld[:5]):
        item_type = schema_type(item)
        title = _schema_title(item, f"{item_type or 'Schema'} {i + 1}")
        confidence = 0.95 if item_type and "schema.org" in item_type else 0.9
        content = json_snippet(item)
        if item_type in PERSON_TYPES:
            details = _person_details(item)
            if details:
                content = details
                confidence = 0.95
        collector.add(LineId.SCHEMA, title, content, "json-ld", f"ld#{i}", confidence)

    for i, item in enumerate(page.microdata[:3]):
        item_type = schema_type(item)
        title = _schema_title(item, f"Microdata {i + 1}")
        confidence = 0.9 if item_type and "schema.org" in item_type else 0.85
        content = json_snippet(item)
        if item_type in PERSON_TYPES:
            details = _person_details(item)
            if details:
                content = details
                confidence = 0.9
        collector.add(LineId.SCHEMA, title, content, "microdata", f"md#{i}", confidence)

    for i, item in enumerate(page.rdfa[:3]):
        collector.add(LineId.SCHEMA, f"RDFa {item['property']}", item["content"], "rdfa", f"rdfa#{i}", 0.85)

    for i, item in enumerate(page.embedded_json[:3]):
        title = _schema_title(item, f"Embedded JSON {i + 1}")
        collector.add(LineId.SCHEMA, title, json_snippet(item), "application/json", f"json#{i}", 0.8)

    for i, (name, state) in enumerate(list(page.app_state.items())[:5]):
        collector.add(LineId.SCHEMA, f"AppState {name}", json_snippet(state), "app-state", f"state#{i}", 0.8)


def stations_from_page(
    page: ParsedPage,
    beautify: TitleBeautifier = default_title_beautifier,
) -> list[Station]:
    """
    Convert one parsed page into scored stations.

    Args:
        page: Parsed page
        beautify: Strategy producing display titles for link/script URLs

    Returns:
        Stations, at most MAX_STATIONS_PER_LINE per line
    """
    c = StationCollector()

    # Identity
    if page.title:
        c.add(LineId.IDENTITY, "Title", page.title, "meta-title", "title", 0.95)
    og_title = page.open_graph.get("og:title") or page.twitter.get("twitter:title")
    if og_title:
        c.add(LineId.IDENTITY, "OG Title", og_title, "opengraph", 'meta[property="og:title"]', 0.9)
    description = (
        page.meta_tags.get("description")
        or page.open_graph.get("og:description")
        or page.twitter.get("twitter:description")
    )
    if description:
        c.add(LineId.IDENTITY, "Description", description, "meta-description", 'meta[name="description"]', 0.85)
    extract_identity(page, c)

    # Language
    if page.lang:
        c.add(LineId.LANGUAGE, "Language", page.lang, "html-lang", "html[lang]", 0.95)

    # Branding
    for i, logo in enumerate(page.assets.logos):
        c.add(LineId.BRANDING, "Logo", logo, "asset-logo", f"img.logo#{i}", 0.8)
    for name, value in page.styles.css_vars.items():
        c.add(LineId.BRANDING, name, value, "css-var", name, 0.7)
    for i, color in enumerate(page.styles.colors[:10]):
        c.add(LineId.BRANDING, f"Color {i + 1}", color, "css-color", "style", 0.6)

    # Contacts and social
    extract_structured_contacts(page, c)
    contacts = page.contacts
    for i, email in enumerate(contacts.emails[:3]):
        c.add(LineId.CONTACTS, "Email", email, "body-email", f"email#{i}", 0.85)
    for i, phone in enumerate(contacts.phones[:2]):
        c.add(LineId.CONTACTS, "Phone", phone, "body-phone", f"phone#{i}", 0.9)
    for i, address in enumerate(contacts.addresses[:2]):
        c.add(LineId.CONTACTS, "Address", address, "body-address", f"addr#{i}", 0.85)
    for i, hours in enumerate(contacts.hours[:2]):
        c.add(LineId.CONTACTS, "Hours", hours, "body-hours", f"hours#{i}", 0.8)
    for i, social in enumerate(contacts.socials[:8]):
        match = SOCIAL_PLATFORM.search(social)
        platform = match.group(1).capitalize() if match else "Social"
        c.add(LineId.SOCIAL, f"{platform} {i + 1}", social, "social-link", f"social#{i}", 0.75)
    for i, map_url in enumerate(contacts.maps[:1]):
        c.add(LineId.CONTACTS, "Map", map_url, "map-link", f"map#{i}", 0.8)

    # Services and products
    for i, block in enumerate(page.pricing_blocks[:6]):
        value = " | ".join(part for part in (block.title, block.price) if part)
        c.add(LineId.SERVICES, "Pricing", value, "pricing-block", f"pricing#{i}", 0.8)
        for fi, feature in enumerate(block.features[:4]):
            c.add(LineId.SERVICES, "Feature", feature, "pricing-feature", f"pricing#{i}-f#{fi}", 0.7)
    extract_offerings(page, c)

    # Pages
    if page.hero_text:
        c.add(LineId.PAGES, "Hero", page.hero_text, "hero", "h1", 0.9)
    for i, cta in enumerate(page.ctas[:8]):
        c.add(LineId.PAGES, "CTA", cta, "cta", f"cta#{i}", 0.75)
    for i, faq in enumerate(page.faq_items[:10]):
        c.add(LineId.PAGES, "FAQ", f"{faq.question} :: {faq.answer}", "faq", f"faq#{i}", 0.8)
    for i, t in enumerate(page.testimonials[:5]):
        value = f"{t.quote} {t.author or ''}".strip()
        c.add(LineId.PAGES, "Testimonial", value, "testimonial", f"test#{i}", 0.7)
    classify_page_links(page, c)
    for i, link in enumerate(page.links[:50]):
        c.add(LineId.PAGES, "Link", _link_value(link, beautify), "link", f"a#{i}", 0.6)
    for i, link in enumerate(page.nav_links[:15]):
        c.add(LineId.PAGES, "Nav", _link_value(link, beautify), "nav", f"nav#{i}", 0.75)
    for i, link in enumerate(page.footer_links[:10]):
        c.add(LineId.PAGES, "Footer", _link_value(link, beautify), "footer", f"footer#{i}", 0.7)

    # Tech and performance
    for i, script in enumerate(page.scripts[:10]):
        c.add(LineId.TECH, beautify(script, script), script, "script", f"script#{i}", 0.7)
    for i, sheet in enumerate(page.stylesheets[:5]):
        c.add(LineId.TECH, "Stylesheet", sheet, "stylesheet", f"style#{i}", 0.75)
    for i, preload in enumerate(page.perf.preloads[:5]):
        c.add(LineId.TECH, "Preload", preload, "preload", f"preload#{i}", 0.6)
    for i, css in enumerate(page.perf.critical_css[:3]):
        c.add(LineId.TECH, "Critical CSS", css, "critical-css", f"css#{i}", 0.7)
    for i, image in enumerate(page.perf.lazy_images[:5]):
        c.add(LineId.TECH, "Lazy Image", image, "lazy-image", f"lazy#{i}", 0.6)

    _add_structured(page, c)

    stations = c.capped()
    logger.debug("Extracted stations", url=page.url[:80], count=len(stations))
    return stations
