"""
Unit tests for the page parser.
"""

import pytest

from metroscan.core.exceptions import ParseError
from metroscan.services import parser
from metroscan.services.parser import parse_page


SAMPLE_HTML = """
<!DOCTYPE html>
<html lang="en-US">
<head>
  <title>Acme Catering | Fresh food for events</title>
  <meta name="description" content="Catering for weddings and offices.">
  <meta name="keywords" content="catering, events, food, delivery">
  <meta property="og:site_name" content="Acme Catering">
  <meta property="og:image" content="https://acme.example/og.png">
  <meta name="twitter:card" content="summary">
  <link rel="canonical" href="https://acme.example/">
  <link rel="stylesheet" href="/css/site.css">
  <link rel="preload" href="/fonts/inter.woff2" as="font">
  <link rel="icon" href="/favicon.ico">
  <style>:root { --color-primary: #ff6600; --spacing: 4px; }</style>
  <script type="application/ld+json">
    {"@context": "https://schema.org", "@graph": [
      {"@type": "Organization", "name": "Acme Catering Inc"},
      {"@type": "WebSite", "name": "Acme"}
    ]}
  </script>
  <script type="application/json" id="config">{"region": "us-east"}</script>
  <script id="__NEXT_DATA__" type="application/json">{"page": "/"}</script>
  <script src="https://cdn.jsdelivr.net/npm/swiper@11/swiper-bundle.min.js"></script>
</head>
<body>
  <header>
    <img src="/img/logo.svg" alt="Acme">
    <nav>
      <a href="/about">About</a>
      <a href="/services">Services</a>
      <a href="tel:+15551234567">Call</a>
    </nav>
  </header>
  <main>
    <h1>Catering that shows up on time</h1>
    <a href="/contact" class="btn">Get started</a>
    <p>Email us at info@acme.example or call (555) 123-4567.</p>
    <p>Visit 100 Main Street, Springfield, IL 62701</p>
    <p>Mon-Fri 9:00 am - 5:00 pm</p>
    <a href="mailto:sales@acme.example">Sales</a>
    <div class="pricing-table">
      <h3>Office Lunch</h3>
      <p>From $15 per person</p>
      <ul><li>Vegan options</li><li>Free delivery</li></ul>
    </div>
    <details><summary>Do you deliver?</summary>Yes, within 20 miles.</details>
    <blockquote>Best caterer in town. <cite>Jane D.</cite></blockquote>
    <img data-src="/img/party.jpg" loading="lazy" alt="Party">
    <a href="#top">here</a>
    <a href="https://maps.google.com/?q=acme">Find us</a>
  </main>
  <footer>
    <a href="/privacy">Privacy Policy</a>
    <a href="https://www.facebook.com/acmecatering">Facebook</a>
  </footer>
</body>
</html>
"""

URL = "https://acme.example/"


@pytest.fixture(scope="module")
def page():
    return parse_page(SAMPLE_HTML, URL)


class TestMetadata:
    """Head metadata."""

    def test_title_and_lang(self, page):
        assert page.title == "Acme Catering | Fresh food for events"
        assert page.lang == "en-US"
        assert page.base_url == "https://acme.example"

    def test_meta_tags(self, page):
        assert page.meta_tags["description"] == "Catering for weddings and offices."
        assert page.open_graph["og:site_name"] == "Acme Catering"
        assert page.twitter == {"twitter:card": "summary"}
        assert page.canonical == "https://acme.example/"


class TestStructuredData:
    """JSON-LD, embedded JSON and app state."""

    def test_json_ld_graph_flattened(self, page):
        names = [item["name"] for item in page.json_ld]
        assert names == ["Acme Catering Inc", "Acme"]

    def test_embedded_json_skips_next_data(self, page):
        assert page.embedded_json == [{"region": "us-east"}]

    def test_next_app_state(self, page):
        assert page.app_state == {"next": {"page": "/"}}

    def test_rdfa_skips_opengraph_meta(self, page):
        assert all(not item["property"].startswith("og:") for item in page.rdfa)

    def test_microdata(self):
        html = """
        <div itemscope itemtype="https://schema.org/Person">
          <span itemprop="name">Jane Doe</span>
          <span itemprop="jobTitle">Chef</span>
        </div>
        """
        result = parse_page(html, URL)
        assert result.microdata == [
            {"@type": "https://schema.org/Person", "name": "Jane Doe", "jobTitle": "Chef"}
        ]


class TestLinks:
    """Link collections."""

    def test_links_skip_fragments_and_generic_text(self, page):
        hrefs = [link.href for link in page.links]
        assert "/about" in hrefs
        assert "#top" not in hrefs
        assert "tel:+15551234567" not in hrefs

    def test_nav_links(self, page):
        assert [(link.href, link.text) for link in page.nav_links] == [
            ("/about", "About"),
            ("/services", "Services"),
        ]

    def test_footer_links(self, page):
        assert [link.text for link in page.footer_links] == ["Privacy Policy", "Facebook"]

    def test_contact_links(self, page):
        assert page.contact_links == ["tel:+15551234567", "mailto:sales@acme.example"]


class TestContacts:
    """Contact details from visible text and links."""

    def test_emails(self, page):
        assert "info@acme.example" in page.contacts.emails

    def test_phones(self, page):
        assert "(555) 123-4567" in page.contacts.phones

    def test_addresses(self, page):
        assert any("100 Main Street" in a for a in page.contacts.addresses)

    def test_hours(self, page):
        assert page.contacts.hours

    def test_socials(self, page):
        assert page.contacts.socials == ["https://www.facebook.com/acmecatering"]

    def test_maps(self, page):
        assert page.contacts.maps == ["https://maps.google.com/?q=acme"]


class TestContentBlocks:
    """Hero, CTAs, pricing, FAQ, testimonials."""

    def test_hero(self, page):
        assert page.hero_text == "Catering that shows up on time"

    def test_ctas(self, page):
        assert "Get started" in page.ctas

    def test_pricing(self, page):
        block = page.pricing_blocks[0]
        assert block.title == "Office Lunch"
        assert block.price == "$15"
        assert block.features == ["Vegan options", "Free delivery"]

    def test_faq(self, page):
        assert page.faq_items[0].question == "Do you deliver?"
        assert page.faq_items[0].answer == "Yes, within 20 miles."

    def test_testimonials(self, page):
        assert page.testimonials[0].author == "Jane D."

    def test_body_text_excludes_scripts(self, page):
        assert "us-east" not in page.body_text
        assert "Catering that shows up on time" in page.body_text


class TestAssets:
    """Scripts, styles, branding and performance hints."""

    def test_scripts_and_stylesheets(self, page):
        assert page.scripts == ["https://cdn.jsdelivr.net/npm/swiper@11/swiper-bundle.min.js"]
        assert page.stylesheets == ["/css/site.css"]

    def test_logo_and_icons(self, page):
        assert page.assets.logos == ["https://acme.example/img/logo.svg"]
        assert page.assets.icons == ["https://acme.example/favicon.ico"]

    def test_styles(self, page):
        assert page.styles.css_vars["--color-primary"] == "#ff6600"
        assert page.styles.colors == ["#ff6600"]

    def test_perf(self, page):
        assert page.perf.preloads == ["https://acme.example/fonts/inter.woff2"]
        assert page.perf.critical_css == ["https://acme.example/css/site.css"]
        assert page.perf.lazy_images == ["https://acme.example/img/party.jpg"]


class TestParseErrors:
    def test_parser_failure_wrapped(self, monkeypatch):
        def boom(html, url):
            raise ValueError("broken")

        monkeypatch.setattr(parser, "_parse", boom)
        with pytest.raises(ParseError, match="broken"):
            parse_page("<html></html>", URL)

    def test_empty_document(self):
        result = parse_page("", URL)
        assert result.title == ""
        assert result.links == []
