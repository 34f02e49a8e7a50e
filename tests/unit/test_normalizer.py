"""
Unit tests for value normalization and similarity.
"""

import pytest

from metroscan.services.normalizer import (
    canonical_value,
    edit_similarity,
    levenshtein_distance,
    normalize_email,
    normalize_phone,
    normalize_url,
    normalize_value,
    similarity,
    tokenize,
)


class TestNormalize:
    """Test the normalize_* helpers."""

    def test_normalize_value(self):
        assert normalize_value("  Acme,   Inc.! ") == "acme inc"

    def test_normalize_phone_keeps_last_ten_digits(self):
        assert normalize_phone("+1 (555) 123-4567") == "5551234567"

    def test_normalize_email(self):
        assert normalize_email("  Info@Acme.COM ") == "info@acme.com"

    def test_normalize_url_unparseable(self):
        assert normalize_url(" HTTP://[Broken/About ") == "http://[broken/about"


class TestCanonicalValue:
    """Comparison forms used for station keys."""

    def test_phone_formats_agree(self):
        assert canonical_value("Phone", "(555) 123-4567") == canonical_value("Phone", "+1 555 123 4567")

    def test_email_case_insensitive(self):
        assert canonical_value("Email", " Info@Acme.com") == "info@acme.com"

    def test_other_labels_use_normalize_value(self):
        assert canonical_value("Business Name", "Acme, Inc.") == "acme inc"

    def test_punctuation_only_value_kept(self):
        assert canonical_value("Pricing", " $ ") == "$"

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://Example.com/About/", "/about"),
            ("https://example.com", ""),
            ("not a url ", "not a url"),
        ],
    )
    def test_normalize_url(self, url, expected):
        assert normalize_url(url) == expected


class TestSimilarity:
    """Token overlap vs. edit-distance similarity."""

    def test_tokenize_drops_short_tokens(self):
        assert tokenize("We do IT consulting") == ["consulting"]

    def test_similarity_identical(self):
        assert similarity("Acme Catering Services", "acme catering services") == 1.0

    def test_similarity_partial(self):
        assert similarity("acme catering", "acme bakery") == pytest.approx(0.5)

    def test_similarity_empty(self):
        assert similarity("", "acme") == 0.0

    def test_levenshtein(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_edit_similarity(self):
        assert edit_similarity("acme corp", "acme corq") == pytest.approx(8 / 9)
        assert edit_similarity("", "") == 1.0

    def test_metrics_differ(self):
        """Token overlap ignores typos that edit similarity tolerates."""
        assert similarity("acme corp", "acme corq") == pytest.approx(0.5)
        assert edit_similarity("acme corp", "acme corq") > 0.8
