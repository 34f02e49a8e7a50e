"""
Unit tests for encoding detection.
"""

from metroscan.services.encoding_utils import decode_content, detect_encoding


class TestDetectEncoding:
    """Test the detection fallbacks in priority order."""

    def test_header_charset_wins(self):
        html = b'<meta charset="iso-8859-1"><p>hi</p>'
        assert detect_encoding(html, "text/html; charset=UTF-8") == "utf-8"

    def test_header_alias_normalized(self):
        assert detect_encoding(b"", "text/html; charset=latin1") == "iso-8859-1"

    def test_bom(self):
        assert detect_encoding(b"\xef\xbb\xbfhello") == "utf-8"

    def test_meta_charset(self):
        html = b'<html><head><meta charset="windows-1252"></head></html>'
        assert detect_encoding(html) == "cp1252"

    def test_meta_http_equiv(self):
        html = b'<meta http-equiv="Content-Type" content="text/html; charset=ISO-8859-1">'
        assert detect_encoding(html) == "iso-8859-1"


class TestDecodeContent:
    """Test decoding with fallbacks."""

    def test_decode_latin1(self):
        text = decode_content("Straße".encode("iso-8859-1"), "text/html; charset=iso-8859-1")
        assert text == "Straße"

    def test_unknown_encoding_falls_back(self):
        text = decode_content(b"plain text", "text/html; charset=x-made-up")
        assert text == "plain text"
