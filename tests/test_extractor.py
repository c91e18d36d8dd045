"""
tests/test_extractor.py

Anchor extraction from fetched pages.
"""

from __future__ import annotations

from linkscanner.services.extractor import extract_links, is_html

PAGE = "https://example.com/blog/post"


class TestExtractLinks:
    def test_resolves_relative_links_in_page_order(self) -> None:
        body = b'<a href="/about">A</a><a href="next">B</a><a href="https://other.org/x">C</a>'
        assert extract_links(PAGE, body, "text/html") == [
            "https://example.com/about",
            "https://example.com/blog/next",
            "https://other.org/x",
        ]

    def test_skips_non_http_schemes_and_fragments(self) -> None:
        body = (
            '<a href="mailto:a@b.c">m</a><a href="javascript:void(0)">j</a>'
            '<a href="tel:+123">t</a><a href="#top">f</a><a href="">e</a><a>none</a>'
            '<a href="ftp://files.example.com/x">ftp</a><a href="/ok">ok</a>'
        )
        assert extract_links(PAGE, body, "text/html; charset=utf-8") == ["https://example.com/ok"]

    def test_deduplicates_within_page(self) -> None:
        body = '<a href="/a">1</a><a href="/a#x">2</a><a href="https://EXAMPLE.com:443/a">3</a>'
        assert extract_links(PAGE, body, "text/html") == ["https://example.com/a"]

    def test_honors_base_href(self) -> None:
        body = '<head><base href="https://cdn.example.com/root/"></head><a href="img">i</a>'
        assert extract_links(PAGE, body, "text/html") == ["https://cdn.example.com/root/img"]

    def test_non_html_content_is_ignored(self) -> None:
        assert extract_links(PAGE, b'<a href="/a">x</a>', "application/json") == []
        assert extract_links(PAGE, b'<a href="/a">x</a>', None) == []

    def test_malformed_markup_is_best_effort(self) -> None:
        body = b'<html><a href="/one">1<div><a href="/two"<p>unclosed <a href="http://[bad">x</a>'
        links = extract_links(PAGE, body, "text/html")
        assert "https://example.com/one" in links

    def test_xhtml_counts_as_html(self) -> None:
        assert is_html("application/xhtml+xml")
        assert not is_html("image/png")
