"""
tests/test_url_utils.py

URL normalization, scope classification and link filters.
"""

from __future__ import annotations

import pytest

from linkscanner.core.exceptions import InvalidUrl
from linkscanner.services.models import LinkFilter, LinkScope
from linkscanner.utils.url_utils import (
    classify_scope,
    is_asset_url,
    matches_link_filter,
    normalize_url,
)


# ---------------------------------------------------------------------------
# normalize_url
# ---------------------------------------------------------------------------


class TestNormalizeUrl:
    def test_lowercases_scheme_and_host_but_not_path(self) -> None:
        assert normalize_url("HTTPS://Example.COM/About/Team") == "https://example.com/About/Team"

    def test_strips_default_ports(self) -> None:
        assert normalize_url("http://example.com:80/a") == "http://example.com/a"
        assert normalize_url("https://example.com:443/a") == "https://example.com/a"

    def test_keeps_non_default_port(self) -> None:
        assert normalize_url("https://example.com:8443/a") == "https://example.com:8443/a"

    def test_strips_fragment_keeps_query(self) -> None:
        assert normalize_url("https://example.com/a?x=1#top") == "https://example.com/a?x=1"

    def test_empty_path_becomes_root(self) -> None:
        assert normalize_url("https://example.com") == "https://example.com/"

    def test_trailing_slash_is_kept(self) -> None:
        assert normalize_url("https://example.com/docs/") == "https://example.com/docs/"

    def test_resolves_relative_reference_against_base(self) -> None:
        assert normalize_url("../b", base="https://example.com/x/y/z") == "https://example.com/x/b"
        assert normalize_url("/c", base="https://example.com/x/y") == "https://example.com/c"
        assert normalize_url("//cdn.example.org/lib", base="https://example.com/") == "https://cdn.example.org/lib"

    @pytest.mark.parametrize(
        "raw",
        [
            "HTTPS://Example.com:443/a/b/?q=1#frag",
            "http://example.com",
            "https://example.com/docs/",
            "http://[::1]:8080/x",
        ],
    )
    def test_is_idempotent(self, raw: str) -> None:
        once = normalize_url(raw)
        assert normalize_url(once) == once

    @pytest.mark.parametrize(
        "raw",
        ["not a url", "", "   ", "mailto:me@example.com", "ftp://example.com/file", "https://", "http://host:99999/"],
    )
    def test_rejects_invalid(self, raw: str) -> None:
        with pytest.raises(InvalidUrl):
            normalize_url(raw)


# ---------------------------------------------------------------------------
# classify_scope
# ---------------------------------------------------------------------------


class TestClassifyScope:
    seed = "https://www.example.co.uk/"

    def test_same_host_is_internal(self) -> None:
        assert classify_scope("https://www.example.co.uk/a", self.seed) == LinkScope.INTERNAL

    def test_scheme_does_not_matter(self) -> None:
        assert classify_scope("http://www.example.co.uk/a", self.seed) == LinkScope.INTERNAL

    def test_exact_policy_treats_other_subdomain_as_external(self) -> None:
        assert classify_scope("https://blog.example.co.uk/", self.seed) == LinkScope.EXTERNAL

    def test_subdomain_policy_accepts_hosts_below_seed(self) -> None:
        seed = "https://example.com/"
        assert classify_scope("https://docs.example.com/", seed, "subdomain") == LinkScope.INTERNAL
        assert classify_scope("https://notexample.com/", seed, "subdomain") == LinkScope.EXTERNAL

    def test_registrable_policy_compares_registrable_domain(self) -> None:
        assert classify_scope("https://blog.example.co.uk/", self.seed, "registrable") == LinkScope.INTERNAL
        assert classify_scope("https://example.com/", self.seed, "registrable") == LinkScope.EXTERNAL

    def test_different_domain_is_external(self) -> None:
        assert classify_scope("https://other.org/", self.seed) == LinkScope.EXTERNAL


# ---------------------------------------------------------------------------
# Filters and helpers
# ---------------------------------------------------------------------------


class TestLinkFilters:
    def test_all_accepts_everything(self) -> None:
        assert matches_link_filter("https://x.com/a.zip", LinkFilter.ALL, LinkScope.EXTERNAL)

    def test_internal_and_external(self) -> None:
        assert matches_link_filter("https://x.com/", LinkFilter.INTERNAL, LinkScope.INTERNAL)
        assert not matches_link_filter("https://x.com/", LinkFilter.INTERNAL, LinkScope.EXTERNAL)
        assert matches_link_filter("https://x.com/", LinkFilter.EXTERNAL, LinkScope.EXTERNAL)

    def test_web_accepts_pages_and_extensionless_paths(self) -> None:
        assert matches_link_filter("https://x.com/about", LinkFilter.WEB, LinkScope.INTERNAL)
        assert matches_link_filter("https://x.com/index.php?id=2", LinkFilter.WEB, LinkScope.INTERNAL)
        assert not matches_link_filter("https://x.com/report.pdf", LinkFilter.WEB, LinkScope.INTERNAL)

    def test_image_and_file(self) -> None:
        assert matches_link_filter("https://x.com/logo.PNG", LinkFilter.IMAGE, LinkScope.INTERNAL)
        assert not matches_link_filter("https://x.com/logo", LinkFilter.IMAGE, LinkScope.INTERNAL)
        assert matches_link_filter("https://x.com/data.csv", LinkFilter.FILE, LinkScope.EXTERNAL)

    def test_asset_detection_uses_path_only(self) -> None:
        assert is_asset_url("https://x.com/static/app.css?v=3")
        assert not is_asset_url("https://x.com/page?file=app.css")
