"""
tests/test_redirects.py

Redirect resolution: hop counting, HEAD fallback, cycle and limit detection.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from linkscanner.core.exceptions import TooManyRedirects
from linkscanner.services.redirects import RedirectResolver


def resolve(site, url, max_hops=10):
    async def go():
        async with site.client() as client:
            return await RedirectResolver(client, max_hops=max_hops).resolve(url)

    return asyncio.run(go())


class TestRedirectResolver:
    def test_no_redirect(self, site) -> None:
        site.page("https://example.com/")
        resolution = resolve(site, "https://example.com/")
        assert resolution.final_url == "https://example.com/"
        assert resolution.hops == 0
        assert resolution.status_code == 200
        assert resolution.method == "HEAD"

    def test_follows_chain_with_relative_location(self, site) -> None:
        site.redirect("https://example.com/a", "/b")
        site.redirect("https://example.com/b", "https://www.example.com/c", status=302)
        site.page("https://www.example.com/c")
        resolution = resolve(site, "https://example.com/a")
        assert resolution.final_url == "https://www.example.com/c"
        assert resolution.hops == 2

    def test_redirect_to_missing_page_reports_final_status(self, site) -> None:
        site.redirect("https://example.com/old", "/gone")
        resolution = resolve(site, "https://example.com/old")
        assert resolution.final_url == "https://example.com/gone"
        assert resolution.status_code == 404

    def test_self_redirect_is_a_cycle(self, site) -> None:
        site.redirect("https://example.com/loop", "https://example.com/loop")
        with pytest.raises(TooManyRedirects):
            resolve(site, "https://example.com/loop")
        assert len(site.requested()) == 1

    def test_two_step_cycle_terminates(self, site) -> None:
        site.redirect("https://example.com/a", "/b")
        site.redirect("https://example.com/b", "/a")
        with pytest.raises(TooManyRedirects):
            resolve(site, "https://example.com/a")

    def test_hop_limit(self, site) -> None:
        for i in range(6):
            site.redirect(f"https://example.com/{i}", f"/{i + 1}")
        site.page("https://example.com/6")
        with pytest.raises(TooManyRedirects) as exc:
            resolve(site, "https://example.com/0", max_hops=3)
        assert exc.value.hops == 4
        assert resolve(site, "https://example.com/0", max_hops=6).hops == 6

    def test_head_rejected_falls_back_to_get(self, site) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200, headers={"content-type": "text/html"}, text="<html></html>")

        site.handle("https://example.com/no-head", handler)
        resolution = resolve(site, "https://example.com/no-head")
        assert resolution.status_code == 200
        assert resolution.method == "GET"
        assert resolution.content_type == "text/html"
        assert [m for m, _ in site.requests] == ["HEAD", "GET"]

    def test_redirect_to_unsupported_scheme_is_not_followed(self, site) -> None:
        from linkscanner.core.exceptions import InvalidUrl

        site.redirect("https://example.com/mail", "mailto:someone@example.com")
        with pytest.raises(InvalidUrl):
            resolve(site, "https://example.com/mail")
