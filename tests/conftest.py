"""
Shared fixtures: an in-memory website served through httpx.MockTransport.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import httpx
import pytest

from linkscanner.services.crawler import run_scan


class FakeSite:
    """
    Routes keyed by exact request URL. Unknown URLs answer 404.

    A route is either a canned (status, headers, body) triple or a callable
    taking the request, which may raise an httpx exception or be async.
    """

    def __init__(self) -> None:
        self.routes: dict[str, object] = {}
        self.requests: list[tuple[str, str]] = []

    def page(self, url: str, body: str = "", status: int = 200,
             content_type: str = "text/html; charset=utf-8") -> None:
        self.routes[url] = (status, {"content-type": content_type}, body)

    def links(self, url: str, *hrefs: str) -> None:
        anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
        self.page(url, f"<html><body>{anchors}</body></html>")

    def redirect(self, url: str, location: str, status: int = 301) -> None:
        self.routes[url] = (status, {"location": location}, "")

    def handle(self, url: str, func: Callable) -> None:
        self.routes[url] = func

    def requested(self, method: Optional[str] = None) -> list[str]:
        return [url for m, url in self.requests if method is None or m == method]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            result = route(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        status, headers, body = route
        return httpx.Response(status, headers=headers, content=body.encode())

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=False)


@pytest.fixture()
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture()
def scan(site: FakeSite):
    """Run a scan against the fake site and return the final report."""

    def _scan(request, **kwargs):
        async def go():
            async with site.client() as client:
                return await run_scan(request, client=client, **kwargs)

        return asyncio.run(go())

    return _scan
