"""
Manual redirect following with hop limit and cycle detection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from linkscanner.core.exceptions import InvalidUrl, TooManyRedirects
from linkscanner.utils.url_utils import get_headers, normalize_url

REDIRECT_CODES = {301, 302, 303, 307, 308}

# Servers that refuse or mishandle HEAD answer with one of these
HEAD_FALLBACK_CODES = {400, 403, 405, 501}


@dataclass(frozen=True)
class Resolution:
    final_url: str
    hops: int
    status_code: int
    content_type: Optional[str] = None
    method: str = "HEAD"


class RedirectResolver:
    """
    Follows ``Location`` headers one hop at a time.

    The client must be created with ``follow_redirects=False``; every hop is
    an explicit request so cycles can be detected before they are followed.
    """

    def __init__(self, client: httpx.AsyncClient, max_hops: int = 10) -> None:
        self._client = client
        self._max_hops = max_hops

    async def resolve(self, url: str, max_hops: Optional[int] = None) -> Resolution:
        max_hops = self._max_hops if max_hops is None else max_hops
        current = url
        seen = {current}
        hops = 0

        while True:
            response, method = await self._probe(current)
            location = response.headers.get("location")

            if response.status_code not in REDIRECT_CODES or not location:
                return Resolution(
                    final_url=current,
                    hops=hops,
                    status_code=response.status_code,
                    content_type=response.headers.get("content-type"),
                    method=method,
                )

            try:
                target = normalize_url(location, base=current)
            except InvalidUrl as e:
                raise InvalidUrl(f"Redirect from {current} to unusable location {location!r}") from e

            hops += 1
            if target in seen:
                raise TooManyRedirects(f"Redirect cycle at {target}", hops=hops)
            if hops > max_hops:
                raise TooManyRedirects(f"More than {max_hops} redirects from {url}", hops=hops)

            logging.info(f"Redirect {response.status_code}: {current} -> {target}")
            seen.add(target)
            current = target

    async def _probe(self, url: str) -> tuple[httpx.Response, str]:
        """HEAD the URL, retrying with a body-less GET when HEAD is rejected."""
        headers = get_headers()
        response = await self._client.head(url, headers=headers, follow_redirects=False)
        logging.info(f"HTTP Request: HEAD {url} -> {response.status_code}")
        if response.status_code not in HEAD_FALLBACK_CODES:
            return response, "HEAD"

        logging.warning(f"HEAD failed for {url}, falling back to GET...")
        async with self._client.stream("GET", url, headers=headers, follow_redirects=False) as response:
            logging.info(f"HTTP Request: GET {url} -> {response.status_code}")
            return response, "GET"
