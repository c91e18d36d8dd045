import asyncio
import logging
import ssl

import httpx

from linkscanner.core.config import settings
from linkscanner.core.exceptions import InvalidUrl, LinkScanError, NetworkError, RequestTimeout
from linkscanner.services.models import LinkCheckResult
from linkscanner.services.redirects import RedirectResolver

DNS_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "name resolution",
)
TLS_HINTS = ("ssl", "certificate", "tls")


def classify_transport_error(exc):
    """Map an httpx transport failure onto a short cause tag."""
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    if isinstance(exc, httpx.TooManyRedirects):
        return "redirect_loop"
    if isinstance(exc, httpx.UnsupportedProtocol):
        return "invalid_url"

    chain = [exc, exc.__cause__, exc.__context__]
    if any(isinstance(e, ssl.SSLError) for e in chain):
        return "tls"

    message = " ".join(str(e).lower() for e in chain if e is not None)
    if any(hint in message for hint in DNS_HINTS):
        return "dns"
    if any(hint in message for hint in TLS_HINTS):
        return "tls"
    return "connection"


def classify_status(status_code):
    """Return the cause tag for a final status code, or None when reachable."""
    if status_code >= 500:
        return "http_5xx"
    if status_code >= 400:
        return "http_4xx"
    return None


class StatusChecker:
    """
    Reachability check for one URL.

    Never raises: every failure ends up in the returned ``LinkCheckResult``.
    A timed-out attempt is retried ``retries`` times with the same timeout, so
    a silent host costs at most ``(retries + 1) * timeout``.
    """

    def __init__(self, client, timeout=None, retries=None, max_redirects=None):
        self._timeout = settings.REQUEST_TIMEOUT if timeout is None else timeout
        self._retries = settings.REQUEST_RETRIES if retries is None else max(0, retries)
        self._resolver = RedirectResolver(
            client,
            max_hops=settings.MAX_REDIRECTS if max_redirects is None else max_redirects,
        )

    async def check(self, url):
        attempts = self._retries + 1
        for attempt in range(1, attempts + 1):
            try:
                resolution = await self._attempt(url)
            except RequestTimeout:
                if attempt < attempts:
                    logging.warning(f"Timeout checking {url} (attempt {attempt}/{attempts}), retrying...")
                    continue
                logging.warning(f"Timeout checking {url} after {attempts} attempts")
                return self._failure(url, RequestTimeout.cause)
            except LinkScanError as e:
                logging.warning(f"Check failed for {url}: {e.cause} ({e})")
                return self._failure(url, e.cause)
            except Exception as e:
                logging.exception(f"Unexpected error checking {url}: {e}")
                return self._failure(url, "error")

            error = classify_status(resolution.status_code)
            logging.info(f"Response {resolution.status_code} from {url} (final: {resolution.final_url})")
            return LinkCheckResult(
                link_url=url,
                final_url=resolution.final_url,
                status_code=resolution.status_code,
                is_broken=error is not None,
                error=error,
            )

    async def _attempt(self, url):
        """One bounded resolution, with httpx failures translated to scanner errors."""
        try:
            return await asyncio.wait_for(self._resolver.resolve(url), timeout=self._timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeout(f"No response from {url} within {self._timeout}s") from e
        except httpx.InvalidURL as e:
            raise InvalidUrl(str(e)) from e
        except httpx.HTTPError as e:
            raise NetworkError(str(e), cause=classify_transport_error(e)) from e

    @staticmethod
    def _failure(url, cause):
        return LinkCheckResult(link_url=url, final_url=None, status_code=None, is_broken=True, error=cause)
