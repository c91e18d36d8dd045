"""
Error taxonomy for the crawl-and-validate engine.

Per-link failures never escape the Status Checker; they are turned into a
``LinkCheckResult`` carrying the ``cause`` tag. Only seed failures and
cancellation reach the scheduler.
"""


class LinkScanError(Exception):
    """Base class for scanner errors."""

    cause = "error"


class InvalidUrl(LinkScanError):
    cause = "invalid_url"


class NetworkError(LinkScanError):
    """DNS, TLS or connection failure."""

    def __init__(self, message, cause="connection"):
        super().__init__(message)
        self.cause = cause


class TooManyRedirects(LinkScanError):
    cause = "redirect_loop"

    def __init__(self, message, hops=0):
        super().__init__(message)
        self.hops = hops


class RequestTimeout(LinkScanError):
    cause = "timeout"


class SeedUnreachable(LinkScanError):
    """The seed page could not be fetched, so there is nothing to crawl."""

    def __init__(self, url, cause):
        super().__init__(f"Seed URL {url} is unreachable ({cause})")
        self.url = url
        self.cause = cause
