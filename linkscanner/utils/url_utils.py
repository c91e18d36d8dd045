from urllib.parse import urljoin, urlsplit, urlunsplit

import tldextract

from linkscanner.core.config import settings
from linkscanner.core.exceptions import InvalidUrl
from linkscanner.services.models import LinkFilter, LinkScope

DEFAULT_PORTS = {"http": 80, "https": 443}

# Static files are checked but never parsed for further links
ASSET_EXTENSIONS = (
    # Images
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".ico", ".tiff",
    # Stylesheets and fonts
    ".css", ".scss", ".less", ".woff", ".woff2", ".ttf", ".eot", ".otf",
    # Scripts and data
    ".js", ".jsx", ".ts", ".tsx", ".json", ".xml",
    # Media
    ".mp3", ".mp4", ".wav", ".ogg", ".webm", ".avi", ".mov",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".csv",
    # Archives
    ".zip", ".rar", ".7z", ".tar", ".gz",
    ".webmanifest",
)

LINK_FILTER_EXTENSIONS = {
    LinkFilter.WEB: (".html", ".htm", ".php", ".asp", ".aspx"),
    LinkFilter.IMAGE: (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".tiff"),
    LinkFilter.FILE: (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".txt", ".csv", ".zip", ".rar"),
}

# Bundled public suffix snapshot, no network fetch at runtime
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def normalize_url(raw: str, base: str = None) -> str:
    """Canonicalize a URL, resolving it against ``base`` when it is relative.

    Lower-cases scheme and host, drops default ports and fragments and turns
    an empty path into ``/``. Trailing slashes are kept: servers commonly
    redirect ``/dir`` to ``/dir/`` and treat them as different resources.
    Raises ``InvalidUrl`` for anything that is not an absolute http(s) URL.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidUrl(f"Empty URL: {raw!r}")

    candidate = raw.strip()
    if base:
        candidate = urljoin(base, candidate)

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as e:
        raise InvalidUrl(f"Malformed URL {raw!r}: {e}") from e

    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidUrl(f"Unsupported scheme in {raw!r}")

    host = (parts.hostname or "").lower()
    if not host or " " in host:
        raise InvalidUrl(f"Missing host in {raw!r}")

    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"

    return urlunsplit((scheme, netloc, path, parts.query, ""))


def classify_scope(url: str, seed_url: str, policy: str = "exact") -> LinkScope:
    """Decide whether ``url`` belongs to the seed's site.

    ``exact`` requires the same host, ``subdomain`` also accepts hosts below
    the seed host, ``registrable`` compares the registrable domain
    (``blog.example.co.uk`` and ``www.example.co.uk`` match).
    """
    host = (urlsplit(url).hostname or "").lower()
    seed_host = (urlsplit(seed_url).hostname or "").lower()

    if host == seed_host:
        return LinkScope.INTERNAL
    if policy == "subdomain" and host.endswith("." + seed_host):
        return LinkScope.INTERNAL
    if policy == "registrable":
        a = _tld_extract(host)
        b = _tld_extract(seed_host)
        if a.domain and a.suffix and (a.domain, a.suffix) == (b.domain, b.suffix):
            return LinkScope.INTERNAL
    return LinkScope.EXTERNAL


def is_asset_url(url: str) -> bool:
    path = urlsplit(url).path.lower()
    return path.endswith(ASSET_EXTENSIONS)


def matches_link_filter(url: str, link_filter: LinkFilter, scope: LinkScope) -> bool:
    """Apply the user's link type filter to a discovered URL."""
    if link_filter == LinkFilter.ALL:
        return True
    if link_filter == LinkFilter.INTERNAL:
        return scope == LinkScope.INTERNAL
    if link_filter == LinkFilter.EXTERNAL:
        return scope == LinkScope.EXTERNAL

    path = urlsplit(url).path.lower()
    has_extension = path.endswith(LINK_FILTER_EXTENSIONS[link_filter])
    if link_filter == LinkFilter.WEB:
        known = [ext for exts in LINK_FILTER_EXTENSIONS.values() for ext in exts]
        looks_like_page = not path.endswith(tuple(known))
        return has_extension or looks_like_page
    return has_extension


def get_headers():
    """Return headers mimicking a browser to avoid bot detection."""
    return {
        "User-Agent": settings.USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate",
        "Accept-Language": "en-US,en;q=0.9",
        "Connection": "keep-alive",
        "Referer": "https://www.google.com/",
        "Upgrade-Insecure-Requests": "1",
    }
