import logging

from bs4 import BeautifulSoup

from linkscanner.core.exceptions import InvalidUrl
from linkscanner.utils.url_utils import normalize_url

SKIPPED_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")


def is_html(content_type):
    content_type = (content_type or "").lower()
    return "text/html" in content_type or "application/xhtml" in content_type


def extract_links(page_url, body, content_type):
    """Return the absolute http(s) links found in anchor tags, in page order.

    Non-HTML bodies yield nothing. Parsing is best-effort: broken markup or a
    parser failure gives back whatever was collected so far.
    """
    if not is_html(content_type):
        return []

    links = []
    seen = set()
    try:
        soup = BeautifulSoup(body, "html.parser")

        base_url = page_url
        base_tag = soup.find("base", href=True)
        if base_tag:
            try:
                base_url = normalize_url(base_tag["href"], base=page_url)
            except InvalidUrl:
                pass

        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href.lower().startswith(SKIPPED_PREFIXES):
                continue
            try:
                link = normalize_url(href, base=base_url)
            except InvalidUrl:
                logging.debug(f"Skipping invalid link {href!r} on {page_url}")
                continue
            if link not in seen:
                seen.add(link)
                links.append(link)
    except Exception as e:
        logging.warning(f"Error parsing HTML from {page_url}: {e}")

    return links
