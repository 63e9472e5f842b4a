import re
from typing import List
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from a11y_audit.services.normalizer import in_scope

_SKIP_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")

# ASCII control characters; httpx and browsers refuse URLs containing them
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def _resolve(page_url: str, href: str) -> str:
    """Return *href* as an absolute URL, or "" when it cannot be resolved."""
    try:
        abs_url = urljoin(page_url, href)
        parsed = urlparse(abs_url)
        # Accessing .port validates the authority (raises on e.g. ":99999")
        parsed.port
    except ValueError:
        return ""
    if _CONTROL_CHARS_RE.search(abs_url):
        return ""
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ""
    return abs_url


def extract_links(page_url: str, html: str, scope_prefix: str) -> List[str]:
    """Return in-scope links found in *html*, in document order, without duplicates.

    Each ``<a href>`` is resolved against *page_url*.  Blank, in-page
    (``#…``) and non-navigational (``mailto:``, ``javascript:``, …) hrefs are
    skipped, as are hrefs that cannot be resolved.  Filtering against already
    visited URLs is left to the frontier.
    """
    soup = BeautifulSoup(html, "lxml")
    seen: set = set()
    links: List[str] = []
    for a in soup.find_all("a", href=True):
        href = str(a["href"]).strip()
        if not href or href.lower().startswith(_SKIP_PREFIXES):
            continue
        abs_url = _resolve(page_url, href)
        if not abs_url or not in_scope(abs_url, scope_prefix):
            continue
        if abs_url not in seen:
            seen.add(abs_url)
            links.append(abs_url)
    return links
