"""URL utilities: normalisation policy, scope checks, credential embedding, slugs.

Normalisation policy
--------------------
URLs are compared exactly as resolved by :func:`urllib.parse.urljoin`:
case-sensitive, query string kept, trailing slash untouched.  Fragments are
kept unless the crawl enables ``strip_fragments``, in which case
``/page#a`` and ``/page`` collapse to one URL.
"""

import re
import unicodedata
from urllib.parse import quote, urlparse, urlsplit, urlunsplit


def normalise_url(url: str, strip_fragments: bool = False) -> str:
    """Apply the crawl's normalisation policy to an already-absolute *url*."""
    if strip_fragments:
        return urlparse(url)._replace(fragment="").geturl()
    return url


def in_scope(url: str, scope_prefix: str) -> bool:
    """Return True when *url* lies under *scope_prefix* (plain string prefix match)."""
    return url.startswith(scope_prefix)


def with_credentials(url: str, username: str, password: str) -> str:
    """Return *url* with ``username:password@`` embedded in its authority.

    Existing credentials in *url* are replaced.
    """
    parts = urlsplit(url)
    host = parts.netloc.rpartition("@")[2]
    userinfo = f"{quote(username, safe='')}:{quote(password, safe='')}"
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{host}"))


def generate_slug(url: str, base_url: str) -> str:
    """Generate a flat, filesystem-safe name for *url* relative to *base_url*.

    The slug is lowercased, ASCII-only, uses underscores as separators and is
    capped at 200 characters.  The crawl root maps to ``"index"``.
    """
    relative = url[len(base_url):] if url.startswith(base_url) else url

    slug = unicodedata.normalize("NFKD", relative)
    slug = slug.encode("ascii", "ignore").decode("ascii")

    slug = re.sub(r"[^a-z0-9]+", "_", slug.lower())
    slug = slug.strip("_")[:200]

    return slug or "index"
