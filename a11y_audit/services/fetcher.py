import ipaddress
import logging
import socket
from typing import NamedTuple, Optional
from urllib.parse import urljoin, urlparse

import httpx

from a11y_audit.models.settings import BasicAuthCredentials
from a11y_audit.services.errors import FetchError

logger = logging.getLogger(__name__)

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
TIMEOUT = 10  # seconds
MAX_REDIRECTS = 10
ALLOWED_SCHEMES = {"http", "https"}


def _is_private_address(hostname: str) -> bool:
    """Return True if *hostname* resolves to a private, loopback, or link-local address."""
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror:
        return False

    for info in infos:
        # Strip IPv6 zone IDs (e.g. "::1%eth0" → "::1")
        raw_ip = info[4][0].split("%")[0]
        try:
            addr = ipaddress.ip_address(raw_ip)
        except ValueError:
            continue
        if addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved:
            return True
    return False


def validate_url(url: str, allow_private: bool = False) -> None:
    """Raise ValueError if *url* fails scheme / SSRF validation.

    Private, loopback and link-local hosts are refused unless *allow_private*
    is set, which is how staging sites on internal networks get audited.
    """
    parsed = urlparse(url)

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    hostname = parsed.hostname
    if not hostname:
        raise ValueError("URL must have a valid hostname.")

    # The DNS lookup is skipped entirely when private hosts are allowed
    if not allow_private and _is_private_address(hostname):
        raise ValueError("Requests to private/internal addresses are not allowed.")


class FetchedPage(NamedTuple):
    url: str  # final URL after redirects; relative links resolve against it
    html: str


class PageFetcher:
    """Fetches raw page markup for link discovery.

    Holds one :class:`httpx.AsyncClient` for the lifetime of a crawl; use it
    as an async context manager.  Basic-auth credentials, an outbound proxy
    and TLS verification are applied to every request.
    """

    def __init__(
        self,
        auth: Optional[BasicAuthCredentials] = None,
        proxy: Optional[str] = None,
        verify_tls: bool = True,
        allow_private: bool = False,
    ):
        self.allow_private = allow_private
        self._client = httpx.AsyncClient(
            auth=httpx.BasicAuth(auth.username, auth.password.get_secret_value()) if auth else None,
            proxy=proxy,
            verify=verify_tls,
            follow_redirects=False,
            timeout=TIMEOUT,
        )

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, url: str) -> FetchedPage:
        """Fetch *url* and return the final URL and the response body.

        Redirects are followed manually so that every redirect destination is
        validated before the next request is made.

        Raises:
            ValueError: if the URL fails scheme / SSRF validation.
            FetchError: on non-2xx responses, network/TLS errors, URLs httpx
                rejects, oversized bodies or redirect loops.
        """
        validate_url(url, self.allow_private)
        try:
            return await self._fetch(url)
        except httpx.HTTPStatusError as exc:
            raise FetchError(url, f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(url, str(exc) or type(exc).__name__) from exc

    async def _fetch(self, url: str) -> FetchedPage:
        current_url = url
        for _ in range(MAX_REDIRECTS + 1):
            async with self._client.stream("GET", current_url) as response:
                if response.is_redirect:
                    location = response.headers.get("location", "")
                    next_url = urljoin(current_url, location)
                    validate_url(next_url, self.allow_private)
                    current_url = next_url
                    continue

                response.raise_for_status()

                content_length = response.headers.get("content-length")
                if content_length and int(content_length) > MAX_CONTENT_SIZE:
                    raise FetchError(url, "Response body exceeds the maximum allowed size.")

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > MAX_CONTENT_SIZE:
                        raise FetchError(url, "Response body exceeds the maximum allowed size.")
                    chunks.append(chunk)

                return FetchedPage(current_url, b"".join(chunks).decode(errors="replace"))

        raise FetchError(url, "Too many redirects.")
