"""Playwright page-control driver used for accessibility scanning."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from a11y_audit.models.settings import BasicAuthCredentials
from a11y_audit.services.errors import DriverUnavailableError, PageLoadError

logger = logging.getLogger(__name__)

TIMEOUT_MS = 30_000  # 30 s in milliseconds

_LAUNCH_ARGS = [
    # --no-sandbox is required when running as root inside a container
    # (Docker drops the user namespace needed by Chromium's sandbox).
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class BrowserSession:
    """One browser context and tab, owned by a single page audit."""

    def __init__(self, page: Page, timeout_ms: int = TIMEOUT_MS):
        self.page = page
        self.timeout_ms = timeout_ms

    async def navigate(self, url: str) -> None:
        """Load *url* and wait for the network to settle.

        Raises:
            PageLoadError: on navigation errors and timeouts.
        """
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
        except PlaywrightError as exc:
            raise PageLoadError(url, exc.message) from exc


class BrowserDriver:
    """Owns the headless Chromium process for one crawl.

    Each call to :meth:`session` opens a fresh browser context and tab that is
    closed again when the ``async with`` block exits, whatever the outcome.
    """

    def __init__(
        self,
        auth: Optional[BasicAuthCredentials] = None,
        verify_tls: bool = True,
        timeout_ms: int = TIMEOUT_MS,
    ):
        self.auth = auth
        self.verify_tls = verify_tls
        self.timeout_ms = timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "BrowserDriver":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def start(self) -> None:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=True, args=_LAUNCH_ARGS)
        except PlaywrightError as exc:
            await self.close()
            raise DriverUnavailableError(f"Could not launch Chromium: {exc.message}") from exc
        logger.info("Browser: launched Chromium %s", self._browser.version)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserSession]:
        if self._browser is None:
            raise DriverUnavailableError("Browser is not running.")

        http_credentials = None
        if self.auth:
            # Chromium does not reuse URL-embedded credentials for subresources
            http_credentials = {
                "username": self.auth.username,
                "password": self.auth.password.get_secret_value(),
            }
        try:
            context = await self._browser.new_context(
                http_credentials=http_credentials,
                ignore_https_errors=not self.verify_tls,
                # axe-core is injected as an inline script
                bypass_csp=True,
            )
        except PlaywrightError as exc:
            raise DriverUnavailableError(f"Could not open a browser context: {exc.message}") from exc

        try:
            try:
                page = await context.new_page()
            except PlaywrightError as exc:
                raise DriverUnavailableError(f"Could not open a tab: {exc.message}") from exc
            yield BrowserSession(page, self.timeout_ms)
        finally:
            await context.close()
