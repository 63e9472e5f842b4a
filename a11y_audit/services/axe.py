"""axe-core audit oracle: injects the axe script into a loaded page and runs it."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import httpx
from playwright.async_api import Error as PlaywrightError

from a11y_audit.config import AXE_CDN_URL
from a11y_audit.services.browser import BrowserSession
from a11y_audit.services.errors import AuditOracleError, DriverUnavailableError

logger = logging.getLogger(__name__)

_AXE_DOWNLOAD_TIMEOUT = 30

_RUN_AXE_JS = """
(tags) => {
  if (!window.axe) {
    throw new Error('axe-core was injected but window.axe is missing');
  }
  return window.axe.run(document, {
    runOnly: { type: 'tag', values: tags },
    reporter: 'v2',
  });
}
"""


_source_cache: Dict[str, str] = {}


async def load_axe_source(path: Optional[str] = None) -> str:
    """Return the axe-core script, read from *path* or downloaded from the CDN.

    The script is cached per source for the life of the process.

    Raises:
        DriverUnavailableError: if the script cannot be read or downloaded.
    """
    key = path or AXE_CDN_URL
    if key not in _source_cache:
        _source_cache[key] = await _read_axe_source(path)
    return _source_cache[key]


async def _read_axe_source(path: Optional[str]) -> str:
    if path:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise DriverUnavailableError(f"Cannot read axe-core from {path}: {exc}") from exc

    logger.info("Axe: downloading axe-core from %s", AXE_CDN_URL)
    try:
        async with httpx.AsyncClient(timeout=_AXE_DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
            resp = await client.get(AXE_CDN_URL)
            resp.raise_for_status()
            return resp.text
    except httpx.HTTPError as exc:
        raise DriverUnavailableError(f"Cannot download axe-core: {exc}") from exc


class AxeOracle:
    """Evaluates the page held by a :class:`BrowserSession` against a rule-tag profile."""

    def __init__(self, source: str):
        self.source = source

    @classmethod
    async def load(cls, path: Optional[str] = None) -> "AxeOracle":
        return cls(await load_axe_source(path))

    async def evaluate(self, session: BrowserSession, tags: Sequence[str]) -> Dict[str, Any]:
        """Run axe-core and return its raw ``{"violations": [...], "passes": [...]}`` result.

        Raises:
            AuditOracleError: if injection or evaluation fails, or the result
                is not shaped like an axe-core report.
        """
        url = session.page.url
        try:
            await session.page.add_script_tag(content=self.source)
            result = await session.page.evaluate(_RUN_AXE_JS, list(tags))
        except PlaywrightError as exc:
            raise AuditOracleError(url, exc.message) from exc

        if not isinstance(result, dict) or not isinstance(result.get("violations"), list):
            raise AuditOracleError(url, "axe-core returned an unexpected result")
        return result
