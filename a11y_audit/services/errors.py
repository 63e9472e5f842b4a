"""Error taxonomy for the crawl-and-audit engine.

Per-page errors (:class:`PageLoadError`, :class:`AuditOracleError`,
:class:`FetchError`) are caught by the engine, logged, and recorded on the
report.  :class:`DriverUnavailableError` and :class:`PersistenceError` are
fatal and propagate to the caller.
"""


class AuditError(Exception):
    """Base class for crawl-and-audit failures."""


class PageLoadError(AuditError):
    """Raised when the browser cannot navigate to a page."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to load {url}: {reason}")
        self.url = url
        self.reason = reason


class AuditOracleError(AuditError):
    """Raised when a page loaded but axe-core could not evaluate it."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Audit failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class FetchError(AuditError):
    """Raised when the link-discovery fetch fails (non-2xx, network, TLS, size)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class DriverUnavailableError(AuditError):
    """Raised when the browser or the axe-core script cannot be set up for the crawl."""


class PersistenceError(AuditError):
    """Raised when the final report cannot be written."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write report to {path}: {reason}")
        self.path = path
        self.reason = reason
