"""Crawl loop: seed, audit, discover, repeat until the frontier drains.

The loop is strictly sequential.  One URL is audited and its links are
offered to the frontier before the next URL is dequeued, so a single browser
session is ever in use and every admission check sees all earlier ones.
"""

import enum
import logging
from pathlib import Path
from typing import Optional

from a11y_audit.config import ALLOW_PRIVATE_HOSTS, AXE_SCRIPT_PATH, RESULTS_DIR
from a11y_audit.models.report import PageResult, Report
from a11y_audit.models.settings import CrawlSettings
from a11y_audit.services.aggregator import ResultAggregator
from a11y_audit.services.auditor import AuditRunner
from a11y_audit.services.axe import AxeOracle
from a11y_audit.services.browser import BrowserDriver
from a11y_audit.services.errors import FetchError
from a11y_audit.services.extractor import extract_links
from a11y_audit.services.fetcher import PageFetcher, validate_url
from a11y_audit.services.frontier import Frontier
from a11y_audit.services.normalizer import in_scope
from a11y_audit.services.writer import ReportWriter

logger = logging.getLogger(__name__)


class CrawlState(enum.Enum):
    IDLE = "idle"
    SEEDED = "seeded"
    AUDITING = "auditing"
    DISCOVERING = "discovering"
    DRAINING = "draining"
    DONE = "done"


class CrawlOrchestrator:
    """Runs one crawl over explicitly passed collaborators.

    *runner* needs ``async audit(url) -> PageResult``, *fetcher* needs
    ``async fetch(url) -> FetchedPage`` and *writer*, when given, needs
    ``write(report) -> Path``.
    """

    def __init__(self, settings: CrawlSettings, runner, fetcher, writer=None):
        self.settings = settings
        self.runner = runner
        self.fetcher = fetcher
        self.writer = writer
        self.frontier = Frontier(settings.base_url, strip_fragments=settings.strip_fragments)
        self.aggregator = ResultAggregator(settings.base_url)
        self.state = CrawlState.IDLE
        self.report_path: Optional[Path] = None

    async def run(self) -> Report:
        if self.state is not CrawlState.IDLE:
            raise RuntimeError("A crawl orchestrator can only run once.")

        logger.info("Crawl: starting at %s", self.settings.base_url)
        self.frontier.seed(self.settings.base_url)
        self.state = CrawlState.SEEDED

        while True:
            url = self._next_url()
            if url is None:
                break

            self.state = CrawlState.AUDITING
            result = await self.runner.audit(url)
            self.aggregator.record(result)

            self.state = CrawlState.DISCOVERING
            await self._discover(url)

            self.state = CrawlState.DRAINING

        self.state = CrawlState.DONE
        report = self.aggregator.finalize(self.frontier.visited)
        if self.writer is not None:
            self.report_path = self.writer.write(report)
        self._log_summary(report)
        return report

    def _next_url(self) -> Optional[str]:
        max_pages = self.settings.max_pages
        if max_pages is not None and len(self.aggregator.results) >= max_pages:
            if self.frontier.pending:
                logger.info(
                    "Crawl: page limit %d reached, %d queued URLs not audited",
                    max_pages,
                    self.frontier.pending,
                )
            return None
        return self.frontier.next()

    async def _discover(self, url: str) -> None:
        try:
            page = await self.fetcher.fetch(url)
        except (FetchError, ValueError) as exc:
            logger.warning("Crawl: no links discovered from %s – %s", url, exc)
            return

        # A redirect that leaves the scope means the page is not part of the site
        if not in_scope(page.url, self.frontier.scope_prefix):
            logger.info("Crawl: %s redirected out of scope to %s, links ignored", url, page.url)
            return

        links = extract_links(page.url, page.html, self.frontier.scope_prefix)
        admitted = sum(1 for link in links if self.frontier.offer(link))
        logger.debug("Crawl: %s yielded %d links, %d new", url, len(links), admitted)

    def _log_summary(self, report: Report) -> None:
        stats = report.statistics
        logger.info(
            "Crawl finished: %d URLs, %d audited, %d violations, %d affected nodes, "
            "%d passes, %d load errors, %d audit errors%s",
            report.total_urls,
            stats.pages_audited,
            stats.violations,
            stats.node_violations,
            stats.passes,
            stats.page_load_errors,
            stats.audit_errors,
            f", saved to {self.report_path}" if self.report_path else "",
        )


async def run_crawl(
    settings: CrawlSettings,
    destination: Path = RESULTS_DIR,
    axe_script_path: Optional[str] = AXE_SCRIPT_PATH,
    allow_private: bool = ALLOW_PRIVATE_HOSTS,
) -> Report:
    """Crawl and audit ``settings.base_url`` with Chromium and axe-core, then persist the report.

    Raises:
        ValueError: if the base URL fails validation.
        DriverUnavailableError: if the browser or axe-core cannot be set up.
        PersistenceError: if the report cannot be written.
    """
    validate_url(settings.base_url, allow_private)
    oracle = await AxeOracle.load(axe_script_path)

    async with BrowserDriver(
        settings.auth, settings.verify_tls, settings.navigation_timeout_ms
    ) as driver, PageFetcher(
        settings.auth, settings.proxy, settings.verify_tls, allow_private
    ) as fetcher:
        runner = AuditRunner(
            driver, oracle, settings.rule_tags, settings.auth, settings.include_passes
        )
        writer = ReportWriter(destination, per_page_files=settings.per_page_files)
        orchestrator = CrawlOrchestrator(settings, runner, fetcher, writer)
        return await orchestrator.run()


async def audit_page(
    settings: CrawlSettings,
    axe_script_path: Optional[str] = AXE_SCRIPT_PATH,
    allow_private: bool = ALLOW_PRIVATE_HOSTS,
) -> PageResult:
    """Audit ``settings.base_url`` alone, without link discovery or persistence."""
    validate_url(settings.base_url, allow_private)
    oracle = await AxeOracle.load(axe_script_path)

    async with BrowserDriver(
        settings.auth, settings.verify_tls, settings.navigation_timeout_ms
    ) as driver:
        runner = AuditRunner(
            driver, oracle, settings.rule_tags, settings.auth, settings.include_passes
        )
        return await runner.audit(settings.base_url)
