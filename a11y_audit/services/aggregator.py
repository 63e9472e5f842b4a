"""Cross-page aggregation of audit results into a crawl :class:`Report`."""

from typing import Dict, List, Optional, Sequence

from a11y_audit.models.report import CrawlStatistics, PageResult, Report
from a11y_audit.services.auditor import utcnow


class ResultAggregator:
    """Accumulates :class:`PageResult` objects and running totals for one crawl.

    ``record`` does not deduplicate: the frontier guarantees one result per
    URL, and the totals always equal the sum over recorded results.
    """

    def __init__(self, base_url: str, started_at: Optional[str] = None):
        self.base_url = base_url
        self.started_at = started_at or utcnow()
        self._results: List[PageResult] = []
        self._violation_counts: Dict[str, int] = {}
        self._violations = 0
        self._node_violations = 0
        self._passes = 0
        self._page_load_errors = 0
        self._audit_errors = 0
        self._report: Optional[Report] = None

    def record(self, result: PageResult) -> None:
        if self._report is not None:
            raise RuntimeError("Cannot record results after the report was finalized.")

        self._results.append(result)
        self._violations += result.violation_count
        self._node_violations += result.affected_node_count
        self._passes += result.pass_count
        for rule_id, count in result.violation_counts.items():
            self._violation_counts[rule_id] = self._violation_counts.get(rule_id, 0) + count

        if result.error is not None:
            if result.error.kind == "page_load":
                self._page_load_errors += 1
            else:
                self._audit_errors += 1

    @property
    def results(self) -> List[PageResult]:
        return list(self._results)

    @property
    def statistics(self) -> CrawlStatistics:
        return CrawlStatistics(
            violations=self._violations,
            node_violations=self._node_violations,
            passes=self._passes,
            pages_audited=len(self._results),
            page_load_errors=self._page_load_errors,
            audit_errors=self._audit_errors,
        )

    def finalize(self, crawled_urls: Sequence[str]) -> Report:
        """Freeze and return the crawl report.  Later calls return the same report."""
        if self._report is None:
            self._report = Report(
                timestamp=self.started_at,
                base_url=self.base_url,
                total_urls=len(crawled_urls),
                statistics=self.statistics,
                violation_counts=dict(self._violation_counts),
                crawled_urls=list(crawled_urls),
                url_results=list(self._results),
            )
        return self._report
