"""JSON persistence for crawl reports."""

import logging
from pathlib import Path
from typing import List

from a11y_audit.models.report import Report
from a11y_audit.services.errors import PersistenceError
from a11y_audit.services.normalizer import generate_slug

logger = logging.getLogger(__name__)

REPORT_FILENAME = "accessibility-results.json"
PAGES_DIRNAME = "pages"


def _write_json(path: Path, payload: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(str(path), str(exc)) from exc


def write_report(report: Report, destination: Path) -> Path:
    """Write *report* to ``<destination>/accessibility-results.json``.

    The directory is created if it does not exist.

    Raises:
        PersistenceError: if the file cannot be written.
    """
    path = Path(destination) / REPORT_FILENAME
    _write_json(path, report.model_dump_json(by_alias=True, indent=2))
    logger.info("Writer: report saved to %s", path)
    return path


def write_page_results(report: Report, destination: Path) -> List[Path]:
    """Write each page result to ``<destination>/pages/<slug>.json``.

    Slugs that collide get a numeric suffix so no result overwrites another.
    """
    directory = Path(destination) / PAGES_DIRNAME
    written: List[Path] = []
    used: set = set()
    for result in report.url_results:
        slug = generate_slug(result.url, report.base_url)
        name, n = slug, 1
        while name in used:
            n += 1
            name = f"{slug}_{n}"
        used.add(name)

        path = directory / f"{name}.json"
        _write_json(path, result.model_dump_json(by_alias=True, indent=2))
        written.append(path)
    logger.info("Writer: %d page results saved to %s", len(written), directory)
    return written


class ReportWriter:
    """Persistence collaborator handed the finished report exactly once."""

    def __init__(self, destination: Path, per_page_files: bool = False):
        self.destination = Path(destination)
        self.per_page_files = per_page_files

    def write(self, report: Report) -> Path:
        path = write_report(report, self.destination)
        if self.per_page_files:
            write_page_results(report, self.destination)
        return path
