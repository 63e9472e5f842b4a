import logging

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from a11y_audit.models.audit_request import AuditRequest, PageAuditRequest
from a11y_audit.models.report import PageResult, Report
from a11y_audit.services.errors import DriverUnavailableError, PersistenceError
from a11y_audit.services.orchestrator import audit_page, run_crawl

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/audit", tags=["Audit"])


@router.post(
    "",
    response_model=Report,
    summary="Crawl a site and audit every page for accessibility",
    description=(
        "Starting from *url*, follows every link whose absolute form starts "
        "with *url*, runs axe-core against each page in headless Chromium with "
        "the requested rule tags, and returns the aggregated report.  The "
        "report is also written to the server's results directory.\n\n"
        "Pages that fail to load or cannot be evaluated are reported with an "
        "`error` and zero counts; they never abort the crawl."
    ),
)
@limiter.limit("2/minute")
async def audit_site(request: Request, body: AuditRequest) -> Report:
    url = str(body.url)
    logger.info(
        "Audit request received",
        extra={"url": url, "max_pages": body.max_pages, "rule_tags": body.rule_tags},
    )

    try:
        return await run_crawl(body.to_settings())
    except ValueError as exc:
        logger.warning("Invalid or blocked URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except DriverUnavailableError as exc:
        logger.error("Audit infrastructure unavailable for %s: %s", url, exc)
        raise HTTPException(status_code=503, detail=str(exc))
    except PersistenceError as exc:
        logger.error("Could not persist report for %s: %s", url, exc)
        raise HTTPException(status_code=500, detail="The audit report could not be saved.")


@router.post(
    "/page",
    response_model=PageResult,
    summary="Audit a single page for accessibility",
)
@limiter.limit("10/minute")
async def audit_single_page(request: Request, body: PageAuditRequest) -> PageResult:
    """Run axe-core against *url* only, without crawling or saving a report."""
    url = str(body.url)
    logger.info("Page audit request received", extra={"url": url})

    try:
        return await audit_page(body.to_settings())
    except ValueError as exc:
        logger.warning("Invalid or blocked URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except DriverUnavailableError as exc:
        logger.error("Audit infrastructure unavailable for %s: %s", url, exc)
        raise HTTPException(status_code=503, detail=str(exc))
