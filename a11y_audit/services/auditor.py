"""Per-page accessibility audit: load one URL, run axe-core, tabulate the result."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

from pydantic import ValidationError

from a11y_audit.models.report import PageError, PageResult, Pass, Violation
from a11y_audit.models.settings import DEFAULT_RULE_TAGS, BasicAuthCredentials
from a11y_audit.services.errors import AuditOracleError, PageLoadError
from a11y_audit.services.normalizer import with_credentials

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " > "


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def flatten_target(target: Sequence[Any]) -> str:
    """Join axe-core target segments with ``" > "``.

    Segments that are themselves lists (shadow DOM hosts) are flattened in
    place, so ``[["#host", "button"], ".x"]`` becomes ``"#host > button > .x"``.
    """
    segments: List[str] = []
    for segment in target:
        if isinstance(segment, (list, tuple)):
            segments.append(flatten_target(segment))
        else:
            segments.append(str(segment))
    return PATH_SEPARATOR.join(segments)


def _locate(node: Mapping[str, Any]) -> Dict[str, Any]:
    target = list(node.get("target") or [])
    return {
        **node,
        "location": {
            "selector": target,
            "snippet": node.get("html", ""),
            "xpath": flatten_target(target),
        },
    }


def _count_nodes(rules: Sequence[Any]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for rule in rules:
        counts[rule.id] = counts.get(rule.id, 0) + len(rule.nodes)
    return counts


def build_page_result(
    url: str,
    raw: Mapping[str, Any],
    timestamp: Optional[str] = None,
    include_passes: bool = True,
) -> PageResult:
    """Turn raw axe-core output for *url* into a :class:`PageResult`.

    *raw* is copied, never modified.  Every violation node gains a
    ``location`` block derived only from that node.

    Raises:
        pydantic.ValidationError: if *raw* is not shaped like axe-core output.
    """
    violations = [
        Violation.model_validate({**v, "nodes": [_locate(n) for n in v.get("nodes") or []]})
        for v in raw.get("violations") or []
    ]
    passes = (
        [Pass.model_validate(p) for p in raw.get("passes") or []] if include_passes else []
    )

    return PageResult(
        url=url,
        timestamp=timestamp or utcnow(),
        violation_count=len(violations),
        affected_node_count=sum(len(v.nodes) for v in violations),
        pass_count=len(passes),
        violation_counts=_count_nodes(violations),
        pass_counts=_count_nodes(passes),
        violations=violations,
        passes=passes,
    )


def failed_page_result(url: str, kind: str, message: str, timestamp: Optional[str] = None) -> PageResult:
    """A zero-count result marking *url* as not loaded (``page_load``) or not evaluated (``audit``)."""
    return PageResult(
        url=url,
        timestamp=timestamp or utcnow(),
        error=PageError(kind=kind, message=message),
    )


class AuditRunner:
    """Audits one URL at a time in its own browser session.

    A page that fails to load or cannot be evaluated yields a zero-count
    :class:`PageResult` carrying the failure instead of raising, so one bad
    page never stops the crawl.
    """

    def __init__(
        self,
        driver,
        oracle,
        rule_tags: Sequence[str] = DEFAULT_RULE_TAGS,
        auth: Optional[BasicAuthCredentials] = None,
        include_passes: bool = True,
    ):
        self.driver = driver
        self.oracle = oracle
        self.rule_tags = tuple(rule_tags)
        self.auth = auth
        self.include_passes = include_passes

    def _navigation_url(self, url: str) -> str:
        if not self.auth:
            return url
        return with_credentials(url, self.auth.username, self.auth.password.get_secret_value())

    def _redact(self, message: str) -> str:
        """Strip basic-auth credentials from an error message."""
        if not self.auth:
            return message
        username = self.auth.username
        password = self.auth.password.get_secret_value()
        message = message.replace(f"{quote(username, safe='')}:{quote(password, safe='')}@", "")
        message = message.replace(f"{username}:{password}@", "")
        for secret in {password, quote(password, safe="")}:
            if secret:
                message = message.replace(secret, "***")
        return message

    async def audit(self, url: str) -> PageResult:
        timestamp = utcnow()
        target = self._navigation_url(url)

        async with self.driver.session() as session:
            try:
                await session.navigate(target)
            except PageLoadError as exc:
                # Playwright echoes the URL it was given, credentials included
                reason = self._redact(exc.reason)
                logger.warning("Audit: page failed to load %s – %s", url, reason)
                return failed_page_result(url, "page_load", reason, timestamp)

            try:
                raw = await self.oracle.evaluate(session, self.rule_tags)
                result = build_page_result(url, raw, timestamp, self.include_passes)
            except AuditOracleError as exc:
                reason = self._redact(exc.reason)
                logger.warning("Audit: axe-core failed on %s – %s", url, reason)
                return failed_page_result(url, "audit", reason, timestamp)
            except ValidationError as exc:
                logger.warning("Audit: malformed axe-core result for %s – %s", url, exc)
                return failed_page_result(
                    url, "audit", f"Malformed axe-core result: {exc.error_count()} error(s)", timestamp
                )

        logger.info(
            "Audit: %s – %d violations, %d affected nodes, %d passes",
            url,
            result.violation_count,
            result.affected_node_count,
            result.pass_count,
        )
        return result
