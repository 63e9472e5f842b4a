"""Report models: one :class:`PageResult` per audited URL, one :class:`Report` per crawl.

Every model is frozen once built and serialises with camelCase keys so the
JSON written to disk stays stable across runs for downstream diffing.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class NodeLocation(_ReportModel):
    selector: List[Any]
    snippet: str
    xpath: str  # flattened selector path, segments joined by " > "


class ViolationNode(_ReportModel):
    """An affected DOM node; axe-core's own fields pass through untouched."""

    model_config = ConfigDict(extra="allow")

    target: List[Any] = Field(default_factory=list)
    html: str = ""
    location: NodeLocation


class Violation(_ReportModel):
    """One failed rule.  Rule metadata (impact, help, helpUrl, tags, …) passes through."""

    model_config = ConfigDict(extra="allow")

    id: str
    nodes: List[ViolationNode] = Field(min_length=1)


class Pass(_ReportModel):
    model_config = ConfigDict(extra="allow")

    id: str
    nodes: List[Dict[str, Any]] = Field(default_factory=list)


class PageError(_ReportModel):
    kind: Literal["page_load", "audit"]
    message: str


class PageResult(_ReportModel):
    url: str
    timestamp: str
    violation_count: int = Field(default=0, ge=0)
    affected_node_count: int = Field(default=0, ge=0)
    pass_count: int = Field(default=0, ge=0)
    violation_counts: Dict[str, int] = Field(default_factory=dict)
    pass_counts: Dict[str, int] = Field(default_factory=dict)
    violations: List[Violation] = Field(default_factory=list)
    passes: List[Pass] = Field(default_factory=list)
    error: Optional[PageError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class CrawlStatistics(_ReportModel):
    violations: int = 0
    node_violations: int = 0
    passes: int = 0
    pages_audited: int = 0
    page_load_errors: int = 0
    audit_errors: int = 0


class Report(_ReportModel):
    timestamp: str
    base_url: str
    total_urls: int
    statistics: CrawlStatistics
    violation_counts: Dict[str, int]
    crawled_urls: List[str]
    url_results: List[PageResult]
