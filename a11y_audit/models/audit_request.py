from typing import List, Optional

from pydantic import BaseModel, Field, HttpUrl, SecretStr

from a11y_audit.models.settings import DEFAULT_RULE_TAGS, BasicAuthCredentials, CrawlSettings


class PageAuditRequest(BaseModel):
    url: HttpUrl
    rule_tags: List[str] = Field(
        default_factory=lambda: list(DEFAULT_RULE_TAGS),
        min_length=1,
        description="axe-core rule tags selecting the accessibility profile to evaluate.",
    )
    username: Optional[str] = Field(
        default=None,
        description="Basic-auth user for sites behind .htaccess protection.",
    )
    password: Optional[SecretStr] = None
    include_passes: bool = True
    navigation_timeout_ms: int = Field(default=30_000, ge=1_000, le=120_000)

    def to_settings(self) -> CrawlSettings:
        auth = None
        if self.username:
            auth = BasicAuthCredentials(
                username=self.username, password=self.password or SecretStr("")
            )
        return CrawlSettings(
            base_url=str(self.url),
            rule_tags=tuple(self.rule_tags),
            auth=auth,
            include_passes=self.include_passes,
            navigation_timeout_ms=self.navigation_timeout_ms,
        )


class AuditRequest(PageAuditRequest):
    proxy: Optional[str] = Field(
        default=None,
        description="Outbound proxy for link discovery, e.g. http://10.0.0.1:3128.",
    )
    verify_tls: bool = True
    strip_fragments: bool = Field(
        default=False,
        description="Treat /page and /page#section as the same URL.",
    )
    max_pages: int = Field(
        default=50,
        ge=1,
        le=200,
        description="Maximum number of pages to audit (1–200).",
    )
    per_page_files: bool = Field(
        default=False,
        description="Also write one JSON file per audited page next to the crawl report.",
    )

    def to_settings(self) -> CrawlSettings:
        base = super().to_settings()
        return base.model_copy(
            update={
                "proxy": self.proxy,
                "verify_tls": self.verify_tls,
                "strip_fragments": self.strip_fragments,
                "max_pages": self.max_pages,
                "per_page_files": self.per_page_files,
            }
        )
