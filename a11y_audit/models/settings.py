from typing import Optional, Tuple

from pydantic import BaseModel, Field, SecretStr

# wcag2a/wcag2aa plus the German BITV profile
DEFAULT_RULE_TAGS: Tuple[str, ...] = ("wcag2a", "wcag2aa", "bitv")


class BasicAuthCredentials(BaseModel):
    username: str
    password: SecretStr


class CrawlSettings(BaseModel):
    """Everything one crawl needs to know, independent of how it was requested."""

    model_config = {"frozen": True}

    base_url: str
    rule_tags: Tuple[str, ...] = DEFAULT_RULE_TAGS
    auth: Optional[BasicAuthCredentials] = None
    proxy: Optional[str] = None
    verify_tls: bool = True
    strip_fragments: bool = False
    include_passes: bool = True
    max_pages: Optional[int] = Field(default=None, ge=1)
    navigation_timeout_ms: int = Field(default=30_000, ge=1_000)
    per_page_files: bool = False
