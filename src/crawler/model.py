# src/crawler/model.py (Crawl Layer)
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class Impact(str, Enum):
    """Severity reported by the audit engine, ordered from worst to mildest."""
    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        """Lower rank means more severe (critical == 0)."""
        return list(Impact).index(self)


class PageStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class ViolationNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    html: str
    target: List[str] = Field(default_factory=list)
    failure_summary: str = ""

    @field_validator("target", mode="before")
    @classmethod
    def _coerce_target(cls, v: Any) -> List[str]:
        # axe reports nested selectors for iframes/shadow roots as lists
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v]
        return [str(v)]

    @field_validator("failure_summary", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return v or ""


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    impact: Impact = Impact.MINOR
    description: str = ""
    help_url: str = ""
    tags: List[str] = Field(default_factory=list)
    nodes: List[ViolationNode] = Field(default_factory=list)

    @field_validator("impact", mode="before")
    @classmethod
    def _default_impact(cls, v: Any) -> Any:
        # axe leaves impact null for some best-practice rules
        return v or Impact.MINOR

    @classmethod
    def from_axe(cls, raw: Dict[str, Any]) -> "Violation":
        """Builds a Violation from one entry of an axe-core `violations` array."""
        return cls(
            rule_id=raw.get("id", "unknown"),
            impact=raw.get("impact"),
            description=raw.get("description", ""),
            help_url=raw.get("helpUrl", ""),
            tags=list(raw.get("tags") or []),
            nodes=[
                ViolationNode(
                    html=node.get("html", ""),
                    target=node.get("target"),
                    failure_summary=node.get("failureSummary"),
                )
                for node in raw.get("nodes") or []
            ],
        )


class SeveritySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    critical: int = 0
    serious: int = 0
    moderate: int = 0
    minor: int = 0
    total: int = 0

    @classmethod
    def from_violations(cls, violations: List[Violation]) -> "SeveritySummary":
        counts = {impact.value: 0 for impact in Impact}
        for violation in violations:
            counts[violation.impact.value] += 1
        return cls(total=len(violations), **counts)


class PageResult(BaseModel):
    """The audit outcome for one crawled page. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    url: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: PageStatus = PageStatus.COMPLETED
    violations: List[Violation] = Field(default_factory=list)
    pass_count: int = 0
    incomplete_count: int = 0
    inapplicable_count: int = 0
    summary: SeveritySummary = Field(default_factory=SeveritySummary)
    error: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _derive_summary(cls, data: Any) -> Any:
        if isinstance(data, dict) and "summary" not in data:
            violations = [
                v if isinstance(v, Violation) else Violation(**v)
                for v in data.get("violations") or []
            ]
            data = {**data, "violations": violations,
                    "summary": SeveritySummary.from_violations(violations)}
        return data

    @classmethod
    def failed(cls, url: str, error: Optional[str] = None) -> "PageResult":
        """A failed page carries zero counts and no violations."""
        return cls(url=url, status=PageStatus.FAILED, error=error)

    def with_id(self, new_id: str) -> "PageResult":
        return self.model_copy(update={"id": new_id})


class AuditOutcome(BaseModel):
    """What the audit engine returns for one rendered page."""
    violations: List[Violation] = Field(default_factory=list)
    passes: int = 0
    incomplete: int = 0
    inapplicable: int = 0


class CrawlSettings(BaseModel):
    max_depth: int = Field(default=0, ge=0)
    max_pages: int = Field(default=10, ge=1)
    whole_site_depth: int = Field(default=50, description="Depths at or above this are whole-site crawls.")
    whole_site_max_pages: int = Field(default=200, ge=1)
    hard_page_cap: int = Field(default=500, ge=1)
    audit_retries: int = Field(default=3, ge=1)
    audit_retry_backoff: float = Field(default=2.0, ge=0)

    @property
    def is_whole_site(self) -> bool:
        return self.max_depth >= self.whole_site_depth

    @property
    def page_ceiling(self) -> int:
        """Maximum number of PageResults one crawl may produce."""
        ceiling = self.whole_site_max_pages if self.is_whole_site else self.max_pages
        return min(ceiling, self.hard_page_cap)
