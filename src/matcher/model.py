# src/matcher/model.py
from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from crawler.model import Violation, ViolationNode
from parser.model import Tag

HIGH_CONFIDENCE = 0.7


class MatchStrategy(str, Enum):
    EXACT = "exact"
    SEMANTIC = "semantic"
    FUZZY = "fuzzy"


class MatchResult(BaseModel):
    """One candidate source element scored against one violation node."""
    model_config = ConfigDict(frozen=True)

    violation: Violation
    node: ViolationNode
    matched_tag: Tag
    file_path: str
    confidence: float = Field(ge=0.0, le=1.0)
    strategy: MatchStrategy

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= HIGH_CONFIDENCE


class ManualReviewItem(BaseModel):
    """A violation node that no candidate matched with enough confidence."""
    model_config = ConfigDict(frozen=True)

    rule_id: str
    html: str
    target: List[str] = Field(default_factory=list)
    best_confidence: float = 0.0
    reason: str = "requires manual review"
