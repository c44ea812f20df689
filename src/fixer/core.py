import re
from pathlib import PurePosixPath
from typing import Any, Callable, List, Optional, Set

from pydantic import BaseModel, Field

from crawler.model import Violation
from parser.model import Expression, Tag


def fix_spec(rule_ids: List[str]):
    """
    Decorator to declare which audit rule ids a transformation repairs.
    Facilitates auto-discovery by the FixRegistry.
    """
    def decorator(func):
        func.rule_ids = rule_ids
        return func
    return decorator


class FixContext(BaseModel):
    """What a transformation may know beyond the element itself."""
    file_path: str = ""
    templated: bool = False
    previous_heading_level: Optional[int] = None
    stylesheet_path: str = "accessibility-fixes.css"
    preceding_text: str = Field(default="", description="File content before the matched element.")


class FixEdit(BaseModel):
    """
    Result of a transformation. `fixed_content` equal to the input means no
    fix was possible. `file_path`/`original_content` redirect the edit to
    another file (None keeps the matched file and element).
    """
    fixed_content: str
    description: str = ""
    file_path: Optional[str] = None
    original_content: Optional[str] = None


# (violation, snippet, tag or None, context) -> FixEdit
Transform = Callable[[Violation, str, Optional[Tag], FixContext], FixEdit]


class FixDefinition:
    """
    Configuration object binding a group of audit rules to their transformation.
    """

    def __init__(self, name: str, transform: Transform, is_default: bool = False,
                 rule_ids: Optional[List[str]] = None):
        self.name = name
        self.transform = transform
        self.is_default = is_default

        codes: Set[str] = set(rule_ids or [])
        codes.update(getattr(transform, "rule_ids", []))
        self.rule_ids = sorted(codes)


def unchanged(snippet: str) -> FixEdit:
    return FixEdit(fixed_content=snippet)


def humanize(value: Any) -> str:
    """'team-photo_2.jpg' -> 'Team photo 2'. Empty for expressions and blanks."""
    if value is None or value is True or isinstance(value, Expression):
        return ""
    name = PurePosixPath(str(value).split("?", 1)[0].split("#", 1)[0]).stem
    words = re.sub(r"([a-z])([A-Z])", r"\1 \2", name)
    words = re.sub(r"[-_.]+", " ", words).strip()
    return words[:1].upper() + words[1:].lower() if words else ""
