from typing import Optional

from crawler.model import Violation
from parser.model import Tag
from ..core import FixContext, FixDefinition, FixEdit, unchanged


def _sanitize(text: str, templated: bool) -> str:
    text = " ".join((text or "").split())
    return text.replace("*/", "* /") if templated else text.replace("--", "-")


def review_comment(violation: Violation, templated: bool) -> str:
    description = _sanitize(violation.description or violation.rule_id, templated)
    help_url = _sanitize(violation.help_url, templated)
    if templated:
        return f"{{/* Accessibility Issue: {description} Please review: {help_url} */}}"
    return f"<!-- Accessibility Issue: {description} -->\n<!-- Please review: {help_url} -->"


def add_review_comment(violation: Violation, snippet: str, tag: Optional[Tag], context: FixContext) -> FixEdit:
    """Flags the element for a human without changing what it renders."""
    comment = review_comment(violation, context.templated)
    already_flagged = snippet.startswith(comment) or context.preceding_text.rstrip().endswith(comment)
    if not snippet.strip() or already_flagged:
        return unchanged(snippet)
    return FixEdit(
        fixed_content=f"{comment}\n{snippet}",
        description=f"Add accessibility review note for: {violation.description or violation.rule_id}",
    )


DEFINITION = FixDefinition(name="generic", transform=add_review_comment, is_default=True)
