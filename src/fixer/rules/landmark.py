import re
from typing import Optional

from crawler.model import Violation
from parser.model import Tag
from parser.utils.markup_utils import find_open_tag_end, first_open_tag, has_attribute, insert_attribute
from ..core import FixContext, FixDefinition, FixEdit, fix_spec, unchanged

_BODY_OPEN_RE = re.compile(r"<body(?=[\s>])", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)
_MAIN_RE = re.compile(r"<main(?=[\s>])|role\s*=\s*[\"']main[\"']", re.IGNORECASE)

_LANDMARK_TAGS = ("main", "nav", "header", "footer", "aside", "section", "form")


def _wrap_body(snippet: str) -> Optional[str]:
    """Wraps everything inside <body> in <main>; None without a complete body."""
    opening = _BODY_OPEN_RE.search(snippet)
    if not opening:
        return None
    content_start = find_open_tag_end(snippet, opening.start())
    closing = _BODY_CLOSE_RE.search(snippet, content_start if content_start != -1 else 0)
    if content_start == -1 or not closing:
        return None

    content = snippet[content_start:closing.start()]
    if _MAIN_RE.search(content):
        return snippet
    return (
        f"{snippet[:content_start]}\n<main>\n{content.strip()}\n</main>\n{snippet[closing.start():]}"
    )


@fix_spec(rule_ids=["landmark-one-main", "region"])
def add_landmark(violation: Violation, snippet: str, tag: Optional[Tag], context: FixContext) -> FixEdit:
    wrapped = _wrap_body(snippet)
    if wrapped is not None:
        return FixEdit(fixed_content=wrapped, description="Wrap page content in a <main> landmark")

    located = first_open_tag(snippet)
    if not located:
        return unchanged(snippet)
    name = located[2].lower()
    if name in _LANDMARK_TAGS or has_attribute(snippet, "role"):
        return unchanged(snippet)

    if violation.rule_id == "landmark-one-main":
        return FixEdit(
            fixed_content=insert_attribute(snippet, "role", "main"),
            description=f'Mark <{name}> as the main landmark (role="main")',
        )

    fixed = insert_attribute(snippet, "role", "region")
    if not has_attribute(snippet, "aria-label", "aria-labelledby"):
        fixed = insert_attribute(fixed, "aria-label", "Content section")
    return FixEdit(fixed_content=fixed, description=f'Mark <{name}> as a region landmark')


DEFINITION = FixDefinition(name="landmark", transform=add_landmark)
