from typing import Optional

from crawler.model import Violation
from parser.model import Tag
from parser.utils.markup_utils import first_open_tag, rename_tag
from ..core import FixContext, FixDefinition, FixEdit, fix_spec, unchanged


@fix_spec(rule_ids=["heading-order"])
def shift_heading_level(violation: Violation, snippet: str, tag: Optional[Tag], context: FixContext) -> FixEdit:
    """
    Moves a heading up to one level below the preceding heading. Without a
    known preceding heading there is nothing safe to shift to.
    """
    located = first_open_tag(snippet)
    if not located:
        return unchanged(snippet)
    name = located[2].lower()
    if len(name) != 2 or name[0] != "h" or name[1] not in "123456":
        return unchanged(snippet)

    previous = context.previous_heading_level
    level = int(name[1])
    if previous is None or level <= previous + 1:
        return unchanged(snippet)

    target = previous + 1
    return FixEdit(
        fixed_content=rename_tag(snippet, f"h{target}"),
        description=f"Change <h{level}> to <h{target}> to follow <h{previous}>",
    )


DEFINITION = FixDefinition(name="heading-order", transform=shift_heading_level)
