from typing import Optional

from crawler.model import Violation
from parser.model import Tag
from parser.utils.markup_utils import open_tag_attributes
from ..core import FixContext, FixDefinition, FixEdit, fix_spec, unchanged

CONTRAST_COLOR = "#333333"
CONTRAST_BACKGROUND = "#ffffff"


def selector_for(attributes: dict) -> Optional[str]:
    classes = attributes.get("class") or attributes.get("classname")
    if isinstance(classes, str) and classes.split():
        return "." + classes.split()[0]
    element_id = attributes.get("id")
    if isinstance(element_id, str) and element_id.strip():
        return "#" + element_id.strip()
    return None


def contrast_rule(selector: str) -> str:
    return (
        f"/* Accessibility fix: color-contrast */\n"
        f"{selector} {{\n"
        f"  color: {CONTRAST_COLOR};\n"
        f"  background-color: {CONTRAST_BACKGROUND};\n"
        f"}}\n"
    )


@fix_spec(rule_ids=["color-contrast", "color-contrast-enhanced"])
def append_contrast_rule(violation: Violation, snippet: str, tag: Optional[Tag], context: FixContext) -> FixEdit:
    """
    Contrast is a styling concern: the markup stays as it is and a rule for
    the element's class (or id) is appended to the fixes stylesheet.
    """
    attributes = {k.lower(): v for k, v in open_tag_attributes(snippet).items()}
    selector = selector_for(attributes)
    if selector is None:
        return unchanged(snippet)

    return FixEdit(
        fixed_content=contrast_rule(selector),
        description=f"Improve color contrast for {selector}",
        file_path=context.stylesheet_path,
        original_content="",
    )


DEFINITION = FixDefinition(name="color-contrast", transform=append_contrast_rule)
