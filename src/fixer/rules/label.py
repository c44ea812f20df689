from typing import Optional

from crawler.model import Violation
from parser.model import Tag
from parser.utils.markup_utils import first_open_tag, has_attribute, insert_attribute, open_tag_attributes
from ..core import FixContext, FixDefinition, FixEdit, fix_spec, humanize, unchanged

_FORM_CONTROLS = ("input", "select", "textarea")

LABELS_BY_TYPE = {
    "text": "Enter text",
    "email": "Email address",
    "password": "Password",
    "tel": "Phone number",
    "url": "Website URL",
    "search": "Search",
    "number": "Enter number",
    "date": "Select date",
    "time": "Select time",
    "checkbox": "Check this option",
    "radio": "Select option",
    "file": "Choose file",
}
DEFAULT_LABEL = "Enter value"


def label_for(control: str, attributes: dict) -> str:
    """Accessible name from the control's name/id, else from its type."""
    for key in ("name", "id"):
        text = humanize(attributes.get(key))
        if text:
            return text
    if control == "select":
        return "Select an option"
    if control == "textarea":
        return "Enter text"
    input_type = attributes.get("type")
    return LABELS_BY_TYPE.get(input_type.lower(), DEFAULT_LABEL) if isinstance(input_type, str) else DEFAULT_LABEL


@fix_spec(rule_ids=["label", "label-title-only", "missing-form-label", "select-name"])
def add_accessible_name(violation: Violation, snippet: str, tag: Optional[Tag], context: FixContext) -> FixEdit:
    located = first_open_tag(snippet)
    if not located or located[2].lower() not in _FORM_CONTROLS:
        return unchanged(snippet)
    if has_attribute(snippet, "aria-label", "aria-labelledby"):
        return unchanged(snippet)

    control = located[2].lower()
    attributes = {k.lower(): v for k, v in open_tag_attributes(snippet).items()}
    if control == "input" and attributes.get("type") == "hidden":
        return unchanged(snippet)

    label = label_for(control, attributes)
    return FixEdit(
        fixed_content=insert_attribute(snippet, "aria-label", label),
        description=f'Add aria-label "{label}" to <{control}>',
    )


DEFINITION = FixDefinition(name="label", transform=add_accessible_name)
