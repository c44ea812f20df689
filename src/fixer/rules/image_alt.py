from typing import Optional

from crawler.model import Violation
from parser.model import Tag
from parser.utils.markup_utils import first_open_tag, has_attribute, insert_attribute, open_tag_attributes
from ..core import FixContext, FixDefinition, FixEdit, fix_spec, humanize, unchanged

_IMAGE_TAGS = ("img", "image")


def describe_image(src) -> str:
    """Alt text synthesized from the image file name, 'Image' when unknown."""
    return humanize(src) or "Image"


@fix_spec(rule_ids=["image-alt", "image-missing-text-alternative"])
def add_alt_text(violation: Violation, snippet: str, tag: Optional[Tag], context: FixContext) -> FixEdit:
    located = first_open_tag(snippet)
    if not located or located[2].lower() not in _IMAGE_TAGS:
        return unchanged(snippet)
    if has_attribute(snippet, "alt"):
        return unchanged(snippet)

    src = open_tag_attributes(snippet).get("src")
    alt = describe_image(src)
    return FixEdit(
        fixed_content=insert_attribute(snippet, "alt", alt),
        description=f"Add alt text \"{alt}\" to image {src}" if isinstance(src, str) else f"Add alt text \"{alt}\" to image",
    )


DEFINITION = FixDefinition(name="image-alt", transform=add_alt_text)
