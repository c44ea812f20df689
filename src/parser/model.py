# ============================================
# file: src/parser/model.py
# ============================================
from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Elements that never have children or a closing tag.
VOID_TAGS = frozenset({
    "img", "input", "br", "hr", "meta", "link", "area",
    "base", "col", "embed", "source", "track", "wbr",
})

ACCESSIBILITY_RELEVANT_TAGS = frozenset({
    "img", "input", "button", "a", "form", "label", "select", "textarea",
    "h1", "h2", "h3", "h4", "h5", "h6", "nav", "main", "section", "article",
    "aside", "header", "footer", "dialog", "iframe", "video", "audio",
    "table", "th", "td", "caption", "fieldset", "legend", "details", "summary",
    "figure", "figcaption", "time", "progress", "meter",
})

ACCESSIBILITY_PROPS = (
    "alt", "aria-", "role", "tabindex", "onclick", "onkeydown", "onkeypress",
    "onfocus", "onblur",
)

# Templated (JSX) prop names and their plain HTML attribute names.
JSX_TO_HTML_ATTRIBUTES = {
    "className": "class",
    "htmlFor": "for",
    "tabIndex": "tabindex",
    "readOnly": "readonly",
    "autoComplete": "autocomplete",
    "autoFocus": "autofocus",
    "contentEditable": "contenteditable",
    "crossOrigin": "crossorigin",
    "itemProp": "itemprop",
    "itemRef": "itemref",
    "itemType": "itemtype",
    "noValidate": "novalidate",
    "spellCheck": "spellcheck",
}

EXPRESSION_PLACEHOLDER = "[expression]"


class Expression(BaseModel):
    """
    A templated attribute value such as `src={logo}`. Its runtime value is
    unknown, so it never compares equal to a literal attribute value.
    """
    model_config = ConfigDict(frozen=True)

    source: str

    def __str__(self) -> str:
        return "{" + self.source + "}"


AttributeValue = Union[bool, Expression, str]


def html_attribute_name(name: str) -> str:
    """Maps a templated prop name (className, htmlFor, ...) to its HTML name."""
    return JSX_TO_HTML_ATTRIBUTES.get(name, name.lower())


class SourceSpan(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int = 1
    column: int = 0
    offset: int = 0
    raw: str = ""

    @property
    def end(self) -> int:
        return self.offset + len(self.raw)


class Tag(BaseModel):
    """One UI element found in source, either plain markup or a templated file."""

    type: str
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict)
    children: List["Tag"] = Field(default_factory=list)
    text: str = ""
    span: SourceSpan = Field(default_factory=SourceSpan)

    @property
    def name(self) -> str:
        return self.type.lower()

    @property
    def heading_level(self) -> Optional[int]:
        name = self.name
        if len(name) == 2 and name[0] == "h" and name[1] in "123456":
            return int(name[1])
        return None

    def html_attributes(self) -> Dict[str, AttributeValue]:
        return {html_attribute_name(k): v for k, v in self.attributes.items()}

    def get(self, name: str) -> Optional[AttributeValue]:
        """Looks up an attribute by its HTML name, whatever dialect the source uses."""
        return self.html_attributes().get(name.lower())

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self.html_attributes()

    def literal(self, name: str) -> Optional[str]:
        """The attribute as plain text; None when missing or an expression."""
        value = self.get(name)
        if isinstance(value, Expression) or value is None:
            return None
        if value is True:
            return ""
        if value is False:
            return None
        return value

    def is_accessibility_relevant(self) -> bool:
        if self.name in ACCESSIBILITY_RELEVANT_TAGS:
            return True
        return any(
            prop in attr
            for attr in self.html_attributes()
            for prop in ACCESSIBILITY_PROPS
        )

    def to_html(self) -> str:
        """
        Serializes the tag as plain HTML: templated prop names are mapped to
        HTML names and expression values become a placeholder.
        """
        parts = [self.type]
        for key, value in self.html_attributes().items():
            if value is True:
                parts.append(key)
            elif value is False:
                continue
            elif isinstance(value, Expression):
                parts.append(f'{key}="{EXPRESSION_PLACEHOLDER}"')
            else:
                parts.append(f'{key}="{value}"')
        opening = " ".join(parts)

        if self.name in VOID_TAGS:
            return f"<{opening} />"

        inner = "".join(child.to_html() for child in self.children)
        if not self.children and self.text:
            inner = self.text
        return f"<{opening}>{inner}</{self.type}>"


class ParsedFile(BaseModel):
    """Extractor output for one source file."""

    path: str
    templated: bool = False
    tags: List[Tag] = Field(default_factory=list, description="Every element, in document order.")
    imports: List[str] = Field(default_factory=list)
    exports: List[str] = Field(default_factory=list)

    def relevant_tags(self) -> List[Tag]:
        return [tag for tag in self.tags if tag.is_accessibility_relevant()]

    def previous_heading_level(self, tag: Tag) -> Optional[int]:
        """Level of the last heading that starts before `tag`, if any."""
        level = None
        for candidate in self.tags:
            if candidate.span.offset >= tag.span.offset:
                break
            if candidate.heading_level is not None:
                level = candidate.heading_level
        return level

    @property
    def has_accessibility_issues(self) -> bool:
        """Quick check for the most common problems, without an audit engine."""
        for tag in self.tags:
            attrs = tag.html_attributes()
            named = "aria-label" in attrs or "aria-labelledby" in attrs
            if tag.name == "img" and "alt" not in attrs:
                return True
            if tag.name in ("input", "select", "textarea") and not named and "id" not in attrs:
                return True
            if tag.name in ("button", "a") and not named and not tag.children and not tag.text:
                return True
            if "onclick" in attrs and tag.name not in ("button", "a", "input") and "role" not in attrs:
                return True
        return False


Tag.model_rebuild()
