# src/parser/utils/markup_utils.py
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString
from bs4 import Tag as SoupTag

from parser.model import AttributeValue, Expression, VOID_TAGS

_OPEN_TAG_RE = re.compile(r"(?<![\w$])<([A-Za-z][\w.:-]*)")
_WHITESPACE_RE = re.compile(r"\s+")
_SELF_CLOSING_RE = re.compile(r"/\s*>$")
_ATTR_NAME_RE = re.compile(r"[^\s=/>{}\"']+")
_STRING_LITERAL_RE = re.compile(r"""^(["'`])([^"'`{}$]*)\1$""")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def line_starts(source: str) -> List[int]:
    """Offsets at which each (1-based) line begins."""
    starts = [0]
    for index, char in enumerate(source):
        if char == "\n":
            starts.append(index + 1)
    return starts


def find_open_tag_end(source: str, start: int) -> int:
    """
    Index just past the `>` that closes the open tag starting at `start`.
    Quoted strings and `{...}` expressions are skipped. Returns -1 when the
    tag is never closed.
    """
    quote: Optional[str] = None
    depth = 0
    i = start + 1
    while i < len(source):
        char = source[i]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth = max(depth - 1, 0)
        elif char == ">" and depth == 0:
            return i + 1
        i += 1
    return -1


def is_self_closing(open_tag: str) -> bool:
    return bool(_SELF_CLOSING_RE.search(open_tag))


def find_element_end(source: str, name: str, open_end: int, ignore_case: bool = False) -> int:
    """
    Index just past the closing tag that matches an element whose open tag
    ends at `open_end`. Nested elements with the same name are balanced.
    Returns -1 when the element is never closed.
    """
    flags = re.IGNORECASE if ignore_case else 0
    pattern = re.compile(r"<(/?)%s(?=[\s/>])" % re.escape(name), flags)
    depth = 1
    pos = open_end
    while True:
        match = pattern.search(source, pos)
        if not match:
            return -1
        tag_end = find_open_tag_end(source, match.start())
        if tag_end == -1:
            return -1
        if match.group(1):
            depth -= 1
            if depth == 0:
                return tag_end
        elif not is_self_closing(source[match.start():tag_end]):
            depth += 1
        pos = tag_end


def _read_expression(text: str, start: int) -> Tuple[str, int]:
    """Reads a balanced `{...}` starting at `start`; returns (inner, end)."""
    depth = 0
    quote: Optional[str] = None
    i = start
    while i < len(text):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start + 1:i].strip(), i + 1
        i += 1
    return text[start + 1:].strip(), len(text)


def parse_attributes(attr_text: str) -> Dict[str, AttributeValue]:
    """
    Parses the attribute part of an open tag (everything after the name).

    Handles double/single quoted values, `{expression}` values, unquoted
    values and bare boolean attributes. Spread props (`{...rest}`) are skipped.
    """
    attributes: Dict[str, AttributeValue] = {}
    i = 0
    length = len(attr_text)
    while i < length:
        char = attr_text[i]
        if char.isspace() or char == "/":
            i += 1
            continue
        if char == "{":
            _, i = _read_expression(attr_text, i)
            continue

        match = _ATTR_NAME_RE.match(attr_text, i)
        if not match:
            i += 1
            continue
        name = match.group(0)
        i = match.end()

        j = i
        while j < length and attr_text[j].isspace():
            j += 1
        if j >= length or attr_text[j] != "=":
            attributes[name] = True
            continue

        j += 1
        while j < length and attr_text[j].isspace():
            j += 1
        if j >= length:
            attributes[name] = ""
            i = j
            continue

        opener = attr_text[j]
        if opener in "\"'":
            close = attr_text.find(opener, j + 1)
            close = length if close == -1 else close
            attributes[name] = attr_text[j + 1:close]
            i = close + 1
        elif opener == "{":
            inner, i = _read_expression(attr_text, j)
            literal = _STRING_LITERAL_RE.match(inner)
            attributes[name] = literal.group(2) if literal else Expression(source=inner)
        else:
            end = j
            while end < length and not attr_text[end].isspace() and attr_text[end] != ">":
                end += 1
            attributes[name] = attr_text[j:end]
            i = end
    return attributes


def first_open_tag(snippet: str) -> Optional[Tuple[int, int, str]]:
    """(start, end, name) of the first element's open tag in `snippet`."""
    match = _OPEN_TAG_RE.search(snippet or "")
    if not match:
        return None
    end = find_open_tag_end(snippet, match.start())
    if end == -1:
        return None
    return match.start(), end, match.group(1)


def open_tag_attributes(snippet: str) -> Dict[str, AttributeValue]:
    located = first_open_tag(snippet)
    if not located:
        return {}
    start, end, name = located
    body = snippet[start + 1 + len(name):end - 1]
    return parse_attributes(body)


def has_attribute(snippet: str, *names: str) -> bool:
    """True if the first open tag carries any of `names` (case-insensitive)."""
    present = {key.lower() for key in open_tag_attributes(snippet)}
    return any(name.lower() in present for name in names)


def insert_attribute(snippet: str, name: str, value: str) -> str:
    """
    Adds `name="value"` to the first open tag, right before its closing
    `>` or `/>`. Everything else in the snippet is kept as-is.
    """
    located = first_open_tag(snippet)
    if not located:
        return snippet
    start, end, _ = located
    open_tag = snippet[start:end]
    closing = re.search(r"\s*/?\s*>$", open_tag)
    escaped = value.replace('"', "&quot;")
    new_tag = f'{open_tag[:closing.start()]} {name}="{escaped}"{open_tag[closing.start():]}'
    return snippet[:start] + new_tag + snippet[end:]


def rename_tag(snippet: str, new_name: str) -> str:
    """Renames the first element and its matching closing tag."""
    located = first_open_tag(snippet)
    if not located:
        return snippet
    start, end, name = located
    name_start = start + 1
    renamed = snippet[:name_start] + new_name + snippet[name_start + len(name):]
    shift = len(new_name) - len(name)

    if is_self_closing(snippet[start:end]):
        return renamed

    close_end = find_element_end(snippet, name, end, ignore_case=True)
    if close_end == -1:
        return renamed
    close_start = snippet.rfind("</", end, close_end) + shift
    return renamed[:close_start + 2] + new_name + renamed[close_start + 2 + len(name):]


def _serialize(node) -> str:
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return str(node)
    if not isinstance(node, SoupTag):
        return ""

    name = node.name.lower()
    attrs = []
    for key in sorted(node.attrs, key=str.lower):
        value = node.attrs[key]
        if isinstance(value, list):
            value = " ".join(value)
        attrs.append(f'{key.lower()}="{collapse_whitespace(value)}"')
    opening = "<" + " ".join([name] + attrs) + ">"
    if name in VOID_TAGS:
        return opening
    inner = "".join(_serialize(child) for child in node.children)
    return f"{opening}{inner}</{name}>"


def canonicalize_html(html: str) -> str:
    """
    Normalized form used to compare rendered and source markup: lowercase,
    attributes sorted and double quoted, whitespace collapsed, void elements
    without a closing slash and comments dropped.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    serialized = "".join(_serialize(child) for child in soup.children)
    serialized = re.sub(r">\s+<", "><", serialized)
    return collapse_whitespace(serialized).lower()
