from __future__ import annotations

import bisect
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4 import Tag as SoupTag

from parser.model import ParsedFile, SourceSpan, Tag, VOID_TAGS
from parser.utils.markup_utils import (
    collapse_whitespace,
    find_element_end,
    find_open_tag_end,
    is_self_closing,
    line_starts,
    parse_attributes,
)

logger = logging.getLogger(__name__)

_OPEN_TAG_RE = re.compile(r"(?<![\w$])<([A-Za-z][\w.:-]*)(?=[\s/>])")
_INNER_TAG_RE = re.compile(r"<[^>]*>")
_IMPORT_RE = re.compile(r"""import\s+(?:[\w*{}\s,]+?\s+from\s+)?['"]([^'"]+)['"]""")
_NAMED_EXPORT_RE = re.compile(r"export\s+(?:async\s+)?(?:const|let|var|function|class)\s+(\w+)")


class ExtractionError(Exception):
    """Raised by an extractor that cannot make sense of a source file."""


class TagExtractor(ABC):
    """Turns source text into Tags in document order."""

    @abstractmethod
    def extract(self, source: str) -> List[Tag]:
        raise NotImplementedError


def _position(starts: List[int], offset: int):
    line_index = bisect.bisect_right(starts, offset) - 1
    return line_index + 1, offset - starts[line_index]


class SoupTagExtractor(TagExtractor):
    """
    Structural extractor for plain markup, built on BeautifulSoup's
    html.parser tree. Source positions come from the parser and are checked
    against the text, so a span's `raw` is always a verbatim slice.
    """

    def extract(self, source: str) -> List[Tag]:
        soup = BeautifulSoup(source, "html.parser")
        starts = line_starts(source)
        flat: List[Optional[Tag]] = []

        def build(element: SoupTag) -> Tag:
            if element.sourceline is None or element.sourcepos is None:
                raise ExtractionError(f"No source position for <{element.name}>")

            offset = starts[element.sourceline - 1] + element.sourcepos
            if not source.startswith("<", offset):
                raise ExtractionError(f"Source position mismatch for <{element.name}> at {offset}")

            open_end = find_open_tag_end(source, offset)
            if open_end == -1:
                raise ExtractionError(f"Unterminated <{element.name}> at line {element.sourceline}")
            end = open_end
            if element.name not in VOID_TAGS and not is_self_closing(source[offset:open_end]):
                close_end = find_element_end(source, element.name, open_end, ignore_case=True)
                if close_end != -1:
                    end = close_end

            index = len(flat)
            flat.append(None)
            children = [build(child) for child in element.find_all(True, recursive=False)]

            attributes = {
                key: " ".join(value) if isinstance(value, list) else value
                for key, value in element.attrs.items()
            }
            tag = Tag(
                type=element.name,
                attributes=attributes,
                children=children,
                text=collapse_whitespace(element.get_text(" ")),
                span=SourceSpan(
                    line=element.sourceline,
                    column=element.sourcepos,
                    offset=offset,
                    raw=source[offset:end],
                ),
            )
            flat[index] = tag
            return tag

        for top in soup.find_all(True, recursive=False):
            build(top)
        return [tag for tag in flat if tag is not None]


class RegexTagExtractor(TagExtractor):
    """
    Light tag/attribute scanner for templated sources (JSX/TSX) and the
    fallback for markup the structural extractor rejects. Understands
    `{expression}` attribute values and nests elements by source span.
    """

    def __init__(self, ignore_case: bool = False):
        self.ignore_case = ignore_case

    def extract(self, source: str) -> List[Tag]:
        starts = line_starts(source)
        tags: List[Tag] = []
        stack: List[Tag] = []
        skip_until = 0

        for match in _OPEN_TAG_RE.finditer(source):
            offset = match.start()
            name = match.group(1)

            # Tags inside an attribute expression of the previous open tag
            if offset < skip_until:
                continue

            open_end = find_open_tag_end(source, offset)
            if open_end == -1:
                continue
            skip_until = open_end
            open_tag = source[offset:open_end]

            end = open_end
            closed = is_self_closing(open_tag) or name.lower() in VOID_TAGS
            if not closed:
                close_end = find_element_end(source, name, open_end, ignore_case=self.ignore_case)
                if close_end != -1:
                    end = close_end

            line, column = _position(starts, offset)
            raw = source[offset:end]
            inner = source[open_end:end]
            inner = inner[:inner.rfind("</")] if end > open_end else ""
            tag = Tag(
                type=name,
                attributes=parse_attributes(open_tag[1 + len(name):-1]),
                text=collapse_whitespace(_INNER_TAG_RE.sub(" ", inner)),
                span=SourceSpan(line=line, column=column, offset=offset, raw=raw),
            )

            while stack and stack[-1].span.end <= offset:
                stack.pop()
            if stack:
                stack[-1].children.append(tag)
            if end > open_end:
                stack.append(tag)
            tags.append(tag)

        return tags


class ElementExtractService:
    """
    Facade that picks an extractor per file type.

    Plain markup goes through the structural extractor and falls back to the
    regex extractor when that fails. Templated sources use the regex
    extractor directly and also get import/export metadata.
    """

    MARKUP_EXTENSIONS = frozenset({".html", ".htm"})
    TEMPLATED_EXTENSIONS = frozenset({".jsx", ".tsx", ".js", ".ts"})

    def __init__(
            self,
            structural: Optional[TagExtractor] = None,
            templated: Optional[TagExtractor] = None,
            fallback: Optional[TagExtractor] = None,
    ):
        self.structural = structural or SoupTagExtractor()
        self.templated = templated or RegexTagExtractor()
        self.fallback = fallback or RegexTagExtractor(ignore_case=True)

    @classmethod
    def is_supported(cls, file_path: str) -> bool:
        suffix = Path(file_path).suffix.lower()
        return suffix in cls.MARKUP_EXTENSIONS or suffix in cls.TEMPLATED_EXTENSIONS

    @classmethod
    def is_templated(cls, file_path: str) -> bool:
        return Path(file_path).suffix.lower() in cls.TEMPLATED_EXTENSIONS

    def extract(self, source: str, file_path: str) -> ParsedFile:
        if self.is_templated(file_path):
            return ParsedFile(
                path=file_path,
                templated=True,
                tags=self.templated.extract(source),
                imports=self.extract_imports(source),
                exports=self.extract_exports(source),
            )

        try:
            tags = self.structural.extract(source)
        except Exception as e:
            logger.warning("Structural parsing failed for %s, falling back to regex: %s", file_path, e)
            tags = self.fallback.extract(source)
        return ParsedFile(path=file_path, templated=False, tags=tags)

    @staticmethod
    def extract_imports(source: str) -> List[str]:
        return _IMPORT_RE.findall(source)

    @staticmethod
    def extract_exports(source: str) -> List[str]:
        exports = ["default"] if "export default" in source else []
        exports.extend(_NAMED_EXPORT_RE.findall(source))
        return exports
