# src/fixer/services/fix_generator_service.py
import logging
from typing import Any, Dict, Optional, Union

from crawler.model import Violation
from fixer.core import FixContext
from fixer.model import Fix
from fixer.registry import FixRegistry
from matcher.model import MatchResult
from parser.model import ParsedFile, Tag
from parser.services.element_extract_service import ElementExtractService

logger = logging.getLogger(__name__)


class FixGeneratorService:
    """
    Turns a matched element into a Fix by dispatching on the violation's
    rule id through the FixRegistry. Stateless; safe to share across threads.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, use_default: bool = True):
        """
        Args:
            config: The 'fixer' config section.
            use_default: Fall back to the review comment for rules without
                a dedicated transformation.
        """
        self.config = config or {}
        self.stylesheet_path = self.config.get("contrast_stylesheet", "accessibility-fixes.css")
        self.use_default = use_default
        FixRegistry.discover()

    def build_context(self, file_path: str, parsed: Optional[ParsedFile] = None,
                      tag: Optional[Tag] = None, source: Optional[str] = None) -> FixContext:
        templated = parsed.templated if parsed else ElementExtractService.is_templated(file_path)
        previous = parsed.previous_heading_level(tag) if parsed is not None and tag is not None else None
        preceding = source[:tag.span.offset] if source and tag is not None else ""
        return FixContext(
            file_path=file_path,
            templated=templated,
            previous_heading_level=previous,
            stylesheet_path=self.stylesheet_path,
            preceding_text=preceding,
        )

    def generate_fix(
            self,
            violation: Violation,
            target: Union[Tag, str],
            file_path: str,
            context: Optional[FixContext] = None,
    ) -> Optional[Fix]:
        """
        Returns None when no transformation applies or when the
        transformation leaves the content unchanged.
        """
        context = context or self.build_context(file_path)
        tag = target if isinstance(target, Tag) else None
        snippet = target if isinstance(target, str) else (target.span.raw or target.to_html())
        if not snippet:
            return None

        definition = FixRegistry.get(violation.rule_id)
        if definition is None or (definition.is_default and not self.use_default):
            logger.debug("No fix transformation for rule '%s'", violation.rule_id)
            return None

        edit = definition.transform(violation, snippet, tag, context)
        original = snippet if edit.original_content is None else edit.original_content
        if edit.fixed_content == original:
            logger.debug("Rule '%s' left %s unchanged", violation.rule_id, file_path)
            return None

        return Fix(
            file_path=edit.file_path or file_path,
            original_content=original,
            fixed_content=edit.fixed_content,
            description=edit.description or f"Fix {violation.rule_id}",
            rule_ids_fixed=[violation.rule_id],
            templated=context.templated if edit.file_path is None else False,
        )

    def generate_for_match(self, match: MatchResult, parsed: Optional[ParsedFile] = None,
                           source: Optional[str] = None) -> Optional[Fix]:
        context = self.build_context(match.file_path, parsed, match.matched_tag, source)
        return self.generate_fix(match.violation, match.matched_tag, match.file_path, context)
