# src/fixer/controllers/fix_controller.py
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, Field

from crawler.model import PageResult, PageStatus
from crawler.utils.run_timers import RunTimers
from fixer.model import Changeset, Fix
from fixer.services.changeset_builder_service import ChangesetBuilder
from fixer.services.fix_generator_service import FixGeneratorService
from matcher.model import ManualReviewItem, MatchResult
from matcher.services.source_matcher_service import SourceMatcherService
from parser.model import ParsedFile
from parser.services.element_extract_service import ElementExtractService

logger = logging.getLogger(__name__)


class FixReport(BaseModel):
    changeset: Changeset
    matches: List[MatchResult] = Field(default_factory=list, description="Accepted matches, in discovery order.")
    manual_review: List[ManualReviewItem] = Field(default_factory=list)


class FixController:
    """
    Runs the fix pipeline for a finished crawl: parse candidate files, match
    every violation node, synthesize fixes for confident matches and fold
    them into a Changeset. Nodes without a confident match (or without an
    applicable fix) end up on the manual review list.
    """

    def __init__(
            self,
            file_contents: Mapping[str, str],
            config: Optional[Dict[str, Any]] = None,
            extractor: Optional[ElementExtractService] = None,
            matcher: Optional[SourceMatcherService] = None,
            generator: Optional[FixGeneratorService] = None,
    ):
        """
        Args:
            file_contents: Candidate source files, path -> content, most
                relevant first.
            config: Full application config ('matcher' and 'fixer' sections).
        """
        self.config = config or {}
        matcher_cfg = self.config.get("matcher", {})
        fixer_cfg = self.config.get("fixer", {})

        self.file_contents = dict(file_contents)
        self.extractor = extractor or ElementExtractService()
        self.matcher = matcher or SourceMatcherService(
            acceptance_threshold=matcher_cfg.get("acceptance_threshold", 0.7),
            workers=matcher_cfg.get("workers", 4),
        )
        self.generator = generator or FixGeneratorService(fixer_cfg)
        self.branch_prefix = fixer_cfg.get("branch_prefix", "accessibility-fixes")
        self.timer = RunTimers()

    def parse_files(self) -> List[ParsedFile]:
        parsed: List[ParsedFile] = []
        for path, content in self.file_contents.items():
            if not self.extractor.is_supported(path):
                continue
            try:
                parsed.append(self.extractor.extract(content, path))
            except Exception as e:
                logger.error("Could not extract elements from %s: %s", path, e)
        logger.info("Parsed %d candidate files.", len(parsed))
        return parsed

    def run(self, results: Sequence[PageResult], scan_url: Optional[str] = None) -> FixReport:
        self.timer.start()
        parsed_files = self.parse_files()
        parsed_by_path = {parsed.path: parsed for parsed in parsed_files}

        fixes: List[Fix] = []
        accepted_matches: List[MatchResult] = []
        manual_review: List[ManualReviewItem] = []
        seen_nodes: Set[Tuple[str, str]] = set()
        seen_fixes: Set[Tuple[str, str, str]] = set()

        for result in results:
            if result.status == PageStatus.FAILED:
                continue
            for violation in result.violations:
                for node in violation.nodes:
                    # The same element usually repeats on every page of a site
                    key = (violation.rule_id, node.html)
                    if key in seen_nodes:
                        continue
                    seen_nodes.add(key)

                    matches = self.matcher.match_files(violation, node, parsed_files)
                    accepted = self.matcher.accepted(matches)
                    if not accepted:
                        best = matches[0].confidence if matches else 0.0
                        manual_review.append(ManualReviewItem(
                            rule_id=violation.rule_id, html=node.html, target=node.target,
                            best_confidence=best,
                        ))
                        continue

                    best_match = accepted[0]
                    accepted_matches.append(best_match)
                    fix = self.generator.generate_for_match(
                        best_match,
                        parsed_by_path.get(best_match.file_path),
                        self.file_contents.get(best_match.file_path),
                    )
                    if fix is None:
                        manual_review.append(ManualReviewItem(
                            rule_id=violation.rule_id, html=node.html, target=node.target,
                            best_confidence=best_match.confidence, reason="no automatic fix available",
                        ))
                        continue

                    fix_key = (fix.file_path, fix.original_content, fix.fixed_content)
                    if fix_key in seen_fixes:
                        continue
                    seen_fixes.add(fix_key)
                    fixes.append(fix)

        builder = ChangesetBuilder(self.file_contents, scan_url=scan_url, branch_prefix=self.branch_prefix)
        changeset = builder.build(fixes)
        self.timer.stop()

        logger.info(
            "Fix run finished in %.2fs: %d fixes, %d nodes need manual review.",
            self.timer.duration, len(changeset.fixes), len(manual_review)
        )
        return FixReport(changeset=changeset, matches=accepted_matches, manual_review=manual_review)
