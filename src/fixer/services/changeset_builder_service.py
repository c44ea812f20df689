# src/fixer/services/changeset_builder_service.py
import logging
import time
from typing import Dict, List, Mapping, Optional, Sequence

from fixer.model import Changeset, Fix, FixFailure

logger = logging.getLogger(__name__)

_WCAG_QUICKREF = "https://www.w3.org/WAI/WCAG21/quickref/"
_ARIA_APG = "https://www.w3.org/WAI/ARIA/apg/"


class ChangesetConflictError(Exception):
    """The original content of a fix is no longer present in its file."""

    def __init__(self, fix: Fix):
        super().__init__(f"Original content for '{fix.description}' not found in {fix.file_path}")
        self.fix = fix


class ChangesetBuilder:
    """
    Folds fixes into full file contents.

    Fixes are grouped per file in the order they were discovered and applied
    one after another to the accumulated content of that file. When a fix's
    original content is missing the file stops there: the conflict is
    recorded as a FixFailure, the remaining fixes of that file are skipped
    and the edits already made are kept. Other files are not affected.
    """

    def __init__(
            self,
            file_contents: Mapping[str, str],
            scan_url: Optional[str] = None,
            branch_prefix: str = "accessibility-fixes",
    ):
        self.file_contents = dict(file_contents)
        self.scan_url = scan_url
        self.branch_prefix = branch_prefix

    @staticmethod
    def apply(content: str, fix: Fix) -> str:
        """
        Applies one fix to `content`.

        Raises:
            ChangesetConflictError: when the original content is not present.
        """
        if fix.is_append:
            if fix.fixed_content.strip() and fix.fixed_content.strip() in content:
                return content
            separator = "" if not content or content.endswith("\n") else "\n"
            return f"{content}{separator}{fix.fixed_content}"

        if fix.original_content not in content:
            raise ChangesetConflictError(fix)
        return content.replace(fix.original_content, fix.fixed_content, 1)

    def _group(self, fixes: Sequence[Fix]) -> Dict[str, List[Fix]]:
        grouped: Dict[str, List[Fix]] = {}
        for fix in fixes:
            grouped.setdefault(fix.file_path, []).append(fix)
        return grouped

    def build(self, fixes: Sequence[Fix], branch_name: Optional[str] = None) -> Changeset:
        applied: List[Fix] = []
        files: Dict[str, str] = {}
        failures: List[FixFailure] = []

        for file_path, file_fixes in self._group(fixes).items():
            original = self.file_contents.get(file_path)
            if original is None and not all(fix.is_append for fix in file_fixes):
                logger.warning("No content available for %s; skipping %d fixes.", file_path, len(file_fixes))
                failures.extend(
                    FixFailure(file_path=file_path, description=fix.description,
                               reason="file content not available", rule_ids=fix.rule_ids_fixed)
                    for fix in file_fixes
                )
                continue

            content = original or ""
            file_applied: List[Fix] = []
            for index, fix in enumerate(file_fixes):
                try:
                    content = self.apply(content, fix)
                except ChangesetConflictError as e:
                    skipped = len(file_fixes) - index - 1
                    logger.warning("%s; skipping %d remaining fixes for this file.", e, skipped)
                    failures.append(FixFailure(
                        file_path=file_path,
                        description=fix.description,
                        reason="original content not found",
                        rule_ids=fix.rule_ids_fixed,
                    ))
                    failures.extend(
                        FixFailure(file_path=file_path, description=later.description,
                                   reason="skipped after an earlier conflict", rule_ids=later.rule_ids_fixed)
                        for later in file_fixes[index + 1:]
                    )
                    break
                file_applied.append(fix)

            if file_applied and content != (original or ""):
                files[file_path] = content
                applied.extend(file_applied)

        branch = branch_name or f"{self.branch_prefix}-{int(time.time() * 1000)}"
        changeset = Changeset(
            branch_name=branch,
            title=self.title(),
            body=self.body(applied),
            fixes=applied,
            files=files,
            failures=failures,
        )
        logger.info(
            "Changeset %s: %d fixes in %d files, %d failures.",
            branch, len(applied), len(files), len(failures)
        )
        return changeset

    def title(self) -> str:
        return f"Accessibility Improvements for {self.scan_url}" if self.scan_url else "Accessibility Improvements"

    def body(self, applied: Sequence[Fix]) -> str:
        target = f" of {self.scan_url}" if self.scan_url else ""
        fix_lines = "\n".join(f"- {fix.description}" for fix in applied) or "- None"
        templated = sum(1 for fix in applied if fix.templated)
        return (
            "## Accessibility Fixes Applied\n\n"
            f"This pull request contains automated fixes for accessibility violations found during a scan{target}.\n\n"
            "### Fixes Applied:\n"
            f"{fix_lines}\n\n"
            "### Details:\n"
            + (f"- **Scan URL**: {self.scan_url}\n" if self.scan_url else "")
            + f"- **Violations Fixed**: {len(applied)}\n"
            f"- **Template fixes**: {templated}\n"
            f"- **Markup fixes**: {len(applied) - templated}\n\n"
            "### Review Notes:\n"
            "Please review these changes carefully and test them in your application before merging. "
            "While these fixes address common accessibility issues, they may need customization to fit "
            "your specific design and functionality requirements.\n\n"
            "### Additional Resources:\n"
            f"- [Web Content Accessibility Guidelines (WCAG)]({_WCAG_QUICKREF})\n"
            f"- [ARIA Authoring Practices Guide]({_ARIA_APG})\n"
        )
