# src/a11ypiper/core/services/report_service.py
import logging
from pathlib import Path
from typing import List, Sequence

import pandas as pd

from crawler.model import PageResult, PageStatus
from matcher.model import ManualReviewItem

logger = logging.getLogger(__name__)

VIOLATION_COLUMNS = [
    "page_id", "url", "status", "rule_id", "impact", "description",
    "help_url", "html", "target", "failure_summary",
]


class ReportService:
    """Flattens scan results into tables and writes them to disk."""

    @staticmethod
    def to_dataframe(results: Sequence[PageResult]) -> pd.DataFrame:
        """One row per violation node; pages without violations get one empty row."""
        rows = []
        for result in results:
            base = {"page_id": result.id, "url": result.url, "status": result.status.value}
            if not result.violations:
                rows.append(base)
                continue
            for violation in result.violations:
                for node in violation.nodes or [None]:
                    rows.append({
                        **base,
                        "rule_id": violation.rule_id,
                        "impact": violation.impact.value,
                        "description": violation.description,
                        "help_url": violation.help_url,
                        "html": node.html if node else "",
                        "target": " ".join(node.target) if node else "",
                        "failure_summary": node.failure_summary if node else "",
                    })
        return pd.DataFrame(rows, columns=VIOLATION_COLUMNS)

    @staticmethod
    def manual_review_dataframe(items: Sequence[ManualReviewItem]) -> pd.DataFrame:
        return pd.DataFrame(
            [item.model_dump() for item in items],
            columns=["rule_id", "html", "target", "best_confidence", "reason"],
        )

    @classmethod
    def export_csv(cls, results: Sequence[PageResult], output_file: Path) -> Path:
        df = cls.to_dataframe(results)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_file, index=False)
        logger.info("Exported %d rows to %s", len(df), output_file)
        return output_file

    @classmethod
    def export_manual_review(cls, items: Sequence[ManualReviewItem], output_file: Path) -> Path:
        df = cls.manual_review_dataframe(items)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_file, index=False)
        logger.info("Exported %d manual review items to %s", len(df), output_file)
        return output_file

    @staticmethod
    def format_summary(results: Sequence[PageResult]) -> List[str]:
        lines = []
        for result in results:
            s = result.summary
            if result.status == PageStatus.FAILED:
                lines.append(f"  ✗ {result.url}  failed: {result.error or 'unknown error'}")
                continue
            lines.append(
                f"  ✓ {result.url}  {s.total} violations "
                f"(critical {s.critical}, serious {s.serious}, moderate {s.moderate}, minor {s.minor}), "
                f"{result.pass_count} passes"
            )
        return lines
