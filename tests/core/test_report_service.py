# tests/core/test_report_service.py
import pandas as pd

from conftest import axe_violation
from a11ypiper.core.services.report_service import VIOLATION_COLUMNS, ReportService
from crawler.model import PageResult, Violation
from matcher.model import ManualReviewItem


def _results():
    violation = Violation.from_axe(axe_violation("image-alt", '<img src="/a.png">', target=["header", "img"]))
    return [
        PageResult(id="scan", url="https://example.com/", violations=[violation], pass_count=12),
        PageResult(id="scan-1", url="https://example.com/about/"),
        PageResult.failed("https://example.com/broken/", error="Navigation timeout").with_id("scan-2"),
    ]


def test_to_dataframe_one_row_per_node():
    """Elke violation-node wordt een rij; pagina's zonder violations krijgen één lege rij."""
    df = ReportService.to_dataframe(_results())

    assert list(df.columns) == VIOLATION_COLUMNS
    assert len(df) == 3
    first = df.iloc[0]
    assert (first["page_id"], first["rule_id"], first["impact"]) == ("scan", "image-alt", "critical")
    assert first["target"] == "header img"
    assert pd.isna(df.iloc[1]["rule_id"])
    assert df.iloc[2]["status"] == "failed"


def test_export_csv(tmp_path):
    output = tmp_path / "reports" / "scan.csv"
    ReportService.export_csv(_results(), output)

    df = pd.read_csv(output)
    assert len(df) == 3
    assert df.loc[0, "help_url"].endswith("/image-alt")


def test_format_summary_marks_failures():
    lines = ReportService.format_summary(_results())

    assert lines[0].startswith("  ✓ https://example.com/  1 violations (critical 1")
    assert "12 passes" in lines[0]
    assert lines[2] == "  ✗ https://example.com/broken/  failed: Navigation timeout"


def test_manual_review_dataframe():
    df = ReportService.manual_review_dataframe([
        ManualReviewItem(rule_id="region", html="<div>", target=["div"], best_confidence=0.4),
    ])
    assert df.loc[0, "rule_id"] == "region"
    assert df.loc[0, "best_confidence"] == 0.4
