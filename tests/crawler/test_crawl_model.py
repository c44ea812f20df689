# tests/crawler/test_crawl_model.py
import pytest
from pydantic import ValidationError

from conftest import axe_violation
from crawler.model import Impact, PageResult, PageStatus, Violation
from crawler.services.axe_audit_service import AuditEngineError, AxeAuditService


def test_violation_from_axe():
    """Een axe-entry wordt vertaald naar een Violation met nodes."""
    violation = Violation.from_axe(axe_violation("image-alt", '<img src="/a.png">', impact="serious"))

    assert violation.rule_id == "image-alt"
    assert violation.impact == Impact.SERIOUS
    assert violation.help_url.endswith("/image-alt")
    assert violation.nodes[0].html == '<img src="/a.png">'
    assert violation.nodes[0].target == ["img"]


def test_null_impact_defaults_to_minor():
    raw = {"id": "region", "impact": None, "nodes": [{"html": "<div>", "target": "div", "failureSummary": None}]}
    violation = Violation.from_axe(raw)

    assert violation.impact == Impact.MINOR
    assert violation.nodes[0].target == ["div"]
    assert violation.nodes[0].failure_summary == ""


def test_summary_is_derived_from_violations():
    """De samenvatting telt violations per impact."""
    result = PageResult(
        url="https://example.com/",
        violations=[
            Violation.from_axe(axe_violation("image-alt", "<img>", "critical")),
            Violation.from_axe(axe_violation("label", "<input>", "critical")),
            Violation.from_axe(axe_violation("region", "<div>", "moderate")),
        ],
    )
    s = result.summary
    assert (s.critical, s.serious, s.moderate, s.minor, s.total) == (2, 0, 1, 0, 3)


def test_failed_result_has_zero_counts():
    result = PageResult.failed("https://example.com/", error="timeout")

    assert result.status == PageStatus.FAILED
    assert result.summary.total == 0
    assert result.violations == []
    assert result.pass_count == 0


def test_page_result_is_immutable():
    """PageResult is na aanmaak niet meer aan te passen."""
    result = PageResult(url="https://example.com/")
    with pytest.raises(ValidationError):
        result.url = "https://other.example/"

    renamed = result.with_id("scan-1")
    assert renamed.id == "scan-1"
    assert result.id != "scan-1"


def test_impact_rank_orders_by_severity():
    assert sorted(Impact, key=lambda i: i.rank) == [
        Impact.CRITICAL, Impact.SERIOUS, Impact.MODERATE, Impact.MINOR
    ]


def test_parse_axe_result_counts_lists():
    """Passes/incomplete als lijsten of als getallen worden beide geteld."""
    outcome = AxeAuditService.parse_result({
        "violations": [axe_violation("label", "<input>")],
        "passes": [{}, {}, {}],
        "incomplete": 2,
        "inapplicable": [],
    })
    assert len(outcome.violations) == 1
    assert (outcome.passes, outcome.incomplete, outcome.inapplicable) == (3, 2, 0)


@pytest.mark.parametrize("raw", [None, "oops", {"error": "axe not loaded"}])
def test_parse_axe_result_rejects_unusable_output(raw):
    with pytest.raises(AuditEngineError):
        AxeAuditService.parse_result(raw)
