# tests/core/test_app_cli.py
from unittest.mock import MagicMock

import pandas as pd
import pytest

from conftest import axe_violation
from a11ypiper import app
from a11ypiper.core.handlers import fix_handler, scan_handler
from a11ypiper.core.managers.config_manager import config_manager
from crawler.model import PageResult, Violation

SEED = "https://example.com/"


def _results(failed=False):
    violation = Violation.from_axe(axe_violation("image-missing-text-alternative", '<img src="/logo.png">'))
    results = [PageResult(id="scan", url=SEED, violations=[violation])]
    if failed:
        results.append(PageResult.failed(SEED + "broken/", error="timeout").with_id("scan-1"))
    return results


@pytest.fixture
def fake_scan(monkeypatch):
    """Vervangt de echte crawl door vaste resultaten in beide handlers."""
    def _install(results):
        mock = MagicMock(return_value=results)
        monkeypatch.setattr(scan_handler, "run_scan", mock)
        monkeypatch.setattr(fix_handler, "run_scan", mock)
        return mock
    return _install


def test_main_without_command_prints_help(capsys):
    assert app.main([]) == 0
    assert "usage: a11ypiper" in capsys.readouterr().out


def test_main_rejects_unknown_command(capsys):
    """Een onbekend commando geeft exitcode 1 en de hulptekst."""
    assert app.main(["crawl"]) == 1
    assert "Unknown command 'crawl'" in capsys.readouterr().out


def test_main_dispatches_to_handler(monkeypatch):
    handler = MagicMock(return_value=0)
    monkeypatch.setitem(app.COMMANDS, "scan", handler)
    monkeypatch.setattr(app, "ensure_background_loop", lambda: None)

    assert app.main(["scan", SEED, "--depth", "2"]) == 0
    handler.assert_called_once_with([SEED, "--depth", "2"])


def test_scan_exports_csv(fake_scan, tmp_path, capsys):
    """Het scan-commando print een samenvatting en schrijft de CSV."""
    scan = fake_scan(_results())
    output = tmp_path / "out.csv"

    assert scan_handler.handle_scan([SEED, "--depth", "2", "--export", str(output)]) == 0

    scan.assert_called_once_with([SEED], 2, False)
    assert len(pd.read_csv(output)) == 1
    out = capsys.readouterr().out
    assert "1 pages, 1 violations, 0 failed" in out


def test_scan_with_failed_page_returns_one(fake_scan):
    fake_scan(_results(failed=True))
    assert scan_handler.handle_scan([SEED]) == 1


@pytest.mark.parametrize("args", [["--depth", "1"], [SEED, "--depth", "0"]])
def test_scan_rejects_bad_arguments(fake_scan, args):
    scan = fake_scan([])
    assert scan_handler.handle_scan(args) == 1
    scan.assert_not_called()


def test_scan_crash_returns_one(monkeypatch):
    monkeypatch.setattr(scan_handler, "run_scan", MagicMock(side_effect=RuntimeError("no browser")))
    assert scan_handler.handle_scan([SEED]) == 1


def test_fix_writes_changed_files(fake_scan, tmp_path, capsys):
    """Het fix-commando schrijft de gewijzigde bestanden naar de output-map en laat de bron ongemoeid."""
    source = tmp_path / "site"
    source.mkdir()
    (source / "header.html").write_text('<header>\n  <img src="/logo.png">\n</header>\n', encoding="utf-8")
    output = tmp_path / "out"
    fake_scan(_results())

    assert fix_handler.handle_fix([SEED, "--source", str(source), "--output", str(output)]) == 0

    assert (output / "header.html").read_text(encoding="utf-8") == (
        '<header>\n  <img src="/logo.png" alt="Logo">\n</header>\n'
    )
    assert 'alt="Logo"' not in (source / "header.html").read_text(encoding="utf-8")
    assert "1 fixes in 1 files" in capsys.readouterr().out


def test_fix_requires_existing_source(fake_scan, tmp_path):
    scan = fake_scan(_results())
    assert fix_handler.handle_fix([SEED, "--source", str(tmp_path / "missing")]) == 1
    scan.assert_not_called()


def test_fix_repo_needs_token(fake_scan, tmp_path, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    fake_scan(_results())
    assert fix_handler.handle_fix([SEED, "--source", str(tmp_path), "--repo", "octo/site", "--token", ""]) == 1


def test_fix_opens_pull_request(fake_scan, tmp_path, monkeypatch, capsys):
    """Met --repo wordt de changeset als pull request ingediend."""
    source = tmp_path / "site"
    source.mkdir()
    (source / "header.html").write_text('<img src="/logo.png">\n', encoding="utf-8")
    fake_scan(_results())

    submitted = {}

    class FakePullRequestService:
        def __init__(self, hosting):
            submitted["hosting"] = hosting

        def submit(self, changeset):
            submitted["files"] = dict(changeset.files)
            return {"url": "https://github.com/octo/site/pull/3", "number": 3}

    monkeypatch.setattr(fix_handler, "PullRequestService", FakePullRequestService)

    assert fix_handler.handle_fix(
        [SEED, "--source", str(source), "--repo", "octo/site", "--token", "t0ken"]
    ) == 0
    assert submitted["files"] == {"header.html": '<img src="/logo.png" alt="Logo">\n'}
    assert submitted["hosting"].repo == "site"
    assert "Pull request #3 opened" in capsys.readouterr().out


def test_fix_exports_manual_review(fake_scan, tmp_path):
    """Violations zonder match worden naar de review-CSV geschreven."""
    source = tmp_path / "site"
    source.mkdir()
    (source / "index.html").write_text("<main><p>Hi</p></main>\n", encoding="utf-8")
    violation = Violation.from_axe(axe_violation("video-caption", '<video src="/intro.mp4"></video>'))
    fake_scan([PageResult(url=SEED, violations=[violation])])
    review = tmp_path / "review.csv"

    assert fix_handler.handle_fix([SEED, "--source", str(source), "--review-export", str(review)]) == 0

    df = pd.read_csv(review)
    assert list(df["rule_id"]) == ["video-caption"]
    assert df.loc[0, "reason"] == "requires manual review"


@pytest.fixture
def clean_config():
    """Zet na de test de instellingen terug naar settings.json."""
    yield config_manager
    config_manager.reset()


def test_scan_applies_setting_overrides(fake_scan, clean_config):
    """--set past een instelling aan voordat de crawl start."""
    seen = {}

    def scan(urls, depth, batch):
        seen["max_pages"] = clean_config.get_nested("crawler.max_pages")
        return _results()

    fake_scan(_results()).side_effect = scan

    assert scan_handler.handle_scan([SEED, "--set", "crawler.max_pages=3"]) == 0
    assert seen["max_pages"] == 3


@pytest.mark.parametrize("assignment", ["crawler.max_pages=lots", "max_pages"])
def test_bad_setting_override_stops_scan(fake_scan, clean_config, assignment, capsys):
    scan = fake_scan([])
    assert scan_handler.handle_scan([SEED, "--set", assignment]) == 1
    scan.assert_not_called()
    assert f"cannot apply setting '{assignment}'" in capsys.readouterr().out


def test_fix_setting_override_reaches_pipeline(fake_scan, tmp_path, clean_config, monkeypatch):
    """Een --set voor de fixer komt terecht in de changeset."""
    source = tmp_path / "site"
    source.mkdir()
    (source / "header.html").write_text('<img src="/logo.png">\n', encoding="utf-8")
    fake_scan(_results())
    captured = {}

    class FakePullRequestService:
        def __init__(self, hosting):
            pass

        def submit(self, changeset):
            captured["branch"] = changeset.branch_name
            return {"url": "https://github.com/octo/site/pull/4", "number": 4}

    monkeypatch.setattr(fix_handler, "PullRequestService", FakePullRequestService)

    assert fix_handler.handle_fix([
        SEED, "--source", str(source), "--repo", "octo/site", "--token", "t0ken",
        "--set", "fixer.branch_prefix=a11y-bot",
    ]) == 0
    assert captured["branch"].startswith("a11y-bot-")


@pytest.mark.parametrize("threshold", ["0.3", "1.5"])
def test_fix_rejects_threshold_out_of_range(fake_scan, tmp_path, threshold):
    """Een drempel onder 0.7 (of boven 1) wordt geweigerd voordat er gescand wordt."""
    scan = fake_scan(_results())
    assert fix_handler.handle_fix([SEED, "--source", str(tmp_path), "--threshold", threshold]) == 1
    scan.assert_not_called()
