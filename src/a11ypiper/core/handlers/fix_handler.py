# src/a11ypiper/core/handlers/fix_handler.py
import argparse
import logging
import os
from typing import List

from a11ypiper.core.handlers.scan_handler import apply_setting_overrides, run_scan
from a11ypiper.core.managers.config_manager import config_manager
from a11ypiper.core.services.report_service import ReportService
from a11ypiper.core.utils.path_utils import PathUtils
from fixer.controllers.fix_controller import FixController, FixReport
from fixer.services.github_service import GitHubService, HostingError
from fixer.services.pull_request_service import PullRequestService
from matcher.model import HIGH_CONFIDENCE
from matcher.services.source_tree_service import SourceTreeService

logger = logging.getLogger(__name__)

# --- HELP TEXT ---

fix_help_text = """
  fix <url> --source <dir> [--depth <n>] [--threshold <f>] [--output <dir>]
            [--review-export <path>] [--repo <owner/name> --token <token>]
            [--set <key>=<value>]
                      Scans <url>, matches every violation against the
                      source checkout in <dir> and builds a changeset.
                      --output writes the changed files to <dir>.
                      --review-export writes unmatched violations to CSV.
                      --repo opens a pull request with the changeset
                      (token defaults to $GITHUB_TOKEN).
                      --set overrides a setting for this run (repeatable).
""".strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fix", description="Generate source fixes for accessibility issues.")
    parser.add_argument("url", help="Seed URL of the deployed site.")
    parser.add_argument("--source", required=True, help="Local checkout of the site's source.")
    parser.add_argument("--depth", type=int, default=1, help="Crawl depth (1 = single page).")
    parser.add_argument("--threshold", type=float, help="Minimum match confidence for automatic fixes.")
    parser.add_argument("--output", help="Directory to write changed files to.")
    parser.add_argument("--review-export", help="CSV path for violations that need manual review.")
    parser.add_argument("--repo", help="GitHub repository as owner/name.")
    parser.add_argument("--token", default=os.environ.get("GITHUB_TOKEN"), help="GitHub token.")
    parser.add_argument("--set", action="append", default=[], metavar="KEY=VALUE",
                        help="Override a setting for this run, e.g. fixer.branch_prefix=a11y.")
    return parser


def _print_report(report: FixReport) -> None:
    summary = report.changeset.summary()
    print(f"🔧 {len(summary.descriptions)} fixes in {len(summary.files_touched)} files "
          f"({summary.templated_fixes} template, {summary.markup_fixes} markup).")
    for description in summary.descriptions:
        print(f"   - {description}")
    for failure in report.changeset.failures:
        print(f"   ⚠️ {failure.file_path}: {failure.description} ({failure.reason})")
    if report.manual_review:
        print(f"👀 {len(report.manual_review)} violation nodes require manual review.")


def handle_fix(args: List[str]) -> int:
    """
    Handles the 'fix' command.

    Returns:
        0 on success, 1 on errors (including hosting failures).
    """
    try:
        parsed = build_parser().parse_args(args)
    except SystemExit:
        return 1

    if parsed.threshold is not None and not HIGH_CONFIDENCE <= parsed.threshold <= 1.0:
        print(f"❌ Error: --threshold must be between {HIGH_CONFIDENCE} and 1.0.")
        return 1

    if parsed.repo and ("/" not in parsed.repo or not parsed.token):
        print("❌ Error: --repo needs the form owner/name and a token (--token or $GITHUB_TOKEN).")
        return 1

    if not apply_setting_overrides(parsed.set):
        return 1

    config = config_manager.snapshot()
    if parsed.threshold is not None:
        config.setdefault("matcher", {})["acceptance_threshold"] = parsed.threshold

    try:
        tree = SourceTreeService(parsed.source)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        return 1

    print(f"🚀 Scanning {parsed.url} (depth {parsed.depth})...")
    try:
        results = run_scan([parsed.url], parsed.depth)
    except Exception as e:
        logger.error(f"Scan failed: {e}", exc_info=True)
        print(f"❌ Scan failed: {e}")
        return 1
    for line in ReportService.format_summary(results):
        print(line)

    limit = int(config.get("matcher", {}).get("max_candidate_files", 200))
    candidates = tree.candidate_files(limit=limit)
    print(f"📂 Matching against {len(candidates)} candidate files in {tree.root}...")

    report = FixController(tree.load(candidates), config=config).run(results, scan_url=parsed.url)
    _print_report(report)

    if parsed.review_export:
        review_file = PathUtils.resolve_output_path(parsed.review_export, "manual_review.csv")
        try:
            ReportService.export_manual_review(report.manual_review, review_file)
        except OSError as e:
            print(f"❌ Could not write {review_file}: {e}")
            return 1
        print(f"📄 Manual review list written to {review_file}")

    changeset = report.changeset
    if changeset.is_empty:
        print("ℹ️ No automatic fixes could be built.")
        return 0

    if parsed.output:
        for path, content in changeset.files.items():
            target = tree.write(path, content, output_dir=parsed.output)
            logger.debug("Wrote %s", target)
        print(f"📄 Changed files written to {parsed.output}")

    if parsed.repo:
        owner, repo = parsed.repo.split("/", 1)
        hosting = GitHubService(owner, repo, parsed.token, config=config.get("github", {}))
        try:
            pull_request = PullRequestService(hosting).submit(changeset)
        except HostingError as e:
            logger.error(f"Pull request failed: {e}")
            print(f"❌ Pull request failed: {e}")
            return 1
        print(f"✅ Pull request #{pull_request['number']} opened: {pull_request['url']}")

    return 0
