# src/a11ypiper/core/handlers/scan_handler.py
import argparse
import logging
import uuid
from typing import List, Optional

from a11ypiper.core.loop_runner import run_on_main_loop
from a11ypiper.core.managers.config_manager import config_manager
from a11ypiper.core.services.report_service import ReportService
from a11ypiper.core.utils.path_utils import PathUtils
from crawler.model import PageResult, PageStatus
from crawler.services.scan_service import ScanService
from crawler.utils.run_timers import RunTimers

logger = logging.getLogger(__name__)

# --- HELP TEXT ---

scan_help_text = """
  scan <url>... [--depth <n>] [--batch] [--export <path>] [--set <key>=<value>]
                      Crawls and audits one or more sites.
                      --depth 1 audits only the given page, higher values
                      follow same-domain links; 50 or more crawls the
                      whole site (up to the configured page ceiling).
                      --batch crawls every <url> as its own seed.
                      --export writes one CSV row per violation.
                      --set overrides a setting for this run (repeatable).
""".strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scan", description="Crawl and audit websites for accessibility issues.")
    parser.add_argument("urls", nargs="+", help="Seed URL(s).")
    parser.add_argument("--depth", type=int, default=1, help="Crawl depth (1 = single page).")
    parser.add_argument("--batch", action="store_true", help="Treat every URL as a separate seed.")
    parser.add_argument("--export", "-o", help="CSV output path.")
    parser.add_argument("--set", action="append", default=[], metavar="KEY=VALUE",
                        help="Override a setting for this run, e.g. crawler.max_pages=20.")
    return parser


def apply_setting_overrides(assignments: List[str]) -> bool:
    """Applies --set overrides; prints the rejected ones and returns False if any."""
    rejected = config_manager.apply_overrides(assignments)
    for assignment in rejected:
        print(f"❌ Error: cannot apply setting '{assignment}' (expected <section>.<key>=<value> of the right type).")
    return not rejected


def run_scan(urls: List[str], depth: int, batch: bool = False, scan_id: Optional[str] = None) -> List[PageResult]:
    """Runs a single or batch scan on the main loop and returns its PageResults."""
    scan_id = scan_id or uuid.uuid4().hex[:12]
    service = ScanService(config_manager.get_all())
    if batch or len(urls) > 1:
        return run_on_main_loop(service.scan_batch_urls(urls, depth, scan_id))
    return run_on_main_loop(service.scan_single_url(urls[0], depth, scan_id))


def handle_scan(args: List[str]) -> int:
    """
    Handles the 'scan' command.

    Returns:
        0 when every page was audited, 1 on errors or failed pages.
    """
    try:
        parsed = build_parser().parse_args(args)
    except SystemExit:
        return 1

    if parsed.depth < 1:
        print("❌ Error: --depth must be 1 or higher.")
        return 1

    if not apply_setting_overrides(parsed.set):
        return 1

    timer = RunTimers()
    print(f"🚀 Scanning {', '.join(parsed.urls)} (depth {parsed.depth})...")
    try:
        with timer:
            results = run_scan(parsed.urls, parsed.depth, parsed.batch)
    except KeyboardInterrupt:
        print("\n🛑 Scan interrupted by user.")
        return 1
    except Exception as e:
        logger.error(f"Scan failed: {e}", exc_info=True)
        print(f"❌ Scan failed: {e}")
        return 1

    for line in ReportService.format_summary(results):
        print(line)

    failed = sum(1 for r in results if r.status == PageStatus.FAILED)
    total = sum(r.summary.total for r in results)
    print(f"✅ Scan finished in {timer.duration:.2f}s: {len(results)} pages, {total} violations, {failed} failed.")

    if parsed.export:
        output_file = PathUtils.resolve_output_path(parsed.export, "scan_results.csv")
        try:
            ReportService.export_csv(results, output_file)
        except OSError as e:
            print(f"❌ Could not write {output_file}: {e}")
            return 1
        print(f"📄 Results exported to {output_file}")

    return 1 if failed else 0
