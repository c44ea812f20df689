import asyncio
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple

from crawler.controllers.async_controller import AsyncController
from crawler.managers.progress_manager import ProgressManager
from crawler.model import AuditOutcome, CrawlSettings, PageResult, PageStatus
from crawler.services.axe_audit_service import AuditEngineError, AxeAuditService
from crawler.services.render_session_service import RenderedPage, RenderSessionService
from crawler.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)


class AsyncCrawlController(AsyncController):
    """
    Breadth-first, same-domain accessibility crawler for one seed URL.

    Pages are rendered one after another in a single render session owned by
    this controller, audited, and turned into PageResults in crawl order
    (the seed page first). A crawl is bounded by `settings.max_depth` and by
    the page ceiling; a page that fails to render or audit is recorded as a
    failed PageResult and the crawl moves on.

    Each controller owns its own queue and visited set, so several
    controllers can run concurrently without sharing crawl state.
    """

    def __init__(
            self,
            start_url: str,
            settings: CrawlSettings,
            session_factory: Optional[Callable[[], Any]] = None,
            audit_engine: Optional[Any] = None,
            config: Optional[Dict] = None,
            show_progress: bool = False,
    ):
        """
        Args:
            start_url: The entry point URL for the crawl.
            settings: Depth, page ceiling and retry settings.
            session_factory: Returns a fresh render session (async context
                manager with `render(url)`). Defaults to a Playwright session.
            audit_engine: Object with `async audit(rendered) -> AuditOutcome`.
                Defaults to axe-core.
            config: Optional dict with 'session' and 'audit' sections.
            show_progress: Render a tqdm progress bar.
        """
        super().__init__()
        self.config = config or {}
        self.start_url = start_url
        self.settings = settings
        self.show_progress = show_progress

        self.url_utils = UrlUtils()
        self.session_factory = session_factory or (
            lambda: RenderSessionService(self.config.get("session", {}))
        )
        self.audit_engine = audit_engine or AxeAuditService(self.config.get("audit", {}))

        # State
        self.queue: Deque[Tuple[str, int]] = deque()
        self.visited: Set[str] = set()
        self._queued: Set[str] = set()
        self.results: List[PageResult] = []
        self.pages_failed = 0
        self.capped = False

    def _enqueue(self, url: str, depth: int) -> None:
        if url in self.visited or url in self._queued:
            return
        self._queued.add(url)
        self.queue.append((url, depth))

    async def _audit_with_retries(self, rendered: RenderedPage) -> AuditOutcome:
        """
        Runs the audit engine, retrying on failure with a fixed backoff.

        Raises:
            AuditEngineError: once every attempt has failed.
        """
        attempts = self.settings.audit_retries
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                return await self.audit_engine.audit(rendered)
            except Exception as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        "Audit failed for %s, retrying (%d attempts left): %s",
                        rendered.url, attempts - attempt, e
                    )
                    await asyncio.sleep(self.settings.audit_retry_backoff)

        raise AuditEngineError(
            f"Audit failed for {rendered.url} after {attempts} attempts: {last_error}"
        ) from last_error

    async def _scan_page(self, session: Any, url: str) -> Tuple[PageResult, Optional[RenderedPage]]:
        """
        Renders and audits one page.

        Returns:
            The PageResult and the rendered page handle (None when rendering failed).
        """
        try:
            rendered = await session.render(url)
        except Exception as e:
            logger.error("Error rendering %s: %s", url, e)
            return PageResult.failed(url, error=str(e)), None

        try:
            outcome = await self._audit_with_retries(rendered)
        except AuditEngineError as e:
            logger.error("%s", e)
            return PageResult.failed(url, error=str(e)), rendered

        result = PageResult(
            url=url,
            violations=outcome.violations,
            pass_count=outcome.passes,
            incomplete_count=outcome.incomplete,
            inapplicable_count=outcome.inapplicable,
        )
        return result, rendered

    async def _discover_links(self, rendered: RenderedPage) -> List[str]:
        try:
            return await rendered.extract_links()
        except Exception as e:
            logger.warning("Link extraction failed for %s: %s", rendered.url, e)
            return []

    async def run(self) -> List[PageResult]:
        """
        Main execution entry point for the crawl.

        Returns:
            PageResults in crawl order; never more than the page ceiling.
        """
        ceiling = self.settings.page_ceiling
        max_depth = self.settings.max_depth
        seed = self.url_utils.normalize_url(self.start_url)
        self._enqueue(seed, 0)

        logger.info(
            "Starting crawl: %s, max depth: %d, limit: %d pages%s",
            seed, max_depth, ceiling, " (whole site)" if self.settings.is_whole_site else ""
        )

        progress = ProgressManager(
            total=ceiling, desc=self.url_utils.get_hostname(seed) or "Crawling",
            enabled=self.show_progress,
        )
        self.timer.start()

        try:
            async with self.session_factory() as session:
                while self.queue and len(self.results) < ceiling:
                    url, depth = self.queue.popleft()

                    if url in self.visited or depth > max_depth:
                        continue
                    self.visited.add(url)

                    logger.debug(
                        "Crawling %s (depth %d/%d, page %d/%d)",
                        url, depth, max_depth, len(self.results) + 1, ceiling
                    )

                    result, rendered = await self._scan_page(session, url)
                    self.results.append(result)
                    if result.status == PageStatus.FAILED:
                        self.pages_failed += 1
                    progress.advance(depth=depth, failures_count=self.pages_failed)

                    if rendered is None or depth >= max_depth:
                        continue

                    links = await self._discover_links(rendered)
                    logger.debug("Found %d links on %s", len(links), url)
                    for link in links:
                        self._enqueue(link, depth + 1)
        finally:
            self.timer.stop()
            self.capped = len(self.results) >= ceiling and bool(self.queue)
            progress.close(len(self.results), self.pages_failed, capped=self.capped)

        logger.info(
            "Crawl finished. %d pages (%d failed) of %d discovered URLs in %.2fs.",
            len(self.results), self.pages_failed, len(self._queued), self.timer.duration
        )
        return self.results
