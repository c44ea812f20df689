# src/crawler/services/scan_service.py
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from crawler.controllers.async_crawl_controller import AsyncCrawlController
from crawler.model import CrawlSettings, PageResult

logger = logging.getLogger(__name__)


class ScanService:
    """
    Run-level entry points on top of AsyncCrawlController.

    Depth here follows the run-input convention (1 = only the seed page), so
    every crawl is started with `max_depth = depth - 1`. The first result of a
    run gets the caller's scan id, every following one `"{scan_id}-{i}"`.
    """

    def __init__(
            self,
            config: Optional[Dict[str, Any]] = None,
            session_factory: Optional[Callable[[], Any]] = None,
            audit_engine: Optional[Any] = None,
    ):
        """
        Args:
            config: The full application config ('crawler', 'session' and
                'audit' sections are used).
            session_factory / audit_engine: Passed through to every crawl.
        """
        self.config = config or {}
        self.crawler_config: Dict[str, Any] = self.config.get("crawler", {})
        self.session_factory = session_factory
        self.audit_engine = audit_engine

    def build_settings(self, depth: int, batch: bool = False) -> CrawlSettings:
        cfg = self.crawler_config
        max_pages = cfg.get("batch_max_pages", 5) if batch else cfg.get("max_pages", 10)
        return CrawlSettings(
            max_depth=max(depth - 1, 0),
            max_pages=max_pages,
            whole_site_depth=cfg.get("whole_site_depth", 50),
            whole_site_max_pages=cfg.get("whole_site_max_pages", 200),
            hard_page_cap=cfg.get("hard_page_cap", 500),
            audit_retries=cfg.get("audit_retries", 3),
            audit_retry_backoff=cfg.get("audit_retry_backoff", 2.0),
        )

    def _controller(self, url: str, settings: CrawlSettings, show_progress: bool) -> AsyncCrawlController:
        return AsyncCrawlController(
            start_url=url,
            settings=settings,
            session_factory=self.session_factory,
            audit_engine=self.audit_engine,
            config=self.config,
            show_progress=show_progress,
        )

    @staticmethod
    def assign_ids(results: List[PageResult], scan_id: str) -> List[PageResult]:
        return [
            result.with_id(scan_id if i == 0 else f"{scan_id}-{i}")
            for i, result in enumerate(results)
        ]

    async def scan_single_url(self, url: str, depth: int, scan_id: str) -> List[PageResult]:
        """Crawls one site and returns its PageResults in crawl order."""
        settings = self.build_settings(depth)
        controller = self._controller(url, settings, self.crawler_config.get("show_progress", False))
        async with controller:
            results = await controller.run()
        return self.assign_ids(results, scan_id)

    async def scan_batch_urls(self, urls: List[str], depth: int, scan_id: str) -> List[PageResult]:
        """
        Crawls several seed URLs, at most `batch_concurrency` at a time.

        Each seed gets its own controller and render session. Results are
        concatenated in seed order. A seed whose crawl raises is recorded as
        a single failed PageResult so the other seeds are kept.
        """
        if not urls:
            return []

        settings = self.build_settings(depth, batch=True)
        semaphore = asyncio.Semaphore(max(int(self.crawler_config.get("batch_concurrency", 3)), 1))

        async def _crawl_seed(seed: str) -> List[PageResult]:
            async with semaphore:
                logger.info("Batch crawl started for %s", seed)
                controller = self._controller(seed, settings, show_progress=False)
                try:
                    async with controller:
                        return await controller.run()
                except Exception as e:
                    logger.error("Crawl of %s aborted: %s", seed, e, exc_info=True)
                    return [PageResult.failed(seed, error=str(e))]

        per_seed = await asyncio.gather(*(_crawl_seed(seed) for seed in urls))
        results = [result for seed_results in per_seed for result in seed_results]
        logger.info("Batch scan finished: %d seeds, %d pages.", len(urls), len(results))
        return self.assign_ids(results, scan_id)
