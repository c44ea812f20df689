# src/crawler/services/render_session_service.py
import asyncio
import logging
from typing import Any, Dict, List, Optional

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from crawler.services.link_processor_service import LinkProcessorService

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """Raised when a page cannot be navigated to or rendered."""


class RenderedPage:
    """
    Handle to a page that finished rendering in a RenderSessionService.

    The handle stays valid until the session renders the next URL; callers
    must finish auditing and link extraction before moving on.
    """

    def __init__(self, url: str, page: Page, link_processor: LinkProcessorService):
        self.url = url
        self.page = page
        self._link_processor = link_processor

    async def content(self) -> str:
        return await self.page.content()

    async def extract_links(self) -> List[str]:
        """Same-domain links of the rendered DOM, normalized and de-duplicated."""
        html = await self.content()
        return self._link_processor.extract_same_domain_links(html, self.url)


class RenderSessionService:
    """
    One headless Chromium browser with a single reusable page.

    The session is owned by exactly one crawl. It is acquired lazily on the
    first render() call and must be released through `async with` or an
    explicit close().
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}

        self.headless = bool(self.config.get('headless', True))
        self.viewport = {
            "width": int(self.config.get('viewport_width', 1280)),
            "height": int(self.config.get('viewport_height', 1024)),
        }
        self.navigation_timeout = int(self.config.get('navigation_timeout', 60000))
        self.ready_timeout = int(self.config.get('ready_timeout', 30000))
        self.settle_delay = float(self.config.get('settle_delay', 2.0))
        self.browser_args: List[str] = list(
            self.config.get('browser_args', ["--no-sandbox", "--disable-setuid-sandbox"])
        )

        self.link_processor = LinkProcessorService()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self) -> None:
        if self._page is not None:
            return
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, args=self.browser_args
            )
            self._page = await self._browser.new_page(viewport=self.viewport)
            self._page.set_default_navigation_timeout(self.navigation_timeout)
            logger.debug("Render session started (viewport %sx%s).",
                         self.viewport["width"], self.viewport["height"])
        except PlaywrightError as e:
            await self.close()
            raise RenderError(f"Could not start browser: {e}") from e

    async def render(self, url: str) -> RenderedPage:
        """
        Navigates the shared page to `url` and waits for it to settle.

        Raises:
            RenderError: on navigation timeouts or browser crashes.
        """
        await self.initialize()
        page = self._page

        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout)
        except PlaywrightTimeoutError as e:
            raise RenderError(f"Navigation timeout for {url}") from e
        except PlaywrightError as e:
            raise RenderError(f"Navigation failed for {url}: {e}") from e

        try:
            await page.wait_for_function(
                "document.readyState === 'complete'", timeout=self.ready_timeout
            )
        except PlaywrightTimeoutError:
            logger.warning("Page readyState timeout for %s, continuing anyway.", url)

        # Lazy-loaded content and client-side frameworks
        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)

        return RenderedPage(url=url, page=page, link_processor=self.link_processor)

    async def close(self) -> None:
        """Releases page, browser and driver. Safe to call more than once."""
        page, browser, driver = self._page, self._browser, self._playwright
        self._page, self._browser, self._playwright = None, None, None

        for resource, closer in ((page, "close"), (browser, "close"), (driver, "stop")):
            if resource is None:
                continue
            try:
                await getattr(resource, closer)()
            except PlaywrightError as e:
                logger.debug("Ignoring error while closing render session: %s", e)
