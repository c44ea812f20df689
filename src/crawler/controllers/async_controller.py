import logging

from crawler.utils.run_timers import RunTimers

logger = logging.getLogger(__name__)


class AsyncController:
    """
    Base class for asynchronous crawl controllers.

    Provides lifecycle hooks (setup, shutdown), a run timer and async
    context manager support so resources are released on every exit path.
    """

    def __init__(self):
        self._setup_done = False
        self.timer = RunTimers()

    async def __aenter__(self):
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    async def setup(self):
        """
        Prepares resources for the controller. Runs only once; subclasses
        extend it for their own initialization.
        """
        if self._setup_done:
            return
        self._setup_done = True
        logger.debug("%s setup done.", type(self).__name__)

    async def shutdown(self):
        """Releases resources. Subclasses must call super().shutdown()."""
        self._setup_done = False
        logger.debug("%s shutdown complete.", type(self).__name__)
