# src/crawler/managers/progress_manager.py
import sys
from tqdm import tqdm
import logging

logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Manages the lifecycle of a tqdm progress bar for one crawl.

    The bar counts audited pages against the page ceiling and shows the
    current depth and number of failed pages as postfix.
    """

    def __init__(self, total: int, desc: str, unit: str = "page", enabled: bool = True):
        if total <= 0:
            total = 1

        self.pbar = tqdm(
            total=total,
            desc=desc,
            unit=f" {unit}",
            dynamic_ncols=True,
            smoothing=0.1,
            mininterval=0.5,
            postfix={"depth": 0, "failures": 0},
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}, {rate_fmt}] {postfix}",
            file=sys.stdout,
            disable=not enabled,
        )

    def advance(self, depth: int, failures_count: int, steps: int = 1):
        """Marks `steps` pages as audited and refreshes the postfix."""
        if not self.pbar:
            return
        self.pbar.update(steps)
        self.pbar.set_postfix({"depth": depth, "failures": failures_count}, refresh=False)

    def close(self, final_pages: int, final_failures: int = 0, capped: bool = False):
        """
        Closes the progress bar with the final status.

        Args:
            capped: True if the crawl stopped because the page ceiling was reached.
        """
        if not self.pbar:
            return

        try:
            # An uncapped crawl ran out of links before the ceiling; shrink the bar
            if not capped:
                self.pbar.total = max(final_pages, 1)
            self.pbar.set_postfix({
                "pages": f"{final_pages}/capped" if capped else str(final_pages),
                "failures": final_failures,
            }, refresh=True)
            self.pbar.close()
            logger.debug("ProgressManager: Progress bar closed.")
        except Exception as e:
            logger.error(f"Error encountered while closing progress bar: {e}")
        finally:
            self.pbar = None
