# src/crawler/utils/run_timers.py
import time
from typing import Optional


class RunTimers:
    """
    Measures wall-clock duration of a crawl or fix run.
    Usable as `with RunTimers() as timer:` or through start()/stop().
    """

    def __init__(self):
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None

    def __enter__(self) -> "RunTimers":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        self._start_time = time.perf_counter()
        self._end_time = None

    def stop(self) -> None:
        if self._start_time is not None:
            self._end_time = time.perf_counter()

    @property
    def duration(self) -> float:
        """Elapsed seconds; still ticking while the timer runs."""
        if self._start_time is None:
            return 0.0
        end = self._end_time if self._end_time is not None else time.perf_counter()
        return end - self._start_time

    def __repr__(self) -> str:
        return f"<RunTimers duration={self.duration:.4f}s>"
