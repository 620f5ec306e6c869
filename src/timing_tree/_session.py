"""Collect the timing trees of repeated runs and report on them together.

Each run gets its own tree; only registration is shared, so runs may finish
on different threads.
"""

import threading
import time
from collections.abc import Callable

from beartype import beartype
from loguru import logger

from timing_tree._core import NANOSECONDS_PER_SECOND, TimingNode
from timing_tree._report import DEFAULT_THRESHOLDS, ReportThresholds, report

SUMMARY_WIDTH = 90


class TimingSession:
    """Accumulates one timing tree per benchmark run.

    Args:
        clock: Monotonic tick source for roots created by new_run()
        frequency: Ticks per second of ``clock``

    Example:
        session = TimingSession()
        for _ in range(5):
            root = session.new_run()
            with root.region("parse"):
                parse(text)
        session.print_summary("Parser Benchmark")
    """

    @beartype
    def __init__(
        self,
        clock: Callable[[], int] = time.perf_counter_ns,
        frequency: int = NANOSECONDS_PER_SECOND,
    ) -> None:
        assert frequency > 0, f"Clock frequency must be positive: {frequency}"
        self.clock = clock
        self.frequency = frequency
        self._runs: list[TimingNode] = []
        self._lock = threading.Lock()

    def new_run(self) -> TimingNode:
        """Create, register and return a fresh synthetic root."""
        root = TimingNode(None, self.clock, self.frequency)
        self.add_run(root)
        return root

    @beartype
    def add_run(self, root: TimingNode) -> None:
        """Register a run's root node (thread-safe)."""
        assert root.parent is None, f"Only root nodes can be registered: {root.label}"
        with self._lock:
            self._runs.append(root)
            count = len(self._runs)
        logger.debug(f"Registered timing run #{count}")

    @property
    def runs(self) -> tuple[TimingNode, ...]:
        with self._lock:
            return tuple(self._runs)

    @beartype
    def report(
        self,
        indentation: str = "",
        thresholds: ReportThresholds = DEFAULT_THRESHOLDS,
    ) -> str | None:
        """Report across all registered runs; None when there are none."""
        return report(self.runs, indentation, thresholds)

    @beartype
    def print_summary(self, title: str = "TIMING RESULTS") -> None:
        """Log the report with a banner via loguru.

        Args:
            title: Header title for the summary
        """
        runs = self.runs
        text = report(runs)

        logger.info("")
        logger.info("=" * SUMMARY_WIDTH)
        logger.info(f"{title:^{SUMMARY_WIDTH}}")
        logger.info("=" * SUMMARY_WIDTH)
        if text is None:
            logger.info("No runs recorded")
        elif not text:
            logger.info(f"{len(runs)} run(s), nothing above the noise threshold")
        else:
            logger.info(f"{len(runs)} run(s)")
            logger.info("-" * SUMMARY_WIDTH)
            for line in text.splitlines():
                logger.info(line)
        logger.info("=" * SUMMARY_WIDTH)
        logger.info("")
