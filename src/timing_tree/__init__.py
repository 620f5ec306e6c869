"""timing-tree: Hierarchical timing of nested regions across repeated runs.

Provides:
- TimingNode: Named region with start/stop ordering checks and
  inclusive/exclusive tick accounting
- Stopwatch: Accumulating monotonic timer owned by each node
- report: Multi-run min/max/variance report over structurally identical trees
- TimingSession: Thread-safe collector of one tree per run

Usage:
    from timing_tree import TimingSession

    session = TimingSession()

    for _ in range(10):
        root = session.new_run()
        root.start_at("parse")
        root.start_at("parse/tokenize")
        tokens = tokenize(text)
        root.stop_at("parse/tokenize")
        root.stop_at("parse")

    session.print_summary("Parser Benchmark")
"""

from timing_tree._core import Stopwatch, StopwatchState, TimingNode
from timing_tree._errors import (
    MissingParent,
    OrderingViolation,
    StructureMismatch,
    TimingTreeError,
)
from timing_tree._report import (
    DEFAULT_THRESHOLDS,
    ReportThresholds,
    RunStatistics,
    report,
    summarize,
)
from timing_tree._session import TimingSession

__all__ = [
    "DEFAULT_THRESHOLDS",
    "MissingParent",
    "OrderingViolation",
    "ReportThresholds",
    "RunStatistics",
    "Stopwatch",
    "StopwatchState",
    "StructureMismatch",
    "TimingNode",
    "TimingSession",
    "TimingTreeError",
    "report",
    "summarize",
]

__version__ = "0.1.0"
