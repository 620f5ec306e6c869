"""Aggregate structurally identical timing trees into a text report.

Runs are matched by tree position, not by name: child ``i`` of one run is
compared with child ``i`` of every other run. Trees with different child
counts at the same position cannot be compared (StructureMismatch).

Reporting is a read-only traversal; calling it twice on the same finished
runs yields identical text.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from beartype import beartype

from timing_tree._core import ROOT_LABEL, TimingNode
from timing_tree._errors import StructureMismatch

INDENT = "  "


@dataclass(frozen=True)
class ReportThresholds:
    """Cutoffs deciding which lines a report contains.

    Attributes:
        outlier_pct: Above this spread (% of max inclusive) the raw per-run
            inclusive values are listed
        variance_pct: Above this spread a min..max range is shown instead of
            the minimum alone
        noise_divisor: Durations at or below frequency / noise_divisor ticks
            (~0.1 ms by default) are not worth reporting
    """

    outlier_pct: float = 80.0
    variance_pct: float = 5.0
    noise_divisor: int = 10_000

    def __post_init__(self) -> None:
        assert self.outlier_pct >= 0, f"outlier_pct must be non-negative: {self.outlier_pct}"
        assert self.variance_pct >= 0, f"variance_pct must be non-negative: {self.variance_pct}"
        assert self.noise_divisor > 0, f"noise_divisor must be positive: {self.noise_divisor}"


DEFAULT_THRESHOLDS = ReportThresholds()


@dataclass(frozen=True)
class RunStatistics:
    """Inclusive/exclusive ticks of one tree position across runs."""

    label: str
    inclusive: tuple[int, ...]
    exclusive: tuple[int, ...]
    child_count: int

    @property
    def min_inclusive(self) -> int:
        return min(self.inclusive)

    @property
    def max_inclusive(self) -> int:
        return max(self.inclusive)

    @property
    def min_exclusive(self) -> int:
        return min(self.exclusive)

    @property
    def max_exclusive(self) -> int:
        return max(self.exclusive)

    @property
    def max_delta(self) -> int:
        return max(
            self.max_inclusive - self.min_inclusive,
            self.max_exclusive - self.min_exclusive,
        )

    @property
    def max_delta_pct(self) -> float:
        if self.max_inclusive == 0:
            return 0.0
        return self.max_delta / self.max_inclusive * 100


@beartype
def summarize(runs: Sequence[TimingNode]) -> RunStatistics:
    """Collect the statistics of one tree position across ``runs``."""
    assert runs, "Cannot summarize an empty sequence of runs"
    first = runs[0]
    return RunStatistics(
        label=first.name or ROOT_LABEL,
        inclusive=tuple(run.ticks_inclusive for run in runs),
        exclusive=tuple(run.ticks_exclusive for run in runs),
        child_count=len(first.children),
    )


@beartype
def report(
    runs: Sequence[TimingNode],
    indentation: str = "",
    thresholds: ReportThresholds = DEFAULT_THRESHOLDS,
) -> str | None:
    """Render the timing report for one node per run and its subtrees.

    Args:
        runs: The same tree position taken from each run, in run order
        indentation: Prefix for this level; each child level adds two spaces
        thresholds: Outlier, variance and noise cutoffs

    Returns:
        The report text (one line per reported node), or None if ``runs`` is
        empty.

    Raises:
        StructureMismatch: Runs differ in child count at some position.
    """
    if not runs:
        return None
    frequency = runs[0].elapsed.frequency
    assert all(run.elapsed.frequency == frequency for run in runs), (
        "All runs must share one clock frequency"
    )

    lines: list[str] = []
    _report_position(lines, runs, indentation, thresholds)
    return "\n".join(lines)


def _report_position(
    lines: list[str],
    runs: Sequence[TimingNode],
    indentation: str,
    thresholds: ReportThresholds,
) -> None:
    stats = summarize(runs)
    stopwatch = runs[0].elapsed
    noise = stopwatch.frequency / thresholds.noise_divisor

    def ms(ticks: int) -> str:
        return f"{stopwatch.ticks_to_ms(ticks):.3f}"

    prefix = f"{indentation}{stats.label}"
    if len(runs) == 1:
        if stats.child_count > 1:
            lines.append(
                f"{prefix}: {ms(stats.max_inclusive)} ms "
                f"(exclusive {ms(stats.max_exclusive)} ms)"
            )
        elif stats.max_inclusive > noise:
            lines.append(f"{prefix}: {ms(stats.max_inclusive)} ms")
    else:
        spread = stats.max_delta_pct
        if spread > thresholds.outlier_pct:
            values = ", ".join(ms(ticks) for ticks in stats.inclusive)
            lines.append(f"{prefix} runs: {values} ms")

        if stats.child_count > 1:
            if spread > thresholds.variance_pct:
                lines.append(
                    f"{prefix}: {ms(stats.min_inclusive)}..{ms(stats.max_inclusive)} ms "
                    f"(exclusive {ms(stats.min_exclusive)}..{ms(stats.max_exclusive)} ms)"
                )
            else:
                lines.append(
                    f"{prefix}: {ms(stats.min_inclusive)} ms "
                    f"(exclusive {ms(stats.min_exclusive)} ms)"
                )
        elif spread > thresholds.variance_pct and stats.max_inclusive > noise:
            lines.append(
                f"{prefix}: {ms(stats.min_inclusive)}..{ms(stats.max_inclusive)} ms"
            )
        elif stats.min_inclusive > noise:
            lines.append(f"{prefix}: {ms(stats.min_inclusive)} ms")

    for position, run in enumerate(runs):
        if len(run.children) != stats.child_count:
            raise StructureMismatch(
                f"Run {position} has {len(run.children)} children under "
                f"{run.label}, run 0 has {stats.child_count}"
            )

    for index in range(stats.child_count):
        _report_position(
            lines,
            [run.children[index] for run in runs],
            indentation + INDENT,
            thresholds,
        )
