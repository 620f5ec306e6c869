"""Timing tree nodes and their stopwatch.

Design by Contract (P1 - MANDATORY):
- Start/stop MUST follow call-stack order (OrderingViolation otherwise)
- Children MUST be created after their parents exist (MissingParent otherwise)
- Accumulated ticks MUST be non-negative (crash if the clock goes backwards)
- Fail-fast on violations

Single-threaded: one tree belongs to one run. Concurrent runs use separate
trees. Public constructors and lookups use beartype for runtime type
enforcement.
"""

import time
import weakref
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from datetime import datetime
from enum import Enum

from beartype import beartype
from loguru import logger

from timing_tree._errors import MissingParent, OrderingViolation

NANOSECONDS_PER_SECOND = 1_000_000_000
PATH_SEPARATOR = "/"
ROOT_LABEL = "(root)"


class StopwatchState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class Stopwatch:
    """Accumulating monotonic timer.

    Args:
        clock: Monotonic tick source (default: time.perf_counter_ns)
        frequency: Ticks per second of ``clock`` (MUST be > 0)

    Attributes:
        state: NOT_STARTED, RUNNING or STOPPED
        started_at: Wall-clock time of the last start (diagnostic only)
        stopped_at: Wall-clock time of the last stop (diagnostic only)

    Restarting a stopped stopwatch keeps accumulating; durations always come
    from ``clock``, never from the wall-clock timestamps.
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
        self.state = StopwatchState.NOT_STARTED
        self.started_at: datetime | None = None
        self.stopped_at: datetime | None = None
        self._accumulated: int = 0
        self._mark: int = 0

    @property
    def is_running(self) -> bool:
        return self.state is StopwatchState.RUNNING

    def start(self) -> None:
        assert not self.is_running, "Stopwatch is already running"
        self._mark = self.clock()
        self.started_at = datetime.now()
        self.state = StopwatchState.RUNNING

    def stop(self) -> None:
        assert self.is_running, "Stopwatch is not running"
        delta = self.clock() - self._mark
        assert delta >= 0, (
            f"Elapsed ticks cannot be negative: {delta}. "
            f"Clock went backwards or timing bug."
        )
        self._accumulated += delta
        self.stopped_at = datetime.now()
        self.state = StopwatchState.STOPPED

    @property
    def ticks(self) -> int:
        """Accumulated ticks, including the in-flight interval while running."""
        if self.is_running:
            return self._accumulated + (self.clock() - self._mark)
        return self._accumulated

    def ticks_to_ms(self, ticks: float) -> float:
        return ticks / (self.frequency / 1000)


def _split_path(path: str) -> list[str]:
    assert path, "Timing path must be non-empty"
    segments = path.split(PATH_SEPARATOR)
    assert all(segments), f"Timing path has an empty segment: {path!r}"
    return segments


class TimingNode:
    """One named region of a timing tree.

    The node owns its children; ``parent`` is a weak, non-owning
    back-reference used only to walk ancestors. A node without a name is a
    synthetic root and is exempt from the ordering checks, except that it
    cannot be started twice.

    Args:
        name: Region name, unique among siblings (case-insensitive), or None
            for a synthetic root
        clock: Monotonic tick source, inherited by every descendant
        frequency: Ticks per second of ``clock``

    Example:
        root = TimingNode()
        root.start_at("parse")
        root.start_at("parse/tokenize")
        root.stop_at("parse/tokenize")
        root.stop_at("parse")
        parse = root.find("parse")
        print(parse.ticks_inclusive, parse.ticks_exclusive)
    """

    @beartype
    def __init__(
        self,
        name: str | None = None,
        clock: Callable[[], int] = time.perf_counter_ns,
        frequency: int = NANOSECONDS_PER_SECOND,
    ) -> None:
        assert name is None or name, "Node name must be non-empty (use None for a root)"
        assert name is None or PATH_SEPARATOR not in name, (
            f"Node name cannot contain {PATH_SEPARATOR!r}: {name!r}"
        )
        self.name = name
        self.elapsed = Stopwatch(clock, frequency)
        self.children: list[TimingNode] = []
        self._parent: weakref.ref[TimingNode] | None = None

    def __repr__(self) -> str:
        return (
            f"TimingNode({self.label!r}, state={self.elapsed.state.value}, "
            f"children={len(self.children)})"
        )

    @property
    def parent(self) -> "TimingNode | None":
        if self._parent is None:
            return None
        return self._parent()

    @property
    def is_running(self) -> bool:
        return self.elapsed.is_running

    @property
    def path(self) -> str:
        """Names from the outermost named ancestor down to this node."""
        names = [node.name for node in self._lineage() if node.name is not None]
        return PATH_SEPARATOR.join(reversed(names))

    @property
    def label(self) -> str:
        return self.path or ROOT_LABEL

    @property
    def ticks_inclusive(self) -> int:
        return self.elapsed.ticks

    @property
    def ticks_exclusive(self) -> int:
        """Inclusive ticks minus the inclusive ticks of direct children.

        Clamped at zero. For a node that has been started, a negative figure
        means child timers overlapped or ran outside it, which the ordering
        checks in start() and stop() rule out. A never-started node (usually
        a synthetic root used as a container) simply reports 0.
        """
        exclusive = self.ticks_inclusive - sum(
            child.ticks_inclusive for child in self.children
        )
        if exclusive < 0:
            if self.elapsed.state is StopwatchState.NOT_STARTED:
                return 0
            logger.warning(
                f"Exclusive time of {self.label} is negative ({exclusive} ticks); "
                f"child timers overlapped, clamping to 0"
            )
            return 0
        return exclusive

    def ancestors(self) -> Iterator["TimingNode"]:
        """Yield the parent, grandparent and so on up to the root."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def walk(self) -> Iterator["TimingNode"]:
        """Yield this node and all of its descendants, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def _lineage(self) -> Iterator["TimingNode"]:
        yield self
        yield from self.ancestors()

    def start(self) -> None:
        """Start this node's timer.

        Raises:
            OrderingViolation: The timer is already running, an earlier
                sibling is still running, or a named ancestor is not running.
        """
        if self.is_running:
            raise OrderingViolation(f"Cannot start {self.label}: already running")

        if self.name is not None:
            parent = self.parent
            if parent is not None:
                for sibling in parent.children:
                    if sibling is self:
                        break
                    if sibling.is_running:
                        raise OrderingViolation(
                            f"Cannot start {self.label}: earlier sibling "
                            f"{sibling.label} is still running"
                        )
            for ancestor in self.ancestors():
                if ancestor.name is not None and not ancestor.is_running:
                    raise OrderingViolation(
                        f"Cannot start {self.label}: ancestor {ancestor.label} "
                        f"is {ancestor.elapsed.state.value}"
                    )

        self.elapsed.start()
        logger.debug(f"Started {self.label}")

    def stop(self) -> None:
        """Stop this node's timer.

        Raises:
            OrderingViolation: The timer is not running, or a descendant is
                still running.
        """
        if not self.is_running:
            raise OrderingViolation(
                f"Cannot stop {self.label}: timer is {self.elapsed.state.value}"
            )
        for descendant in self.walk():
            if descendant is not self and descendant.is_running:
                raise OrderingViolation(
                    f"Cannot stop {self.label}: descendant {descendant.label} "
                    f"is still running"
                )

        self.elapsed.stop()
        logger.debug(
            f"Stopped {self.label} "
            f"({self.elapsed.ticks_to_ms(self.ticks_inclusive):.3f} ms total)"
        )

    def _child(self, name: str) -> "TimingNode | None":
        wanted = name.casefold()
        for child in self.children:
            if child.name is not None and child.name.casefold() == wanted:
                return child
        return None

    def _append(self, name: str) -> "TimingNode":
        child = TimingNode(name, self.elapsed.clock, self.elapsed.frequency)
        child._parent = weakref.ref(self)
        self.children.append(child)
        logger.debug(f"Created timing node {child.label}")
        return child

    @beartype
    def find(self, path: str) -> "TimingNode | None":
        """Resolve ``path`` without creating anything.

        Returns:
            The matching node, or None if any segment does not exist.
        """
        node: TimingNode | None = self
        for segment in _split_path(path):
            node = node._child(segment)
            if node is None:
                return None
        return node

    @beartype
    def get_or_create(self, path: str) -> "TimingNode":
        """Resolve a ``/``-delimited path case-insensitively, creating the leaf.

        Only the final segment may be created; every intermediate segment
        must already exist because parents are started before children.

        Args:
            path: Path relative to this node, e.g. "parse/tokenize"

        Returns:
            The existing or newly appended leaf node.

        Raises:
            MissingParent: An intermediate segment does not exist.
        """
        segments = _split_path(path)
        node = self
        for index, segment in enumerate(segments):
            child = node._child(segment)
            if child is None:
                if index < len(segments) - 1:
                    raise MissingParent(
                        f"Cannot resolve {path!r}: {segment!r} does not exist "
                        f"under {node.label}"
                    )
                child = node._append(segment)
            node = child
        return node

    @beartype
    def start_at(self, path: str) -> "TimingNode":
        """Look up or create ``path`` and start it."""
        node = self.get_or_create(path)
        node.start()
        return node

    @beartype
    def stop_at(self, path: str) -> "TimingNode":
        """Stop the node at ``path``.

        Raises:
            OrderingViolation: ``path`` was never started.
        """
        node = self.find(path)
        if node is None:
            raise OrderingViolation(f"Cannot stop {path!r}: it was never started")
        node.stop()
        return node

    @contextmanager
    def region(self, path: str) -> Generator["TimingNode", None, None]:
        """Time the enclosed block as ``path``.

        Usage:
            with root.region("parse"):
                with root.region("parse/tokenize"):
                    tokens = tokenize(text)
        """
        node = self.start_at(path)
        try:
            yield node
        finally:
            node.stop()
