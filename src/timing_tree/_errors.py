"""Exceptions raised on instrumentation misuse.

All of these signal a bug in the caller's instrumentation, not a transient
condition. They are raised immediately and never recovered from internally.
"""


class TimingTreeError(Exception):
    """Base class for timing tree errors."""


class OrderingViolation(TimingTreeError):
    """A start/stop call broke call-stack ordering.

    Raised when a node starts while an earlier sibling is still running or an
    ancestor is not running, when a node starts twice, or when a node stops
    while one of its descendants is still running.
    """


class MissingParent(TimingTreeError):
    """A path lookup would have to synthesize an intermediate node."""


class StructureMismatch(TimingTreeError):
    """Runs being aggregated do not share the same tree shape."""
