"""Errors raised by the scheduling engine.

Every error is a business-rule failure for the current request. Nothing here
is transient, so callers surface them instead of retrying.
"""


class SchedulingError(Exception):
    """Base class for scheduling failures."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(SchedulingError):
    """A doctor or appointment id did not resolve."""


class SchedulingConflictError(SchedulingError):
    """The requested interval overlaps an existing scheduled appointment."""


class InvalidStatusTransitionError(SchedulingError):
    """Raised only when strict status transitions are enabled."""


class InvalidTimeRangeError(SchedulingError):
    """Raised only when start >= end rejection is enabled."""
