"""Dtracked error hierarchy.

Every error the tracking core raises derives from :class:`DtrackedError` so
the CLI can turn any of them into an advisory message instead of a traceback.
"""

from __future__ import annotations


class DtrackedError(Exception):
    """Base class for all Dtracked errors."""


class InvalidStateError(DtrackedError):
    """Operation attempted in a state that forbids it."""


class NotTrackingError(InvalidStateError):
    """A position sample arrived while no tracking session is active."""


class RouteTooShort(DtrackedError):
    """Fewer than two points were recorded, so there is nothing to save."""

    def __init__(self, points: int) -> None:
        super().__init__(f"Route too short to save ({points} point(s), need at least 2)")
        self.points = points


class WakeLockUnsupported(DtrackedError):
    """The platform cannot keep the display awake."""


class WakeLockAcquisitionFailed(DtrackedError):
    """The platform refused the wake lock request."""


class PositionSourceError(DtrackedError):
    """The position source reported an error instead of a sample."""
