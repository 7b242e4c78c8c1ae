"""Dtracked Core - event bus and error hierarchy."""

from .errors import (
    DtrackedError,
    InvalidStateError,
    NotTrackingError,
    PositionSourceError,
    RouteTooShort,
    WakeLockAcquisitionFailed,
    WakeLockUnsupported,
)
from .events import Event, EventBus, EventType

__all__ = [
    # Errors
    "DtrackedError",
    "InvalidStateError",
    "NotTrackingError",
    "PositionSourceError",
    "RouteTooShort",
    "WakeLockAcquisitionFailed",
    "WakeLockUnsupported",
    # Events
    "Event",
    "EventBus",
    "EventType",
]
