"""Route tracking core - accumulator, reminder scheduler, finalizer and session."""

from .accumulator import PathAccumulator
from .finalizer import finalize
from .prompt import ConsolePromptSurface
from .reminder import (
    Idle,
    Prompting,
    PromptSurface,
    ReminderResponse,
    ReminderScheduler,
    ReminderState,
    Stopped,
    Waiting,
)
from .session import PositionSource, StopReason, TrackingSession

__all__ = [
    "ConsolePromptSurface",
    "Idle",
    "PathAccumulator",
    "PositionSource",
    "Prompting",
    "PromptSurface",
    "ReminderResponse",
    "ReminderScheduler",
    "ReminderState",
    "StopReason",
    "Stopped",
    "TrackingSession",
    "Waiting",
    "finalize",
]
