"""Wake lock infrastructure - keep the display awake while tracking."""

from .coordinator import (
    WakeLockCoordinator,
    WakeLockPlatform,
    WakeLockSentinel,
    WakeLockState,
)
from .platforms import InhibitWakeLockPlatform, UnsupportedWakeLockPlatform, create_platform

__all__ = [
    "InhibitWakeLockPlatform",
    "UnsupportedWakeLockPlatform",
    "WakeLockCoordinator",
    "WakeLockPlatform",
    "WakeLockSentinel",
    "WakeLockState",
    "create_platform",
]
