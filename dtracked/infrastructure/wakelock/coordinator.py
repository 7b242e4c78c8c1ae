"""
Wake Lock Coordinator
=====================

Best-effort "keep the display on" while tracking is enabled.

The coordinator is the only owner of the platform handle. Its state moves
between RELEASED, HELD and UNSUPPORTED, driven by exactly three inputs:

- ``set_enabled()`` from the tracking session,
- ``on_visibility_change()`` from the platform's foreground signal,
- the handle's own release callback when the platform revokes it.

Failures never propagate: they become a status, an event and a log line.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from ...core.errors import WakeLockAcquisitionFailed, WakeLockUnsupported
from ...core.events import EventBus, EventType

logger = logging.getLogger(__name__)


class WakeLockSentinel(Protocol):
    """A live platform wake lock."""

    @property
    def released(self) -> bool: ...

    async def release(self) -> None: ...

    def on_release(self, callback: Callable[[], None]) -> None: ...


class WakeLockPlatform(Protocol):
    """Source of wake locks. ``request`` raises on refusal."""

    @property
    def supported(self) -> bool: ...

    async def request(self) -> WakeLockSentinel: ...


class WakeLockState(str, Enum):
    RELEASED = "released"
    HELD = "held"
    UNSUPPORTED = "unsupported"


class WakeLockCoordinator:
    """
    Keeps one wake lock alive while ``enabled`` is true.

    Usage:
        coordinator = WakeLockCoordinator(InhibitWakeLockPlatform(), bus=bus)
        await coordinator.set_enabled(True)
        ...
        await coordinator.on_visibility_change(True)   # app back in foreground
        ...
        await coordinator.close()
    """

    def __init__(self, platform: WakeLockPlatform, bus: EventBus | None = None) -> None:
        self._platform = platform
        self._bus = bus
        self._enabled = False
        self._sentinel: Optional[WakeLockSentinel] = None
        self._inflight: Optional[asyncio.Event] = None
        self._state = WakeLockState.RELEASED if platform.supported else WakeLockState.UNSUPPORTED

    @property
    def is_supported(self) -> bool:
        return self._state is not WakeLockState.UNSUPPORTED

    @property
    def is_active(self) -> bool:
        return self._state is WakeLockState.HELD

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> WakeLockState:
        return self._state

    async def set_enabled(self, enabled: bool) -> WakeLockState:
        """
        Apply the ``enabled`` input. Only transitions trigger work.

        Returns:
            The resulting state; UNSUPPORTED tells the caller tracking
            continues without the screen-on guarantee.
        """
        if enabled == self._enabled:
            return self._state
        self._enabled = enabled

        if enabled:
            await self._acquire()
        else:
            await self._release()
        return self._state

    async def on_visibility_change(self, visible: bool) -> None:
        """Reacquire after the app returns to the foreground, if still wanted."""
        if not visible or not self._enabled:
            return
        if self._sentinel is not None or self._inflight is not None:
            return
        if self._state is WakeLockState.UNSUPPORTED:
            return
        logger.debug("Visibility regained without a wake lock, reacquiring")
        await self._acquire()

    async def close(self) -> None:
        """Release any held lock and stop reacting to inputs."""
        self._enabled = False
        await self._release()

    async def _acquire(self) -> None:
        if not self._platform.supported:
            self._state = WakeLockState.UNSUPPORTED
            logger.warning("Wake lock not supported on this platform")
            self._emit(EventType.WAKE_LOCK_UNSUPPORTED)
            return

        if self._inflight is not None:
            # One request at a time; its result is kept or released on arrival
            await self._inflight.wait()
            return

        inflight = self._inflight = asyncio.Event()
        try:
            sentinel = await self._platform.request()
        except WakeLockUnsupported as e:
            self._state = WakeLockState.UNSUPPORTED
            logger.warning("Wake lock not supported: %s", e)
            self._emit(EventType.WAKE_LOCK_UNSUPPORTED, {"reason": str(e)})
            return
        except (WakeLockAcquisitionFailed, OSError) as e:
            self._state = WakeLockState.RELEASED
            logger.warning("Wake lock request failed: %s", e)
            self._emit(EventType.WAKE_LOCK_FAILED, {"reason": str(e)})
            return
        finally:
            self._inflight = None
            inflight.set()

        if not self._enabled or self._sentinel is not None:
            # Disabled while the request was in flight, or already held
            await sentinel.release()
            return

        self._sentinel = sentinel
        self._state = WakeLockState.HELD
        sentinel.on_release(lambda: self._on_platform_release(sentinel))
        logger.info("Wake lock acquired")
        self._emit(EventType.WAKE_LOCK_ACQUIRED)

    async def _release(self) -> None:
        sentinel = self._sentinel
        self._sentinel = None
        if self._state is WakeLockState.HELD:
            self._state = WakeLockState.RELEASED
        if sentinel is None:
            return
        try:
            if not sentinel.released:
                await sentinel.release()
        except OSError as e:
            logger.debug("Wake lock release error ignored: %s", e)
        logger.info("Wake lock released")
        self._emit(EventType.WAKE_LOCK_RELEASED, {"revoked": False})

    def _on_platform_release(self, sentinel: WakeLockSentinel) -> None:
        if sentinel is not self._sentinel:
            return
        self._sentinel = None
        self._state = WakeLockState.RELEASED
        logger.info("Wake lock revoked by the platform")
        self._emit(EventType.WAKE_LOCK_RELEASED, {"revoked": True})

    def _emit(self, event_type: EventType, data: dict | None = None) -> None:
        if self._bus is not None:
            self._bus.emit_sync(event_type, data=data, source="wake_lock")
