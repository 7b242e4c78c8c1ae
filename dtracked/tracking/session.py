"""
Tracking Session
================

Wires the tracking core together: a position source feeds the path
accumulator, the reminder scheduler watches for unattended sessions, the wake
lock keeps the display on, and the finalizer turns the result into a
RouteDraft for the route store.

Usage:
    session = TrackingSession(source, prompt, wake_lock=coordinator, store=store, bus=bus)
    await session.start()
    ...
    draft = await session.stop()
    if draft:
        session.save("Morning walk")
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Optional, Protocol

from ..config import TrackingConfig
from ..core.errors import InvalidStateError, NotTrackingError, PositionSourceError, RouteTooShort
from ..core.events import EventBus, EventType
from ..domain.models import PositionSample, RouteDraft, RouteRecord
from ..infrastructure.gps.distance import DistanceTracker
from ..infrastructure.storage import RouteStore
from ..infrastructure.wakelock import WakeLockCoordinator
from .accumulator import Path, PathAccumulator, PathObserver
from .finalizer import finalize
from .reminder import Clock, PromptSurface, ReminderScheduler, Stopped, TimerFactory

logger = logging.getLogger(__name__)


class PositionSource(Protocol):
    def stream_positions(self) -> AsyncIterator[PositionSample]: ...

    async def stop(self) -> None: ...


class StopReason(str, Enum):
    USER = "user"
    REMINDER = "reminder"
    AUTO = "auto"
    POSITION_ERROR = "position_error"


class TrackingSession:
    """One tracker: at most one active session at a time."""

    def __init__(
        self,
        source: PositionSource,
        prompt: PromptSurface,
        *,
        wake_lock: WakeLockCoordinator | None = None,
        store: RouteStore | None = None,
        bus: EventBus | None = None,
        config: TrackingConfig | None = None,
        timer_factory: TimerFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or TrackingConfig()
        self._source = source
        self._wake_lock = wake_lock
        self._store = store
        self._bus = bus

        self.accumulator = PathAccumulator()
        self.distance = DistanceTracker()
        self.scheduler = ReminderScheduler(
            prompt=prompt,
            stop_action=self.request_stop,
            is_tracking=lambda: self.accumulator.tracking,
            check_interval=self.config.check_interval_secs,
            prompt_interval=self.config.prompt_interval_secs,
            max_prompts=self.config.max_prompts,
            message=self.config.prompt_message,
            timer_factory=timer_factory,
            clock=clock,
            bus=bus,
        )
        self.accumulator.add_observer(self._on_path_updated)

        self.pending_draft: Optional[RouteDraft] = None
        self.last_stop_reason: Optional[StopReason] = None
        self._consumer: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None

    @property
    def tracking(self) -> bool:
        return self.accumulator.tracking

    @property
    def path(self) -> Path:
        return self.accumulator.path

    def add_path_observer(self, observer: PathObserver) -> None:
        self.accumulator.add_observer(observer)

    async def start(self) -> None:
        """Start a fresh session: empty path, new reminder countdown, wake lock on."""
        if self.accumulator.tracking:
            raise InvalidStateError("Tracking is already active")

        self.accumulator.start()
        self.distance.reset()
        self.pending_draft = None
        self.last_stop_reason = None
        self.scheduler.start()

        if self._wake_lock is not None:
            await self._wake_lock.set_enabled(True)

        self._consumer = asyncio.create_task(self._consume())
        logger.info("Route tracking started")
        self._emit(EventType.TRACKING_STARTED, {"started_at": self.accumulator.started_at})

    def record(self, sample: PositionSample) -> None:
        """Feed one sample; ignored with a debug line when not tracking."""
        try:
            self.accumulator.record_sample(sample.coordinate)
        except NotTrackingError:
            logger.debug("Dropping sample delivered after tracking stopped")

    async def stop(self, reason: StopReason = StopReason.USER) -> RouteDraft | None:
        """
        End the session and finalize the route.

        Returns:
            The RouteDraft, or None when the route is too short to save.

        Raises:
            InvalidStateError: tracking is not active
        """
        path = self.accumulator.stop()
        self.last_stop_reason = reason
        self.scheduler.notify_tracking_stopped()

        await self._stop_source()
        if self._wake_lock is not None:
            await self._wake_lock.set_enabled(False)

        logger.info("Route tracking stopped (%s) with %d point(s)", reason.value, len(path))
        self._emit(EventType.TRACKING_STOPPED, {"reason": reason.value, "points": len(path)})

        try:
            draft = finalize(path)
        except RouteTooShort as e:
            logger.info("%s", e)
            self._emit(EventType.ROUTE_TOO_SHORT, {"points": e.points})
            return None

        self.pending_draft = draft
        self._emit(EventType.ROUTE_READY, draft)
        return draft

    def request_stop(self, reason: StopReason | None = None) -> None:
        """Stop from a synchronous callback such as a prompt answer or a signal handler."""
        if not self.accumulator.tracking:
            return
        if self._stop_task is not None and not self._stop_task.done():
            logger.debug("Stop already in progress")
            return
        if reason is None:
            state = self.scheduler.state
            reason = StopReason.AUTO if isinstance(state, Stopped) and state.auto else StopReason.REMINDER
        self._stop_task = asyncio.get_running_loop().create_task(self.stop(reason))

    async def wait_stopped(self) -> None:
        """Wait for a stop requested from a callback to finish."""
        if self._stop_task is not None:
            await self._stop_task

    def save(
        self,
        name: str,
        description: str | None = None,
        images: list[str] | None = None,
    ) -> RouteRecord:
        """Hand the pending draft to the route store."""
        if self.pending_draft is None:
            raise InvalidStateError("No finished route to save")
        if self._store is None:
            raise InvalidStateError("No route store configured")

        record = RouteRecord.from_draft(self.pending_draft, name, description, images)
        self._store.add(record)
        self.pending_draft = None
        logger.info("Route %r saved (%.2f km)", record.name, record.distance_km)
        self._emit(EventType.ROUTE_SAVED, record)
        return record

    async def on_visibility_change(self, visible: bool) -> None:
        if self._wake_lock is not None:
            await self._wake_lock.on_visibility_change(visible)

    async def close(self) -> None:
        """Tear everything down without finalizing a route."""
        self.scheduler.close()
        await self._stop_source()
        if self._wake_lock is not None:
            await self._wake_lock.close()

    async def _consume(self) -> None:
        try:
            async for sample in self._source.stream_positions():
                if not self.accumulator.tracking:
                    break
                self.record(sample)
        except PositionSourceError as e:
            logger.error("Position error: %s", e)
            self._emit(EventType.POSITION_ERROR, {"error": str(e)})
            if self.accumulator.tracking:
                await self.stop(StopReason.POSITION_ERROR)

    async def _stop_source(self) -> None:
        consumer = self._consumer
        self._consumer = None
        if consumer is not None and consumer is not asyncio.current_task():
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
        await self._source.stop()

    def _on_path_updated(self, path: Path) -> None:
        self.distance.update(path[-1])
        self._emit(
            EventType.PATH_UPDATED,
            {"points": len(path), "distance_km": self.distance.total_km, "path": path},
        )

    def _emit(self, event_type: EventType, data: object = None) -> None:
        if self._bus is not None:
            self._bus.emit_sync(event_type, data=data, source="session")
