"""
Stuck-Tracking Reminder Scheduler
=================================

Asks the user whether they are still tracking once the session has run for a
check interval (an hour by default), then re-asks once per prompt interval.
After ``max_prompts`` unanswered prompts the session is stopped on the user's
behalf. Answering "continue" restarts the hourly countdown.

States::

    Idle -> Waiting(due_at) -> Prompting(count) -> Stopped
                 ^                   |
                 +---- continue -----+

Exactly one timer is outstanding at any time; it lives in ``_timer`` and is
cancelled on every transition. Callbacks that arrive after the scheduler
has stopped, or that belong to an earlier session, are ignored.

Usage:
    scheduler = ReminderScheduler(
        prompt=ConsolePromptSurface(console),
        stop_action=session.request_stop,
        is_tracking=lambda: accumulator.tracking,
    )
    scheduler.start()
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, TypeAlias, Union

from ..core.events import EventBus, EventType

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL = 3600.0
DEFAULT_PROMPT_INTERVAL = 60.0
DEFAULT_MAX_PROMPTS = 5
DEFAULT_MESSAGE = "Are you still tracking your route?"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory: TypeAlias = Callable[[float, Callable[[], None]], TimerHandle]
Clock: TypeAlias = Callable[[], float]


def asyncio_timer(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Default timer factory: ``loop.call_later`` on the running loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class PromptSurface(Protocol):
    """Shows a continue/stop question. A response may never arrive."""

    def show(
        self,
        message: str,
        on_continue: Callable[[], None],
        on_stop: Callable[[], None],
    ) -> None: ...


class ReminderResponse(str, Enum):
    CONTINUE = "continue"
    STOP = "stop"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Waiting:
    due_at: float


@dataclass(frozen=True)
class Prompting:
    count: int


@dataclass(frozen=True)
class Stopped:
    auto: bool = False


ReminderState: TypeAlias = Union[Idle, Waiting, Prompting, Stopped]


class ReminderScheduler:
    """Timer-driven state machine that reclaims unattended tracking sessions."""

    def __init__(
        self,
        prompt: PromptSurface,
        stop_action: Callable[[], None],
        is_tracking: Callable[[], bool],
        *,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        prompt_interval: float = DEFAULT_PROMPT_INTERVAL,
        max_prompts: int = DEFAULT_MAX_PROMPTS,
        message: str = DEFAULT_MESSAGE,
        timer_factory: TimerFactory | None = None,
        clock: Clock | None = None,
        bus: EventBus | None = None,
    ) -> None:
        if max_prompts < 1:
            raise ValueError("max_prompts must be >= 1")
        self._prompt = prompt
        self._stop_action = stop_action
        self._is_tracking = is_tracking
        self.check_interval = check_interval
        self.prompt_interval = prompt_interval
        self.max_prompts = max_prompts
        self.message = message
        self._timer_factory = timer_factory or asyncio_timer
        self._clock = clock or time.monotonic
        self._bus = bus

        self._state: ReminderState = Idle()
        self._timer: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def state(self) -> ReminderState:
        return self._state

    @property
    def prompt_count(self) -> int:
        return self._state.count if isinstance(self._state, Prompting) else 0

    @property
    def next_check_at(self) -> Optional[float]:
        return self._state.due_at if isinstance(self._state, Waiting) else None

    @property
    def active(self) -> bool:
        return isinstance(self._state, (Waiting, Prompting))

    # Transitions ---------------------------------------------------------

    def start(self) -> None:
        """Begin the hourly countdown for a fresh session, discarding any old timers."""
        self._generation += 1
        self._wait()

    def respond(self, response: ReminderResponse | str) -> None:
        """Handle the user's answer to a prompt. Ignored once stopped."""
        response = ReminderResponse(response)
        if not self.active:
            logger.debug("Ignoring %s response in state %s", response.value, self._state)
            return

        if response is ReminderResponse.CONTINUE:
            logger.info("User confirmed tracking, next check in %.0fs", self.check_interval)
            self._emit(EventType.REMINDER_CONTINUED)
            self._wait()
        else:
            logger.info("User stopped tracking from reminder prompt")
            self._stop(auto=False)
            self._stop_action()

    def notify_tracking_stopped(self) -> None:
        """Tracking ended through another path; stand down without acting."""
        if isinstance(self._state, Stopped):
            return
        self._cancel_timer()
        self._state = Stopped()
        self._emit(EventType.REMINDER_STOPPED)

    def close(self) -> None:
        """Tear down: cancel every outstanding timer. Nothing fires afterwards."""
        self._cancel_timer()
        self._generation += 1
        if not isinstance(self._state, (Idle, Stopped)):
            self._state = Stopped()

    # Internals -----------------------------------------------------------

    def _wait(self) -> None:
        self._cancel_timer()
        due_at = self._clock() + self.check_interval
        self._state = Waiting(due_at=due_at)
        self._timer = self._timer_factory(self.check_interval, self._guard(self._on_check_due))
        self._emit(EventType.REMINDER_SCHEDULED, {"due_at": due_at})

    def _on_check_due(self) -> None:
        self._timer = None
        if not isinstance(self._state, Waiting):
            return
        if not self._is_tracking():
            self.notify_tracking_stopped()
            return
        self._issue_prompt(1)

    def _on_tick(self) -> None:
        self._timer = None
        if not isinstance(self._state, Prompting):
            return
        if not self._is_tracking():
            self.notify_tracking_stopped()
            return
        # The last prompt gets a full interval to be answered before auto-stop
        if self._state.count >= self.max_prompts:
            logger.warning(
                "No response after %d reminder(s), stopping tracking", self._state.count
            )
            self._stop(auto=True)
            self._emit(EventType.REMINDER_AUTO_STOP)
            self._stop_action()
            return
        self._issue_prompt(self._state.count + 1)

    def _issue_prompt(self, count: int) -> None:
        self._state = Prompting(count=count)
        self._timer = self._timer_factory(self.prompt_interval, self._guard(self._on_tick))
        self._emit(EventType.REMINDER_PROMPTED, {"count": count})

        generation = self._generation
        self._prompt.show(
            self.message,
            self._response_callback(generation, ReminderResponse.CONTINUE),
            self._response_callback(generation, ReminderResponse.STOP),
        )

    def _stop(self, auto: bool) -> None:
        self._cancel_timer()
        self._state = Stopped(auto=auto)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _guard(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Wrap a timer callback so it is a no-op if the session has moved on."""
        generation = self._generation

        def fire() -> None:
            if generation != self._generation:
                return
            callback()

        return fire

    def _response_callback(
        self, generation: int, response: ReminderResponse
    ) -> Callable[[], None]:
        def answer() -> None:
            if generation != self._generation:
                logger.debug("Ignoring %s response from an earlier session", response.value)
                return
            self.respond(response)

        return answer

    def _emit(self, event_type: EventType, data: dict | None = None) -> None:
        if self._bus is not None:
            self._bus.emit_sync(event_type, data=data, source="reminder")
