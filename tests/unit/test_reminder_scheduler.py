"""Unit tests for the stuck-tracking reminder scheduler.

Timers are driven by a fake clock so hour-long delays run instantly.
"""

import pytest

from dtracked.core.events import EventBus, EventType
from dtracked.tracking.reminder import (
    Idle,
    Prompting,
    ReminderResponse,
    ReminderScheduler,
    Stopped,
    Waiting,
)


class Harness:
    def __init__(self, timers, prompt, **kwargs):
        self.timers = timers
        self.prompt = prompt
        self.tracking = True
        self.stops = 0
        self.bus = EventBus()
        self.scheduler = ReminderScheduler(
            prompt=self.prompt,
            stop_action=self._stop,
            is_tracking=lambda: self.tracking,
            timer_factory=self.timers.call_later,
            clock=self.timers.clock,
            bus=self.bus,
            **kwargs,
        )

    def _stop(self):
        self.stops += 1
        self.tracking = False


@pytest.fixture
def h(fake_timers, recording_prompt):
    return Harness(fake_timers, recording_prompt)


class TestHourlyCheck:
    """Idle -> Waiting -> Prompting."""

    def test_initial_state_idle(self, h):
        assert h.scheduler.state == Idle()
        assert h.scheduler.active is False

    def test_start_schedules_check_one_hour_out(self, h):
        h.scheduler.start()
        assert h.scheduler.state == Waiting(due_at=3600.0)
        assert h.scheduler.next_check_at == 3600.0
        assert len(h.timers.pending) == 1

    def test_no_prompt_before_hour(self, h):
        h.scheduler.start()
        h.timers.advance_to(3599)
        assert h.prompt.shown == []

    def test_first_prompt_at_hour(self, h):
        h.scheduler.start()
        h.timers.advance_to(3600)
        assert h.scheduler.state == Prompting(count=1)
        assert len(h.prompt.shown) == 1
        assert h.prompt.shown[0][0] == "Are you still tracking your route?"

    def test_custom_message(self, fake_timers, recording_prompt):
        h = Harness(fake_timers, recording_prompt, message="Still walking?")
        h.scheduler.start()
        h.timers.advance_to(3600)
        assert h.prompt.shown[0][0] == "Still walking?"

    def test_invalid_max_prompts(self, fake_timers, recording_prompt):
        with pytest.raises(ValueError):
            Harness(fake_timers, recording_prompt, max_prompts=0)


class TestPromptCycle:
    """Per-minute reminders and auto-stop."""

    def test_prompts_each_minute(self, h):
        h.scheduler.start()
        expected = {3600: 1, 3660: 2, 3720: 3, 3780: 4, 3840: 5}
        for t, count in expected.items():
            h.timers.advance_to(t)
            assert h.scheduler.prompt_count == count
            assert len(h.prompt.shown) == count
        assert h.stops == 0

    def test_auto_stop_after_fifth_prompt_goes_unanswered(self, h):
        h.scheduler.start()
        h.timers.advance_to(3840)
        assert h.scheduler.state == Prompting(count=5)

        h.timers.advance_to(3900)
        assert h.scheduler.state == Stopped(auto=True)
        assert h.stops == 1
        assert len(h.prompt.shown) == 5
        assert h.timers.pending == []

    def test_never_more_than_one_timer(self, h):
        h.scheduler.start()
        for t in range(0, 4000, 30):
            h.timers.advance_to(t)
            assert len(h.timers.pending) <= 1

    def test_tracking_stopped_elsewhere_stands_down(self, h):
        h.scheduler.start()
        h.timers.advance_to(3660)
        h.tracking = False
        h.timers.advance_to(3720)
        assert h.scheduler.state == Stopped()
        assert h.stops == 0
        assert h.timers.pending == []

    def test_tracking_stopped_before_hourly_check(self, h):
        h.scheduler.start()
        h.tracking = False
        h.timers.advance_to(3600)
        assert isinstance(h.scheduler.state, Stopped)
        assert h.prompt.shown == []


class TestResponses:
    """User answers to prompts."""

    def test_continue_resets_to_hourly_wait(self, h):
        h.scheduler.start()
        h.timers.advance_to(3720)
        assert h.scheduler.prompt_count == 3

        h.prompt.answer_last("continue")

        assert h.scheduler.state == Waiting(due_at=3720 + 3600)
        assert h.scheduler.prompt_count == 0
        assert len(h.timers.pending) == 1

    def test_continue_while_waiting_restarts_countdown(self, h):
        h.scheduler.start()
        h.timers.advance_to(1000)
        h.scheduler.respond(ReminderResponse.CONTINUE)
        assert h.scheduler.next_check_at == 4600
        h.timers.advance_to(3600)
        assert h.prompt.shown == []

    def test_cycle_restarts_after_continue(self, h):
        h.scheduler.start()
        h.timers.advance_to(3600)
        h.prompt.answer_last("continue")
        h.timers.advance_to(7200)
        assert h.scheduler.state == Prompting(count=1)

    def test_stop_response(self, h):
        h.scheduler.start()
        h.timers.advance_to(3660)
        h.prompt.answer_last("stop")
        assert h.scheduler.state == Stopped(auto=False)
        assert h.stops == 1
        assert h.timers.pending == []

    def test_string_responses_accepted(self, h):
        h.scheduler.start()
        h.scheduler.respond("stop")
        assert h.stops == 1

    def test_response_after_stop_is_ignored(self, h):
        h.scheduler.start()
        h.timers.advance_to(3600)
        h.scheduler.notify_tracking_stopped()

        h.prompt.answer_last("stop")
        h.prompt.answer_last("continue")

        assert h.scheduler.state == Stopped()
        assert h.stops == 0
        assert h.timers.pending == []

    def test_old_prompt_ignored_in_new_session(self, h):
        h.scheduler.start()
        h.timers.advance_to(3600)
        old_prompt = h.prompt.shown[-1]
        h.scheduler.notify_tracking_stopped()

        h.tracking = True
        h.scheduler.start()
        old_prompt[2]()  # stop from the previous session's prompt

        assert isinstance(h.scheduler.state, Waiting)
        assert h.stops == 0


class TestTeardown:
    """Cancellation and restart."""

    def test_close_cancels_everything(self, h):
        h.scheduler.start()
        h.timers.advance_to(3600)
        h.scheduler.close()
        assert h.timers.pending == []
        h.timers.advance_to(10_000)
        assert len(h.prompt.shown) == 1
        assert h.stops == 0

    def test_stale_timer_is_noop(self, h):
        """A timer that fires anyway after close does nothing."""
        h.scheduler.start()
        timer = h.timers.pending[0]
        h.scheduler.close()
        timer.callback()
        assert h.prompt.shown == []

    def test_restart_discards_previous_timers(self, h):
        h.scheduler.start()
        h.timers.advance_to(3660)
        h.scheduler.start()
        assert h.scheduler.state == Waiting(due_at=3660 + 3600)
        assert len(h.timers.pending) == 1

    def test_notify_stopped_twice_is_harmless(self, h):
        h.scheduler.start()
        h.scheduler.notify_tracking_stopped()
        h.scheduler.notify_tracking_stopped()
        assert h.scheduler.state == Stopped()


class TestEvents:
    """Transitions are published on the event bus."""

    @pytest.mark.asyncio
    async def test_auto_stop_events(self, h):
        h.scheduler.start()
        h.timers.advance_to(3900)
        await h.bus.drain()

        assert len(h.bus.get_history(EventType.REMINDER_PROMPTED)) == 5
        assert len(h.bus.get_history(EventType.REMINDER_AUTO_STOP)) == 1
        assert h.bus.get_history(EventType.REMINDER_SCHEDULED)[0].data == {"due_at": 3600.0}
