"""Shared test doubles."""

import pytest


class FakeTimer:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeTimers:
    """Manual clock plus a call_later replacement."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def clock(self):
        return self.now

    def call_later(self, delay, callback):
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance_to(self, when):
        while True:
            due = [t for t in self.pending if t.due <= when]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = when


class RecordingPrompt:
    def __init__(self):
        self.shown = []

    def show(self, message, on_continue, on_stop):
        self.shown.append((message, on_continue, on_stop))

    def answer_last(self, choice):
        _, on_continue, on_stop = self.shown[-1]
        (on_continue if choice == "continue" else on_stop)()


@pytest.fixture
def fake_timers():
    return FakeTimers()


@pytest.fixture
def recording_prompt():
    return RecordingPrompt()
