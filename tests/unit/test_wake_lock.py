"""Unit tests for the wake lock coordinator and platforms."""

import asyncio

import pytest

from dtracked.core.errors import WakeLockAcquisitionFailed, WakeLockUnsupported
from dtracked.core.events import EventBus, EventType
from dtracked.infrastructure.wakelock import (
    InhibitWakeLockPlatform,
    UnsupportedWakeLockPlatform,
    WakeLockCoordinator,
    WakeLockState,
    create_platform,
)


class FakeSentinel:
    def __init__(self):
        self.released = False
        self._callbacks = []
        self.release_calls = 0

    def on_release(self, callback):
        self._callbacks.append(callback)

    async def release(self):
        self.release_calls += 1
        self._fire()

    def revoke(self):
        """Simulate the platform dropping the lock on its own."""
        self._fire()

    def _fire(self):
        self.released = True
        for cb in self._callbacks:
            cb()


class FakePlatform:
    def __init__(self, supported=True, fail=False):
        self._supported = supported
        self.fail = fail
        self.requests = 0
        self.sentinels = []

    @property
    def supported(self):
        return self._supported

    async def request(self):
        self.requests += 1
        if not self._supported:
            raise WakeLockUnsupported("no wake lock here")
        if self.fail:
            raise WakeLockAcquisitionFailed("denied")
        sentinel = FakeSentinel()
        self.sentinels.append(sentinel)
        return sentinel


pytestmark = pytest.mark.asyncio


class TestAcquireRelease:
    """Enable/disable transitions."""

    async def test_enable_acquires(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)

        state = await wl.set_enabled(True)

        assert state is WakeLockState.HELD
        assert wl.is_active is True
        assert wl.is_supported is True
        assert platform.requests == 1

    async def test_enable_twice_acquires_once(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)
        await wl.set_enabled(True)
        assert platform.requests == 1

    async def test_disable_releases(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)

        await wl.set_enabled(False)

        assert wl.is_active is False
        assert wl.state is WakeLockState.RELEASED
        assert platform.sentinels[0].release_calls == 1

    async def test_disable_without_lock_is_noop(self):
        wl = WakeLockCoordinator(FakePlatform())
        await wl.set_enabled(False)
        await wl.close()
        assert wl.state is WakeLockState.RELEASED

    async def test_close_releases(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)
        await wl.close()
        assert wl.is_active is False
        assert wl.enabled is False
        assert platform.sentinels[0].released is True


class TestFailures:
    """Unsupported and refused locks are reported, never raised."""

    async def test_unsupported_platform(self):
        bus = EventBus()
        wl = WakeLockCoordinator(FakePlatform(supported=False), bus=bus)

        state = await wl.set_enabled(True)

        assert state is WakeLockState.UNSUPPORTED
        assert wl.is_active is False
        assert wl.is_supported is False
        await bus.drain()
        assert len(bus.get_history(EventType.WAKE_LOCK_UNSUPPORTED)) == 1

    async def test_acquisition_failed(self):
        bus = EventBus()
        platform = FakePlatform(fail=True)
        wl = WakeLockCoordinator(platform, bus=bus)

        state = await wl.set_enabled(True)

        assert state is WakeLockState.RELEASED
        assert wl.is_active is False
        assert wl.is_supported is True
        assert platform.requests == 1
        await bus.drain()
        assert bus.get_history(EventType.WAKE_LOCK_FAILED)[0].data == {"reason": "denied"}

    async def test_request_raising_unsupported(self):
        class Flaky(FakePlatform):
            @property
            def supported(self):
                return True

            async def request(self):
                raise WakeLockUnsupported("gone")

        wl = WakeLockCoordinator(Flaky())
        assert await wl.set_enabled(True) is WakeLockState.UNSUPPORTED


class GatedPlatform(FakePlatform):
    """Holds every request until the test opens the gate."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def request(self):
        await self.gate.wait()
        return await super().request()


class TestInFlightRequests:
    """Enable/disable toggles while the platform is still answering."""

    async def test_reenable_during_request_keeps_one_handle(self):
        platform = GatedPlatform()
        wl = WakeLockCoordinator(platform)

        first = asyncio.create_task(wl.set_enabled(True))
        await asyncio.sleep(0)
        await wl.set_enabled(False)
        second = asyncio.create_task(wl.set_enabled(True))
        await asyncio.sleep(0)
        platform.gate.set()

        assert await first is WakeLockState.HELD
        assert await second is WakeLockState.HELD
        assert platform.requests == 1
        assert [s.released for s in platform.sentinels] == [False]
        assert wl.is_active is True

        await wl.close()
        assert all(s.released for s in platform.sentinels)

    async def test_disable_during_request_releases_late_handle(self):
        platform = GatedPlatform()
        wl = WakeLockCoordinator(platform)

        pending = asyncio.create_task(wl.set_enabled(True))
        await asyncio.sleep(0)
        await wl.set_enabled(False)
        platform.gate.set()
        await pending

        assert wl.is_active is False
        assert platform.sentinels[0].release_calls == 1

    async def test_no_visibility_request_while_one_is_out(self):
        platform = GatedPlatform()
        wl = WakeLockCoordinator(platform)

        pending = asyncio.create_task(wl.set_enabled(True))
        await asyncio.sleep(0)
        await wl.on_visibility_change(True)
        platform.gate.set()
        await pending

        assert len(platform.sentinels) == 1
        assert wl.is_active is True


class TestRevocation:
    """The platform may drop the lock at any time."""

    async def test_revocation_updates_status(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)

        platform.sentinels[0].revoke()

        assert wl.is_active is False
        assert wl.state is WakeLockState.RELEASED

    async def test_revocation_event(self):
        bus = EventBus()
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform, bus=bus)
        await wl.set_enabled(True)
        platform.sentinels[0].revoke()
        await bus.drain()
        released = bus.get_history(EventType.WAKE_LOCK_RELEASED)
        assert released[-1].data == {"revoked": True}


class TestVisibility:
    """Reacquisition when the app returns to the foreground."""

    async def test_reacquire_once_per_regain(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)
        platform.sentinels[0].revoke()

        await wl.on_visibility_change(True)

        assert platform.requests == 2
        assert wl.is_active is True

    async def test_no_reacquire_while_held(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)
        await wl.on_visibility_change(True)
        assert platform.requests == 1

    async def test_no_reacquire_when_disabled(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.on_visibility_change(True)
        assert platform.requests == 0

    async def test_hidden_does_nothing(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)
        platform.sentinels[0].revoke()
        await wl.on_visibility_change(False)
        assert platform.requests == 1

    async def test_failed_regain_is_not_retried(self):
        platform = FakePlatform()
        wl = WakeLockCoordinator(platform)
        await wl.set_enabled(True)
        platform.sentinels[0].revoke()
        platform.fail = True

        await wl.on_visibility_change(True)

        assert platform.requests == 2
        assert wl.is_active is False


class TestPlatforms:
    """Platform selection."""

    async def test_unsupported_platform_raises(self):
        platform = UnsupportedWakeLockPlatform()
        assert platform.supported is False
        with pytest.raises(WakeLockUnsupported):
            await platform.request()

    async def test_missing_inhibit_binary(self):
        platform = InhibitWakeLockPlatform(inhibit_path="definitely-not-a-real-binary")
        assert platform.supported is False
        wl = WakeLockCoordinator(platform)
        assert await wl.set_enabled(True) is WakeLockState.UNSUPPORTED

    async def test_create_platform(self):
        assert isinstance(create_platform("none"), UnsupportedWakeLockPlatform)
        assert isinstance(create_platform("systemd-inhibit"), InhibitWakeLockPlatform)
        with pytest.raises(ValueError):
            create_platform("bogus")
