"""Wake lock platforms: systemd-inhibit on Linux, and a null platform elsewhere."""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Callable, Optional

from ...core.errors import WakeLockAcquisitionFailed, WakeLockUnsupported

logger = logging.getLogger(__name__)

# Time a fresh inhibitor gets to fail before we treat it as held
STARTUP_GRACE_SECS = 0.2


class InhibitSentinel:
    """A running ``systemd-inhibit`` child. The lock lives as long as the process."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
        self._callbacks: list[Callable[[], None]] = []
        self._released = False
        self._watcher = asyncio.create_task(self._watch())

    @property
    def released(self) -> bool:
        return self._released

    def on_release(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    async def release(self) -> None:
        if self._released:
            return
        if self._process.returncode is None:
            self._process.terminate()
        await self._watcher

    async def _watch(self) -> None:
        returncode = await self._process.wait()
        self._released = True
        logger.debug("systemd-inhibit exited with %s", returncode)
        for cb in self._callbacks:
            try:
                cb()
            except Exception as e:
                logger.error("Wake lock release callback error: %s", e)


class InhibitWakeLockPlatform:
    """Blocks idle and sleep through logind for as long as the lock is held."""

    def __init__(
        self,
        inhibit_path: str = "systemd-inhibit",
        what: str = "idle:sleep",
        why: str = "Route tracking in progress",
    ) -> None:
        self._binary: Optional[str] = shutil.which(inhibit_path)
        self._what = what
        self._why = why

    @property
    def supported(self) -> bool:
        return self._binary is not None

    async def request(self) -> InhibitSentinel:
        if self._binary is None:
            raise WakeLockUnsupported("systemd-inhibit not found")

        process = await asyncio.create_subprocess_exec(
            self._binary,
            f"--what={self._what}",
            "--who=dtracked",
            f"--why={self._why}",
            "--mode=block",
            "sleep",
            "infinity",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            await asyncio.wait_for(process.wait(), timeout=STARTUP_GRACE_SECS)
        except asyncio.TimeoutError:
            return InhibitSentinel(process)

        stderr = b""
        if process.stderr is not None:
            stderr = await process.stderr.read()
        raise WakeLockAcquisitionFailed(
            f"systemd-inhibit exited with {process.returncode}: "
            f"{stderr.decode('utf-8', 'replace').strip()}"
        )


class UnsupportedWakeLockPlatform:
    """For hosts with no way to keep the display awake."""

    @property
    def supported(self) -> bool:
        return False

    async def request(self) -> InhibitSentinel:
        raise WakeLockUnsupported("Wake lock disabled on this host")


def create_platform(backend: str, inhibit_path: str = "systemd-inhibit"):
    """Build the platform named in config (``systemd-inhibit`` or ``none``)."""
    if backend == "systemd-inhibit":
        return InhibitWakeLockPlatform(inhibit_path=inhibit_path)
    if backend == "none":
        return UnsupportedWakeLockPlatform()
    raise ValueError(f"unknown wake lock backend: {backend}")
