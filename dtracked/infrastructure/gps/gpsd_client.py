"""Async gpsd client with auto-reconnect, plus a mock walker for development."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import AsyncIterator, Callable, Optional

from ...core.errors import PositionSourceError
from ...domain.models import PositionSample

logger = logging.getLogger(__name__)


@dataclass
class GPSConfig:
    """GPS daemon connection configuration."""

    host: str = "localhost"
    port: int = 2947
    reconnect_delay: float = 5.0
    timeout: float = 10.0
    max_reconnect_attempts: int = 3  # 0 = infinite


@dataclass
class GPSState:
    """Internal GPS state tracking."""

    connected: bool = False
    fix_count: int = 0
    error_count: int = 0
    last_fix: Optional[datetime] = None
    satellites: int = 0


class AsyncGPSClient:
    """
    Async gpsd client with auto-reconnect.

    Features:
    - Non-blocking async connection
    - Automatic reconnection on disconnect, bounded by max_reconnect_attempts
    - Callback-based position updates

    Once the reconnect budget is spent the stream raises PositionSourceError;
    what to do next is up to the consumer.

    Usage:
        client = AsyncGPSClient()

        async for sample in client.stream_positions():
            print(f"Lat: {sample.latitude}, Lon: {sample.longitude}")
    """

    def __init__(self, config: GPSConfig | None = None) -> None:
        self.config = config or GPSConfig()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._running = False
        self._position: Optional[PositionSample] = None
        self._callbacks: list[Callable[[PositionSample], None]] = []
        self._state = GPSState()
        self._reconnect_attempts = 0

    @property
    def position(self) -> Optional[PositionSample]:
        """Get last known position."""
        return self._position

    @property
    def is_connected(self) -> bool:
        """Check if connected to gpsd."""
        return self._state.connected

    @property
    def state(self) -> GPSState:
        """Get internal state for diagnostics."""
        return self._state

    def on_position(self, callback: Callable[[PositionSample], None]) -> None:
        """Register callback for position updates."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[PositionSample], None]) -> None:
        """Remove position callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def connect(self) -> bool:
        """
        Connect to gpsd daemon.

        Returns:
            True if connected successfully, False otherwise.
        """
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.host, self.config.port),
                timeout=self.config.timeout,
            )

            # Enable JSON streaming mode
            self._writer.write(b'?WATCH={"enable":true,"json":true}\n')
            await self._writer.drain()

            self._state.connected = True
            self._reconnect_attempts = 0
            logger.info("Connected to gpsd at %s:%d", self.config.host, self.config.port)
            return True

        except asyncio.TimeoutError:
            logger.warning("GPS connection timeout to %s:%d", self.config.host, self.config.port)
            self._state.error_count += 1
            return False

        except OSError as e:
            logger.warning("GPS connection failed: %s", e)
            self._state.error_count += 1
            return False

    async def disconnect(self) -> None:
        """Disconnect from gpsd gracefully."""
        if self._writer:
            try:
                self._writer.write(b'?WATCH={"enable":false}\n')
                await self._writer.drain()
                self._writer.close()
                await self._writer.wait_closed()
            except OSError as e:
                logger.debug("GPS disconnect error ignored: %s", e)

        self._reader = None
        self._writer = None
        self._state.connected = False

    async def stream_positions(self) -> AsyncIterator[PositionSample]:
        """
        Async generator that yields position samples.

        Handles reconnection until max_reconnect_attempts is reached.

        Raises:
            PositionSourceError: gpsd stayed unreachable
        """
        self._running = True

        while self._running:
            if not self._reader:
                if not await self.connect():
                    self._reconnect_attempts += 1

                    if (
                        self.config.max_reconnect_attempts > 0
                        and self._reconnect_attempts >= self.config.max_reconnect_attempts
                    ):
                        self._running = False
                        raise PositionSourceError(
                            f"gpsd unreachable at {self.config.host}:{self.config.port} "
                            f"after {self._reconnect_attempts} attempt(s)"
                        )

                    await asyncio.sleep(self.config.reconnect_delay)
                    continue

            try:
                line = await asyncio.wait_for(
                    self._reader.readline(),  # type: ignore[union-attr]
                    timeout=self.config.timeout,
                )

                if not line:
                    raise ConnectionError("GPS connection closed by server")

                data = json.loads(line.decode("utf-8"))

                # TPV = Time-Position-Velocity
                if data.get("class") == "TPV":
                    sample = self._parse_tpv(data)
                    if sample:
                        self._position = sample
                        self._state.fix_count += 1
                        self._state.last_fix = datetime.now(UTC)
                        self._notify(sample)
                        yield sample

                elif data.get("class") == "SKY":
                    self._state.satellites = len(data.get("satellites", []))

            except asyncio.TimeoutError:
                logger.debug("GPS read timeout, connection still alive")

            except json.JSONDecodeError as e:
                logger.warning("GPS JSON parse error: %s", e)

            except (ConnectionError, OSError) as e:
                logger.warning("GPS stream error: %s, reconnecting...", e)
                self._state.error_count += 1
                await self.disconnect()
                await asyncio.sleep(self.config.reconnect_delay)

    def _notify(self, sample: PositionSample) -> None:
        for cb in self._callbacks:
            try:
                cb(sample)
            except Exception as e:
                logger.error("GPS callback error: %s", e)

    def _parse_tpv(self, data: dict) -> Optional[PositionSample]:
        """
        Parse TPV (Time-Position-Velocity) message from gpsd.

        Returns:
            PositionSample if valid lat/lon present, None otherwise
        """
        try:
            if "lat" not in data or "lon" not in data:
                return None

            # Mode: 0=unknown, 1=no fix, 2=2D, 3=3D
            mode = data.get("mode", 0)
            fix_quality = max(0, mode - 1)

            epx, epy = data.get("epx"), data.get("epy")
            accuracy = max(epx, epy) if epx is not None and epy is not None else None

            return PositionSample(
                latitude=float(data["lat"]),
                longitude=float(data["lon"]),
                altitude=data.get("alt"),
                speed=data.get("speed"),
                heading=data.get("track"),
                accuracy=accuracy,
                fix_quality=fix_quality,
                satellites=self._state.satellites,
            )

        except (KeyError, ValueError, TypeError) as e:
            logger.error("TPV parse error: %s - data: %s", e, data)
            return None

    async def stop(self) -> None:
        """Stop streaming and disconnect."""
        self._running = False
        await self.disconnect()


class MockGPSClient(AsyncGPSClient):
    """
    Mock GPS client for testing and simulation.

    Walks a circle around the start point, one sample per interval.
    """

    def __init__(
        self,
        start_lat: float = 41.0082,
        start_lon: float = 28.9784,
        interval: float = 1.0,
        speed_mps: float = 1.0,
    ) -> None:
        super().__init__()
        self._start_lat = start_lat
        self._start_lon = start_lon
        self._interval = interval
        self._speed = speed_mps
        self._step = 0

    async def connect(self) -> bool:
        """Mock always connects."""
        self._state.connected = True
        logger.info("Mock GPS connected (simulated)")
        return True

    async def stream_positions(self) -> AsyncIterator[PositionSample]:
        """Generate fake positions in a walking pattern."""
        self._running = True
        await self.connect()

        while self._running:
            angle = math.radians(self._step * 5)
            radius = 0.001  # ~111 meters

            sample = PositionSample(
                latitude=self._start_lat + radius * math.sin(angle),
                longitude=self._start_lon + radius * math.cos(angle),
                altitude=50.0,
                speed=self._speed,
                heading=float(self._step * 5 % 360),
                accuracy=5.0,
                satellites=8,
                fix_quality=2,
            )

            self._position = sample
            self._step += 1
            self._notify(sample)

            yield sample
            await asyncio.sleep(self._interval)

    async def stop(self) -> None:
        self._running = False
        self._state.connected = False
