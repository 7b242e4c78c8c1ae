"""Path accumulator - the ordered, append-only sample buffer of a tracking session."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Callable, Optional

from ..core.errors import InvalidStateError, NotTrackingError
from ..domain.models import Coordinate

logger = logging.getLogger(__name__)

Path = tuple[Coordinate, ...]
PathObserver = Callable[[Path], None]


class PathAccumulator:
    """
    Collects coordinates while a session is active.

    One session at a time: ``start()`` while tracking is rejected rather than
    queued. Samples are appended in delivery order and never reordered or
    deduplicated. Observers receive a snapshot after every append.
    """

    def __init__(self) -> None:
        self._tracking = False
        self._path: list[Coordinate] = []
        self._started_at: Optional[datetime] = None
        self._observers: list[PathObserver] = []

    @property
    def tracking(self) -> bool:
        return self._tracking

    @property
    def path(self) -> Path:
        return tuple(self._path)

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    def __len__(self) -> int:
        return len(self._path)

    def add_observer(self, observer: PathObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: PathObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def start(self) -> None:
        """Begin a new session with an empty path."""
        if self._tracking:
            raise InvalidStateError("Tracking is already active")
        self._path.clear()
        self._tracking = True
        self._started_at = datetime.now(UTC)
        logger.debug("Path accumulator started")

    def record_sample(self, coordinate: Coordinate) -> None:
        """
        Append a coordinate to the active path.

        Raises:
            NotTrackingError: no session is active
        """
        if not self._tracking:
            raise NotTrackingError("Cannot record a sample while not tracking")
        self._path.append(coordinate)

        snapshot = self.path
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as e:
                logger.error("Path observer error: %s", e)

    def stop(self) -> Path:
        """
        End the session and return the recorded path.

        The returned tuple stays valid after the next ``start()``.
        """
        if not self._tracking:
            raise InvalidStateError("Tracking is not active")
        self._tracking = False
        logger.debug("Path accumulator stopped with %d point(s)", len(self._path))
        return self.path
