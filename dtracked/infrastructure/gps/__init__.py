"""GPS infrastructure - distance math and gpsd position sources."""

from .distance import (
    DistanceTracker,
    calculate_bearing,
    distance_km,
    path_distance_km,
)
from .gpsd_client import AsyncGPSClient, GPSConfig, MockGPSClient

__all__ = [
    "AsyncGPSClient",
    "GPSConfig",
    "MockGPSClient",
    "DistanceTracker",
    "calculate_bearing",
    "distance_km",
    "path_distance_km",
]
