"""
GPS Distance Calculator
=======================

Great-circle distances between coordinates and cumulative path length.
Uses the Haversine formula with a spherical Earth of radius 6371 km.

The path length is the plain sum of segment lengths: no ellipsoid or altitude
correction, so many short noisy segments slightly overstate the true distance.

Usage:
    km = path_distance_km(path)

    tracker = DistanceTracker()
    for sample in samples:
        tracker.update(sample.coordinate)
    print(f"total: {tracker.total_km:.2f}km")
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, TypeAlias, Union

from ...domain.models import Coordinate

EARTH_RADIUS_KM = 6371.0

CoordinateLike: TypeAlias = Union[Coordinate, tuple[float, float]]


def _lat_lon(point: CoordinateLike) -> tuple[float, float]:
    if isinstance(point, Coordinate):
        return point.latitude, point.longitude
    lat, lon = point
    return float(lat), float(lon)


def _haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(a: CoordinateLike, b: CoordinateLike) -> float:
    """
    Great-circle distance between two coordinates.

    Args:
        a: First point, a Coordinate or (lat, lon) in degrees
        b: Second point, a Coordinate or (lat, lon) in degrees

    Returns:
        Distance in kilometers (NaN if either input is NaN)
    """
    lat1, lon1 = _lat_lon(a)
    lat2, lon2 = _lat_lon(b)
    return _haversine_km(lat1, lon1, lat2, lon2)


def path_distance_km(path: Sequence[CoordinateLike]) -> float:
    """Sum of segment distances over consecutive points; 0 for fewer than 2."""
    if len(path) < 2:
        return 0.0

    total = 0.0
    for i in range(len(path) - 1):
        total += distance_km(path[i], path[i + 1])
    return total


def calculate_bearing(a: CoordinateLike, b: CoordinateLike) -> float:
    """
    Calculate bearing from point a to point b.

    Returns:
        Bearing in degrees (0-360, 0=North)
    """
    lat1, lon1 = _lat_lon(a)
    lat2, lon2 = _lat_lon(b)
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlon = math.radians(lon2 - lon1)

    x = math.sin(dlon) * math.cos(lat2_rad)
    y = math.cos(lat1_rad) * math.sin(lat2_rad) - math.sin(lat1_rad) * math.cos(
        lat2_rad
    ) * math.cos(dlon)

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


@dataclass
class DistanceTracker:
    """
    Running total of the distance covered by a growing path.

    Feeding every point of a path gives the same total as
    ``path_distance_km`` without re-walking the path on each sample.
    """

    total_km: float = 0.0
    last: Optional[Coordinate] = None
    points_count: int = 0
    last_bearing: Optional[float] = None

    def update(self, point: Coordinate) -> float:
        """
        Add the next point of the path.

        Returns:
            Length of the new segment in km (0 for the first point)
        """
        self.points_count += 1

        if self.last is None:
            self.last = point
            return 0.0

        segment = distance_km(self.last, point)
        if segment > 0:
            self.last_bearing = calculate_bearing(self.last, point)
        self.total_km += segment
        self.last = point
        return segment

    @property
    def total_meters(self) -> float:
        """Total distance in meters."""
        return self.total_km * 1000.0

    def reset(self) -> None:
        """Reset tracker to initial state."""
        self.total_km = 0.0
        self.last = None
        self.points_count = 0
        self.last_bearing = None

    def to_dict(self) -> dict:
        """Export tracker state as dictionary."""
        return {
            "total_km": self.total_km,
            "total_meters": self.total_meters,
            "points_count": self.points_count,
            "last_bearing": self.last_bearing,
            "last": list(self.last.as_pair()) if self.last else None,
        }
