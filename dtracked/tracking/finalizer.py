"""Route finalizer - turns a finished path into a RouteDraft."""

from __future__ import annotations

from collections.abc import Sequence

from ..core.errors import RouteTooShort
from ..domain.models import Coordinate, RouteDraft
from ..infrastructure.gps.distance import path_distance_km

MIN_ROUTE_POINTS = 2


def finalize(path: Sequence[Coordinate]) -> RouteDraft:
    """
    Build the draft for a completed path.

    Raises:
        RouteTooShort: fewer than two points were recorded
    """
    if len(path) < MIN_ROUTE_POINTS:
        raise RouteTooShort(len(path))

    points = tuple(path)
    return RouteDraft(
        start_coordinate=points[0],
        end_coordinate=points[-1],
        path=points,
        distance_km=path_distance_km(points),
    )
