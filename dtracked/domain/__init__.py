"""Dtracked Domain Layer - Core business models and enums."""

from .models import Coordinate, Find, PositionSample, RouteDraft, RouteRecord, SiteType

__all__ = [
    "Coordinate",
    "Find",
    "PositionSample",
    "RouteDraft",
    "RouteRecord",
    "SiteType",
]
