"""Dtracked Domain Models - Pydantic models for core entities."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

MAX_IMAGES = 5


class Coordinate(BaseModel):
    """A recorded (latitude, longitude) pair. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)

    @classmethod
    def from_pair(cls, pair: tuple[float, float] | list[float]) -> Coordinate:
        lat, lon = pair
        return cls(latitude=lat, longitude=lon)

    def as_pair(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def __str__(self) -> str:
        return f"{self.latitude:.6f},{self.longitude:.6f}"


class PositionSample(BaseModel):
    """A single fix delivered by a position source."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: float | None = None  # metres above sea level
    speed: float | None = None  # m/s
    heading: float | None = None  # degrees from true north
    accuracy: float | None = None  # metres, horizontal
    satellites: int = 0
    fix_quality: int = 0  # 0=invalid, 1=GPS, 2=DGPS, 3=RTK
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    @property
    def has_fix(self) -> bool:
        """Check if the sample carries a valid fix."""
        return self.fix_quality > 0


class RouteDraft(BaseModel):
    """A finished tracking session, ready to hand to a route store."""

    model_config = ConfigDict(frozen=True)

    start_coordinate: Coordinate
    end_coordinate: Coordinate
    path: tuple[Coordinate, ...]
    distance_km: float = Field(..., ge=0)

    @property
    def point_count(self) -> int:
        return len(self.path)


class RouteRecord(BaseModel):
    """A saved route, as handed to the persistence layer."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    description: str | None = None
    start_latitude: float
    start_longitude: float
    end_latitude: float
    end_longitude: float
    distance_km: float = Field(..., ge=0)
    route_path: list[Coordinate]
    images: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Please provide a name for your route.")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("route_path", mode="before")
    @classmethod
    def _coerce_pairs(cls, value: list) -> list:
        return [Coordinate.from_pair(p) if isinstance(p, (list, tuple)) else p for p in value]

    @field_serializer("route_path")
    def _serialize_path(self, path: list[Coordinate]) -> list[list[float]]:
        return [[c.latitude, c.longitude] for c in path]

    @classmethod
    def from_draft(
        cls,
        draft: RouteDraft,
        name: str,
        description: str | None = None,
        images: list[str] | None = None,
    ) -> RouteRecord:
        return cls(
            name=name,
            description=description,
            start_latitude=draft.start_coordinate.latitude,
            start_longitude=draft.start_coordinate.longitude,
            end_latitude=draft.end_coordinate.latitude,
            end_longitude=draft.end_coordinate.longitude,
            distance_km=draft.distance_km,
            route_path=list(draft.path),
            images=images or [],
        )


class SiteType(str, Enum):
    """Site categories offered when logging a find."""

    HOME = "Home"
    SPORTS_FIELD = "Sports field"
    BEACH = "Beach"
    EVENT_FACILITY = "Event Facility"
    PUBLIC_GROUND = "Public Ground"
    UNKNOWN_HERITAGE = "Unknown Heritage Site"
    KNOWN_HERITAGE = "Known Heritage Site"
    OTHER = "Other"


class Find(BaseModel):
    """A logged point observation."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    description: str | None = None
    site_name: str | None = None
    site_type: str = Field(..., min_length=1)
    image_urls: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Please provide a name for your find.")
        return value

    @field_validator("description", "site_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @classmethod
    def create(
        cls,
        name: str,
        latitude: float,
        longitude: float,
        site_type: SiteType | str,
        custom_site_type: str | None = None,
        description: str | None = None,
        site_name: str | None = None,
        image_urls: list[str] | None = None,
    ) -> Find:
        """
        Build a find the way the logging form does.

        "Other" requires a free-text site type, which is stored in its place.
        """
        try:
            kind = SiteType(site_type)
        except ValueError as exc:
            raise ValueError("Please select a Site Type.") from exc

        if kind is SiteType.OTHER:
            custom = (custom_site_type or "").strip()
            if not custom:
                raise ValueError("Please provide details for the Other Site Type.")
            stored_type = custom
        else:
            stored_type = kind.value

        return cls(
            name=name,
            latitude=latitude,
            longitude=longitude,
            description=description,
            site_name=site_name,
            site_type=stored_type,
            image_urls=image_urls or [],
        )
