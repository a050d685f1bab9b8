"""Data models shared by the geodesy, cone, envelope and track modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Protocol, TypeVar


class LatLng(Protocol):
    """Anything carrying a latitude/longitude pair in degrees."""

    @property
    def lat(self) -> float: ...

    @property
    def lng(self) -> float: ...


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees (spherical earth, no datum)."""

    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class PointSample:
    """A single recorded track sample.

    Attributes:
        lat: Latitude in decimal degrees.
        lng: Longitude in decimal degrees.
        ts: ISO-8601 timestamp text as recorded. May be missing or unparsable.
        speed_kmh: Speed reported by the recording device, if any.
    """

    lat: float
    lng: float
    ts: str | None = None
    speed_kmh: float | None = None


class ConeStability(StrEnum):
    """Wind steadiness used by the simple operational cone."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Terrain(StrEnum):
    MIXED = "mixed"
    OPEN = "open"
    FOREST = "forest"
    URBAN = "urban"
    SWAMP = "swamp"
    BEACH = "beach"


class AtmosphericStability(StrEnum):
    """Proxy for thermal mixing (solar heating, thermals)."""

    STABLE = "stable"
    NEUTRAL = "neutral"
    CONVECTIVE = "convective"


class CloudCover(StrEnum):
    CLEAR = "clear"
    PARTLY = "partly"
    OVERCAST = "overcast"
    NIGHT = "night"


class Precipitation(StrEnum):
    NONE = "none"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class ConfidenceBand(StrEnum):
    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"


class PoolingSensitivity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


E = TypeVar("E", bound=StrEnum)


def coerce_enum(enum_cls: type[E], value: E | str) -> E:
    """Convert user text to an enum member.

    Raises:
        ValueError: If the value is not one of the enum's values.
    """

    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for candidate in (text, text.lower()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    choices = ", ".join(m.value for m in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}. Expected one of: {choices}")


@dataclass(frozen=True, slots=True)
class ConeSettings:
    """Parameters of the simple operational cone.

    Attributes:
        time_horizon_hours: How far ahead the cone length looks (> 0).
        spread_deg: Total angular spread of the cone, not the half-angle (> 0).
        stability: Wind steadiness; lower stability widens the cone.
    """

    time_horizon_hours: float = 1.0
    spread_deg: float = 40.0
    stability: ConeStability = ConeStability.MEDIUM


@dataclass(frozen=True, slots=True)
class ConeDistanceBand:
    """Cross-cone tick mark at a fixed elapsed time."""

    minutes: float
    distance_m: float
    center: GeoPoint
    left: GeoPoint
    right: GeoPoint


@dataclass(frozen=True, slots=True)
class LabeledPoint:
    label: str
    point: GeoPoint


@dataclass(frozen=True, slots=True)
class TrackMetrics:
    """After-action comparison of a dog track against a laid track and a cone."""

    min_separation_m: float
    avg_separation_m: float
    max_separation_m: float
    dog_inside_cone_pct: float
    laid_track_transitions: int


DEFAULT_CONE_MINUTES: Final[tuple[int, ...]] = (15, 30, 60)
