"""Simple operational wind cone for live planning."""

from __future__ import annotations

from typing import Final, Iterable

from scent_planner.geo import destination_point, wind_from_to_deg
from scent_planner.models import (
    DEFAULT_CONE_MINUTES,
    ConeDistanceBand,
    ConeSettings,
    ConeStability,
    GeoPoint,
    LatLng,
)
from scent_planner.units import Kmh, Meters

# Fraction of wind speed that scent effectively travels at.
SCENT_TRAVEL_FRACTION: Final[float] = 0.28
MIN_SCENT_DISTANCE_M: Final[float] = 20.0
MIN_CONE_RADIUS_M: Final[float] = 250.0
CONE_ARC_STEPS: Final[int] = 22

_STABILITY_FACTOR: Final[dict[ConeStability, float]] = {
    ConeStability.LOW: 1.25,
    ConeStability.MEDIUM: 1.0,
    ConeStability.HIGH: 0.75,
}


def stability_factor(stability: ConeStability) -> float:
    return _STABILITY_FACTOR[stability]


def spread_half_deg(settings: ConeSettings) -> float:
    """Half of the total spread, widened for gusty wind and narrowed for steady wind."""

    return settings.spread_deg * stability_factor(settings.stability) / 2.0


def estimate_scent_distance_m(wind_speed_kmh: Kmh | float, minutes: float, stability: ConeStability) -> Meters:
    """Estimate how far scent has moved downwind after some minutes.

    Never less than 20 m so that calm air still yields a usable tick mark.
    """

    base = wind_speed_kmh * 1000.0 * (minutes / 60.0) * SCENT_TRAVEL_FRACTION * stability_factor(stability)
    return Meters(max(MIN_SCENT_DISTANCE_M, base))


def cone_radius_m(wind_speed_kmh: Kmh | float, time_horizon_hours: float) -> Meters:
    return Meters(max(MIN_CONE_RADIUS_M, wind_speed_kmh * 1000.0 * time_horizon_hours * SCENT_TRAVEL_FRACTION))


def sweep_arc(
    apex: LatLng,
    axis_deg: float,
    radius_m: float,
    half_angle_deg: float,
    steps: int,
) -> list[GeoPoint]:
    """Closed fan polygon: apex, steps + 1 arc samples across the axis, apex again."""

    start = axis_deg - half_angle_deg
    width = 2.0 * half_angle_deg
    apex_pt = GeoPoint(lat=apex.lat, lng=apex.lng)

    ring = [apex_pt]
    for i in range(steps + 1):
        ring.append(destination_point(apex, start + (i / steps) * width, radius_m))
    ring.append(apex_pt)
    return ring


def build_cone_polygon(
    source: LatLng,
    wind_from_deg: float,
    wind_speed_kmh: Kmh | float,
    settings: ConeSettings,
) -> list[GeoPoint]:
    """Build the single wedge polygon of the operational cone.

    Returns:
        A ring of 25 points: apex, 23 arc samples, apex.
    """

    return sweep_arc(
        source,
        wind_from_to_deg(wind_from_deg),
        cone_radius_m(wind_speed_kmh, settings.time_horizon_hours),
        spread_half_deg(settings),
        CONE_ARC_STEPS,
    )


def build_cone_distance_bands(
    source: LatLng,
    wind_from_deg: float,
    wind_speed_kmh: Kmh | float,
    settings: ConeSettings,
    minutes_list: Iterable[float] = DEFAULT_CONE_MINUTES,
) -> list[ConeDistanceBand]:
    """Cross-cone tick marks (center, left edge, right edge) at fixed elapsed times."""

    wind_to = wind_from_to_deg(wind_from_deg)
    half = spread_half_deg(settings)

    bands: list[ConeDistanceBand] = []
    for minutes in minutes_list:
        distance_m = estimate_scent_distance_m(wind_speed_kmh, minutes, settings.stability)
        bands.append(
            ConeDistanceBand(
                minutes=minutes,
                distance_m=distance_m,
                center=destination_point(source, wind_to, distance_m),
                left=destination_point(source, wind_to - half, distance_m),
                right=destination_point(source, wind_to + half, distance_m),
            )
        )
    return bands
