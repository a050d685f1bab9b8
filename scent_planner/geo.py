"""Geospatial utilities on a spherical earth (no external dependencies)."""

from __future__ import annotations

import math
import sys
from typing import Final, Sequence

from scent_planner.models import GeoPoint, LatLng

EARTH_RADIUS_M: Final[float] = 6_371_000.0  # mean Earth radius in meters


def normalize_deg(deg: float) -> float:
    """Normalize a bearing into [0, 360)."""

    out = ((deg % 360.0) + 360.0) % 360.0
    # tiny negative inputs round up to exactly 360.0 in floating point
    return 0.0 if out >= 360.0 else out


def wind_from_to_deg(wind_from_deg: float) -> float:
    """Convert a meteorological FROM bearing to the downwind (travel-toward) bearing."""

    return normalize_deg(wind_from_deg + 180.0)


def wrap_lng(lng: float) -> float:
    """Wrap a longitude into (-180, 180]."""

    out = ((lng + 540.0) % 360.0) - 180.0
    return 180.0 if out <= -180.0 else out


def destination_point(origin: LatLng, bearing_deg: float, distance_m: float) -> GeoPoint:
    """Point reached by travelling along a great circle from origin.

    Args:
        origin: Start point.
        bearing_deg: Initial bearing, degrees clockwise from true north.
        distance_m: Distance in meters.

    Returns:
        Destination point with longitude wrapped into (-180, 180].
    """

    br = math.radians(bearing_deg)
    d = distance_m / EARTH_RADIUS_M
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lng)

    sin_lat2 = math.sin(lat1) * math.cos(d) + math.cos(lat1) * math.sin(d) * math.cos(br)
    # rounding can land just outside [-1, 1] near the poles; NaN passes through
    if sin_lat2 > 1.0:
        sin_lat2 = 1.0
    elif sin_lat2 < -1.0:
        sin_lat2 = -1.0
    lat2 = math.asin(sin_lat2)
    lon2 = lon1 + math.atan2(
        math.sin(br) * math.sin(d) * math.cos(lat1),
        math.cos(d) - math.sin(lat1) * math.sin(lat2),
    )
    return GeoPoint(lat=math.degrees(lat2), lng=wrap_lng(math.degrees(lon2)))


def haversine_m(a: LatLng, b: LatLng) -> float:
    """Compute Haversine distance in meters between two lat/lng points."""

    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(1.0 if h > 1.0 else h))


def point_in_polygon(point: LatLng, ring: Sequence[LatLng]) -> bool:
    """Even-odd (ray casting) test of a point against a closed ring.

    The ring may or may not repeat its first vertex at the end; edges are walked
    with a wraparound index so both forms classify the same. Longitude is x and
    latitude is y, treated as planar.

    Note:
        A point lying exactly on an edge has an implementation-defined result.
    """

    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i].lng, ring[i].lat
        xj, yj = ring[j].lng, ring[j].lat
        if (yi > point.lat) != (yj > point.lat):
            denom = yj - yi + sys.float_info.epsilon
            if denom == 0.0:
                # edge one ulp tall; the straddle test already guarantees yi != yj
                denom = yj - yi
            x_cross = (xj - xi) * (point.lat - yi) / denom + xi
            if point.lng < x_cross:
                inside = not inside
        j = i
    return inside


def path_length_m(points: Sequence[LatLng]) -> float:
    """Sum of great-circle legs along an ordered sequence of points."""

    return sum(haversine_m(points[i - 1], points[i]) for i in range(1, len(points)))


def planar_bearing_deg(origin: LatLng, target: LatLng) -> float:
    """Bearing from origin to target treating degrees as a flat grid.

    Good enough for ranking nearby terrain cells against the wind; use a great
    circle bearing for anything longer range.
    """

    dx = target.lng - origin.lng
    dy = target.lat - origin.lat
    return normalize_deg(math.degrees(math.atan2(dx, dy)))


def angle_between_deg(a: float, b: float) -> float:
    """Smallest absolute difference between two bearings, in [0, 180]."""

    delta = abs(normalize_deg(a) - normalize_deg(b))
    return 360.0 - delta if delta > 180.0 else delta
