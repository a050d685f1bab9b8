"""After-action track analytics: dog path vs laid trail vs predicted cone."""

from __future__ import annotations

import math
from typing import Sequence

from scent_planner.geo import haversine_m, point_in_polygon
from scent_planner.models import GeoPoint, LatLng, PointSample, TrackMetrics
from scent_planner.timeutils import epoch_ms_or_nan

EMPTY_METRICS = TrackMetrics(
    min_separation_m=0.0,
    avg_separation_m=0.0,
    max_separation_m=0.0,
    dog_inside_cone_pct=0.0,
    laid_track_transitions=0,
)


def nearest_separation_m(point: LatLng, track: Sequence[LatLng]) -> float:
    """Distance from point to the closest sample of track (brute force)."""

    best = math.inf
    for other in track:
        d = haversine_m(point, other)
        if d < best:
            best = d
    return best


def count_transitions(track: Sequence[LatLng], ring: Sequence[LatLng]) -> int:
    """Number of inside/outside changes walking the track in order."""

    if not track:
        return 0
    transitions = 0
    prev_inside = point_in_polygon(track[0], ring)
    for p in track[1:]:
        inside = point_in_polygon(p, ring)
        if inside != prev_inside:
            transitions += 1
        prev_inside = inside
    return transitions


def compute_track_metrics(
    laid_track: Sequence[LatLng],
    dog_track: Sequence[LatLng],
    cone: Sequence[LatLng],
) -> TrackMetrics:
    """Compare a dog's recorded path against the laid trail and a cone polygon.

    Args:
        laid_track: Trail as laid, in recording order.
        dog_track: Dog's path, in recording order.
        cone: Closed ring of the predicted scent cone.

    Returns:
        TrackMetrics. All zero when either track is empty.
    """

    if not laid_track or not dog_track:
        return EMPTY_METRICS

    separations = [nearest_separation_m(dog, laid_track) for dog in dog_track]
    inside = sum(1 for p in dog_track if point_in_polygon(p, cone))

    return TrackMetrics(
        min_separation_m=min(separations),
        avg_separation_m=sum(separations) / len(separations),
        max_separation_m=max(separations),
        dog_inside_cone_pct=inside / len(dog_track) * 100.0,
        laid_track_transitions=count_transitions(laid_track, cone),
    )


def nearest_point_for_playback(track: Sequence[PointSample], progress: float) -> GeoPoint | None:
    """Map playback progress in [0, 1] to a track position.

    With at least two parseable timestamps, picks the sample whose time is
    closest to the interpolated time between the first and last timestamp.
    Otherwise falls back to the proportional index.
    """

    if not track:
        return None

    timed: list[tuple[float, PointSample]] = []
    for p in track:
        ms = epoch_ms_or_nan(p.ts)
        if math.isfinite(ms):
            timed.append((ms, p))

    if len(timed) >= 2:
        timed.sort(key=lambda item: item[0])
        start = timed[0][0]
        end = timed[-1][0]
        target = start + progress * (end - start)
        best_ms, best = timed[0]
        best_delta = abs(best_ms - target)
        for ms, p in timed:
            delta = abs(ms - target)
            if delta < best_delta:
                best = p
                best_delta = delta
        return GeoPoint(lat=best.lat, lng=best.lng)

    idx = min(len(track) - 1, max(0, int(math.floor(progress * (len(track) - 1) + 0.5))))
    return GeoPoint(lat=track[idx].lat, lng=track[idx].lng)
