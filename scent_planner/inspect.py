"""Inspect a recorded track: time span, sampling, extent and length."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from scent_planner.geo import path_length_m
from scent_planner.models import PointSample
from scent_planner.timeutils import DeltaStats, delta_stats, epoch_ms_or_nan


@dataclass(frozen=True, slots=True)
class TrackSummary:
    """High-level track inspection result."""

    points: int
    timed_points: int
    first_ts_ms: float | None
    last_ts_ms: float | None
    delta: DeltaStats | None
    min_lat: float | None
    max_lat: float | None
    min_lng: float | None
    max_lng: float | None
    length_m: float

    @property
    def duration_s(self) -> float | None:
        if self.first_ts_ms is None or self.last_ts_ms is None:
            return None
        return max(0.0, (self.last_ts_ms - self.first_ts_ms) / 1000.0)


def inspect_track(points: Sequence[PointSample]) -> TrackSummary:
    """Inspect already-loaded samples (kept in recording order for length)."""

    if not points:
        return TrackSummary(
            points=0,
            timed_points=0,
            first_ts_ms=None,
            last_ts_ms=None,
            delta=None,
            min_lat=None,
            max_lat=None,
            min_lng=None,
            max_lng=None,
            length_m=0.0,
        )

    times = sorted(ms for ms in (epoch_ms_or_nan(p.ts) for p in points) if math.isfinite(ms))
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return TrackSummary(
        points=len(points),
        timed_points=len(times),
        first_ts_ms=times[0] if times else None,
        last_ts_ms=times[-1] if times else None,
        delta=delta_stats(times),
        min_lat=min(lats),
        max_lat=max(lats),
        min_lng=min(lngs),
        max_lng=max(lngs),
        length_m=path_length_m(points),
    )
