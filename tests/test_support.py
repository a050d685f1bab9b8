from __future__ import annotations

import math
from datetime import UTC, datetime

import pytest

from scent_planner.envelope import EnvelopeInputs, compute_scent_envelope
from scent_planner.inspect import inspect_track
from scent_planner.models import GeoPoint, PointSample, PoolingSensitivity, TrackMetrics
from scent_planner.pooling import grid_cells, score_pooling_cells, threshold_for_sensitivity
from scent_planner.report import DISCLAIMER, SessionInfo, WindSnapshot, render_report, weather_line
from scent_planner.timeutils import delta_stats, epoch_ms_or_nan, format_hhmmss, minutes_between, parse_iso
from scent_planner.units import (
    c_to_f,
    default_half_angle_deg_from_mph,
    f_to_c,
    feet_to_m,
    kmh_to_mph,
    mph_to_kmh,
    mps_to_mph,
)


def test_unit_conversions() -> None:
    assert feet_to_m(100) == pytest.approx(30.48)
    assert mps_to_mph(10) == pytest.approx(22.36936)
    assert kmh_to_mph(mph_to_kmh(12.0)) == pytest.approx(12.0)
    assert mph_to_kmh(10) == pytest.approx(16.09344)
    assert c_to_f(100) == pytest.approx(212.0)
    assert f_to_c(32) == pytest.approx(0.0)


@pytest.mark.parametrize(("mph", "deg"), [(0, 45), (2.9, 45), (3, 25), (9.9, 25), (10, 18), (19.9, 18), (20, 12)])
def test_default_half_angle(mph: float, deg: float) -> None:
    assert default_half_angle_deg_from_mph(mph) == deg


def test_parse_iso_variants() -> None:
    assert parse_iso("2025-06-01T08:00:00Z") == datetime(2025, 6, 1, 8, tzinfo=UTC)
    assert parse_iso("2025-06-01 08:00:00") == datetime(2025, 6, 1, 8, tzinfo=UTC)
    assert parse_iso("2025-06-01T10:00:00+02:00") == datetime(2025, 6, 1, 8, tzinfo=UTC)
    with pytest.raises(ValueError):
        parse_iso("yesterday")


def test_minutes_between() -> None:
    assert minutes_between("2025-06-01T08:00:00Z", "2025-06-01T09:30:00Z") == pytest.approx(90.0)
    assert minutes_between("2025-06-01T09:30:00Z", "2025-06-01T08:00:00Z") == pytest.approx(-90.0)
    assert math.isnan(minutes_between("nope", "2025-06-01T08:00:00Z"))
    assert math.isnan(epoch_ms_or_nan(None))


def test_delta_stats_and_format() -> None:
    stats = delta_stats([0, 1000, 3000, 6000])
    assert stats is not None
    assert (stats.count, stats.min_s, stats.median_s, stats.max_s) == (3, 1.0, 2.0, 3.0)
    assert delta_stats([5]) is None
    assert format_hhmmss(3725) == "01:02:05"
    assert format_hhmmss(-5) == "00:00:00"


def test_inspect_track() -> None:
    pts = [
        PointSample(0.0, 0.0, ts="2025-06-01T08:00:10Z"),
        PointSample(0.0, 0.001, ts="2025-06-01T08:00:00Z"),
        PointSample(0.001, 0.001),
    ]
    s = inspect_track(pts)
    assert s.points == 3
    assert s.timed_points == 2
    assert s.duration_s == pytest.approx(10.0)
    assert s.delta is not None and s.delta.count == 1
    assert (s.min_lat, s.max_lat, s.min_lng, s.max_lng) == (0.0, 0.001, 0.0, 0.001)
    assert s.length_m == pytest.approx(2 * 6_371_000.0 * math.pi / 180.0 / 1000.0, rel=1e-6)


def test_inspect_empty_track() -> None:
    s = inspect_track([])
    assert s.points == 0
    assert s.duration_s is None
    assert s.length_m == 0.0


def test_pooling_keeps_low_downwind_cell() -> None:
    center = GeoPoint(0.0, 0.0)
    cells = grid_cells(center, [[10, 10, 10], [10, 10, 0], [10, 10, 10]], 0.01)
    assert len(cells) == 9
    assert cells[0].center == GeoPoint(0.01, -0.01)
    assert cells[5].center == GeoPoint(0.0, 0.01)
    assert cells[5].polygon[0] == cells[5].polygon[-1]

    # wind from the west: downwind is east, where the low cell sits
    result = score_pooling_cells(cells, center, 90.0, PoolingSensitivity.MEDIUM, source="test-grid")
    assert len(result.cells) == 1
    assert result.cells[0].score == pytest.approx(1.0)
    assert result.cells[0].polygon == cells[5].polygon
    assert result.source == "test-grid"

    # wind from the east: the low cell is upwind and loses its downwind bonus
    upwind = score_pooling_cells(cells, center, 270.0, PoolingSensitivity.LOW)
    assert len(upwind.cells) == 1
    assert upwind.cells[0].score == pytest.approx((80 / 9 + 5) / 10 * 0.65)


def test_pooling_thresholds_and_degenerate_input() -> None:
    assert threshold_for_sensitivity(PoolingSensitivity.LOW) == 0.72
    assert threshold_for_sensitivity(PoolingSensitivity.MEDIUM) == 0.58
    assert threshold_for_sensitivity(PoolingSensitivity.HIGH) == 0.45

    center = GeoPoint(0.0, 0.0)
    assert score_pooling_cells([], center, 0.0, PoolingSensitivity.HIGH).cells == ()
    nan_cells = grid_cells(center, [[float("nan")]], 0.01)
    assert score_pooling_cells(nan_cells, center, 0.0, PoolingSensitivity.HIGH).cells == ()


def test_report_contents() -> None:
    t0 = datetime(2025, 6, 1, 8, tzinfo=UTC)
    envelope = compute_scent_envelope(
        EnvelopeInputs.with_defaults(
            lkp=GeoPoint(39.5, -104.99),
            lkp_time_iso=t0.isoformat(),
            now_time_iso=t0.replace(minute=20).isoformat(),
            wind_from_deg=270,
            wind_speed_mph=8,
        )
    )
    metrics = TrackMetrics(
        min_separation_m=1.234,
        avg_separation_m=12.0,
        max_separation_m=40.06,
        dog_inside_cone_pct=75.0,
        laid_track_transitions=2,
    )
    text = render_report(
        SessionInfo(name="Creek run", lkp=GeoPoint(39.5, -104.99), requested_time=t0.isoformat(), k9_name="Scout"),
        metrics,
        weather=WindSnapshot(wind_speed=12.9, wind_speed_unit="km/h", wind_from_deg=270.4),
        envelope=envelope,
        generated_at=t0,
    )
    assert "Session: Creek run" in text
    assert "K9: Scout" in text
    assert "Handler: N/A" in text
    assert "Wind 12.9 km/h FROM 270deg" in text
    assert f"Confidence: {envelope.confidence_score} ({envelope.confidence_band.value})" in text
    assert "Start: LKP (Immediate) @ 39.500000, -104.990000" in text
    assert "Min separation: 1.2 m" in text
    assert "Max separation: 40.1 m" in text
    assert "Dog inside cone: 75.0%" in text
    assert "Track enter/exit count: 2" in text
    assert text.rstrip().endswith(DISCLAIMER)


def test_weather_line_without_weather() -> None:
    assert weather_line(None) == "Weather unavailable; manual override values used."
