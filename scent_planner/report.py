"""Plain-text training report for after-action review."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Sequence

from scent_planner.envelope import EnvelopeOutput
from scent_planner.models import GeoPoint, TrackMetrics
from scent_planner.units import f_to_c

DISCLAIMER = "Planning/training aid only. Field conditions vary and outputs are estimated."


@dataclass(frozen=True, slots=True)
class WindSnapshot:
    """Wind/weather actually used for the session."""

    wind_speed: float
    wind_speed_unit: str
    wind_from_deg: float
    temperature_f: float | None = None
    rel_humidity_pct: float | None = None
    source: str = "manual"


@dataclass(frozen=True, slots=True)
class SessionInfo:
    name: str
    lkp: GeoPoint
    requested_time: str
    k9_name: str | None = None
    handler_name: str | None = None
    notes: str | None = None


def weather_line(weather: WindSnapshot | None) -> str:
    if weather is None:
        return "Weather unavailable; manual override values used."
    parts = [
        f"Wind {weather.wind_speed:.1f} {weather.wind_speed_unit} FROM {round(weather.wind_from_deg)}deg",
    ]
    if weather.temperature_f is not None:
        parts.append(f"Temp {weather.temperature_f:.1f}F / {f_to_c(weather.temperature_f):.1f}C")
    if weather.rel_humidity_pct is not None:
        parts.append(f"RH {weather.rel_humidity_pct:.0f}%")
    parts.append(f"Source {weather.source}")
    return " | ".join(parts)


def _fmt_score(score: float) -> str:
    return "n/a" if isinstance(score, float) and math.isnan(score) else str(score)


def _section(title: str) -> list[str]:
    return ["", title, "-" * len(title)]


def render_report(
    session: SessionInfo,
    metrics: TrackMetrics,
    weather: WindSnapshot | None = None,
    envelope: EnvelopeOutput | None = None,
    generated_at: datetime | None = None,
) -> str:
    """Render the session, weather, envelope and metrics as a text report."""

    generated = (generated_at or datetime.now(UTC)).isoformat(timespec="seconds")
    lines: list[str] = ["SAR Training Report", f"Generated {generated}"]

    lines += _section("Session")
    lines.append(f"Session: {session.name}")
    lines.append(f"LKP: {session.lkp.lat:.6f}, {session.lkp.lng:.6f}")
    lines.append(f"Requested time: {session.requested_time}")
    lines.append(f"K9: {session.k9_name or 'N/A'}")
    lines.append(f"Handler: {session.handler_name or 'N/A'}")
    if session.notes:
        lines.append(f"Notes: {session.notes}")

    lines += _section("Weather Used")
    lines.append(weather_line(weather))

    if envelope is not None:
        lines += _section("Scent Envelope")
        lines.append(f"Elapsed: {envelope.t_minutes:.1f} min")
        lines.append(
            f"Confidence: {_fmt_score(envelope.confidence_score)} ({envelope.confidence_band.value})"
        )
        lines.append(f"Reset recommended every {envelope.reset_recommendation_minutes} min")
        lines.extend(_start_point_lines(envelope))
        for note in envelope.deployment_notes:
            lines.append(f"* {note}")

    lines += _section("Training Metrics")
    lines.append(f"Min separation: {metrics.min_separation_m:.1f} m")
    lines.append(f"Avg separation: {metrics.avg_separation_m:.1f} m")
    lines.append(f"Max separation: {metrics.max_separation_m:.1f} m")
    lines.append(f"Dog inside cone: {metrics.dog_inside_cone_pct:.1f}%")
    lines.append(f"Track enter/exit count: {metrics.laid_track_transitions}")

    lines.append("")
    lines.append(DISCLAIMER)
    return "\n".join(lines) + "\n"


def _start_point_lines(envelope: EnvelopeOutput) -> Sequence[str]:
    return [
        f"Start: {sp.label} @ {sp.point.lat:.6f}, {sp.point.lng:.6f}" for sp in envelope.recommended_start_points
    ]
