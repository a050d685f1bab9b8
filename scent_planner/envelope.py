"""Probability-weighted, time-aware scent envelope and confidence estimate.

Given a last known position, the time since it was established, the wind and a
handful of environmental flags, build three nested fan polygons (core, fringe,
residual), score how much usable scent is likely left, and derive start points
and deployment guidance.

Growth formulas are tuned in feet and miles per hour; distances are converted
to meters only when the polygons are built.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Final

from scent_planner.cone import sweep_arc
from scent_planner.geo import destination_point, wind_from_to_deg
from scent_planner.models import (
    AtmosphericStability,
    CloudCover,
    ConfidenceBand,
    GeoPoint,
    LabeledPoint,
    Precipitation,
    Terrain,
    coerce_enum,
)
from scent_planner.timeutils import minutes_between
from scent_planner.units import Fahrenheit, Feet, Meters, Mph, feet_to_m

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE_F: Final[float] = 75.0
DEFAULT_REL_HUMIDITY_PCT: Final[float] = 50.0

# Above this the wind stops adding much to plume length.
WIND_GROWTH_CAP_MPH: Final[float] = 18.0

MIN_CONFIDENCE: Final[float] = 5.0
MAX_CONFIDENCE: Final[float] = 100.0

_TERRAIN_LENGTH_MULT: Final[dict[Terrain, float]] = {
    Terrain.OPEN: 1.10,
    Terrain.FOREST: 0.95,
    Terrain.URBAN: 0.85,
    Terrain.SWAMP: 0.90,
    Terrain.BEACH: 1.00,
    Terrain.MIXED: 1.00,
}

_STABILITY_LENGTH_MULT: Final[dict[AtmosphericStability, float]] = {
    AtmosphericStability.STABLE: 0.90,
    AtmosphericStability.CONVECTIVE: 1.05,
    AtmosphericStability.NEUTRAL: 1.00,
}

_STABILITY_MIX_MULT: Final[dict[AtmosphericStability, float]] = {
    AtmosphericStability.STABLE: 0.85,
    AtmosphericStability.CONVECTIVE: 1.25,
    AtmosphericStability.NEUTRAL: 1.00,
}

_TERRAIN_MIX_MULT: Final[dict[Terrain, float]] = {
    Terrain.URBAN: 1.15,
    Terrain.OPEN: 1.00,
    Terrain.FOREST: 1.00,
    Terrain.SWAMP: 1.00,
    Terrain.BEACH: 1.00,
    Terrain.MIXED: 1.00,
}

_CLOUD_MULT: Final[dict[CloudCover, float]] = {
    CloudCover.CLEAR: 0.85,
    CloudCover.PARTLY: 0.95,
    CloudCover.OVERCAST: 1.05,
    CloudCover.NIGHT: 1.05,
}

_PRECIP_MULT: Final[dict[Precipitation, float]] = {
    Precipitation.HEAVY: 0.75,
    Precipitation.MODERATE: 0.90,
    Precipitation.LIGHT: 0.90,
    Precipitation.NONE: 1.00,
}

RECENT_RAIN_MULT: Final[float] = 0.95

NOTE_POOLING: Final[str] = (
    "Pooling/eddies likely: work LKP, leeward sides, and terrain traps; expect broken scent."
)
NOTE_CONE_STRATEGY: Final[str] = (
    "Cone strategy appropriate: deploy downwind along core axis, bracket fringe edges."
)
NOTE_HIGH_DILUTION: Final[str] = (
    "Higher dilution/variability: use shorter commitments, more frequent resets, multiple start points."
)


@dataclass(frozen=True, slots=True)
class ZoneSpec:
    """Scaling of one nested zone relative to the full plume."""

    name: str
    length_ratio: float
    angle_ratio: float
    arc_points: int


ZONES: Final[tuple[ZoneSpec, ...]] = (
    ZoneSpec("core", 0.55, 0.45, 28),
    ZoneSpec("fringe", 0.85, 0.80, 32),
    ZoneSpec("residual", 1.00, 1.15, 36),
)


@dataclass(frozen=True, slots=True)
class EnvelopeInputs:
    """Fully resolved envelope inputs. Every field is required here.

    Build with `EnvelopeInputs.with_defaults(...)` when some environment
    fields are unknown.
    """

    lkp: GeoPoint
    lkp_time_iso: str
    now_time_iso: str
    wind_from_deg: float
    wind_speed_mph: Mph
    temperature_f: Fahrenheit
    rel_humidity_pct: float
    cloud: CloudCover
    precip: Precipitation
    recent_rain: bool
    terrain: Terrain
    stability: AtmosphericStability

    @classmethod
    def with_defaults(
        cls,
        *,
        lkp: GeoPoint,
        lkp_time_iso: str,
        now_time_iso: str,
        wind_from_deg: float,
        wind_speed_mph: float,
        temperature_f: float | None = None,
        rel_humidity_pct: float | None = None,
        cloud: CloudCover | str | None = None,
        precip: Precipitation | str | None = None,
        recent_rain: bool | None = None,
        terrain: Terrain | str | None = None,
        stability: AtmosphericStability | str | None = None,
    ) -> EnvelopeInputs:
        """Apply defaults to missing environment fields and coerce enum text.

        Raises:
            ValueError: If an enum value is not recognised.
        """

        return cls(
            lkp=lkp,
            lkp_time_iso=lkp_time_iso,
            now_time_iso=now_time_iso,
            wind_from_deg=float(wind_from_deg),
            wind_speed_mph=Mph(float(wind_speed_mph)),
            temperature_f=Fahrenheit(DEFAULT_TEMPERATURE_F if temperature_f is None else float(temperature_f)),
            rel_humidity_pct=DEFAULT_REL_HUMIDITY_PCT if rel_humidity_pct is None else float(rel_humidity_pct),
            cloud=coerce_enum(CloudCover, cloud if cloud is not None else CloudCover.PARTLY),
            precip=coerce_enum(Precipitation, precip if precip is not None else Precipitation.NONE),
            recent_rain=bool(recent_rain) if recent_rain is not None else False,
            terrain=coerce_enum(Terrain, terrain if terrain is not None else Terrain.MIXED),
            stability=coerce_enum(
                AtmosphericStability, stability if stability is not None else AtmosphericStability.NEUTRAL
            ),
        )


@dataclass(frozen=True, slots=True)
class ZoneGeometry:
    """Resolved far radius and half-angle of one zone, with its ring."""

    name: str
    radius_m: Meters
    half_angle_deg: float
    ring: tuple[GeoPoint, ...]


@dataclass(frozen=True, slots=True)
class ConfidenceFactors:
    """Breakdown of the confidence score."""

    tau_minutes: float
    time_score: float
    humidity: float
    temperature: float
    sun: float
    rain: float
    wind: float

    @property
    def environment(self) -> float:
        return self.humidity * self.temperature * self.sun * self.rain * self.wind


@dataclass(frozen=True, slots=True)
class EnvelopeOutput:
    """Result of `compute_scent_envelope`.

    `confidence_score` is an integer in [5, 100] for any valid input; it is NaN
    only when a timestamp could not be parsed.
    """

    t_minutes: float
    length_ft: Feet
    half_angle_deg: float
    axis_deg: float
    zones: tuple[ZoneGeometry, ...]
    factors: ConfidenceFactors
    confidence_score: int | float
    confidence_band: ConfidenceBand
    recommended_start_points: tuple[LabeledPoint, ...]
    deployment_notes: tuple[str, ...]
    reset_recommendation_minutes: int

    def zone(self, name: str) -> ZoneGeometry:
        for z in self.zones:
            if z.name == name:
                return z
        raise KeyError(name)

    @property
    def polygons(self) -> dict[str, list[GeoPoint]]:
        return {z.name: list(z.ring) for z in self.zones}

    def to_dict(self) -> dict[str, Any]:
        """Plain nested dicts/lists for JSON consumers."""

        def pt(p: GeoPoint) -> dict[str, float]:
            return {"lat": p.lat, "lon": p.lng}

        return {
            "t_minutes": self.t_minutes,
            "polygons": {name: [pt(p) for p in ring] for name, ring in self.polygons.items()},
            "confidence_score": self.confidence_score,
            "confidence_band": self.confidence_band.value,
            "recommended_start_points": [
                {"label": sp.label, "point": pt(sp.point)} for sp in self.recommended_start_points
            ],
            "deployment_notes": list(self.deployment_notes),
            "reset_recommendation_minutes": self.reset_recommendation_minutes,
        }


def length_growth_ft(
    t_minutes: float,
    wind_speed_mph: Mph | float,
    terrain: Terrain,
    stability: AtmosphericStability,
) -> Feet:
    """Plume length in feet after t minutes."""

    w_eff = min(wind_speed_mph, WIND_GROWTH_CAP_MPH)
    base_ft = 30.0 + 6.0 * t_minutes
    wind_ft = 120.0 * w_eff * math.log(1.0 + t_minutes / 30.0)
    return Feet((base_ft + wind_ft) * _TERRAIN_LENGTH_MULT[terrain] * _STABILITY_LENGTH_MULT[stability])


def width_growth_ft(t_minutes: float, terrain: Terrain, stability: AtmosphericStability) -> Feet:
    """Half-width of the plume at its far end, in feet."""

    mix = 1.0 * _STABILITY_MIX_MULT[stability] * _TERRAIN_MIX_MULT[terrain]
    return Feet((20.0 + 3.5 * t_minutes + 40.0 * math.sqrt(t_minutes)) * mix)


def half_angle_deg(length_ft: Feet | float, width_ft: Feet | float) -> float:
    return math.degrees(math.atan2(width_ft, max(1.0, length_ft)))


@dataclass(frozen=True, slots=True)
class _Conditions:
    humid: bool
    dry: bool
    hot: bool
    cool: bool
    sunny: bool
    stableish: bool
    windy: bool


def _conditions(temp_f: float, rh: float, cloud: CloudCover, wind_mph: float) -> _Conditions:
    return _Conditions(
        humid=rh > 60,
        dry=rh < 30,
        hot=temp_f > 85,
        cool=temp_f < 60,
        sunny=cloud is CloudCover.CLEAR,
        stableish=cloud in (CloudCover.OVERCAST, CloudCover.NIGHT),
        windy=wind_mph >= 13,
    )


DEFAULT_TAU_MINUTES: Final[float] = 180.0

# Evaluated top to bottom; a later matching rule overrides an earlier one.
# The predicates can overlap, so the order is part of the model.
_TAU_RULES: Final[tuple[tuple[Callable[[_Conditions], bool], float], ...]] = (
    (lambda c: (c.humid or c.cool) and c.stableish and not c.windy, 240.0),
    (lambda c: (c.hot or c.dry or c.sunny) and c.windy, 120.0),
)


def confidence_tau_minutes(temp_f: float, rh: float, cloud: CloudCover, wind_mph: float) -> float:
    """Time constant of scent decay: long when cool/humid/calm, short when hot/dry/windy."""

    cond = _conditions(temp_f, rh, cloud, wind_mph)
    tau = DEFAULT_TAU_MINUTES
    for predicate, value in _TAU_RULES:
        if predicate(cond):
            tau = value
    return tau


def humidity_mult(rh: float) -> float:
    if rh < 30:
        return 0.80
    if rh > 60:
        return 1.10
    return 1.0


def temperature_mult(temp_f: float) -> float:
    if temp_f > 85:
        return 0.85
    if temp_f < 60:
        return 1.05
    return 1.0


def sun_mult(cloud: CloudCover) -> float:
    return _CLOUD_MULT[cloud]


def rain_mult(precip: Precipitation, recent_rain: bool) -> float:
    m = _PRECIP_MULT[precip]
    if precip is Precipitation.NONE and recent_rain:
        m *= RECENT_RAIN_MULT
    return m


def wind_mult(wind_mph: float) -> float:
    if wind_mph <= 3:
        return 0.85
    if 13 <= wind_mph <= 18:
        return 0.90
    if wind_mph > 18:
        return 0.80
    return 1.0


def confidence_band(score: float) -> ConfidenceBand:
    if score >= 70:
        return ConfidenceBand.HIGH
    if score >= 40:
        return ConfidenceBand.MODERATE
    return ConfidenceBand.LOW


def reset_recommendation_minutes(score: float) -> int:
    if score < 40:
        return 30
    if score < 70:
        return 45
    return 60


def _clamp(x: float, lo: float, hi: float) -> float:
    if math.isnan(x):
        return x
    return max(lo, min(hi, x))


def _round_half_up(x: float) -> int | float:
    if math.isnan(x):
        return x
    return int(math.floor(x + 0.5))


def deployment_notes(
    wind_mph: float,
    confidence: float,
    terrain: Terrain,
    precip: Precipitation,
) -> list[str]:
    """Guidance notes. Rules are independent and several may apply."""

    notes: list[str] = []
    if wind_mph <= 3 or terrain in (Terrain.URBAN, Terrain.FOREST):
        notes.append(NOTE_POOLING)
    if 4 <= wind_mph <= 12 and confidence >= 50:
        notes.append(NOTE_CONE_STRATEGY)
    if wind_mph >= 13 or precip is Precipitation.HEAVY:
        notes.append(NOTE_HIGH_DILUTION)
    return notes


def compute_scent_envelope(inputs: EnvelopeInputs) -> EnvelopeOutput:
    """Compute nested scent zones, confidence and guidance for one moment in time.

    Pure and deterministic: no I/O, no shared state.

    Args:
        inputs: Resolved inputs (see `EnvelopeInputs.with_defaults`).

    Returns:
        EnvelopeOutput.
    """

    t = minutes_between(inputs.lkp_time_iso, inputs.now_time_iso)
    if math.isnan(t):
        logger.warning(
            "Unparsable timestamp (lkp=%r, now=%r); envelope will be NaN",
            inputs.lkp_time_iso,
            inputs.now_time_iso,
        )
    else:
        t = max(0.0, t)

    wind = max(0.0, inputs.wind_speed_mph)

    length_ft = length_growth_ft(t, wind, inputs.terrain, inputs.stability)
    width_ft = width_growth_ft(t, inputs.terrain, inputs.stability)
    half_deg = half_angle_deg(length_ft, width_ft)

    apex = GeoPoint(lat=inputs.lkp.lat, lng=inputs.lkp.lng)
    axis = wind_from_to_deg(inputs.wind_from_deg)

    zones: list[ZoneGeometry] = []
    for spec in ZONES:
        radius_m = feet_to_m(spec.length_ratio * length_ft)
        zone_half = half_deg * spec.angle_ratio
        zones.append(
            ZoneGeometry(
                name=spec.name,
                radius_m=radius_m,
                half_angle_deg=zone_half,
                ring=tuple(sweep_arc(apex, axis, radius_m, zone_half, spec.arc_points)),
            )
        )

    tau = confidence_tau_minutes(inputs.temperature_f, inputs.rel_humidity_pct, inputs.cloud, wind)
    factors = ConfidenceFactors(
        tau_minutes=tau,
        time_score=100.0 * math.exp(-t / tau),
        humidity=humidity_mult(inputs.rel_humidity_pct),
        temperature=temperature_mult(inputs.temperature_f),
        sun=sun_mult(inputs.cloud),
        rain=rain_mult(inputs.precip, inputs.recent_rain),
        wind=wind_mult(wind),
    )
    confidence = _clamp(factors.time_score * factors.environment, MIN_CONFIDENCE, MAX_CONFIDENCE)
    logger.debug(
        "envelope t=%.1fmin L=%.1fft half=%.2fdeg tau=%.0f C=%.2f", t, length_ft, half_deg, tau, confidence
    )

    start_points = (
        LabeledPoint("LKP (Immediate)", apex),
        LabeledPoint("Core midline (~35%)", destination_point(apex, axis, feet_to_m(0.35 * length_ft))),
        LabeledPoint("Core far edge (~55%)", destination_point(apex, axis, feet_to_m(0.55 * length_ft))),
    )

    return EnvelopeOutput(
        t_minutes=t,
        length_ft=length_ft,
        half_angle_deg=half_deg,
        zones=tuple(zones),
        factors=factors,
        confidence_score=_round_half_up(confidence),
        confidence_band=confidence_band(confidence),
        recommended_start_points=start_points,
        deployment_notes=tuple(deployment_notes(wind, confidence, inputs.terrain, inputs.precip)),
        reset_recommendation_minutes=reset_recommendation_minutes(confidence),
        axis_deg=axis,
    )
