"""Unit types and conversions (no external dependencies).

The envelope growth formulas are tuned in feet and miles per hour, while
geometry works in meters. Keeping each unit as its own NewType makes the
conversion points explicit without changing any numeric behavior.
"""

from __future__ import annotations

from typing import Final, NewType

Feet = NewType("Feet", float)
Meters = NewType("Meters", float)
Mph = NewType("Mph", float)
Kmh = NewType("Kmh", float)
Mps = NewType("Mps", float)
Fahrenheit = NewType("Fahrenheit", float)
Celsius = NewType("Celsius", float)

METERS_PER_FOOT: Final[float] = 0.3048
MPH_PER_MPS: Final[float] = 2.236936
KMH_PER_MPH: Final[float] = 1.609344


def feet_to_m(ft: Feet | float) -> Meters:
    return Meters(ft * METERS_PER_FOOT)


def mps_to_mph(v: Mps | float) -> Mph:
    return Mph(v * MPH_PER_MPS)


def kmh_to_mph(v: Kmh | float) -> Mph:
    return Mph(v / KMH_PER_MPH)


def mph_to_kmh(v: Mph | float) -> Kmh:
    return Kmh(v * KMH_PER_MPH)


def c_to_f(c: Celsius | float) -> Fahrenheit:
    return Fahrenheit(c * 9.0 / 5.0 + 32.0)


def f_to_c(f: Fahrenheit | float) -> Celsius:
    return Celsius((f - 32.0) * 5.0 / 9.0)


def default_half_angle_deg_from_mph(mph: Mph | float) -> float:
    """Quick-look cone half-angle for a wind speed.

    Light air meanders, so the cone is wide; strong wind holds a tight line.
    """

    if mph < 3:
        return 45.0
    if mph < 10:
        return 25.0
    if mph < 20:
        return 18.0
    return 12.0
