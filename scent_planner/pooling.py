"""Terrain pooling overlay: rank elevation cells where scent may settle.

Scent tends to drain into low ground and collect downwind of the LKP. Cells are
scored on both and only those above a sensitivity threshold are kept. The
caller supplies the elevation grid; fetching terrain is not done here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final, Sequence

from scent_planner.geo import angle_between_deg, planar_bearing_deg
from scent_planner.models import GeoPoint, LatLng, PoolingSensitivity

POOLING_DISCLAIMER: Final[str] = "Planning/training estimate. Field conditions vary."

LOW_GROUND_WEIGHT: Final[float] = 0.65
DOWNWIND_WEIGHT: Final[float] = 0.35

_THRESHOLD: Final[dict[PoolingSensitivity, float]] = {
    PoolingSensitivity.LOW: 0.72,
    PoolingSensitivity.MEDIUM: 0.58,
    PoolingSensitivity.HIGH: 0.45,
}


@dataclass(frozen=True, slots=True)
class TerrainCell:
    center: GeoPoint
    elevation: float
    polygon: tuple[GeoPoint, ...]


@dataclass(frozen=True, slots=True)
class PoolingCell:
    polygon: tuple[GeoPoint, ...]
    score: float


@dataclass(frozen=True, slots=True)
class PoolingResult:
    cells: tuple[PoolingCell, ...]
    source: str
    generated_at: str
    disclaimer: str = POOLING_DISCLAIMER


def threshold_for_sensitivity(sensitivity: PoolingSensitivity) -> float:
    return _THRESHOLD[sensitivity]


def score_cell(
    cell: TerrainCell,
    avg_elevation: float,
    min_elevation: float,
    max_elevation: float,
    lkp: LatLng,
    wind_to_deg: float,
) -> float:
    """Score in [0, 1]: mostly how low the cell sits, partly how downwind it is."""

    elev_range = max(1.0, max_elevation - min_elevation)
    low_factor = (avg_elevation - cell.elevation + elev_range / 2.0) / elev_range

    delta = angle_between_deg(planar_bearing_deg(lkp, cell.center), wind_to_deg)
    downwind_factor = max(0.0, 1.0 - delta / 90.0)

    return max(0.0, min(1.0, low_factor * LOW_GROUND_WEIGHT + downwind_factor * DOWNWIND_WEIGHT))


def score_pooling_cells(
    cells: Sequence[TerrainCell],
    lkp: LatLng,
    wind_to_deg: float,
    sensitivity: PoolingSensitivity,
    source: str = "caller",
) -> PoolingResult:
    """Keep the cells whose pooling score reaches the sensitivity threshold.

    Args:
        cells: Elevation grid cells around the LKP.
        lkp: Last known position.
        wind_to_deg: Downwind bearing (degrees).
        sensitivity: Higher sensitivity keeps more cells.
        source: Label of the terrain data source, carried into the result.

    Returns:
        PoolingResult with only the kept cells.
    """

    generated_at = datetime.now(UTC).replace(microsecond=0).isoformat()
    elevations = [c.elevation for c in cells if math.isfinite(c.elevation)]
    if not elevations:
        return PoolingResult(cells=(), source=source, generated_at=generated_at)

    lo = min(elevations)
    hi = max(elevations)
    avg = sum(elevations) / len(elevations)
    threshold = threshold_for_sensitivity(sensitivity)

    kept: list[PoolingCell] = []
    for cell in cells:
        if not math.isfinite(cell.elevation):
            continue
        score = score_cell(cell, avg, lo, hi, lkp, wind_to_deg)
        if score >= threshold:
            kept.append(PoolingCell(polygon=cell.polygon, score=score))
    return PoolingResult(cells=tuple(kept), source=source, generated_at=generated_at)


def grid_cells(
    center: LatLng,
    elevations: Sequence[Sequence[float]],
    cell_deg: float,
) -> list[TerrainCell]:
    """Build square cells from a row-major elevation grid centred on a point.

    Row 0 is the northernmost row and column 0 the westernmost column.
    """

    rows = len(elevations)
    cells: list[TerrainCell] = []
    for r, row in enumerate(elevations):
        cols = len(row)
        for c, elevation in enumerate(row):
            lat = center.lat + ((rows - 1) / 2.0 - r) * cell_deg
            lng = center.lng + (c - (cols - 1) / 2.0) * cell_deg
            h = cell_deg / 2.0
            polygon = (
                GeoPoint(lat - h, lng - h),
                GeoPoint(lat - h, lng + h),
                GeoPoint(lat + h, lng + h),
                GeoPoint(lat + h, lng - h),
                GeoPoint(lat - h, lng - h),
            )
            cells.append(TerrainCell(center=GeoPoint(lat, lng), elevation=float(elevation), polygon=polygon))
    return cells
