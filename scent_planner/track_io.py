"""Track and polygon input/output: GPX, CSV and GeoJSON."""

from __future__ import annotations

import csv
import json
import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence
from xml.sax.saxutils import escape

from scent_planner.envelope import EnvelopeOutput
from scent_planner.models import LatLng, PointSample
from scent_planner.timeutils import to_utc_iso

logger = logging.getLogger(__name__)

GPX_CREATOR = "SAR Scent Planner"


@dataclass(frozen=True, slots=True)
class TrackLoadSummary:
    """Quick summary of track parsing."""

    source: str
    rows_total: int
    rows_parsed: int
    rows_skipped: int


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(el: ET.Element, name: str) -> str | None:
    for child in el:
        if _local_name(child.tag) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def _finite_float(text: str | None) -> float | None:
    if text is None:
        return None
    try:
        v = float(text)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def _iter_gpx_points(root: ET.Element, name: str) -> Iterator[PointSample | None]:
    for el in root.iter():
        if _local_name(el.tag) != name:
            continue
        lat = _finite_float(el.get("lat"))
        lng = _finite_float(el.get("lon"))
        if lat is None or lng is None:
            yield None
            continue
        yield PointSample(lat=lat, lng=lng, ts=_child_text(el, "time"))


def _parse_gpx_counted(content: str) -> tuple[list[PointSample], int]:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ValueError(f"Invalid GPX document: {exc}") from exc

    for name in ("trkpt", "rtept"):
        rows = list(_iter_gpx_points(root, name))
        points = [p for p in rows if p is not None]
        if points:
            return points, len(rows) - len(points)
    return [], 0


def parse_gpx(content: str) -> list[PointSample]:
    """Parse GPX text into samples.

    Track points (`trkpt`) are preferred; route points (`rtept`) are used only
    when the document has no usable track points. Points without finite
    lat/lon are skipped.

    Raises:
        ValueError: If the text is not well-formed XML.
    """

    points, _ = _parse_gpx_counted(content)
    return points


def build_gpx(track_name: str, points: Sequence[PointSample]) -> str:
    """Serialize samples as a single-segment GPX 1.1 track."""

    safe_name = track_name.replace("<", "").replace(">", "").strip() or "Track"
    lines = []
    for p in points:
        time = ""
        if p.ts:
            try:
                time = f"<time>{to_utc_iso(p.ts)}</time>"
            except ValueError:
                time = ""
        lines.append(f'<trkpt lat="{p.lat}" lon="{p.lng}">{time}</trkpt>')
    body = "\n      ".join(lines)

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="{GPX_CREATOR}" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>{escape(safe_name)}</name>
    <trkseg>
      {body}
    </trkseg>
  </trk>
</gpx>"""


def _row_value(row: dict[str, str | None], *names: str) -> str | None:
    for name in names:
        v = row.get(name)
        if v is not None and v.strip():
            return v.strip()
    return None


def _load_csv_counted(p: Path) -> tuple[list[PointSample], int, int]:
    rows_total = 0
    parsed: list[PointSample] = []
    with p.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            return [], 0, 0
        fields = {name.strip().lower() for name in reader.fieldnames if name}
        if "lat" not in fields or not fields & {"lng", "lon"}:
            raise ValueError(f"Track CSV needs lat and lng/lon columns. Actual columns: {reader.fieldnames}")

        for raw in reader:
            rows_total += 1
            row = {(k or "").strip().lower(): v for k, v in raw.items()}
            lat = _finite_float(_row_value(row, "lat"))
            lng = _finite_float(_row_value(row, "lng", "lon"))
            if lat is None or lng is None:
                continue
            parsed.append(
                PointSample(
                    lat=lat,
                    lng=lng,
                    ts=_row_value(row, "ts", "time"),
                    speed_kmh=_finite_float(_row_value(row, "speed_kmh")),
                )
            )
    return parsed, rows_total, rows_total - len(parsed)


def load_track(path: str | Path) -> tuple[list[PointSample], TrackLoadSummary]:
    """Load a recorded track from a .gpx or .csv file.

    Args:
        path: Track file.

    Returns:
        (points, summary)

    Raises:
        ValueError: Unsupported suffix, malformed GPX, or CSV without coordinates.
        OSError: If the file cannot be read.
    """

    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".gpx":
        points, skipped = _parse_gpx_counted(p.read_text(encoding="utf-8-sig"))
        total = len(points) + skipped
    elif suffix == ".csv":
        points, total, skipped = _load_csv_counted(p)
    else:
        raise ValueError(f"Unsupported track file {p.name!r}: expected .gpx or .csv")

    summary = TrackLoadSummary(source=str(p), rows_total=total, rows_parsed=len(points), rows_skipped=skipped)
    if summary.rows_skipped > 0:
        logger.warning("%s: skipped %s points without usable coordinates", p.name, summary.rows_skipped)
    return points, summary


def write_gpx(path: str | Path, track_name: str, points: Sequence[PointSample]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(build_gpx(track_name, points), encoding="utf-8")


def _lnglat(points: Sequence[LatLng]) -> list[list[float]]:
    return [[pt.lng, pt.lat] for pt in points]


def cone_to_geojson(ring: Sequence[LatLng], properties: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wrap a cone ring in a single-feature FeatureCollection (lon/lat order)."""

    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"zone": "cone", **(properties or {})},
                "geometry": {"type": "Polygon", "coordinates": [_lnglat(ring)]},
            }
        ],
    }


def envelope_to_geojson(output: EnvelopeOutput) -> dict[str, Any]:
    """Zones as Polygon features (widest first) plus start points as Point features."""

    features: list[dict[str, Any]] = []
    for zone in reversed(output.zones):
        features.append(
            {
                "type": "Feature",
                "properties": {
                    "zone": zone.name,
                    "radius_m": zone.radius_m,
                    "half_angle_deg": zone.half_angle_deg,
                    "confidence_score": output.confidence_score,
                    "confidence_band": output.confidence_band.value,
                },
                "geometry": {"type": "Polygon", "coordinates": [_lnglat(zone.ring)]},
            }
        )
    for sp in output.recommended_start_points:
        features.append(
            {
                "type": "Feature",
                "properties": {"label": sp.label},
                "geometry": {"type": "Point", "coordinates": [sp.point.lng, sp.point.lat]},
            }
        )
    return {"type": "FeatureCollection", "features": features}


def write_geojson(path: str | Path, payload: dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
