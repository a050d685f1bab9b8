from __future__ import annotations

import json
from pathlib import Path

import pytest

from scent_planner.cli import main
from scent_planner.models import PointSample
from scent_planner.track_io import write_gpx

ENVELOPE_ARGS = [
    "envelope",
    "--lat", "39.5",
    "--lng", "-104.99",
    "--wind-from", "270",
    "--wind-mph", "10",
    "--lkp-time", "2025-06-01T08:00:00Z",
    "--now", "2025-06-01T09:00:00Z",
]


def _write_tracks(tmp_path: Path) -> tuple[Path, Path]:
    laid = tmp_path / "laid.gpx"
    dog = tmp_path / "dog.gpx"
    write_gpx(
        laid,
        "laid",
        [
            PointSample(39.5, -104.9895, ts="2025-06-01T08:00:00Z"),
            PointSample(39.5, -104.988, ts="2025-06-01T08:01:00Z"),
        ],
    )
    write_gpx(
        dog,
        "dog",
        [
            PointSample(39.5001, -104.99, ts="2025-06-01T08:30:00Z"),
            PointSample(39.5001, -104.988, ts="2025-06-01T08:31:00Z"),
            PointSample(39.51, -104.987, ts="2025-06-01T08:32:00Z"),
        ],
    )
    return laid, dog


def test_envelope_command(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    out_path = tmp_path / "env.geojson"
    assert main([*ENVELOPE_ARGS, "--geojson", str(out_path)]) == 0
    out = capsys.readouterr().out
    assert "### 包络" in out
    assert "score=68, band=Moderate" in out
    assert "reset=45min" in out
    assert "LKP (Immediate): 39.500000, -104.990000" in out
    assert out_path.exists()
    assert len(json.loads(out_path.read_text(encoding="utf-8"))["features"]) == 6


def test_envelope_command_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*ENVELOPE_ARGS, "--json"]) == 0
    out = capsys.readouterr().out
    payload = json.loads(out[out.index("{"):])
    assert payload["confidence_score"] == 68
    assert set(payload["polygons"]) == {"core", "fringe", "residual"}


def test_envelope_requires_lkp_time(capsys: pytest.CaptureFixture[str]) -> None:
    args = ["envelope", "--lat", "39.5", "--lng", "-104.99", "--wind-from", "270", "--wind-mph", "10"]
    assert main(args) == 1
    assert "--lkp-time" in capsys.readouterr().err


def test_envelope_rejects_bad_choice() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([*ENVELOPE_ARGS, "--terrain", "desert"])
    assert excinfo.value.code == 2


def test_envelope_accepts_swamp_terrain(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*ENVELOPE_ARGS, "--terrain", "swamp"]) == 0
    assert "### 包络" in capsys.readouterr().out


def test_cone_command(capsys: pytest.CaptureFixture[str]) -> None:
    args = ["cone", "--lat", "39.5", "--lng", "-104.99", "--wind-from", "270", "--wind-kmh", "10", "--minutes", "60"]
    assert main(args) == 0
    out = capsys.readouterr().out
    assert "downwind=90deg" in out
    assert "ring=25" in out
    assert "60min: 2800m" in out


def test_metrics_command_with_report(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    laid, dog = _write_tracks(tmp_path)
    report = tmp_path / "report.txt"
    args = [
        "metrics",
        "--laid", str(laid),
        "--dog", str(dog),
        "--lat", "39.5",
        "--lng", "-104.99",
        "--wind-from", "270",
        "--wind-kmh", "10",
        "--report", str(report),
        "--k9", "Scout",
        "--json",
    ]
    assert main(args) == 0
    out = capsys.readouterr().out
    assert "laid_points=2, dog_points=3, zone=cone" in out
    assert '"laid_track_transitions": 0' in out
    text = report.read_text(encoding="utf-8")
    assert "K9: Scout" in text
    assert "Training Metrics" in text


def test_metrics_command_against_envelope_zone(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    laid, dog = _write_tracks(tmp_path)
    base = [
        "metrics",
        "--laid", str(laid),
        "--dog", str(dog),
        "--lat", "39.5",
        "--lng", "-104.99",
        "--wind-from", "270",
        "--wind-kmh", "10",
        "--zone", "residual",
    ]
    assert main(base) == 1
    assert "--lkp-time" in capsys.readouterr().err

    assert main([*base, "--lkp-time", "2025-06-01T08:00:00Z", "--now", "2025-06-01T08:30:00Z"]) == 0
    assert "zone=residual" in capsys.readouterr().out


def test_metrics_missing_file(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    args = [
        "metrics",
        "--laid", str(tmp_path / "missing.gpx"),
        "--dog", str(tmp_path / "missing.gpx"),
        "--lat", "0",
        "--lng", "0",
        "--wind-from", "0",
        "--wind-kmh", "5",
    ]
    assert main(args) == 1
    assert "错误" in capsys.readouterr().err


def test_inspect_track_command(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    _, dog = _write_tracks(tmp_path)
    assert main(["inspect-track", "--track", str(dog)]) == 0
    out = capsys.readouterr().out
    assert "total=3, parsed=3, skipped=0, timed=3" in out
    assert "00:02:00" in out


def test_playback_command(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    _, dog = _write_tracks(tmp_path)
    assert main(["playback", "--track", str(dog), "--progress", "1.0"]) == 0
    assert capsys.readouterr().out.strip() == "39.510000, -104.987000"


def test_pooling_command(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    grid = tmp_path / "grid.json"
    grid.write_text(
        json.dumps(
            {
                "center": {"lat": 0.0, "lng": 0.0},
                "cell_deg": 0.01,
                "elevations": [[10, 10, 10], [10, 10, 0], [10, 10, 10]],
                "source": "survey",
            }
        ),
        encoding="utf-8",
    )
    assert main(["pooling", "--grid", str(grid), "--wind-from", "270"]) == 0
    out = capsys.readouterr().out
    assert "cells=9, kept=1, sensitivity=medium" in out
    assert "0.000000, 0.010000: score=1.00" in out


def test_pooling_command_bad_grid(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    grid = tmp_path / "grid.json"
    grid.write_text(json.dumps({"center": {"lat": 0.0}}), encoding="utf-8")
    assert main(["pooling", "--grid", str(grid), "--wind-from", "270"]) == 1
    assert "elevations" in capsys.readouterr().err


def test_envelope_wind_in_mps_and_temp_in_celsius(capsys: pytest.CaptureFixture[str]) -> None:
    i = ENVELOPE_ARGS.index("--wind-mph")
    mps_args = [*ENVELOPE_ARGS[:i], "--wind-mps", "4.4704", *ENVELOPE_ARGS[i + 2 :]]
    assert main(mps_args) == 0
    assert "score=68, band=Moderate" in capsys.readouterr().out

    assert main([*ENVELOPE_ARGS, "--temp-c", "35"]) == 0
    celsius = capsys.readouterr().out
    assert main([*ENVELOPE_ARGS, "--temp-f", "95"]) == 0
    assert capsys.readouterr().out == celsius


def test_envelope_wind_units_are_exclusive() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([*ENVELOPE_ARGS, "--wind-mps", "4"])
    assert excinfo.value.code == 2


def test_cone_spread_defaults_from_wind(capsys: pytest.CaptureFixture[str]) -> None:
    args = ["cone", "--lat", "39.5", "--lng", "-104.99", "--wind-from", "270"]
    # 10 km/h is about 6.2 mph: quick-look half-angle 25, so a 50 degree spread
    assert main([*args, "--wind-kmh", "10"]) == 0
    assert "half_spread=25.0deg" in capsys.readouterr().out
    # above 20 mph the quick-look half-angle is 12
    assert main([*args, "--wind-kmh", "40"]) == 0
    assert "half_spread=12.0deg" in capsys.readouterr().out

    assert main([*args, "--wind-kmh", "10", "--spread-deg", "40"]) == 0
    assert "half_spread=20.0deg" in capsys.readouterr().out


def test_metrics_report_weather_in_celsius(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    laid, dog = _write_tracks(tmp_path)
    report = tmp_path / "report.txt"
    args = [
        "metrics",
        "--laid", str(laid),
        "--dog", str(dog),
        "--lat", "39.5",
        "--lng", "-104.99",
        "--wind-from", "270",
        "--wind-kmh", "10",
        "--temp-c", "20",
        "--rh", "40",
        "--report", str(report),
    ]
    assert main(args) == 0
    capsys.readouterr()
    assert "Wind 10.0 km/h FROM 270deg | Temp 68.0F / 20.0C | RH 40%" in report.read_text(encoding="utf-8")


def test_pooling_command_needs_both_coordinates(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    grid = tmp_path / "grid.json"
    payload = {"center": {"lat": 0.0, "lng": 0.0}, "cell_deg": 0.01, "elevations": [[1]]}
    grid.write_text(json.dumps(payload), encoding="utf-8")
    assert main(["pooling", "--grid", str(grid), "--wind-from", "270", "--lat", "0.0"]) == 1
    assert "--lng" in capsys.readouterr().err
