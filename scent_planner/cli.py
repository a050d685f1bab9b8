"""Command-line interface for scent_planner.

Run:
    python -m scent_planner envelope --lat 39.5 --lng -104.99 --lkp-time 2025-06-01T08:00:00Z \
        --wind-from 270 --wind-mph 10
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from scent_planner.cone import build_cone_distance_bands, build_cone_polygon, cone_radius_m, spread_half_deg
from scent_planner.envelope import ZONES, EnvelopeInputs, EnvelopeOutput, compute_scent_envelope
from scent_planner.geo import wind_from_to_deg
from scent_planner.inspect import inspect_track
from scent_planner.metrics import compute_track_metrics, nearest_point_for_playback
from scent_planner.models import (
    DEFAULT_CONE_MINUTES,
    AtmosphericStability,
    CloudCover,
    ConeSettings,
    ConeStability,
    GeoPoint,
    PoolingSensitivity,
    Precipitation,
    Terrain,
    coerce_enum,
)
from scent_planner.pooling import grid_cells, score_pooling_cells
from scent_planner.report import SessionInfo, WindSnapshot, render_report
from scent_planner.timeutils import format_hhmmss, now_iso
from scent_planner.track_io import (
    cone_to_geojson,
    envelope_to_geojson,
    load_track,
    write_geojson,
)
from scent_planner.units import c_to_f, default_half_angle_deg_from_mph, kmh_to_mph, mps_to_mph

logger = logging.getLogger(__name__)


def _envelope_from_args(args: argparse.Namespace, wind_mph: float) -> EnvelopeOutput:
    inputs = EnvelopeInputs.with_defaults(
        lkp=GeoPoint(lat=args.lat, lng=args.lng),
        lkp_time_iso=args.lkp_time,
        now_time_iso=args.now or now_iso(),
        wind_from_deg=args.wind_from,
        wind_speed_mph=wind_mph,
        temperature_f=_temperature_f(args),
        rel_humidity_pct=args.rh,
        cloud=args.cloud,
        precip=args.precip,
        recent_rain=args.recent_rain,
        terrain=args.terrain,
        stability=args.atmo_stability,
    )
    return compute_scent_envelope(inputs)


def _temperature_f(args: argparse.Namespace) -> float | None:
    if args.temp_f is not None:
        return args.temp_f
    if args.temp_c is not None:
        return c_to_f(args.temp_c)
    return None


def _spread_deg(args: argparse.Namespace) -> float:
    """Total cone spread; without --spread-deg, twice the quick-look half-angle for the wind."""

    if args.spread_deg is not None:
        return args.spread_deg
    return 2.0 * default_half_angle_deg_from_mph(kmh_to_mph(args.wind_kmh))


def _cone_settings_from_args(args: argparse.Namespace) -> ConeSettings:
    return ConeSettings(
        time_horizon_hours=args.horizon_hours,
        spread_deg=_spread_deg(args),
        stability=coerce_enum(ConeStability, args.stability),
    )


def _print_envelope(out: EnvelopeOutput) -> None:
    print("### 包络")
    print(f"elapsed={out.t_minutes:.1f}min, length={out.length_ft:.0f}ft, half_angle={out.half_angle_deg:.1f}deg")
    for z in out.zones:
        print(f"{z.name}: radius={z.radius_m:.0f}m, half_angle={z.half_angle_deg:.1f}deg, ring={len(z.ring)}")
    print()

    print("### 置信度")
    f = out.factors
    print(
        f"score={out.confidence_score}, band={out.confidence_band.value}, tau={f.tau_minutes:.0f}min, "
        f"time={f.time_score:.1f}, env={f.environment:.3f}"
    )
    print(f"reset={out.reset_recommendation_minutes}min")
    print()

    print("### 起始点")
    for sp in out.recommended_start_points:
        print(f"{sp.label}: {sp.point.lat:.6f}, {sp.point.lng:.6f}")
    print()

    if out.deployment_notes:
        print("### 部署建议")
        for note in out.deployment_notes:
            print(f"- {note}")
        print()


def _cmd_envelope(args: argparse.Namespace) -> int:
    if not args.lkp_time:
        raise ValueError("envelope 需要 --lkp-time")
    wind_mph = args.wind_mph if args.wind_mph is not None else mps_to_mph(args.wind_mps)
    out = _envelope_from_args(args, wind_mph)
    _print_envelope(out)

    if args.geojson:
        write_geojson(args.geojson, envelope_to_geojson(out))
        print(f"已导出：{args.geojson}")
    if args.json:
        print(json.dumps(out.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _cmd_cone(args: argparse.Namespace) -> int:
    settings = _cone_settings_from_args(args)
    source = GeoPoint(lat=args.lat, lng=args.lng)
    ring = build_cone_polygon(source, args.wind_from, args.wind_kmh, settings)
    bands = build_cone_distance_bands(source, args.wind_from, args.wind_kmh, settings, args.minutes)

    print("### 锥形")
    print(
        f"downwind={wind_from_to_deg(args.wind_from):.0f}deg, half_spread={spread_half_deg(settings):.1f}deg, "
        f"radius={cone_radius_m(args.wind_kmh, settings.time_horizon_hours):.0f}m, ring={len(ring)}"
    )
    print()

    print("### 距离刻度")
    for b in bands:
        print(f"{b.minutes:g}min: {b.distance_m:.0f}m, center={b.center.lat:.6f},{b.center.lng:.6f}")
    print()

    if args.geojson:
        write_geojson(args.geojson, cone_to_geojson(ring, {"stability": settings.stability.value}))
        print(f"已导出：{args.geojson}")
    return 0


def _cmd_metrics(args: argparse.Namespace) -> int:
    laid, _ = load_track(args.laid)
    dog, _ = load_track(args.dog)
    source = GeoPoint(lat=args.lat, lng=args.lng)

    envelope: EnvelopeOutput | None = None
    if args.zone == "cone":
        ring = build_cone_polygon(source, args.wind_from, args.wind_kmh, _cone_settings_from_args(args))
    else:
        if not args.lkp_time:
            raise ValueError(f"--zone {args.zone} 需要 --lkp-time")
        envelope = _envelope_from_args(args, kmh_to_mph(args.wind_kmh))
        ring = list(envelope.zone(args.zone).ring)

    metrics = compute_track_metrics(laid, dog, ring)

    print("### 轨迹指标")
    print(f"laid_points={len(laid)}, dog_points={len(dog)}, zone={args.zone}")
    print(
        f"separation_m: min={metrics.min_separation_m:.1f}, avg={metrics.avg_separation_m:.1f}, "
        f"max={metrics.max_separation_m:.1f}"
    )
    print(f"dog_inside_cone={metrics.dog_inside_cone_pct:.1f}%, laid_transitions={metrics.laid_track_transitions}")
    print()

    if args.json:
        print(json.dumps(asdict(metrics), ensure_ascii=False, indent=2))

    if args.report:
        session = SessionInfo(
            name=args.session_name,
            lkp=source,
            requested_time=args.now or now_iso(),
            k9_name=args.k9,
            handler_name=args.handler,
        )
        weather = WindSnapshot(
            wind_speed=args.wind_kmh,
            wind_speed_unit="km/h",
            wind_from_deg=args.wind_from,
            temperature_f=_temperature_f(args),
            rel_humidity_pct=args.rh,
        )
        text = render_report(session, metrics, weather=weather, envelope=envelope)
        Path(args.report).write_text(text, encoding="utf-8")
        print(f"已导出：{args.report}")
    return 0


def _cmd_inspect_track(args: argparse.Namespace) -> int:
    points, summary = load_track(args.track)
    res = inspect_track(points)

    print("### 点数")
    print(f"total={summary.rows_total}, parsed={summary.rows_parsed}, skipped={summary.rows_skipped}, timed={res.timed_points}")
    print()

    if res.duration_s is not None:
        print("### 时长")
        print(format_hhmmss(res.duration_s))
        print()

    if res.delta is not None:
        print("### 采样间隔（秒）")
        print(
            f"count={res.delta.count}, min={res.delta.min_s:.3f}, median={res.delta.median_s:.3f}, "
            f"p95={res.delta.p95_s:.3f}, max={res.delta.max_s:.3f}"
        )
        print()

    print("### 经纬度范围（粗略）")
    print(f"lat=[{res.min_lat}, {res.max_lat}], lng=[{res.min_lng}, {res.max_lng}]")
    print()

    print("### 轨迹长度")
    print(f"{res.length_m:.1f} m")
    print()

    if args.json:
        print(json.dumps(asdict(res), ensure_ascii=False, indent=2))
    return 0


def _cmd_playback(args: argparse.Namespace) -> int:
    points, _ = load_track(args.track)
    pt = nearest_point_for_playback(points, args.progress)
    if pt is None:
        print("轨迹为空")
        return 0
    print(f"{pt.lat:.6f}, {pt.lng:.6f}")
    return 0


def _cmd_pooling(args: argparse.Namespace) -> int:
    payload = json.loads(Path(args.grid).read_text(encoding="utf-8"))
    try:
        center = GeoPoint(lat=float(payload["center"]["lat"]), lng=float(payload["center"]["lng"]))
        cells = grid_cells(center, payload["elevations"], float(payload["cell_deg"]))
    except (KeyError, TypeError) as exc:
        raise ValueError(f"高程网格需要 center.lat/lng、cell_deg 和 elevations 字段：{exc}") from exc

    if (args.lat is None) != (args.lng is None):
        raise ValueError("--lat 和 --lng 需要同时提供")
    lkp = GeoPoint(lat=args.lat, lng=args.lng) if args.lat is not None else center
    result = score_pooling_cells(
        cells,
        lkp,
        wind_from_to_deg(args.wind_from),
        coerce_enum(PoolingSensitivity, args.sensitivity),
        source=str(payload.get("source", Path(args.grid).name)),
    )

    print("### 积聚区域")
    print(f"cells={len(cells)}, kept={len(result.cells)}, sensitivity={args.sensitivity}")
    for c in sorted(result.cells, key=lambda c: c.score, reverse=True)[: args.top]:
        lat = sum(p.lat for p in c.polygon[:-1]) / (len(c.polygon) - 1)
        lng = sum(p.lng for p in c.polygon[:-1]) / (len(c.polygon) - 1)
        print(f"{lat:.6f}, {lng:.6f}: score={c.score:.2f}")
    print(result.disclaimer)
    return 0


def _add_source_args(p: argparse.ArgumentParser, required: bool = True) -> None:
    p.add_argument("--lat", type=float, required=required, help="LKP纬度")
    p.add_argument("--lng", type=float, required=required, help="LKP经度")
    p.add_argument("--wind-from", type=float, required=True, help="风向（来向，度，气象惯例）")


def _add_environment_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--lkp-time", type=str, default=None, help="LKP时间（ISO-8601），例如 2025-06-01T08:00:00Z")
    p.add_argument("--now", type=str, default=None, help="评估时间（ISO-8601），默认当前时间")
    temp = p.add_mutually_exclusive_group()
    temp.add_argument("--temp-f", type=float, default=None, help="气温 °F（默认75）")
    temp.add_argument("--temp-c", type=float, default=None, help="气温 °C（与 --temp-f 二选一）")
    p.add_argument("--rh", type=float, default=None, help="相对湿度 %%（默认50）")
    p.add_argument("--cloud", type=str, default=None, choices=[m.value for m in CloudCover], help="云量")
    p.add_argument("--precip", type=str, default=None, choices=[m.value for m in Precipitation], help="降水")
    p.add_argument("--recent-rain", action="store_true", default=None, help="近期下过雨")
    p.add_argument("--terrain", type=str, default=None, choices=[m.value for m in Terrain], help="地形")
    p.add_argument(
        "--atmo-stability",
        type=str,
        default=None,
        choices=[m.value for m in AtmosphericStability],
        help="大气稳定度（代理指标）",
    )


def _add_cone_args(p: argparse.ArgumentParser) -> None:
    defaults = ConeSettings()
    p.add_argument("--wind-kmh", type=float, required=True, help="风速 km/h")
    p.add_argument("--horizon-hours", type=float, default=defaults.time_horizon_hours, help="锥形时间范围（小时）")
    p.add_argument(
        "--spread-deg",
        type=float,
        default=None,
        help="锥形总张角（度，非半角），默认按风速取快速估算半角的2倍",
    )
    p.add_argument(
        "--stability",
        type=str,
        default=defaults.stability.value,
        choices=[m.value for m in ConeStability],
        help="风的稳定性（low 更宽，high 更窄）",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="scent_planner")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_env = sub.add_parser("envelope", help="时间衰减的气味包络（core/fringe/residual）与置信度")
    _add_source_args(p_env)
    wind = p_env.add_mutually_exclusive_group(required=True)
    wind.add_argument("--wind-mph", type=float, default=None, help="风速 mph")
    wind.add_argument("--wind-mps", type=float, default=None, help="风速 m/s")
    _add_environment_args(p_env)
    p_env.add_argument("--geojson", type=str, default=None, help="导出区域与起始点为 GeoJSON")
    p_env.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_env.set_defaults(func=_cmd_envelope)

    p_cone = sub.add_parser("cone", help="简单作业锥形与距离刻度")
    _add_source_args(p_cone)
    _add_cone_args(p_cone)
    p_cone.add_argument(
        "--minutes",
        type=float,
        nargs="+",
        default=list(DEFAULT_CONE_MINUTES),
        help="距离刻度对应的分钟数",
    )
    p_cone.add_argument("--geojson", type=str, default=None, help="导出锥形为 GeoJSON")
    p_cone.set_defaults(func=_cmd_cone)

    p_met = sub.add_parser("metrics", help="比较犬只轨迹、铺设轨迹与锥形")
    p_met.add_argument("--laid", type=str, required=True, help="铺设轨迹（.gpx/.csv）")
    p_met.add_argument("--dog", type=str, required=True, help="犬只轨迹（.gpx/.csv）")
    _add_source_args(p_met)
    _add_cone_args(p_met)
    _add_environment_args(p_met)
    p_met.add_argument(
        "--zone",
        type=str,
        default="cone",
        choices=["cone", *(z.name for z in ZONES)],
        help="用于比较的多边形：作业锥形或包络区域",
    )
    p_met.add_argument("--report", type=str, default=None, help="导出文本训练报告")
    p_met.add_argument("--session-name", type=str, default="Training session", help="报告中的训练名称")
    p_met.add_argument("--k9", type=str, default=None, help="报告中的犬只名")
    p_met.add_argument("--handler", type=str, default=None, help="报告中的训导员名")
    p_met.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_met.set_defaults(func=_cmd_metrics)

    p_ins = sub.add_parser("inspect-track", help="分析轨迹文件的时间范围/采样间隔/长度")
    p_ins.add_argument("--track", type=str, required=True, help="轨迹文件（.gpx/.csv）")
    p_ins.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_ins.set_defaults(func=_cmd_inspect_track)

    p_pb = sub.add_parser("playback", help="回放进度对应的轨迹点")
    p_pb.add_argument("--track", type=str, required=True, help="轨迹文件（.gpx/.csv）")
    p_pb.add_argument("--progress", type=float, required=True, help="回放进度 [0, 1]")
    p_pb.set_defaults(func=_cmd_playback)

    p_pool = sub.add_parser("pooling", help="地形积聚区域评分（需提供高程网格JSON）")
    p_pool.add_argument("--grid", type=str, required=True, help="高程网格 JSON")
    p_pool.add_argument("--lat", type=float, default=None, help="LKP纬度（默认网格中心）")
    p_pool.add_argument("--lng", type=float, default=None, help="LKP经度（默认网格中心）")
    p_pool.add_argument("--wind-from", type=float, required=True, help="风向（来向，度）")
    p_pool.add_argument(
        "--sensitivity",
        type=str,
        default=PoolingSensitivity.MEDIUM.value,
        choices=[m.value for m in PoolingSensitivity],
        help="灵敏度越高保留的格子越多",
    )
    p_pool.add_argument("--top", type=int, default=10, help="列出前N个格子")
    p_pool.set_defaults(func=_cmd_pooling)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    try:
        return int(args.func(args))
    except (ValueError, OSError) as exc:
        logger.debug("command %s failed", args.cmd, exc_info=True)
        print(f"错误：{exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
