from __future__ import annotations

from datetime import UTC, datetime, time, timedelta

import streamlit as st

from scent_planner.envelope import EnvelopeInputs, EnvelopeOutput, compute_scent_envelope
from scent_planner.metrics import compute_track_metrics
from scent_planner.models import (
    AtmosphericStability,
    CloudCover,
    GeoPoint,
    PointSample,
    Precipitation,
    Terrain,
)
from scent_planner.track_io import parse_gpx
from scent_planner.units import mph_to_kmh


def _combine_utc(d, t: time) -> str:
    return datetime.combine(d, t).replace(tzinfo=UTC).isoformat()


@st.cache_data(show_spinner=False)
def _parse_uploaded_gpx(content: bytes) -> list[PointSample]:
    return parse_gpx(content.decode("utf-8", errors="replace"))


def _zone_rows(out: EnvelopeOutput) -> list[dict[str, object]]:
    return [
        {
            "zone": z.name,
            "radius_m": round(z.radius_m, 1),
            "half_angle_deg": round(z.half_angle_deg, 2),
            "ring_points": len(z.ring),
        }
        for z in out.zones
    ]


def _map_points(out: EnvelopeOutput, tracks: list[list[PointSample]]) -> dict[str, list[float]]:
    lats: list[float] = []
    lons: list[float] = []
    for z in out.zones:
        for p in z.ring:
            lats.append(p.lat)
            lons.append(p.lng)
    for track in tracks:
        for p in track:
            lats.append(p.lat)
            lons.append(p.lng)
    return {"lat": lats, "lon": lons}


def main() -> None:
    st.set_page_config(page_title="K9 气味包络规划", layout="wide")
    st.title("K9 搜救：气味扩散包络与置信度")

    with st.sidebar:
        st.subheader("LKP 与时间（UTC）")
        lat = st.number_input("LKP 纬度", value=39.5, format="%.6f")
        lng = st.number_input("LKP 经度", value=-104.99, format="%.6f")
        now = datetime.now(UTC)
        lkp_d = st.date_input("LKP 日期", value=(now - timedelta(hours=1)).date())
        lkp_t = st.time_input("LKP 时间", value=(now - timedelta(hours=1)).time().replace(microsecond=0))
        now_d = st.date_input("评估日期", value=now.date())
        now_t = st.time_input("评估时间", value=now.time().replace(microsecond=0))

        st.subheader("风")
        wind_from = st.number_input("风向（来向，度）", value=270.0, min_value=0.0, max_value=360.0, step=5.0)
        wind_mph = st.number_input("风速 mph", value=8.0, min_value=0.0, step=1.0)
        st.caption(f"约 {mph_to_kmh(wind_mph):.1f} km/h")

        with st.expander("环境（可选，默认值通常可用）", expanded=False):
            temp_f = st.number_input("气温 °F", value=75.0, step=1.0)
            rh = st.number_input("相对湿度 %", value=50.0, min_value=0.0, max_value=100.0, step=5.0)
            cloud = st.selectbox("云量", [m.value for m in CloudCover], index=1)
            precip = st.selectbox("降水", [m.value for m in Precipitation], index=0)
            recent_rain = st.checkbox("近期下过雨", value=False)
            terrain = st.selectbox("地形", [m.value for m in Terrain], index=0)
            stability = st.selectbox("大气稳定度", [m.value for m in AtmosphericStability], index=1)

        st.subheader("训练轨迹（可选）")
        laid_file = st.file_uploader("铺设轨迹 GPX", type=["gpx"])
        dog_file = st.file_uploader("犬只轨迹 GPX", type=["gpx"])

    inputs = EnvelopeInputs.with_defaults(
        lkp=GeoPoint(lat=float(lat), lng=float(lng)),
        lkp_time_iso=_combine_utc(lkp_d, lkp_t),
        now_time_iso=_combine_utc(now_d, now_t),
        wind_from_deg=float(wind_from),
        wind_speed_mph=float(wind_mph),
        temperature_f=float(temp_f),
        rel_humidity_pct=float(rh),
        cloud=cloud,
        precip=precip,
        recent_rain=recent_rain,
        terrain=terrain,
        stability=stability,
    )
    out = compute_scent_envelope(inputs)

    st.subheader("置信度")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("经过时间", f"{out.t_minutes:.0f} min")
    c2.metric("置信度", str(out.confidence_score))
    c3.metric("等级", out.confidence_band.value)
    c4.metric("建议重置间隔", f"{out.reset_recommendation_minutes} min")

    if out.deployment_notes:
        st.subheader("部署建议")
        for note in out.deployment_notes:
            st.info(note)

    st.subheader("建议起始点")
    st.dataframe(
        [
            {"label": sp.label, "lat": round(sp.point.lat, 6), "lon": round(sp.point.lng, 6)}
            for sp in out.recommended_start_points
        ],
        use_container_width=True,
    )

    st.subheader("区域")
    st.dataframe(_zone_rows(out), use_container_width=True)

    tracks: list[list[PointSample]] = []
    if laid_file is not None and dog_file is not None:
        try:
            laid = _parse_uploaded_gpx(laid_file.getvalue())
            dog = _parse_uploaded_gpx(dog_file.getvalue())
        except ValueError as exc:
            st.exception(exc)
        else:
            tracks = [laid, dog]
            metrics = compute_track_metrics(laid, dog, out.zone("residual").ring)
            st.subheader("训练指标（相对 residual 区域）")
            m1, m2, m3, m4, m5 = st.columns(5)
            m1.metric("最小间距", f"{metrics.min_separation_m:.1f} m")
            m2.metric("平均间距", f"{metrics.avg_separation_m:.1f} m")
            m3.metric("最大间距", f"{metrics.max_separation_m:.1f} m")
            m4.metric("犬只在区域内", f"{metrics.dog_inside_cone_pct:.1f}%")
            m5.metric("铺设轨迹进出次数", str(metrics.laid_track_transitions))

    st.subheader("地图（区域顶点与轨迹点）")
    st.map(_map_points(out, tracks))

    st.caption("说明：仅用于规划/训练参考，现场条件多变，结果为估算值。时间按 UTC 处理。")


if __name__ == "__main__":
    main()
