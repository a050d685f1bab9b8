from __future__ import annotations

import argparse
import random
from datetime import UTC, datetime, timedelta
from pathlib import Path

from scent_planner.geo import destination_point, wind_from_to_deg
from scent_planner.models import GeoPoint, PointSample
from scent_planner.track_io import write_gpx


def generate_tracks(
    *,
    lkp: GeoPoint,
    wind_from_deg: float,
    points: int,
    seed: int,
    start: datetime,
) -> tuple[list[PointSample], list[PointSample]]:
    """Generate a laid trail walking downwind and a dog track weaving around it."""

    rng = random.Random(seed)
    downwind = wind_from_to_deg(wind_from_deg)

    laid: list[PointSample] = []
    cur = GeoPoint(lkp.lat, lkp.lng)
    t = start
    for _ in range(points):
        laid.append(PointSample(lat=cur.lat, lng=cur.lng, ts=t.isoformat()))
        # Walk roughly downwind with some wandering, 8-15 m per sample
        cur = destination_point(cur, downwind + rng.uniform(-35, 35), rng.uniform(8, 15))
        t = t + timedelta(seconds=rng.uniform(5, 12))

    dog: list[PointSample] = []
    t = start + timedelta(minutes=30)
    for p in laid:
        # Dog works the scent a few meters off the trail, sometimes casting wide
        offset = rng.uniform(2, 8) if rng.random() > 0.1 else rng.uniform(20, 45)
        q = destination_point(p, downwind + rng.choice([-90, 90]), offset)
        dog.append(PointSample(lat=q.lat, lng=q.lng, ts=t.isoformat(), speed_kmh=round(rng.uniform(3, 9), 1)))
        t = t + timedelta(seconds=rng.uniform(3, 8))

    return laid, dog


def main() -> int:
    p = argparse.ArgumentParser(description="Generate fake laid/dog GPX tracks for demo/testing.")
    p.add_argument("--out-dir", type=str, default="sample_data", help="Output directory")
    p.add_argument("--lat", type=float, default=39.5, help="LKP latitude")
    p.add_argument("--lng", type=float, default=-104.99, help="LKP longitude")
    p.add_argument("--wind-from", type=float, default=270.0, help="Wind FROM bearing (degrees)")
    p.add_argument("--points", type=int, default=120, help="Samples per track")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-06-01T08:00:00+00:00",
        help="Laid track start time (ISO-8601)",
    )
    args = p.parse_args()

    start = datetime.fromisoformat(args.start)
    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)

    laid, dog = generate_tracks(
        lkp=GeoPoint(args.lat, args.lng),
        wind_from_deg=args.wind_from,
        points=args.points,
        seed=args.seed,
        start=start,
    )
    out_dir = Path(args.out_dir)
    write_gpx(out_dir / "laid.gpx", "Laid track", laid)
    write_gpx(out_dir / "dog.gpx", "Dog track", dog)

    print(f"Generated: {out_dir} (laid={len(laid)}, dog={len(dog)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
