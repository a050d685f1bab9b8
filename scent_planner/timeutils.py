"""Time parsing and formatting utilities."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Iterable


def parse_iso(text: str) -> datetime:
    """Parse an ISO-8601 timestamp to a timezone-aware datetime.

    Supported formats:
      - "YYYY-MM-DDTHH:MM:SS" (or with a space instead of "T")
      - with optional fractional seconds
      - with optional offset, e.g. "+02:00" or a trailing "Z"

    A timestamp without an offset is taken as UTC.

    Args:
        text: Timestamp string.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If cannot parse.
    """

    s = text.strip().replace(" ", "T", 1)
    try:
        dt = datetime.fromisoformat(s)
    except (ValueError, TypeError, AttributeError) as exc:
        raise ValueError(f"Cannot parse timestamp: {text!r}. Expected e.g. 2025-06-01T09:30:00Z") from exc

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def epoch_ms_or_nan(text: str | None) -> float:
    """Epoch milliseconds of an ISO timestamp, or NaN when it cannot be parsed."""

    if not text:
        return math.nan
    try:
        return parse_iso(text).timestamp() * 1000.0
    except ValueError:
        return math.nan


def minutes_between(start_iso: str, end_iso: str) -> float:
    """Signed minutes from start to end. NaN if either side does not parse."""

    return (epoch_ms_or_nan(end_iso) - epoch_ms_or_nan(start_iso)) / (1000.0 * 60.0)


def now_iso() -> str:
    """Current UTC time, rounded to the second, as ISO-8601."""

    return datetime.now(UTC).replace(microsecond=0).isoformat()


def to_utc_iso(text: str) -> str:
    """Re-emit a timestamp in UTC with a trailing "Z"."""

    dt = parse_iso(text).astimezone(UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_hhmmss(seconds: float) -> str:
    s = int(round(max(0.0, seconds)))
    h = s // 3600
    m = (s % 3600) // 60
    sec = s % 60
    return f"{h:02d}:{m:02d}:{sec:02d}"


@dataclass(frozen=True, slots=True)
class DeltaStats:
    """Sampling interval stats (seconds)."""

    count: int
    min_s: float
    median_s: float
    p95_s: float
    max_s: float


def delta_stats(epoch_ms_sorted: Iterable[float]) -> DeltaStats | None:
    """Compute basic sampling-interval statistics.

    Args:
        epoch_ms_sorted: Epoch ms sorted ascending.

    Returns:
        DeltaStats or None if less than 2 points.
    """

    ms = list(epoch_ms_sorted)
    if len(ms) < 2:
        return None
    deltas = [(ms[i] - ms[i - 1]) / 1000.0 for i in range(1, len(ms)) if ms[i] >= ms[i - 1]]
    if not deltas:
        return None
    deltas.sort()
    n = len(deltas)
    median = deltas[n // 2] if n % 2 == 1 else 0.5 * (deltas[n // 2 - 1] + deltas[n // 2])
    p95 = deltas[int(0.95 * (n - 1))]
    return DeltaStats(
        count=n,
        min_s=deltas[0],
        median_s=median,
        p95_s=p95,
        max_s=deltas[-1],
    )
