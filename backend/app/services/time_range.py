from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

PERIOD_DAYS: dict[str, int] = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}

_GRANULARITY_STEPS: tuple[tuple[int, int], ...] = (
    (6 * 3600, 300),
    (2 * 86400, 900),
    (7 * 86400, 3600),
    (31 * 86400, 4 * 3600),
)


@dataclass(frozen=True)
class TimeRange:
    from_ts: int
    to_ts: int
    duration_seconds: float


def resolve_range(
    *,
    period: str | None = None,
    from_value: str | int | float | None = None,
    to_value: str | int | float | None = None,
    timezone_name: str = "UTC",
    now: datetime | None = None,
) -> TimeRange:
    zone = _zone(timezone_name)
    if _present(from_value) and _present(to_value):
        start = _parse_bound(from_value, zone)
        end = _parse_bound(to_value, zone)
    else:
        end = (now or datetime.now(timezone.utc)).astimezone(zone)
        start = end - timedelta(days=PERIOD_DAYS.get(period or "day", PERIOD_DAYS["day"]))

    start_seconds = start.timestamp()
    end_seconds = end.timestamp()
    return TimeRange(
        from_ts=math.floor(start_seconds),
        to_ts=math.floor(end_seconds),
        duration_seconds=max(end_seconds - start_seconds, 1),
    )


def granularity_for_range(duration_seconds: float) -> int:
    for upper_bound, interval in _GRANULARITY_STEPS:
        if duration_seconds <= upper_bound:
            return interval
    return 86400


def _zone(timezone_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone: {timezone_name}") from exc


def _present(value: str | int | float | None) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _parse_bound(value: str | int | float | None, zone: ZoneInfo) -> datetime:
    if isinstance(value, bool):
        raise ValueError(f"invalid range bound: {value}")

    if isinstance(value, (int, float)):
        return _epoch_to_datetime(float(value))

    raw = str(value).strip()
    try:
        numeric = float(raw)
    except ValueError:
        numeric = None
    if numeric is not None:
        return _epoch_to_datetime(numeric)

    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"invalid range bound: {value}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=zone)
    return parsed


def _epoch_to_datetime(value: float) -> datetime:
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValueError(f"invalid epoch timestamp: {value}") from exc
