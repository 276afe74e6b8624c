from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any


@dataclass(frozen=True)
class MetricSpec:
    key: str
    label: str
    convert_from_kilo: bool = False


METRIC_CATALOGUE: dict[str, MetricSpec] = {
    spec.key: spec
    for spec in (
        MetricSpec("voltage", "Voltage (V)"),
        MetricSpec("current", "Current (A)"),
        MetricSpec("real_power_kw", "Real Power (W)", convert_from_kilo=True),
        MetricSpec("apparent_power_kva", "Apparent Power (VA)", convert_from_kilo=True),
        MetricSpec("reactive_power_kvar", "Reactive Power (VAR)", convert_from_kilo=True),
        MetricSpec("energy_kwh", "Energy (Wh)", convert_from_kilo=True),
        MetricSpec("total_energy_kwh", "Total Energy (Wh)", convert_from_kilo=True),
        MetricSpec("frequency", "Frequency (Hz)"),
        MetricSpec("power_factor", "Power Factor"),
    )
}

DEFAULT_METRICS: tuple[str, ...] = (
    "voltage",
    "current",
    "real_power_kw",
    "energy_kwh",
    "power_factor",
)

SAMPLING_INTERVALS: dict[str, int] = {
    "all": 0,
    "1min": 60,
    "5min": 300,
    "15min": 900,
    "1hour": 3600,
    "1day": 86400,
}

FILE_EXTENSIONS: dict[str, str] = {"csv": "csv", "excel": "xlsx"}


def parse_metric_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def select_metrics(requested: Sequence[str] | None) -> list[str]:
    if not requested:
        return list(DEFAULT_METRICS)
    selected = [key for key in requested if key in METRIC_CATALOGUE]
    if not selected:
        raise ValueError(
            "no supported metrics requested; choose from " + ", ".join(METRIC_CATALOGUE)
        )
    return selected


def sampling_interval(sampling: str) -> int:
    try:
        return SAMPLING_INTERVALS[sampling]
    except KeyError:
        raise ValueError(f"unsupported sampling: {sampling}") from None


def apply_sampling(rows: Iterable[Any], sampling: str) -> list[Any]:
    """Decimate rows so kept samples are at least the sampling interval apart.

    Dropped rows are discarded, not averaged into the kept ones.
    """
    interval = sampling_interval(sampling)
    ordered = sorted(rows, key=lambda row: row.captured_at)
    if not interval:
        return ordered

    kept: list[Any] = []
    last_kept: int | None = None
    for row in ordered:
        if last_kept is None or row.captured_at - last_kept >= interval:
            kept.append(row)
            last_kept = row.captured_at
    return kept


def build_dataset(rows: Iterable[Any], metrics: Sequence[str]) -> list[dict[str, Any]]:
    dataset: list[dict[str, Any]] = []
    for row in rows:
        record: dict[str, Any] = {
            "timestamp": row.captured_at,
            "iso8601": _iso8601(row.captured_at),
        }
        for key in metrics:
            spec = METRIC_CATALOGUE[key]
            value = getattr(row, key, None)
            if spec.convert_from_kilo and isinstance(value, (int, float)) and not isinstance(value, bool):
                value = value * 1000
            record[key] = value
        dataset.append(record)
    return dataset


def export_filename(device_id: str, export_format: str, today: date | None = None) -> str:
    day = (today or datetime.now(timezone.utc).date()).isoformat()
    return f"smartmeter_{device_id}_{day}.{FILE_EXTENSIONS[export_format]}"


def _iso8601(epoch_seconds: int) -> str:
    value = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
