from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Bucket:
    timestamp: int
    voltage: float | None
    peak_voltage: float | None
    min_voltage: float | None
    current: float | None
    real_power_kw: float | None
    energy_kwh: float
    power_factor: float | None


def numeric_values(readings: Iterable[Any], field: str) -> list[float]:
    values: list[float] = []
    for reading in readings:
        value = getattr(reading, field, None)
        if value is None or isinstance(value, bool):
            continue
        number = float(value)
        if math.isnan(number):
            continue
        values.append(number)
    return values


def mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def bucket_key(captured_at: int | float, interval_seconds: int) -> int:
    return math.floor(captured_at / interval_seconds) * interval_seconds


def bucketize_readings(readings: Iterable[Any], interval_seconds: int) -> list[Bucket]:
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")

    grouped: dict[int, list[Any]] = {}
    for reading in readings:
        grouped.setdefault(bucket_key(reading.captured_at, interval_seconds), []).append(reading)

    buckets: list[Bucket] = []
    for timestamp in sorted(grouped):
        rows = grouped[timestamp]
        voltages = numeric_values(rows, "voltage")
        buckets.append(
            Bucket(
                timestamp=timestamp,
                voltage=mean(voltages),
                peak_voltage=max(voltages) if voltages else None,
                min_voltage=min(voltages) if voltages else None,
                current=mean(numeric_values(rows, "current")),
                real_power_kw=mean(numeric_values(rows, "real_power_kw")),
                energy_kwh=sum(numeric_values(rows, "energy_kwh")),
                power_factor=mean(numeric_values(rows, "power_factor")),
            )
        )
    return buckets
