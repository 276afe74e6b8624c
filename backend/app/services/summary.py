"""Range-wide statistics for a device's readings.

Every statistic ignores null samples; a metric with no samples stays ``None``
instead of collapsing to zero. Consecutive-pair walks (trapezoidal energy,
time-of-day split, daylight share) assume the readings are ordered by
``captured_at``, so they are sorted here before any walk.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from app.services.bucketizer import bucketize_readings, mean, numeric_values
from app.services.derivation import round_half_away

NO_TELEMETRY_INSIGHT = "No telemetry available for the selected period."
OPTIMAL_INSIGHT = "System operating within optimal envelopes."

PEAK_HOURS = range(17, 22)
OFF_PEAK_HOURS = range(0, 6)
DAYLIGHT_HOURS = range(10, 16)


@dataclass(frozen=True)
class SummaryTotals:
    energy_kwh: float | None = None
    voltage_vh: float | None = None
    current_ah: float | None = None
    real_power_kwh: float | None = None


@dataclass(frozen=True)
class SummaryAverages:
    voltage: float | None = None
    current: float | None = None
    power_kw: float | None = None
    pf: float | None = None


@dataclass(frozen=True)
class SummaryPeaks:
    voltage: float | None = None
    current: float | None = None
    power_kw: float | None = None


@dataclass(frozen=True)
class SummaryLows:
    voltage: float | None = None
    current: float | None = None


@dataclass(frozen=True)
class VoltagePoint:
    timestamp: int
    voltage: float | None
    peak: float | None
    minimum: float | None


@dataclass(frozen=True)
class EnergySplit:
    peak: float = 0.0
    off_peak: float = 0.0
    shoulder: float = 0.0


@dataclass(frozen=True)
class PowerDistribution:
    real: float = 0.0
    reactive: float = 0.0
    apparent: float = 0.0


@dataclass(frozen=True)
class ReadingSummary:
    totals: SummaryTotals = field(default_factory=SummaryTotals)
    averages: SummaryAverages = field(default_factory=SummaryAverages)
    peaks: SummaryPeaks = field(default_factory=SummaryPeaks)
    lows: SummaryLows = field(default_factory=SummaryLows)
    rms_current: float | None = None
    load_factor: float | None = None
    voltage_history: list[VoltagePoint] = field(default_factory=list)
    energy_split: EnergySplit = field(default_factory=EnergySplit)
    renewable_share: float = 0.0
    efficiency_score: int = 0
    power_distribution: PowerDistribution = field(default_factory=PowerDistribution)
    insights: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InsightInputs:
    """Rule inputs with gaps already filled.

    Missing voltage reads as 0 V, so a range without voltage samples reports
    the undervoltage warning. A missing power factor or load factor reads as 1.
    """

    peak_voltage: float
    min_voltage: float
    pf_avg: float
    load_factor: float
    energy_kwh: float

    @classmethod
    def from_statistics(
        cls,
        *,
        peak_voltage: float | None,
        min_voltage: float | None,
        pf_avg: float | None,
        load_factor: float | None,
        energy_kwh: float,
    ) -> "InsightInputs":
        return cls(
            peak_voltage=peak_voltage if peak_voltage is not None else 0.0,
            min_voltage=min_voltage if min_voltage is not None else 0.0,
            pf_avg=pf_avg if pf_avg is not None else 1.0,
            load_factor=load_factor if load_factor is not None else 1.0,
            energy_kwh=energy_kwh,
        )


_INSIGHT_RULES: tuple[tuple[Callable[[InsightInputs], bool], str], ...] = (
    (
        lambda i: i.peak_voltage > 245,
        "Voltage spikes detected above 245V. Investigate transformer tap settings.",
    ),
    (
        lambda i: i.min_voltage < 205,
        "Low voltage events below 205V observed. Check feeder loading.",
    ),
    (
        lambda i: i.pf_avg < 0.92,
        "Average power factor below 0.92. Consider capacitor bank tuning.",
    ),
    (
        lambda i: i.load_factor < 0.65,
        "Load factor under 65%. Flatten demand curve to improve utilization.",
    ),
    (
        lambda i: i.energy_kwh > 200,
        "High daily energy usage recorded. Review shift schedules.",
    ),
)


def build_summary(
    readings: Iterable[Any],
    *,
    timezone_name: str = "UTC",
    interval_seconds: int = 3600,
) -> ReadingSummary:
    ordered = _ordered(readings)
    if not ordered:
        return ReadingSummary(insights=[NO_TELEMETRY_INSIGHT])

    voltages = numeric_values(ordered, "voltage")
    currents = numeric_values(ordered, "current")
    real_power = numeric_values(ordered, "real_power_kw")
    apparent_power = numeric_values(ordered, "apparent_power_kva")
    reactive_power = numeric_values(ordered, "reactive_power_kvar")
    pf_values = numeric_values(ordered, "power_factor")

    total_energy = estimate_energy(ordered)
    avg_voltage = mean(voltages)
    avg_current = mean(currents)
    avg_power = mean(real_power)
    pf_avg = mean(pf_values)
    peak_power = max(real_power) if real_power else None
    load_factor = round((avg_power or 0.0) / peak_power, 3) if peak_power else None
    peak_voltage = max(voltages) if voltages else None
    min_voltage = min(voltages) if voltages else None
    rms_current = _rms(currents)

    voltage_history = [
        VoltagePoint(
            timestamp=bucket.timestamp,
            voltage=bucket.voltage,
            peak=bucket.peak_voltage,
            minimum=bucket.min_voltage,
        )
        for bucket in bucketize_readings(ordered, interval_seconds)
    ]

    return ReadingSummary(
        totals=SummaryTotals(
            energy_kwh=round(total_energy, 3),
            voltage_vh=_round(avg_voltage * len(voltages), 2) if voltages else None,
            current_ah=_round(avg_current * len(currents), 2) if currents else None,
            real_power_kwh=_round(avg_power * len(ordered), 2) if avg_power is not None else None,
        ),
        averages=SummaryAverages(
            voltage=_round(avg_voltage, 2),
            current=_round(avg_current, 2),
            power_kw=_round(avg_power, 3),
            pf=_round(pf_avg, 3),
        ),
        peaks=SummaryPeaks(
            voltage=_round(peak_voltage, 2),
            current=_round(max(currents), 2) if currents else None,
            power_kw=_round(peak_power, 2),
        ),
        lows=SummaryLows(
            voltage=_round(min_voltage, 2),
            current=_round(min(currents), 2) if currents else None,
        ),
        rms_current=_round(rms_current, 3),
        load_factor=load_factor,
        voltage_history=voltage_history,
        energy_split=split_energy_by_period(ordered, timezone_name=timezone_name),
        renewable_share=renewable_share(ordered, timezone_name=timezone_name),
        efficiency_score=efficiency_score(pf_avg=pf_avg, load_factor=load_factor),
        power_distribution=_power_distribution(real_power, reactive_power, apparent_power),
        insights=build_insights(
            InsightInputs.from_statistics(
                peak_voltage=peak_voltage,
                min_voltage=min_voltage,
                pf_avg=pf_avg,
                load_factor=load_factor,
                energy_kwh=total_energy,
            )
        ),
    )


def estimate_energy(readings: Iterable[Any]) -> float:
    """kWh consumed over the readings.

    Two or more cumulative counter samples win (max minus min, no rollover
    handling); otherwise real power is integrated with the trapezoidal rule.
    """
    ordered = _ordered(readings)
    cumulative = numeric_values(ordered, "total_energy_kwh")
    if len(cumulative) >= 2:
        return max(cumulative) - min(cumulative)

    energy = 0.0
    for previous, current in zip(ordered, ordered[1:]):
        power_prev = _number(previous.real_power_kw)
        power_curr = _number(current.real_power_kw)
        if power_prev is None or power_curr is None:
            continue
        delta_hours = (current.captured_at - previous.captured_at) / 3600
        energy += (power_prev + power_curr) / 2 * delta_hours
    return energy


def split_energy_by_period(readings: Sequence[Any], *, timezone_name: str = "UTC") -> EnergySplit:
    totals = {"peak": 0.0, "off_peak": 0.0, "shoulder": 0.0}
    for hour, delta in _energy_deltas(readings, timezone_name):
        if hour in PEAK_HOURS:
            totals["peak"] += delta
        elif hour in OFF_PEAK_HOURS:
            totals["off_peak"] += delta
        else:
            totals["shoulder"] += delta

    total = sum(totals.values()) or 1.0
    return EnergySplit(
        peak=round(totals["peak"] / total * 100, 2),
        off_peak=round(totals["off_peak"] / total * 100, 2),
        shoulder=round(totals["shoulder"] / total * 100, 2),
    )


def renewable_share(readings: Sequence[Any], *, timezone_name: str = "UTC") -> float:
    """Share of consumption during fixed daylight hours, a proxy for solar availability."""
    daylight = 0.0
    total = 0.0
    for hour, delta in _energy_deltas(readings, timezone_name):
        total += delta
        if hour in DAYLIGHT_HOURS:
            daylight += delta
    if not total:
        return 0.0
    return round(daylight / total * 100, 2)


def efficiency_score(*, pf_avg: float | None, load_factor: float | None) -> int:
    # load_factor is not clamped, so the score can leave [0, 100].
    score = ((pf_avg or 0.0) + (load_factor or 0.0)) / 2 * 100
    return int(round_half_away(score))


def build_insights(inputs: InsightInputs) -> list[str]:
    insights = [message for applies, message in _INSIGHT_RULES if applies(inputs)]
    return insights or [OPTIMAL_INSIGHT]


def _energy_deltas(readings: Sequence[Any], timezone_name: str) -> list[tuple[int, float]]:
    zone = ZoneInfo(timezone_name or "UTC")
    deltas: list[tuple[int, float]] = []
    for previous, current in zip(readings, readings[1:]):
        before = _number(previous.total_energy_kwh)
        after = _number(current.total_energy_kwh)
        if before is None or after is None:
            continue
        delta = after - before
        if delta < 0:
            continue
        hour = datetime.fromtimestamp(current.captured_at, tz=timezone.utc).astimezone(zone).hour
        deltas.append((hour, delta))
    return deltas


def _power_distribution(
    real_power: Sequence[float],
    reactive_power: Sequence[float],
    apparent_power: Sequence[float],
) -> PowerDistribution:
    real_total = sum(real_power)
    reactive_total = sum(reactive_power)
    apparent_total = sum(apparent_power)
    total = real_total + reactive_total + apparent_total or 1.0
    return PowerDistribution(
        real=round(real_total / total * 100, 2),
        reactive=round(reactive_total / total * 100, 2),
        apparent=round(apparent_total / total * 100, 2),
    )


def _ordered(readings: Iterable[Any]) -> list[Any]:
    return sorted(readings, key=lambda reading: reading.captured_at)


def _rms(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return math.sqrt(sum(value**2 for value in values) / len(values))


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    number = float(value)
    return None if math.isnan(number) else number


def _round(value: float | None, digits: int) -> float | None:
    return round(value, digits) if value is not None else None
