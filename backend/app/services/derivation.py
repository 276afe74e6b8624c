from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from app.schemas.readings import ReadingPayload

VOLTAGE_DECIMALS = 3
CURRENT_DECIMALS = 3
POWER_DECIMALS = 4
ENERGY_DECIMALS = 5
FREQUENCY_DECIMALS = 3
POWER_FACTOR_DECIMALS = 4


@dataclass(frozen=True)
class DerivedMetrics:
    voltage: float | None
    current: float | None
    real_power_kw: float | None
    apparent_power_kva: float | None
    reactive_power_kvar: float | None
    energy_kwh: float | None
    total_energy_kwh: float | None
    frequency: float | None
    power_factor: float | None

    def as_columns(self) -> dict[str, float | None]:
        return asdict(self)


def round_half_away(value: float | None, decimals: int = 0) -> float | None:
    if value is None:
        return None
    factor = 10**decimals
    return math.copysign(math.floor(abs(value) * factor + 0.5) / factor, value)


def clamp(value: float | None, lower: float, upper: float) -> float | None:
    if value is None:
        return None
    return min(max(value, lower), upper)


def derive_metrics(payload: ReadingPayload) -> DerivedMetrics:
    voltage = payload.voltage
    current = payload.current
    has_vi = voltage is not None and current is not None

    if payload.power is not None:
        real_power_kw = payload.power / 1000
    elif has_vi:
        real_power_kw = voltage * current / 1000
    else:
        real_power_kw = None

    if payload.apparent_power is not None:
        apparent_power_kva = payload.apparent_power
    elif has_vi:
        apparent_power_kva = voltage * current / 1000
    else:
        apparent_power_kva = None

    power_factor = payload.power_factor
    if power_factor is None and real_power_kw is not None and apparent_power_kva:
        power_factor = real_power_kw / apparent_power_kva
    power_factor = clamp(power_factor, 0.0, 1.0)

    if payload.reactive_power is not None:
        reactive_power_kvar = payload.reactive_power
    elif real_power_kw is not None and apparent_power_kva is not None:
        reactive_power_kvar = math.sqrt(max(apparent_power_kva**2 - real_power_kw**2, 0.0))
    else:
        reactive_power_kvar = None

    energy = round_half_away(payload.energy, ENERGY_DECIMALS)
    return DerivedMetrics(
        voltage=round_half_away(voltage, VOLTAGE_DECIMALS),
        current=round_half_away(current, CURRENT_DECIMALS),
        real_power_kw=round_half_away(real_power_kw, POWER_DECIMALS),
        apparent_power_kva=round_half_away(apparent_power_kva, POWER_DECIMALS),
        reactive_power_kvar=round_half_away(reactive_power_kvar, POWER_DECIMALS),
        # Same raw value lands in both the interval and the cumulative column.
        energy_kwh=energy,
        total_energy_kwh=energy,
        frequency=round_half_away(payload.frequency, FREQUENCY_DECIMALS),
        power_factor=round_half_away(power_factor, POWER_FACTOR_DECIMALS),
    )
