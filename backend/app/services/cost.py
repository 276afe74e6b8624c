from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from app.services.summary import estimate_energy


@dataclass(frozen=True)
class CostProjection:
    energy_kwh: float
    base_rate: float
    hourly: float
    daily: float
    monthly: float
    yearly: float
    currency_symbol: str


def build_cost_projection(
    readings: Iterable[Any],
    *,
    base_tariff: float,
    currency_symbol: str,
) -> CostProjection:
    rows = list(readings)
    energy = estimate_energy(rows)
    daily = energy * base_tariff
    return CostProjection(
        energy_kwh=round(energy, 3),
        base_rate=base_tariff,
        # Total cost spread over the sample count, not a true per-hour rate.
        hourly=round(energy * base_tariff / max(len(rows), 1), 2),
        daily=round(daily, 2),
        monthly=round(daily * 30, 2),
        yearly=round(daily * 365, 2),
        currency_symbol=currency_symbol,
    )
