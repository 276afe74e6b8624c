from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Readings outside this magnitude would overflow derivation and rounding.
MAX_MEASUREMENT_MAGNITUDE = 1e12
# 9999-12-31T23:59:59Z, the last second datetime can represent.
MAX_EPOCH_SECONDS = 253402300799


class ReadingPayload(BaseModel):
    """Raw device sample; every field is optional and derived values fill the gaps."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    voltage: float | None = None
    current: float | None = None
    power: float | None = None
    energy: float | None = None
    frequency: float | None = None
    power_factor: float | None = Field(
        default=None,
        validation_alias=AliasChoices("power_factor", "powerFactor"),
    )
    apparent_power: float | None = Field(
        default=None,
        validation_alias=AliasChoices("apparent_power", "apparentPower"),
    )
    reactive_power: float | None = None
    timestamp: float | None = Field(default=None, ge=0, le=MAX_EPOCH_SECONDS)
    metadata: dict[str, Any] | None = None

    @field_validator(
        "voltage",
        "current",
        "power",
        "energy",
        "frequency",
        "power_factor",
        "apparent_power",
        "reactive_power",
        "timestamp",
        mode="before",
    )
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        try:
            number = float(value)
        except OverflowError:
            raise ValueError("must be a representable number") from None
        if not math.isfinite(number):
            raise ValueError("must be a finite number")
        if abs(number) > MAX_MEASUREMENT_MAGNITUDE:
            raise ValueError(f"must be within ±{MAX_MEASUREMENT_MAGNITUDE:g}")
        return number


class ReadingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    device_id: str
    captured_at: int
    voltage: float | None = None
    current: float | None = None
    real_power_kw: float | None = None
    apparent_power_kva: float | None = None
    reactive_power_kvar: float | None = None
    energy_kwh: float | None = None
    total_energy_kwh: float | None = None
    frequency: float | None = None
    power_factor: float | None = None
    metadata: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("metadata_json", "metadata"),
    )
    created_at: int


class ReadingIngestResponse(BaseModel):
    reading: ReadingResponse


class LatestReadingResponse(BaseModel):
    device_id: str
    reading: ReadingResponse | None = None


class HistoryPointResponse(BaseModel):
    timestamp: int
    voltage: float | None = None
    peak_voltage: float | None = None
    min_voltage: float | None = None
    current: float | None = None
    real_power_kw: float | None = None
    energy_kwh: float
    power_factor: float | None = None


class HistoryResponse(BaseModel):
    device_id: str
    from_ts: int = Field(serialization_alias="from")
    to_ts: int = Field(serialization_alias="to")
    interval_seconds: int
    raw_count: int
    points: list[HistoryPointResponse] = Field(default_factory=list)
