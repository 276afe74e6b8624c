from __future__ import annotations

from pydantic import BaseModel, Field


class SummaryTotalsResponse(BaseModel):
    energy_kwh: float | None = None
    voltage_vh: float | None = None
    current_ah: float | None = None
    real_power_kwh: float | None = None


class SummaryAveragesResponse(BaseModel):
    voltage: float | None = None
    current: float | None = None
    power_kw: float | None = None
    pf: float | None = None


class SummaryPeaksResponse(BaseModel):
    voltage: float | None = None
    current: float | None = None
    power_kw: float | None = None


class SummaryLowsResponse(BaseModel):
    voltage: float | None = None
    current: float | None = None


class VoltagePointResponse(BaseModel):
    timestamp: int
    voltage: float | None = None
    peak: float | None = None
    minimum: float | None = None


class EnergySplitResponse(BaseModel):
    peak: float
    off_peak: float
    shoulder: float


class PowerDistributionResponse(BaseModel):
    real: float
    reactive: float
    apparent: float


class SummaryResponse(BaseModel):
    totals: SummaryTotalsResponse
    averages: SummaryAveragesResponse
    peaks: SummaryPeaksResponse
    lows: SummaryLowsResponse
    rms_current: float | None = None
    load_factor: float | None = None
    voltage_history: list[VoltagePointResponse] = Field(default_factory=list)
    energy_split: EnergySplitResponse
    renewable_share: float
    efficiency_score: int
    power_distribution: PowerDistributionResponse
    insights: list[str]


class SummaryEnvelopeResponse(BaseModel):
    device_id: str
    from_ts: int = Field(serialization_alias="from")
    to_ts: int = Field(serialization_alias="to")
    interval_seconds: int
    summary: SummaryResponse


class VoltageHistoryResponse(BaseModel):
    device_id: str
    from_ts: int = Field(serialization_alias="from")
    to_ts: int = Field(serialization_alias="to")
    interval_seconds: int
    points: list[VoltagePointResponse] = Field(default_factory=list)


class CostProjectionResponse(BaseModel):
    energy_kwh: float
    base_rate: float
    hourly: float
    daily: float
    monthly: float
    yearly: float
    currency_symbol: str


class CostEnvelopeResponse(BaseModel):
    device_id: str
    from_ts: int = Field(serialization_alias="from")
    to_ts: int = Field(serialization_alias="to")
    projection: CostProjectionResponse
