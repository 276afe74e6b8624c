from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ExportFormat = Literal["csv", "excel"]
Sampling = Literal["all", "1min", "5min", "15min", "1hour", "1day"]


class ExportPreviewResponse(BaseModel):
    device_id: str
    from_ts: int = Field(serialization_alias="from")
    to_ts: int = Field(serialization_alias="to")
    metrics: list[str]
    sampling: Sampling
    filename: str
    points: list[dict[str, Any]] = Field(default_factory=list)
