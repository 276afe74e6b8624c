from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeviceCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    timezone: str = Field(default="UTC", max_length=64)
    location: str | None = Field(default=None, max_length=64)

    @field_validator("name", mode="before")
    @classmethod
    def _trim_name(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value


class DeviceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    timezone: str
    location: str | None = None
    last_seen: int | None = None
    created_at: int
    updated_at: int


class DeviceCreatedResponse(DeviceResponse):
    api_key: str
