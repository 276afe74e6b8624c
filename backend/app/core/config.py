from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./storage/smartmeter.sqlite")
    database_auto_create: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    default_device_id: str = Field(default="meter-001", min_length=1, max_length=64)
    default_device_api_key: str = Field(default="CHANGE_ME_DEVICE_KEY", min_length=1)
    default_device_timezone: str = Field(default="UTC")
    default_device_location: str = Field(default="US-NY")
    base_tariff_per_kwh: float = Field(default=6.5, ge=0.0)
    currency_symbol: str = Field(default="₹", max_length=8)
    stream_token: str | None = Field(default=None)
    stream_keepalive_seconds: float = Field(default=15.0, gt=0.0, le=300.0)
    stream_max_pending_messages: int = Field(default=256, ge=1, le=100000)
    export_preview_limit: int = Field(default=500, ge=1, le=100000)
    default_export_user_id: str = Field(default="operator")
    mqtt_enabled: bool = Field(default=False)
    mqtt_broker_host: str = Field(default="localhost")
    mqtt_broker_port: int = Field(default=1883, ge=1, le=65535)
    mqtt_client_id: str = Field(default="smartmeter-backend")
    mqtt_topic_prefix: str = Field(default="smartmeter")
    mqtt_qos: int = Field(default=1, ge=0, le=2)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
