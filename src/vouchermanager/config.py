from enum import StrEnum
from typing import Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)


class ApiMode(StrEnum):
    """Controller API generation targeted by this deployment."""

    LEGACY = "legacy"  # cookie session, command-style POST bodies
    INTEGRATION = "integration"  # X-API-KEY header, declarative REST resources


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    unifi_controller_url: str  # e.g. https://192.168.1.1:8443
    unifi_api_mode: ApiMode = ApiMode.LEGACY
    unifi_username: str = ""
    unifi_password: str = ""
    unifi_api_key: str = ""
    unifi_site_id: str = "default"
    unifi_has_valid_cert: bool = True  # False for self-signed controller certificates
    timezone: str = "UTC"  # IANA zone used for displayed timestamps and the midnight purge
    backend_bind_host: str = "127.0.0.1"
    backend_bind_port: int = 8080
    debug: bool = False
    cors_origins: list[str] = ["*"]
    voucher_tiers_path: str = "/app/frontend/public/voucher-tiers.json"  # Rolling voucher policy file

    model_config = {
        "env_file": [".env"],
        "extra": "ignore",
    }

    @field_validator("unifi_controller_url")
    @classmethod
    def _check_controller_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("UNIFI_CONTROLLER_URL must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            logger.error("timezone_invalid_using_utc", timezone=value)
            return "UTC"
        return value

    @model_validator(mode="after")
    def _check_credentials(self) -> Self:
        if self.unifi_api_mode == ApiMode.LEGACY and not (self.unifi_username and self.unifi_password):
            raise ValueError("UNIFI_USERNAME and UNIFI_PASSWORD are required in legacy mode")
        if self.unifi_api_mode == ApiMode.INTEGRATION and not self.unifi_api_key:
            raise ValueError("UNIFI_API_KEY is required in integration mode")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)
