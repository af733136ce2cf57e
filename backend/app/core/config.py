from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnv(str, Enum):
    LOCAL = "local"
    DEV = "dev"
    PROD = "prod"


class AppSettings(BaseModel):
    name: str = Field(default="Routine Advisor Relay")
    env: AppEnv = Field(default=AppEnv.DEV)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not (1 <= value <= 65535):
            raise ValueError("APP_PORT must be between 1 and 65535")
        return value


class OTELSettings(BaseModel):
    enabled: bool = False
    service_name: str = Field(default="routine-advisor-relay")
    exporter_otlp_endpoint: str = Field(default="http://alloy:4317")


class RelaySettings(BaseModel):
    """
    Upstream chat-completion settings.

    The API key never leaves the server; clients only ever see the
    simplified relay response.
    """

    openai_api_key: Optional[str] = None
    upstream_url: str = Field(default="https://api.openai.com/v1/chat/completions")
    default_model: str = Field(default="gpt-4o")
    default_max_tokens: int = Field(default=300, ge=1)
    default_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=60.0, gt=0)


class Settings(BaseSettings):
    """
    Top-level relay settings loaded from environment.

    Priority:
      1. ADVISOR_* variables (namespaced)
      2. Legacy APP_* / LOG_LEVEL / OPENAI_API_KEY where appropriate
    """

    model_config = SettingsConfigDict(
        env_prefix="ADVISOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: Optional[str] = None
    app_env: Optional[str] = None
    app_host: Optional[str] = None
    app_port: Optional[int] = None
    log_level: Optional[str] = None

    # OTEL
    otel_enabled: Optional[bool] = None
    otel_service_name: Optional[str] = None
    otel_exporter_otlp_endpoint: Optional[str] = None

    # Relay
    openai_api_key: Optional[str] = None
    upstream_url: Optional[str] = None
    default_model: Optional[str] = None
    default_max_tokens: Optional[int] = None
    default_temperature: Optional[float] = None
    upstream_timeout_seconds: Optional[float] = None

    @property
    def app(self) -> AppSettings:
        name = self.app_name or self._get_legacy("APP_NAME") or AppSettings().name
        env_str = self.app_env or self._get_legacy("APP_ENV") or AppSettings().env
        host = self.app_host or self._get_legacy("APP_HOST") or AppSettings().host
        port = self.app_port or int(self._get_legacy("APP_PORT", "8000"))
        log_level = (
            self.log_level or self._get_legacy("LOG_LEVEL") or AppSettings().log_level
        )

        return AppSettings(
            name=name,
            env=AppEnv(env_str),
            host=host,
            port=port,
            log_level=log_level.upper(),
        )

    @property
    def otel(self) -> OTELSettings:
        return OTELSettings(
            enabled=bool(self.otel_enabled),
            service_name=self.otel_service_name
            or self._get_legacy("OTEL_SERVICE_NAME")
            or OTELSettings().service_name,
            exporter_otlp_endpoint=self.otel_exporter_otlp_endpoint
            or self._get_legacy("OTEL_EXPORTER_OTLP_ENDPOINT")
            or OTELSettings().exporter_otlp_endpoint,
        )

    @property
    def relay(self) -> RelaySettings:
        defaults = RelaySettings()
        return RelaySettings(
            openai_api_key=self.openai_api_key
            or self._get_legacy("OPENAI_API_KEY")
            or None,
            upstream_url=self.upstream_url or defaults.upstream_url,
            default_model=self.default_model or defaults.default_model,
            default_max_tokens=self.default_max_tokens or defaults.default_max_tokens,
            default_temperature=(
                self.default_temperature
                if self.default_temperature is not None
                else defaults.default_temperature
            ),
            timeout_seconds=self.upstream_timeout_seconds or defaults.timeout_seconds,
        )

    # Helpers

    @staticmethod
    def _get_legacy(name: str, default: Optional[str] = None) -> Optional[str]:
        """Read legacy env vars (APP_*, OPENAI_API_KEY) directly if needed."""
        import os

        return os.getenv(name, default)


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance to avoid re-parsing env on every import.

    Usage:
        from backend.app.core.config import get_settings
        settings = get_settings()
        settings.relay.openai_api_key, settings.app.port, ...
    """
    return Settings()


def get_relay_settings() -> RelaySettings:
    """FastAPI dependency; overridden in tests."""
    return get_settings().relay


settings = get_settings()
