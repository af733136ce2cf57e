from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "data" / "products.json"


class ClientSettings(BaseSettings):
    """
    Client settings loaded from environment (ADVISOR_* variables).

    ``relay_url`` may be unset; the chat then reports a configuration error
    instead of sending anything.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADVISOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    relay_url: Optional[str] = None
    catalog_source: str = Field(default=str(DEFAULT_CATALOG_PATH))
    storage_path: str = Field(default="app_storage/advisor_local_storage.sqlite3")

    model: Optional[str] = None
    max_tokens: Optional[int] = Field(default=None, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    request_timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("relay_url")
    @classmethod
    def blank_relay_url_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


@lru_cache()
def get_client_settings() -> ClientSettings:
    return ClientSettings()
