"""Pydantic-based configuration helpers for Nest Notifier."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from nest_notifier.models import ConfigurationError

DEFAULT_AIRTABLE_API_URL = "https://api.airtable.com/v0"


class AppSettings(BaseModel):
    """Secrets and defaults loaded once at startup; never mutated afterwards."""

    model_config = {"frozen": True}

    bot_token: str = Field(..., alias="SLACK_BOT_TOKEN")
    signing_secret: str = Field(..., alias="SLACK_SIGNING_SECRET")
    airtable_api_key: str = Field(..., alias="AIRTABLE_API_KEY")
    webhook_secret: str | None = Field(None, alias="AIRTABLE_WEBHOOK_SECRET")
    airtable_base_id: str | None = Field(None, alias="AIRTABLE_BASE_ID")
    airtable_table_id: str | None = Field(None, alias="AIRTABLE_TABLE_ID")
    airtable_api_url: str = Field(DEFAULT_AIRTABLE_API_URL, alias="AIRTABLE_API_URL")
    signature_tolerance: int = Field(60 * 5, alias="SIGNATURE_TOLERANCE_SECONDS")
    sync_all_channels: bool = Field(False, alias="SYNC_ALL_CHANNELS")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("webhook_secret", "airtable_base_id", "airtable_table_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None

    @field_validator("airtable_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("signature_tolerance")
    @classmethod
    def _ensure_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Signature tolerance must be greater than zero")
        return value


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(os.environ)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        if not missing:
            invalid = [str(error["loc"][0]) for error in exc.errors()]
            raise ConfigurationError(f"Invalid environment variables: {_format_missing(invalid)}") from exc
        message = (
            "Missing required environment variables: "
            f"{_format_missing(missing)}"
        )
        raise ConfigurationError(message) from exc
