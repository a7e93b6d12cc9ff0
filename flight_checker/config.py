from __future__ import annotations

import re
from datetime import date
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

load_dotenv()

_IATA_RE = re.compile(r"^[A-Z]{3}$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    travelpayouts_token: str = Field(..., alias="TRAVELPAYOUTS_API_KEY")
    telegram_token: str = Field(..., alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: str = Field(..., alias="TELEGRAM_CHAT_ID")
    devlogs_topic_id: str = Field(..., alias="TELEGRAM_DEVLOGS_TOPIC_ID")
    found_topic_id: str = Field(..., alias="TELEGRAM_FOUND_TOPIC_ID")

    origin: str = Field(..., alias="ORIGIN")
    destination: str = Field(..., alias="DESTINATION")
    start_date: date = Field(..., alias="START_DATE")
    end_date: date = Field(..., alias="END_DATE")

    airlabs_api_key: Optional[str] = Field(None, alias="AIRLABS_API_KEY")

    poll_interval_h: int = Field(6, alias="POLL_INTERVAL_H")
    currency: str = Field("rub", alias="CURRENCY")
    retry_max_attempts: int = Field(4, alias="RETRY_MAX_ATTEMPTS")
    retry_base_delay_s: float = Field(2.0, alias="RETRY_BASE_DELAY_S")
    retry_max_delay_s: float = Field(60.0, alias="RETRY_MAX_DELAY_S")
    request_timeout_s: float = Field(15.0, alias="REQUEST_TIMEOUT_S")
    send_interval_s: float = Field(1.0, alias="TELEGRAM_SEND_INTERVAL_S")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: str = Field("flight_checker.log", alias="LOG_FILE")

    @field_validator("travelpayouts_token", "telegram_token", "telegram_chat_id")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()

    @field_validator("devlogs_topic_id", "found_topic_id")
    @classmethod
    def _topic_id(cls, v: str) -> str:
        v = v.strip()
        if v and not v.isdigit():
            raise ValueError(f"{v!r} is not a numeric topic id")
        return v

    @field_validator("origin", "destination")
    @classmethod
    def _iata(cls, v: str) -> str:
        code = v.strip().upper()
        if not _IATA_RE.match(code):
            raise ValueError(f"{v!r} is not a 3-letter IATA code")
        return code

    @field_validator("airlabs_api_key")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("poll_interval_h", "retry_max_attempts")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("retry_base_delay_s", "request_timeout_s")
    @classmethod
    def _positive_float(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("send_interval_s")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("currency")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        if self.end_date < self.start_date:
            raise ValueError("END_DATE must not be earlier than START_DATE")
        if self.retry_max_delay_s < self.retry_base_delay_s:
            raise ValueError("RETRY_MAX_DELAY_S must be >= RETRY_BASE_DELAY_S")
        return self

    @property
    def enrichment_enabled(self) -> bool:
        return self.airlabs_api_key is not None


def _describe(exc: ValidationError) -> str:
    missing: list[str] = []
    invalid: list[str] = []
    for err in exc.errors():
        name = ".".join(str(part) for part in err["loc"]) or "settings"
        if err["type"] == "missing":
            missing.append(name)
        else:
            invalid.append(f"{name}: {err['msg']}")
    parts = []
    if missing:
        parts.append("missing required environment variables: " + ", ".join(missing))
    if invalid:
        parts.append("invalid values: " + "; ".join(invalid))
    return "; ".join(parts)


def load_settings(**overrides) -> Settings:
    """Build :class:`Settings` from the environment.

    Keyword *overrides* take precedence over the environment (keyed by the
    env var name). Raises :class:`ConfigError` with a readable diagnostic.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc


__all__ = ["Settings", "load_settings"]
