"""Runtime configuration for the Rollbar notifier."""

from __future__ import annotations

import re
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .transport import DEFAULT_ENDPOINT


class RollbarSettings(BaseSettings):
    """Notifier settings loaded from ``ROLLBAR_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ROLLBAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    access_token: str = Field(default="", description="Project access token; blank drops every record.")
    environment: str = Field(default="development", description="Environment items are filed under.")
    endpoint: str = Field(default=DEFAULT_ENDPOINT, description="Item API endpoint.")
    buffer: int = Field(default=1000, ge=0, description="Dispatch queue capacity.")
    code_version: str = Field(default="", description="Running code version.")
    server_host: str = Field(default="", description="Server hostname, indexed by Rollbar.")
    server_root: str = Field(default="", description="Application code root, no trailing slash.")
    filter_headers: str = Field(default="Authorization", description="Regex of header names to redact.")
    filter_fields: str = Field(
        default="password|secret|token", description="Regex of query/form field names to redact."
    )
    timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP timeout per delivery.")

    @field_validator("filter_headers", "filter_fields")
    @classmethod
    def _valid_regex(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid pattern {value!r}: {exc}") from exc
        return value

    @field_validator("server_root")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache()
def get_settings() -> RollbarSettings:
    return RollbarSettings()
