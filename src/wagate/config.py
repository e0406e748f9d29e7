"""Configuration management for wagate."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROVIDER = "wagate.providers.memory:InMemoryProvider"


class Settings(BaseSettings):
    """Application settings.

    Every field reads `WAGATE_<FIELD>`. `AUTH_DIR`, `WEBHOOK_URL` and `PORT`
    are also honored so existing deployments keep working.
    """

    model_config = SettingsConfigDict(
        env_prefix="WAGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Session provider
    provider: str = Field(default=DEFAULT_PROVIDER, description="Provider factory as 'package.module:attribute'")
    auth_dir: Path = Field(
        default=Path(".wwebjs_auth"),
        validation_alias=AliasChoices("WAGATE_AUTH_DIR", "AUTH_DIR"),
        description="Directory where the provider persists session data",
    )
    reconnect_initial_delay_seconds: float = Field(default=1.0, ge=0)
    reconnect_max_delay_seconds: float = Field(default=60.0, ge=0)

    # Inbound relay
    webhook_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WAGATE_WEBHOOK_URL", "WEBHOOK_URL"),
        description="Callback receiving inbound messages; unset disables relaying",
    )
    webhook_timeout_seconds: float = Field(default=5.0, gt=0)
    webhook_max_in_flight: int = Field(default=4, ge=1)
    webhook_max_pending: int = Field(default=256, ge=1)

    # HTTP listener
    host: str = Field(default="0.0.0.0")  # noqa: S104
    port: int = Field(default=3000, validation_alias=AliasChoices("WAGATE_PORT", "PORT"))

    log_level: str = Field(default="INFO")

    @field_validator("webhook_url", mode="before")
    @classmethod
    def _blank_webhook_is_disabled(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def load_settings(**overrides: object) -> Settings:
    """Load settings from the environment, applying non-None overrides."""

    settings = Settings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
