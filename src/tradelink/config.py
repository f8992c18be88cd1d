"""Configuration system using pydantic-settings with .env and optional YAML override."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_VENUES = ("okex", "huobihadax", "localbitcoins")


class RateLimitSettings(BaseModel):
    """Calls permitted per window for one channel. Zeroes disable throttling."""

    window_seconds: float = Field(ge=0)
    max_calls: int = Field(ge=0)


class VenueSettings(BaseModel):
    """Per-venue configuration consumed by the drivers."""

    enabled: bool = True
    api_key: str = ""
    api_secret: str = ""
    passphrase: str = ""
    client_id: str = ""
    base_url: str = ""
    timeout_seconds: float = Field(default=15.0, gt=0)
    staleness_seconds: float = Field(default=10.0, ge=0)
    # Keyed by channel: "public" or "authenticated"
    rate_limits: dict[str, RateLimitSettings] = Field(default_factory=dict)
    # Pairs as BASE-QUOTE, e.g. ["BTC-USDT"]
    enabled_pairs: list[str] = Field(default_factory=list)
    verbose: bool = False

    @field_validator("rate_limits")
    @classmethod
    def known_channels(
        cls, v: dict[str, RateLimitSettings]
    ) -> dict[str, RateLimitSettings]:
        unknown = set(v) - {"public", "authenticated"}
        if unknown:
            raise ValueError(f"Unknown rate limit channels: {sorted(unknown)}")
        return v


def _default_venues() -> dict[str, VenueSettings]:
    return {name: VenueSettings() for name in SUPPORTED_VENUES}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and optional YAML config.

    Nested values use ``__`` in environment names, e.g.
    ``VENUES__OKEX__API_KEY``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    venues: dict[str, VenueSettings] = Field(default_factory=_default_venues)

    # Tradable pair refresh loop
    pair_refresh_interval_seconds: float = Field(default=3600.0, gt=0)

    # Logging
    log_level: str = "INFO"

    # Config file path
    config_file: str = ""

    @model_validator(mode="before")
    @classmethod
    def apply_yaml_overrides(cls, data: Any) -> Any:
        """Apply overrides from YAML config file if specified."""
        if not isinstance(data, dict):
            return data
        config_file = data.get("config_file") or ""
        config_path = Path(config_file) if config_file else Path("config.yaml")
        if config_path.exists():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f)
            if yaml_config and isinstance(yaml_config, dict):
                overrides = {
                    key: value
                    for key, value in yaml_config.items()
                    if key in cls.model_fields
                }
                data = {**data, **overrides}
        return data

    @field_validator("venues")
    @classmethod
    def normalize_venue_names(
        cls, v: dict[str, VenueSettings]
    ) -> dict[str, VenueSettings]:
        return {name.lower(): venue for name, venue in v.items()}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    def enabled_venues(self) -> list[str]:
        return [name for name, venue in self.venues.items() if venue.enabled]


def load_settings(**overrides: Any) -> Settings:
    """Create a Settings instance with optional overrides."""
    return Settings(**overrides)
