"""Configuration management using Pydantic Settings."""

import os
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Find .env file
# =============================================================================

def find_env_file() -> str:
    """
    Locate the .env file.

    FRONTDESK_ENV_FILE wins when set; otherwise the working directory is
    searched before the per-user state directory.
    """
    override = os.environ.get("FRONTDESK_ENV_FILE")
    if override:
        return override

    candidates = [
        Path(".env"),
        Path("config") / ".env",
        Path.home() / ".frontdesk" / ".env",
    ]

    for path in candidates:
        if path.is_file():
            return str(path)

    return ".env"


ENV_FILE = find_env_file()


# =============================================================================
# Settings Classes
# =============================================================================


class ApiSettings(BaseSettings):
    """Back-office REST API settings."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="FRONTDESK_API_",
        extra="ignore",
    )

    base_url: str = "http://localhost:5000/api"
    token: SecretStr = SecretStr("")
    timeout_seconds: int = 30

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("API base URL must be an absolute http(s) URL")
        return v.rstrip("/")


class WizardSettings(BaseSettings):
    """Reservation wizard defaults."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="FRONTDESK_WIZARD_",
        extra="ignore",
    )

    default_tax_rate: Decimal = Decimal("10")
    guest_page_size: int = 100
    max_occupants: int = 10
    reservations_path: str = "/frontdesk/reservations"

    @field_validator("default_tax_rate")
    @classmethod
    def validate_tax_rate(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Default tax rate cannot be negative")
        return v

    @field_validator("guest_page_size", "max_occupants")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Paths
    state_dir: str = "~/.frontdesk"


class Settings(BaseSettings):
    """Main settings container with lazy loading."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    _api: ApiSettings | None = None
    _wizard: WizardSettings | None = None
    _app: AppSettings | None = None

    @property
    def api(self) -> ApiSettings:
        if self._api is None:
            self._api = ApiSettings()
        return self._api

    @property
    def wizard(self) -> WizardSettings:
        if self._wizard is None:
            self._wizard = WizardSettings()
        return self._wizard

    @property
    def app(self) -> AppSettings:
        if self._app is None:
            self._app = AppSettings()
        return self._app

    # Convenience accessors
    @property
    def api_base_url(self) -> str:
        return self.api.base_url

    @property
    def api_token(self) -> str:
        return self.api.token.get_secret_value()

    @property
    def api_timeout_seconds(self) -> int:
        return self.api.timeout_seconds

    @property
    def hotel_state_file(self) -> Path:
        return Path(self.app.state_dir).expanduser() / "current_hotel.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
