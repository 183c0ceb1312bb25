from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .credentials import ConfigurationError, Credential

DEFAULT_BASE_URL = "https://api.binance.com"
DEFAULT_TIMEOUT = 30.0


class Settings(BaseSettings):
    """Central configuration object loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str | None = Field(None, alias="BINANCE_API_KEY")
    api_secret: str | None = Field(None, alias="BINANCE_API_SECRET")
    base_url: str = Field(DEFAULT_BASE_URL, alias="BINANCE_BASE_URL")
    timeout: float = Field(DEFAULT_TIMEOUT, alias="BINANCE_TIMEOUT", gt=0)
    api_key_header: str = Field("X-MBX-APIKEY", alias="BINANCE_API_KEY_HEADER", min_length=1)
    environment: str = Field("development", alias="BINANCE_PROXY_ENV")

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def credential(self) -> Credential:
        """Build the immutable API credential or fail loudly."""

        missing = [
            name
            for name, value in (("BINANCE_API_KEY", self.api_key), ("BINANCE_API_SECRET", self.api_secret))
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
        return Credential(key=self.api_key, secret=self.api_secret)


def load_settings(env_path: str | Path | None = None) -> Settings:
    """Load settings from environment variables or .env file.

    Args:
        env_path: Optional path to .env file. If None, uses default .env file.

    Returns:
        Settings instance loaded from environment variables.
    """
    if env_path:
        load_dotenv(dotenv_path=env_path)
    else:
        load_dotenv()
    return Settings()
