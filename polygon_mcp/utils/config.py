"""Configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

SERVER_NAME = "polygon-stock-server"
SERVER_VERSION = "0.1.0"

# Polygon REST endpoints, relative to the base URL
LAST_TRADE_ENDPOINT = "last/stocks"
DAILY_OPEN_CLOSE_ENDPOINT = "open-close"


class ConfigurationError(Exception):
    """Raised when required configuration is missing at startup."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Polygon API - loaded from .env or the process environment
    polygon_api_key: str = Field(
        ...,
        min_length=1,
        description="Polygon.io API key from POLYGON_API_KEY env var (required)",
    )
    polygon_base_url: str = Field(
        "https://api.polygon.io/v1",
        description="Polygon REST base URL from POLYGON_BASE_URL env var",
    )
    default_symbol: str = Field(
        "AAPL",
        description="Symbol served by the stock://{symbol}/current resource",
    )

    log_level: str = Field(
        "INFO",
        description="Logging level from LOG_LEVEL env var (default: INFO)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def current_resource_uri(self) -> str:
        return f"stock://{self.default_symbol}/current"


def load_settings(**overrides) -> Settings:
    """Build settings, failing fast when the API key is not configured."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = any(err["loc"] == ("polygon_api_key",) for err in e.errors())
        if missing:
            raise ConfigurationError(
                "POLYGON_API_KEY environment variable is required"
            ) from e
        raise


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return load_settings()
