"""
Application settings using pydantic-settings.

Loads configuration from environment variables with validation.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """MongoDB connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="MongoDB host")
    port: int = Field(default=27017, ge=1, le=65535, description="MongoDB port")
    root_user: str = Field(default="admin", description="MongoDB root username")
    root_password: SecretStr = Field(
        default=SecretStr("secret"), description="MongoDB root password"
    )
    db_name: str = Field(default="coin_predictions", description="Database name")
    auth_source: str = Field(default="admin", description="Authentication database")

    # Connection pool settings
    min_pool_size: int = Field(default=5, ge=1, description="Minimum connection pool size")
    max_pool_size: int = Field(default=50, ge=1, description="Maximum connection pool size")
    max_idle_time_ms: int = Field(default=60000, ge=0, description="Max idle time in milliseconds")

    # Timeouts
    connect_timeout_ms: int = Field(default=5000, ge=1000, description="Connection timeout in ms")
    server_selection_timeout_ms: int = Field(
        default=5000, ge=1000, description="Server selection timeout in ms"
    )

    @computed_field  # type: ignore[misc]
    @property
    def uri(self) -> str:
        """Build MongoDB connection URI."""
        password = self.root_password.get_secret_value()
        return (
            f"mongodb://{self.root_user}:{password}@{self.host}:{self.port}"
            f"/{self.db_name}?authSource={self.auth_source}"
        )


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = Field(default="Coin Predictions", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment name",
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="Render log lines as JSON")


class OracleSettings(BaseSettings):
    """Market price oracle settings (CoinGecko compatible API)."""

    model_config = SettingsConfigDict(
        env_prefix="ORACLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Base URL of the price API",
    )
    vs_currency: str = Field(default="usd", description="Quote currency for prices")
    api_key: SecretStr | None = Field(default=None, description="Optional API key")
    timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP request timeout")


class ResolutionSettings(BaseSettings):
    """Settings for the prediction resolution worker and its trigger."""

    model_config = SettingsConfigDict(
        env_prefix="RESOLUTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    window_hours: float = Field(
        default=24, gt=0, description="Hours after which a prediction becomes eligible"
    )
    batch_size: int = Field(
        default=500, ge=1, description="Maximum predictions examined per pass"
    )
    max_concurrency: int = Field(
        default=5, ge=1, le=100, description="Concurrent oracle lookups per pass"
    )
    oracle_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for a single oracle lookup"
    )
    deadline_seconds: float | None = Field(
        default=55.0, gt=0, description="Overall deadline for one pass (None disables)"
    )
    cron_secret: SecretStr | None = Field(
        default=None,
        description="Bearer secret for the resolution trigger; unset disables it",
    )

    @property
    def window(self) -> timedelta:
        """Resolution window as a timedelta."""
        return timedelta(hours=self.window_hours)


class Settings(BaseSettings):
    """Main settings container."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mongo: MongoSettings = Field(default_factory=MongoSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    oracle: OracleSettings = Field(default_factory=OracleSettings)
    resolution: ResolutionSettings = Field(default_factory=ResolutionSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
