"""Application configuration from environment variables."""

from functools import lru_cache

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./hoa_dues.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Log file path")

    # Presentation
    locale: str = Field(default="es_MX", description="Babel locale for amount formatting")
    currency: str = Field(default="MXN", description="ISO 4217 currency code")

    # Dues engine
    fiscal_year_start_month: int = Field(
        default=1,
        ge=1,
        le=12,
        description="Calendar month of fiscal month 1",
    )
    strict_ledger: bool = Field(
        default=False,
        description="Reject payments when a month is paid above the scheduled amount",
    )
    credit_history_limit: int = Field(
        default=50,
        ge=1,
        description="Default number of credit history entries returned",
    )

    # API
    api_title: str = Field(default="HOA Dues API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
