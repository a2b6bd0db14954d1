"""
Configuration management for the Price Proxy Service.
Uses pydantic-settings for environment variable management.
"""

from types import MappingProxyType
from typing import Mapping

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application metadata
    app_name: str = Field(default="Price Proxy")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    # Server configuration
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8080)

    # Upstream exchange
    coinex_api_url: str = Field(default="https://api.coinex.com/v1")
    request_timeout: float = Field(default=10.0)  # seconds, per upstream call

    # Price cache freshness window (in seconds)
    cache_ttl: float = Field(default=10.0)

    # Share one upstream round between concurrent cache misses
    single_flight: bool = Field(default=False)

    # Logging configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('cache_ttl', 'request_timeout')
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate that durations are positive."""
        if v <= 0:
            raise ValueError("duration must be greater than zero")
        return v

    @field_validator('coinex_api_url')
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Strip the trailing slash so paths can be appended."""
        if not v or not v.strip():
            raise ValueError("coinex_api_url cannot be empty")
        return v.strip().rstrip('/')

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {'json', 'text'}
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {', '.join(sorted(valid_formats))}")
        return v.lower()


# Global settings instance
settings = Settings()


# Symbol key -> CoinEx market. Fixed at process start.
MARKETS: Mapping[str, str] = MappingProxyType({
    'ban': 'BANANOUSDT',
    'bnb': 'BNBUSDC',
    'eth': 'ETHUSDC',
    'matic': 'POLUSDC',
    'ftm': 'SUSDC',
})
