#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
flight search service. All configuration is centralized here to ensure
consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Easy testing with override mechanisms

Author: System Architect
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis connection configuration for the cache-aside layer.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_KEY_PREFIX: str = Field(default="", description="Prefix applied to every key")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Cache TTL configuration.

    STAGE-2: Cache TTL configuration
    """

    REDIS_TTL_SECONDS: int = Field(default=3600, description="Default cache TTL in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ResilienceSettings(BaseSettings):
    """
    Defaults for the timeout / retry / circuit breaker pipeline.

    STAGE-RS: Resilience policy defaults

    These values apply to every operation key executed without per-call
    overrides.
    """

    RES_TIMEOUT_MS: int = Field(default=1000, description="Per-attempt timeout in milliseconds")
    RES_RETRY_ATTEMPTS: int = Field(default=2, description="Total attempts including the first")
    RES_RETRY_BASE_MS: int = Field(default=200, description="Base backoff delay in milliseconds")
    RES_RETRY_MAX_DELAY_MS: int = Field(default=2000, description="Backoff delay cap in milliseconds")
    RES_RETRY_MULTIPLIER: float = Field(default=2.0, description="Exponential backoff multiplier")
    RES_CB_FAILURE_THRESHOLD: int = Field(default=3, description="Consecutive failures before opening")
    RES_CB_HALFOPEN_MS: int = Field(default=10000, description="Open duration before a probe is allowed")
    RES_CB_SUCCESS_THRESHOLD: int = Field(default=1, description="Probe successes needed to close")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class AmadeusSettings(BaseSettings):
    """
    Amadeus flight offers provider configuration.

    STAGE-0.2: Provider configuration
    """

    AMADEUS_API_KEY: str = Field(default="", description="Amadeus client id")
    AMADEUS_API_SECRET: str = Field(default="", description="Amadeus client secret")
    AMADEUS_BASE_URL: str = Field(default="https://test.api.amadeus.com", description="Amadeus base URL")
    AMADEUS_TOKEN_CACHE_TTL: int = Field(default=3300, description="Upper bound for the cached token TTL")
    AMADEUS_TOKEN_TTL_FRACTION: float = Field(
        default=0.9, description="Fraction of the declared token lifetime used as cache TTL"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Flight Search Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=3000, description="API port")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for all routers")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from flight_search.core.config.settings import get_settings

        settings = get_settings()
        timeout_ms = settings.resilience.RES_TIMEOUT_MS
        ttl = settings.cache.REDIS_TTL_SECONDS
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_KEY_PREFIX: str | None = Field(
        default=None, description="Key prefix (defaults to flightsearch:<ENVIRONMENT>:)"
    )

    # Cache settings
    REDIS_TTL_SECONDS: int = Field(default=3600, description="Default cache TTL in seconds")

    # Resilience settings
    RES_TIMEOUT_MS: int = Field(default=1000, description="Per-attempt timeout in milliseconds")
    RES_RETRY_ATTEMPTS: int = Field(default=2, description="Total attempts including the first")
    RES_RETRY_BASE_MS: int = Field(default=200, description="Base backoff delay in milliseconds")
    RES_RETRY_MAX_DELAY_MS: int = Field(default=2000, description="Backoff delay cap in milliseconds")
    RES_RETRY_MULTIPLIER: float = Field(default=2.0, description="Exponential backoff multiplier")
    RES_CB_FAILURE_THRESHOLD: int = Field(default=3, description="Consecutive failures before opening")
    RES_CB_HALFOPEN_MS: int = Field(default=10000, description="Open duration before a probe is allowed")
    RES_CB_SUCCESS_THRESHOLD: int = Field(default=1, description="Probe successes needed to close")

    # Amadeus settings
    AMADEUS_API_KEY: str = Field(default="", description="Amadeus client id")
    AMADEUS_API_SECRET: str = Field(default="", description="Amadeus client secret")
    AMADEUS_BASE_URL: str = Field(default="https://test.api.amadeus.com", description="Amadeus base URL")
    AMADEUS_TOKEN_CACHE_TTL: int = Field(default=3300, description="Upper bound for the cached token TTL")
    AMADEUS_TOKEN_TTL_FRACTION: float = Field(
        default=0.9, description="Fraction of the declared token lifetime used as cache TTL"
    )

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Flight Search Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=3000, description="API port")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for all routers")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator(
        "RES_TIMEOUT_MS",
        "RES_RETRY_ATTEMPTS",
        "RES_CB_FAILURE_THRESHOLD",
        "RES_CB_SUCCESS_THRESHOLD",
        "REDIS_TTL_SECONDS",
        "AMADEUS_TOKEN_CACHE_TTL",
    )
    @classmethod
    def validate_positive(cls, v, info):
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than 0")
        return v

    @field_validator("RES_RETRY_BASE_MS", "RES_RETRY_MAX_DELAY_MS", "RES_CB_HALFOPEN_MS")
    @classmethod
    def validate_non_negative(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @field_validator("AMADEUS_TOKEN_TTL_FRACTION")
    @classmethod
    def validate_ttl_fraction(cls, v):
        # The cached token must expire before the provider's declared expiry
        if not 0 < v < 1:
            raise ValueError("AMADEUS_TOKEN_TTL_FRACTION must be between 0 and 1 (exclusive)")
        return v

    # Nested configuration views
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_KEY_PREFIX=(
                self.REDIS_KEY_PREFIX
                if self.REDIS_KEY_PREFIX is not None
                else f"flightsearch:{self.ENVIRONMENT}:"
            ),
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache settings."""
        return CacheSettings(REDIS_TTL_SECONDS=self.REDIS_TTL_SECONDS)

    @property
    def resilience(self) -> ResilienceSettings:
        """Get resilience policy defaults."""
        return ResilienceSettings(
            RES_TIMEOUT_MS=self.RES_TIMEOUT_MS,
            RES_RETRY_ATTEMPTS=self.RES_RETRY_ATTEMPTS,
            RES_RETRY_BASE_MS=self.RES_RETRY_BASE_MS,
            RES_RETRY_MAX_DELAY_MS=self.RES_RETRY_MAX_DELAY_MS,
            RES_RETRY_MULTIPLIER=self.RES_RETRY_MULTIPLIER,
            RES_CB_FAILURE_THRESHOLD=self.RES_CB_FAILURE_THRESHOLD,
            RES_CB_HALFOPEN_MS=self.RES_CB_HALFOPEN_MS,
            RES_CB_SUCCESS_THRESHOLD=self.RES_CB_SUCCESS_THRESHOLD,
        )

    @property
    def amadeus(self) -> AmadeusSettings:
        """Get Amadeus provider settings."""
        return AmadeusSettings(
            AMADEUS_API_KEY=self.AMADEUS_API_KEY,
            AMADEUS_API_SECRET=self.AMADEUS_API_SECRET,
            AMADEUS_BASE_URL=self.AMADEUS_BASE_URL,
            AMADEUS_TOKEN_CACHE_TTL=self.AMADEUS_TOKEN_CACHE_TTL,
            AMADEUS_TOKEN_TTL_FRACTION=self.AMADEUS_TOKEN_TTL_FRACTION,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            API_BASE_PATH=self.API_BASE_PATH,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
