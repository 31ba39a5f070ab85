"""
Configuration management for CalcDispatch.

Provides a hierarchical configuration system with support for:
- Environment variables
- Runtime overrides
- Validation and type coercion

Configuration precedence (highest to lowest):
1. Runtime overrides
2. Environment variables
3. Default values

The task registry itself reads no configuration. Only the HTTP
layer, the client and the CLI consult these settings.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="CALCDISPATCH_SERVER_")

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="CALCDISPATCH_LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"


class RegistryConfig(BaseSettings):
    """Task registry behaviour exposed over HTTP."""

    model_config = SettingsConfigDict(env_prefix="CALCDISPATCH_REGISTRY_")

    # "overwrite" replaces the stored record wholesale,
    # "strict" only accepts in_progress -> completed.
    report_mode: Literal["overwrite", "strict"] = "overwrite"


class ClientConfig(BaseSettings):
    """Configuration for the dispatch HTTP client."""

    model_config = SettingsConfigDict(env_prefix="CALCDISPATCH_CLIENT_")

    base_url: str = "http://localhost:8080"
    timeout: float = 10.0
    max_retries: int = 3

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class CalcDispatchConfig(BaseSettings):
    """
    Root configuration for CalcDispatch.

    All configuration values can be set via environment variables
    with the CALCDISPATCH_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="CALCDISPATCH_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    env: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Sub-configurations
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)


@lru_cache
def get_config() -> CalcDispatchConfig:
    """
    Get the global CalcDispatch configuration.

    This is cached for performance. Call `get_config.cache_clear()`
    to reload configuration.
    """
    return CalcDispatchConfig()


def configure(**overrides: Any) -> CalcDispatchConfig:
    """
    Configure CalcDispatch with explicit overrides.

    This clears the cached configuration and creates a new one
    with the provided overrides.
    """
    get_config.cache_clear()
    return CalcDispatchConfig(**overrides)
