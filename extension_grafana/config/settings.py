"""
Centralized Configuration Management for the Grafana extension

Uses Pydantic Settings for type-safe environment variable loading.
The service token must be provided via environment variables.
"""

from typing import List, Optional
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GrafanaConfig(BaseSettings):
    """Grafana API configuration."""

    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Grafana base URL, also used to build deep links"
    )
    service_token: Optional[str] = Field(
        default=None,
        description="Grafana service account token"
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for every Grafana request"
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def host(self) -> Optional[str]:
        """Host part of the base URL, None when it cannot be parsed."""
        return urlparse(self.api_base_url).hostname

    model_config = SettingsConfigDict(
        env_prefix="GRAFANA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


class DiscoveryConfig(BaseSettings):
    """Alert rule discovery configuration."""

    interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Refresh interval of the discovered targets"
    )
    attributes_excludes_alert: List[str] = Field(
        default_factory=list,
        description="Attribute keys (glob patterns) removed from discovered targets"
    )
    check_datasource_health: bool = Field(
        default=False,
        description="Probe each datasource health before fetching its rules"
    )
    include_host_in_target_id: bool = Field(
        default=True,
        description="Prefix target ids with the Grafana host"
    )

    model_config = SettingsConfigDict(
        env_prefix="DISCOVERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


class AnnotationConfig(BaseSettings):
    """Experiment annotation configuration."""

    search_limit: int = Field(
        default=10,
        gt=0,
        description="Page size used when searching annotations to patch"
    )
    search_retries: int = Field(
        default=0,
        ge=0,
        description="Extra search attempts when no annotation matches"
    )
    search_retry_wait_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Wait between two search attempts"
    )

    model_config = SettingsConfigDict(
        env_prefix="ANNOTATIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


class APIConfig(BaseSettings):
    """FastAPI server configuration."""

    host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    port: int = Field(
        default=8083,
        description="API server port"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


class Config(BaseSettings):
    """Main application configuration."""

    grafana: GrafanaConfig = Field(default_factory=GrafanaConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    annotations: AnnotationConfig = Field(default_factory=AnnotationConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = Config()
    return _config
