# Config Package
"""
Configuration for the Grafana extension.

Usage:
    from extension_grafana.config import get_config

    config = get_config()
    config.grafana.api_base_url
"""

from extension_grafana.config.settings import (
    Config,
    GrafanaConfig,
    DiscoveryConfig,
    AnnotationConfig,
    APIConfig,
    get_config,
    reload_config,
)

__all__ = [
    "Config",
    "GrafanaConfig",
    "DiscoveryConfig",
    "AnnotationConfig",
    "APIConfig",
    "get_config",
    "reload_config",
]
