"""
Test suite for configuration management.

Verifies defaults, environment overrides and validation of the settings tree.
"""

import pytest
from pydantic import ValidationError

from extension_grafana.config.settings import (
    APIConfig,
    Config,
    DiscoveryConfig,
    GrafanaConfig,
    get_config,
    reload_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "GRAFANA_API_BASE_URL",
        "GRAFANA_SERVICE_TOKEN",
        "DISCOVERY_INTERVAL_SECONDS",
        "DISCOVERY_ATTRIBUTES_EXCLUDES_ALERT",
        "ANNOTATIONS_SEARCH_RETRIES",
        "API_PORT",
        "API_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


class TestConfiguration:
    """Test the configuration system."""

    def test_config_loads_defaults(self):
        config = Config()

        assert config.grafana.api_base_url == "http://localhost:3000"
        assert config.grafana.service_token is None
        assert config.discovery.interval_seconds == 60
        assert config.discovery.attributes_excludes_alert == []
        assert config.discovery.include_host_in_target_id is True
        assert config.annotations.search_limit == 10
        assert config.annotations.search_retries == 0
        assert config.api.port == 8083
        assert config.api.log_level == "INFO"

    def test_config_loads_from_env_vars(self, monkeypatch):
        monkeypatch.setenv("GRAFANA_API_BASE_URL", "https://grafana.example.com/")
        monkeypatch.setenv("GRAFANA_SERVICE_TOKEN", "glsa_secret")
        monkeypatch.setenv("DISCOVERY_INTERVAL_SECONDS", "15")
        monkeypatch.setenv("DISCOVERY_ATTRIBUTES_EXCLUDES_ALERT", '["grafana.alert-rule.health", "grafana.alert-rule.last-*"]')
        monkeypatch.setenv("ANNOTATIONS_SEARCH_RETRIES", "3")
        monkeypatch.setenv("API_PORT", "9000")

        config = Config()

        assert config.grafana.api_base_url == "https://grafana.example.com"
        assert config.grafana.service_token == "glsa_secret"
        assert config.discovery.interval_seconds == 15
        assert config.discovery.attributes_excludes_alert == [
            "grafana.alert-rule.health",
            "grafana.alert-rule.last-*",
        ]
        assert config.annotations.search_retries == 3
        assert config.api.port == 9000

    def test_host_is_taken_from_base_url(self):
        assert GrafanaConfig(api_base_url="https://grafana.example.com:3000/").host == "grafana.example.com"

    def test_log_level_is_normalized(self):
        assert APIConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            APIConfig(log_level="verbose")

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            DiscoveryConfig(interval_seconds=0)

    def test_reload_config_replaces_global(self, monkeypatch):
        first = reload_config()
        assert get_config() is first

        monkeypatch.setenv("API_PORT", "9100")
        second = reload_config()

        assert second is not first
        assert get_config().api.port == 9100

    def test_sections_read_dotenv_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text(
            "GRAFANA_API_BASE_URL=http://from-dotenv:3000\n"
            "GRAFANA_SERVICE_TOKEN=glsa_dotenv\n"
            "DISCOVERY_INTERVAL_SECONDS=15\n"
            "API_PORT=9200\n",
            encoding="utf-8",
        )
        monkeypatch.chdir(tmp_path)

        config = reload_config()

        assert config.grafana.api_base_url == "http://from-dotenv:3000"
        assert config.grafana.service_token == "glsa_dotenv"
        assert config.discovery.interval_seconds == 15
        assert config.api.port == 9200

    def test_env_vars_override_dotenv_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("API_PORT=9200\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("API_PORT", "9300")

        assert Config().api.port == 9300
