"""Unit tests for configuration management."""

import logging
from unittest.mock import patch

from apphealth.core.config import (
    Config,
    HealthCheckConfig,
    PublisherConfig,
    ServiceConfig,
    config_candidates,
    load_config,
    merge_settings,
    save_config,
    setup_logging,
)


class TestHealthCheckConfig:
    """Tests for HealthCheckConfig dataclass."""

    def test_default_values(self):
        """Test default scheduler configuration."""
        config = HealthCheckConfig()
        assert config.initial_delay == 10
        assert config.period == 300
        assert config.probe_workers == 1


class TestPublisherConfig:
    """Tests for PublisherConfig dataclass."""

    def test_default_values(self):
        """Test publisher is disabled by default."""
        config = PublisherConfig()
        assert config.enabled is False
        assert config.impl is None
        assert config.daily_send_hour == 9
        assert config.settings == {}


class TestConfig:
    """Tests for main Config class."""

    def test_default_values(self):
        """Test default configuration values."""
        config = Config()
        assert isinstance(config.service, ServiceConfig)
        assert isinstance(config.health_check, HealthCheckConfig)
        assert isinstance(config.publisher, PublisherConfig)
        assert config.service.timezone == "UTC"
        assert config.applications == []
        assert config.log_level == "INFO"

    def test_from_dict_empty(self):
        """Test creating config from empty dict uses defaults."""
        config = Config.from_dict({})
        assert config.health_check.initial_delay == 10
        assert config.health_check.period == 300
        assert config.publisher.enabled is False

    def test_from_dict_custom_values(self):
        """Test creating config from dict with custom values."""
        data = {
            "service": {"timezone": "Asia/Shanghai", "smtp_host": "mail.local"},
            "health_check": {"initial_delay": 0, "period": 60, "probe_workers": 4},
            "publisher": {
                "enabled": True,
                "impl": "email",
                "daily_send_hour": 11,
                "recipients": ["ops@example.com"],
            },
            "applications": [{"id": "app1", "type": "http"}],
            "log_level": "DEBUG",
        }
        config = Config.from_dict(data)

        assert config.service.timezone == "Asia/Shanghai"
        assert config.service.settings == {"smtp_host": "mail.local"}
        assert config.health_check.initial_delay == 0
        assert config.health_check.period == 60
        assert config.health_check.probe_workers == 4
        assert config.publisher.enabled is True
        assert config.publisher.impl == "email"
        assert config.publisher.daily_send_hour == 11
        assert config.publisher.settings == {"recipients": ["ops@example.com"]}
        assert config.applications == [{"id": "app1", "type": "http"}]
        assert config.log_level == "DEBUG"

    def test_from_dict_blank_timezone(self):
        """Test a blank timezone entry falls back to UTC."""
        config = Config.from_dict({"service": {"timezone": None}})
        assert config.service.timezone == "UTC"

    def test_from_dict_does_not_mutate_input(self):
        """Test from_dict leaves the source mapping intact."""
        data = {"publisher": {"enabled": True, "impl": "log"}}
        Config.from_dict(data)
        assert data == {"publisher": {"enabled": True, "impl": "log"}}

    def test_to_dict(self):
        """Test converting config to dict."""
        config = Config()
        config.publisher.settings = {"log_path": "/tmp/health.log"}
        data = config.to_dict()

        assert data["service"] == {"timezone": "UTC"}
        assert data["health_check"]["period"] == 300
        assert data["publisher"]["enabled"] is False
        assert data["publisher"]["log_path"] == "/tmp/health.log"
        assert data["log_level"] == "INFO"

    def test_roundtrip(self):
        """Test config survives to_dict/from_dict roundtrip."""
        original = Config()
        original.service.settings = {"smtp_host": "mail.local"}
        original.publisher.impl = "slack"
        original.publisher.settings = {"webhook_url": "https://hooks.example"}
        restored = Config.from_dict(original.to_dict())

        assert restored == original


class TestMergeSettings:
    """Tests for merge_settings function."""

    def test_earlier_layer_wins(self):
        """Test values from earlier layers take precedence."""
        merged = merge_settings({"a": 1}, {"a": 2, "b": 2}, {"b": 3, "c": 3})
        assert merged == {"a": 1, "b": 2, "c": 3}

    def test_nested_dicts_merge(self):
        """Test nested mappings are merged key by key."""
        merged = merge_settings(
            {"smtp": {"host": "override"}},
            {"smtp": {"host": "default", "port": 25}},
        )
        assert merged == {"smtp": {"host": "override", "port": 25}}

    def test_none_layers_skipped(self):
        """Test None layers are ignored."""
        assert merge_settings(None, {"a": 1}, None) == {"a": 1}

    def test_inputs_not_modified(self):
        """Test merging copies rather than aliases its inputs."""
        base = {"nested": {"x": 1}}
        merged = merge_settings({"nested": {"y": 2}}, base)
        merged["nested"]["x"] = 99
        assert base == {"nested": {"x": 1}}


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_default_config(self):
        """Test loading config with no file returns defaults."""
        config = load_config()
        assert isinstance(config, Config)
        assert config.health_check.period == 300

    def test_load_from_explicit_path(self, tmp_path):
        """Test loading config from explicit path."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            """
health_check:
  period: 120
publisher:
  enabled: true
  impl: console
log_level: WARNING
"""
        )
        config = load_config(config_file)
        assert config.health_check.period == 120
        assert config.publisher.impl == "console"
        assert config.log_level == "WARNING"

    def test_env_config_path(self, tmp_path, monkeypatch):
        """Test APPHEALTH_CONFIG selects the config file."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("health_check:\n  initial_delay: 3\n")
        monkeypatch.setenv("APPHEALTH_CONFIG", str(config_file))

        config = load_config()
        assert config.health_check.initial_delay == 3

    def test_candidates_explicit_path_only(self, tmp_path, monkeypatch):
        """Test an explicit path excludes the search locations."""
        monkeypatch.setenv("APPHEALTH_CONFIG", str(tmp_path / "env.yaml"))
        assert config_candidates(tmp_path / "mine.yaml") == [tmp_path / "mine.yaml"]

    def test_candidates_env_first(self, tmp_path, monkeypatch):
        """Test APPHEALTH_CONFIG is searched before the default locations."""
        monkeypatch.setenv("APPHEALTH_CONFIG", str(tmp_path / "env.yaml"))
        candidates = config_candidates()
        assert candidates[0] == tmp_path / "env.yaml"
        assert len(candidates) == 3

    def test_unreadable_file_skipped(self, tmp_path, monkeypatch):
        """Test malformed YAML is skipped in favour of the next location."""
        broken = tmp_path / "broken.yaml"
        broken.write_text("health_check: [unclosed\n")
        fallback = tmp_path / "fallback.yaml"
        fallback.write_text("health_check:\n  period: 45\n")
        monkeypatch.setenv("APPHEALTH_CONFIG", str(broken))
        monkeypatch.setattr("apphealth.core.config.DEFAULT_CONFIG_FILE", fallback)

        config = load_config()
        assert config.health_check.period == 45

    def test_env_override_period(self, monkeypatch):
        """Test APPHEALTH_PERIOD environment override."""
        monkeypatch.setenv("APPHEALTH_PERIOD", "30")
        config = load_config()
        assert config.health_check.period == 30

    def test_env_override_invalid_period(self, monkeypatch):
        """Test invalid APPHEALTH_PERIOD is ignored."""
        monkeypatch.setenv("APPHEALTH_PERIOD", "not-a-number")
        config = load_config()
        assert config.health_check.period == 300  # Default

    def test_env_override_timezone_and_hour(self, monkeypatch):
        """Test time zone and daily hour overrides."""
        monkeypatch.setenv("APPHEALTH_TIMEZONE", "Europe/Paris")
        monkeypatch.setenv("APPHEALTH_DAILY_SEND_HOUR", "7")
        config = load_config()
        assert config.service.timezone == "Europe/Paris"
        assert config.publisher.daily_send_hour == 7

    def test_env_override_publisher(self, monkeypatch):
        """Test APPHEALTH_PUBLISHER enables and selects a publisher."""
        monkeypatch.setenv("APPHEALTH_PUBLISHER", "console")
        config = load_config()
        assert config.publisher.enabled is True
        assert config.publisher.impl == "console"

    def test_env_override_log_level(self, monkeypatch):
        """Test APPHEALTH_LOG_LEVEL environment override."""
        monkeypatch.setenv("APPHEALTH_LOG_LEVEL", "DEBUG")
        config = load_config()
        assert config.log_level == "DEBUG"


class TestSaveConfig:
    """Tests for save_config function."""

    def test_save_config(self, tmp_path):
        """Test saving config to file."""
        config = Config()
        config_file = tmp_path / "subdir" / "config.yaml"

        save_config(config, config_file)

        assert config_file.exists()
        content = config_file.read_text()
        assert "health_check:" in content
        assert "publisher:" in content

    def test_save_and_load_roundtrip(self, tmp_path):
        """Test config survives save/load roundtrip."""
        original = Config()
        original.health_check.period = 600
        original.publisher.daily_send_hour = 22
        original.log_level = "ERROR"

        config_file = tmp_path / "config.yaml"
        save_config(original, config_file)
        loaded = load_config(config_file)

        assert loaded.health_check.period == 600
        assert loaded.publisher.daily_send_hour == 22
        assert loaded.log_level == "ERROR"


class TestSetupLogging:
    """Tests for setup_logging function."""

    @patch("logging.basicConfig")
    def test_level_name(self, mock_basic_config):
        """Test the level name is mapped to a logging level."""
        setup_logging("debug")

        kwargs = mock_basic_config.call_args.kwargs
        assert kwargs["level"] == logging.DEBUG
        assert "%(levelname)s" in kwargs["format"]

    @patch("logging.basicConfig")
    def test_unknown_level_defaults_to_info(self, mock_basic_config):
        """Test an unknown level name falls back to INFO."""
        setup_logging("chatty")
        assert mock_basic_config.call_args.kwargs["level"] == logging.INFO
