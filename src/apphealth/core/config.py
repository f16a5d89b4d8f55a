"""
Configuration management for the application health service.

Loads configuration from YAML files with environment variable overrides.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


# Default configuration paths
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "apphealth"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
SYSTEM_CONFIG_FILE = Path("/etc/apphealth/config.yaml")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class ServiceConfig:
    """Service-wide settings, also the fallback layer for publishers."""

    timezone: str = "UTC"
    settings: dict[str, Any] = field(default_factory=dict)

    def as_settings(self) -> dict[str, Any]:
        """Flatten into a single settings mapping."""
        data = copy.deepcopy(self.settings)
        data["timezone"] = self.timezone
        return data


@dataclass
class HealthCheckConfig:
    """Scheduler tunables."""

    initial_delay: int = 10
    period: int = 300
    probe_workers: int = 1


@dataclass
class PublisherConfig:
    """Notification publisher selection."""

    enabled: bool = False
    impl: Optional[str] = None
    daily_send_hour: int = 9
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass
class Config:
    """Main configuration for the application health service."""

    service: ServiceConfig = field(default_factory=ServiceConfig)
    health_check: HealthCheckConfig = field(default_factory=HealthCheckConfig)
    publisher: PublisherConfig = field(default_factory=PublisherConfig)
    applications: list[dict[str, Any]] = field(default_factory=list)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        service_data = dict(data.get("service") or {})
        health_data = data.get("health_check") or {}
        publisher_data = dict(data.get("publisher") or {})

        service = ServiceConfig(
            timezone=service_data.pop("timezone", None) or "UTC",
            settings=service_data,
        )

        health_check = HealthCheckConfig(
            initial_delay=int(health_data.get("initial_delay", 10)),
            period=int(health_data.get("period", 300)),
            probe_workers=int(health_data.get("probe_workers", 1)),
        )

        publisher = PublisherConfig(
            enabled=bool(publisher_data.pop("enabled", False)),
            impl=publisher_data.pop("impl", None),
            daily_send_hour=int(publisher_data.pop("daily_send_hour", 9)),
            settings=publisher_data,
        )

        return cls(
            service=service,
            health_check=health_check,
            publisher=publisher,
            applications=list(data.get("applications") or []),
            log_level=data.get("log_level", "INFO"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert Config to dictionary."""
        publisher = {
            "enabled": self.publisher.enabled,
            "impl": self.publisher.impl,
            "daily_send_hour": self.publisher.daily_send_hour,
        }
        publisher.update(self.publisher.settings)
        return {
            "service": self.service.as_settings(),
            "health_check": {
                "initial_delay": self.health_check.initial_delay,
                "period": self.health_check.period,
                "probe_workers": self.health_check.probe_workers,
            },
            "publisher": publisher,
            "applications": copy.deepcopy(self.applications),
            "log_level": self.log_level,
        }


def merge_settings(*layers: Optional[dict[str, Any]]) -> dict[str, Any]:
    """
    Deep-merge settings mappings, earlier layers taking precedence.

    Nested dictionaries are merged key by key; any other value from an
    earlier layer replaces the later one outright.

    Args:
        layers: Mappings in priority order (highest first). None is skipped.

    Returns:
        A new merged dictionary; inputs are not modified
    """
    merged: dict[str, Any] = {}
    for layer in reversed([layer for layer in layers if layer]):
        for key, value in layer.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = merge_settings(value, merged[key])
            else:
                merged[key] = copy.deepcopy(value)
    return merged


def config_candidates(config_path: Optional[Path] = None) -> list[Path]:
    """
    List the config files load_config() considers, in priority order.

    An explicit path excludes every other location.
    """
    if config_path:
        return [Path(config_path)]
    candidates = []
    env_path = os.environ.get("APPHEALTH_CONFIG")
    if env_path:
        candidates.append(Path(env_path))
    candidates.extend([DEFAULT_CONFIG_FILE, SYSTEM_CONFIG_FILE])
    return candidates


def _read_config_file(path: Path) -> Optional[dict[str, Any]]:
    """Parse one YAML config file; None if it is missing or unreadable."""
    if not path.is_file():
        return None
    try:
        with open(path) as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return None


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    The first readable file from config_candidates() is used:
    1. Explicit path if provided
    2. APPHEALTH_CONFIG environment variable
    3. ~/.config/apphealth/config.yaml
    4. /etc/apphealth/config.yaml
    Without one, defaults apply.

    Environment variable overrides:
    - APPHEALTH_INITIAL_DELAY: Override health_check.initial_delay
    - APPHEALTH_PERIOD: Override health_check.period
    - APPHEALTH_TIMEZONE: Override service.timezone
    - APPHEALTH_DAILY_SEND_HOUR: Override publisher.daily_send_hour
    - APPHEALTH_PUBLISHER: Enable and select publisher.impl
    - APPHEALTH_LOG_LEVEL: Override log_level

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Loaded configuration
    """
    config_data: dict[str, Any] = {}
    for path in config_candidates(config_path):
        data = _read_config_file(path)
        if data is not None:
            logger.debug(f"Loaded configuration from {path}")
            config_data = data
            break

    return _apply_env_overrides(Config.from_dict(config_data))


def _env_int(name: str) -> Optional[int]:
    """Read an integer environment variable, ignoring malformed values."""
    if name not in os.environ:
        return None
    try:
        return int(os.environ[name])
    except ValueError:
        return None


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    initial_delay = _env_int("APPHEALTH_INITIAL_DELAY")
    if initial_delay is not None:
        config.health_check.initial_delay = initial_delay

    period = _env_int("APPHEALTH_PERIOD")
    if period is not None:
        config.health_check.period = period

    send_hour = _env_int("APPHEALTH_DAILY_SEND_HOUR")
    if send_hour is not None:
        config.publisher.daily_send_hour = send_hour

    if "APPHEALTH_TIMEZONE" in os.environ:
        config.service.timezone = os.environ["APPHEALTH_TIMEZONE"]

    if os.environ.get("APPHEALTH_PUBLISHER"):
        config.publisher.enabled = True
        config.publisher.impl = os.environ["APPHEALTH_PUBLISHER"]

    if "APPHEALTH_LOG_LEVEL" in os.environ:
        config.log_level = os.environ["APPHEALTH_LOG_LEVEL"]

    return config


def save_config(config: Config, path: Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration to save
        path: Path to save to
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        f.write("# apphealth configuration, written by save_config()\n")
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging for a host process.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
