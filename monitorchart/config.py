"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .ranges import DEFAULT_RANGE, Range


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# Refresh delay guards: never poll more often than every 3s or less often than every minute.
DEFAULT_MIN_DELAY_MS = 3000
DEFAULT_MAX_DELAY_MS = 60000

# Used when a monitor reports no check interval of its own.
DEFAULT_INTERVAL_SEC = 30

MIN_CHART_WIDTH = 640
MIN_CHART_HEIGHT = 120


@dataclass(frozen=True)
class StoreConfig:
    """Connection settings for the sample store API."""

    base_url: str = "http://localhost:8080/api/monitoring"
    timeout: int = 10  # seconds per request
    token: str | None = None  # sent as a Bearer token when set
    verify_tls: bool = True

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigError("Store base_url cannot be empty")
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"Store base_url must start with http:// or https://, got '{self.base_url}'")
        if self.timeout < 1:
            raise ConfigError(f"Store timeout must be at least 1 second (got {self.timeout})")


@dataclass(frozen=True)
class ChartConfig:
    """Chart sizing and default ranges."""

    default_range: Range = DEFAULT_RANGE
    events_range: Range = DEFAULT_RANGE
    width: int = 980  # used when the container does not report a width
    height: int = 260

    def __post_init__(self) -> None:
        if self.width < MIN_CHART_WIDTH:
            raise ConfigError(f"Chart width must be at least {MIN_CHART_WIDTH}px (got {self.width})")
        if self.height < MIN_CHART_HEIGHT:
            raise ConfigError(f"Chart height must be at least {MIN_CHART_HEIGHT}px (got {self.height})")


@dataclass(frozen=True)
class RefreshConfig:
    """Bounds for the live-refresh delay."""

    min_delay_ms: int = DEFAULT_MIN_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS
    default_interval_sec: int = DEFAULT_INTERVAL_SEC

    def __post_init__(self) -> None:
        if self.min_delay_ms < 1:
            raise ConfigError(f"Refresh min_delay_ms must be positive (got {self.min_delay_ms})")
        if self.max_delay_ms < self.min_delay_ms:
            raise ConfigError(
                f"Refresh max_delay_ms ({self.max_delay_ms}) must be >= min_delay_ms ({self.min_delay_ms})"
            )
        if self.default_interval_sec < 1:
            raise ConfigError(f"Refresh default_interval_sec must be at least 1 (got {self.default_interval_sec})")


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    store: StoreConfig = field(default_factory=StoreConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)


def _parse_range(value: object, name: str) -> Range:
    try:
        return Range.parse(str(value))
    except ValueError as e:
        raise ConfigError(f"Invalid {name}: {e}")


def _parse_store_config(data: dict | None) -> StoreConfig:
    """Parse store configuration section."""
    if data is None:
        return StoreConfig()
    if not isinstance(data, dict):
        raise ConfigError("'store' section must be a dictionary")

    token = data.get("token")

    return StoreConfig(
        base_url=str(data.get("base_url", StoreConfig.base_url)).rstrip("/"),
        timeout=int(data.get("timeout", 10)),
        token=str(token) if token is not None else None,
        verify_tls=bool(data.get("verify_tls", True)),
    )


def _parse_chart_config(data: dict | None) -> ChartConfig:
    """Parse chart configuration section."""
    if data is None:
        return ChartConfig()
    if not isinstance(data, dict):
        raise ConfigError("'chart' section must be a dictionary")

    return ChartConfig(
        default_range=_parse_range(data.get("default_range", DEFAULT_RANGE.value), "chart.default_range"),
        events_range=_parse_range(data.get("events_range", DEFAULT_RANGE.value), "chart.events_range"),
        width=int(data.get("width", 980)),
        height=int(data.get("height", 260)),
    )


def _parse_refresh_config(data: dict | None) -> RefreshConfig:
    """Parse refresh configuration section."""
    if data is None:
        return RefreshConfig()
    if not isinstance(data, dict):
        raise ConfigError("'refresh' section must be a dictionary")

    return RefreshConfig(
        min_delay_ms=int(data.get("min_delay_ms", DEFAULT_MIN_DELAY_MS)),
        max_delay_ms=int(data.get("max_delay_ms", DEFAULT_MAX_DELAY_MS)),
        default_interval_sec=int(data.get("default_interval_sec", DEFAULT_INTERVAL_SEC)),
    )


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - MONITORCHART_STORE_URL: Override store.base_url
    - MONITORCHART_STORE_TOKEN: Override store.token
    - MONITORCHART_STORE_TIMEOUT: Override store.timeout
    - MONITORCHART_DEFAULT_RANGE: Override chart.default_range
    """
    for section in ("store", "chart"):
        if config_data.get(section) is None:
            config_data[section] = {}
    # Malformed sections are reported by their parsers.
    if not isinstance(config_data["store"], dict) or not isinstance(config_data["chart"], dict):
        return config_data

    store_url = os.environ.get("MONITORCHART_STORE_URL")
    if store_url is not None:
        config_data["store"]["base_url"] = store_url

    store_token = os.environ.get("MONITORCHART_STORE_TOKEN")
    if store_token is not None:
        config_data["store"]["token"] = store_token

    store_timeout = os.environ.get("MONITORCHART_STORE_TIMEOUT")
    if store_timeout is not None:
        try:
            config_data["store"]["timeout"] = int(store_timeout)
        except ValueError:
            raise ConfigError(f"MONITORCHART_STORE_TIMEOUT must be an integer, got '{store_timeout}'")

    default_range = os.environ.get("MONITORCHART_DEFAULT_RANGE")
    if default_range is not None:
        config_data["chart"]["default_range"] = default_range

    return config_data


def load_config(config_path: str | None) -> Config:
    """Load and validate configuration from a YAML file.

    A None path skips the file and builds the configuration from defaults
    and environment overrides alone.

    Args:
        config_path: Path to the YAML configuration file, or None.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    data: object
    if config_path is None:
        data = {}
    else:
        path = Path(config_path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}")

        if data is None:
            raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    data = _apply_env_overrides(data)

    try:
        return Config(
            store=_parse_store_config(data.get("store")),
            chart=_parse_chart_config(data.get("chart")),
            refresh=_parse_refresh_config(data.get("refresh")),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")
