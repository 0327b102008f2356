"""Tests for the configuration module."""

from pathlib import Path

import pytest

from monitorchart.config import (
    ChartConfig,
    Config,
    ConfigError,
    RefreshConfig,
    StoreConfig,
    load_config,
)
from monitorchart.ranges import Range

ENV_VARS = (
    "MONITORCHART_STORE_URL",
    "MONITORCHART_STORE_TOKEN",
    "MONITORCHART_STORE_TIMEOUT",
    "MONITORCHART_DEFAULT_RANGE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    """Remove overrides that may be set in the calling environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for config files."""
    return tmp_path


@pytest.fixture
def valid_config_content() -> str:
    """Return a valid configuration YAML content."""
    return """store:
  base_url: https://status.example.com/api/monitoring/
  timeout: 5
  token: abc123

chart:
  default_range: 24h
  events_range: 7d
  width: 1100
  height: 300

refresh:
  min_delay_ms: 5000
  max_delay_ms: 30000
  default_interval_sec: 20
"""


def write_config(config_dir: Path, content: str) -> str:
    path = config_dir / "config.yaml"
    path.write_text(content)
    return str(path)


class TestStoreConfig:
    """Tests for StoreConfig dataclass."""

    def test_defaults(self) -> None:
        """StoreConfig points at a local store by default."""
        store = StoreConfig()
        assert store.base_url.startswith("http://localhost")
        assert store.timeout == 10
        assert store.token is None

    def test_rejects_empty_url(self) -> None:
        """Empty base URL is rejected."""
        with pytest.raises(ConfigError, match="cannot be empty"):
            StoreConfig(base_url="")

    def test_rejects_non_http_url(self) -> None:
        """Only http and https are accepted."""
        with pytest.raises(ConfigError, match="must start with http"):
            StoreConfig(base_url="ftp://example.com")

    def test_rejects_zero_timeout(self) -> None:
        """Timeout must be at least one second."""
        with pytest.raises(ConfigError, match="timeout"):
            StoreConfig(timeout=0)


class TestChartConfig:
    """Tests for ChartConfig dataclass."""

    def test_defaults(self) -> None:
        """The chart defaults to the 1h range at 980x260."""
        chart = ChartConfig()
        assert chart.default_range is Range.H1
        assert (chart.width, chart.height) == (980, 260)

    def test_rejects_narrow_width(self) -> None:
        """Widths under 640px are rejected."""
        with pytest.raises(ConfigError, match="width"):
            ChartConfig(width=400)

    def test_rejects_short_height(self) -> None:
        """Heights under 120px are rejected."""
        with pytest.raises(ConfigError, match="height"):
            ChartConfig(height=50)


class TestRefreshConfig:
    """Tests for RefreshConfig dataclass."""

    def test_defaults(self) -> None:
        """Refresh delays default to 3s..60s with a 30s fallback interval."""
        refresh = RefreshConfig()
        assert refresh.min_delay_ms == 3000
        assert refresh.max_delay_ms == 60000
        assert refresh.default_interval_sec == 30

    def test_rejects_inverted_bounds(self) -> None:
        """Max delay must not be below min delay."""
        with pytest.raises(ConfigError, match="must be >="):
            RefreshConfig(min_delay_ms=10000, max_delay_ms=5000)

    def test_rejects_non_positive_min(self) -> None:
        """Min delay must be positive."""
        with pytest.raises(ConfigError, match="positive"):
            RefreshConfig(min_delay_ms=0)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_valid_config_from_file(self, config_dir: Path, valid_config_content: str) -> None:
        """Valid config file is loaded correctly."""
        config = load_config(write_config(config_dir, valid_config_content))

        assert config.store.base_url == "https://status.example.com/api/monitoring"
        assert config.store.timeout == 5
        assert config.store.token == "abc123"
        assert config.chart.default_range is Range.H24
        assert config.chart.events_range is Range.D7
        assert config.chart.width == 1100
        assert config.refresh.min_delay_ms == 5000
        assert config.refresh.default_interval_sec == 20

    def test_none_path_uses_defaults(self) -> None:
        """Without a file the defaults are used."""
        assert load_config(None) == Config()

    def test_raises_error_for_missing_file(self, config_dir: Path) -> None:
        """Missing config file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(config_dir / "nope.yaml"))

    def test_raises_error_for_empty_file(self, config_dir: Path) -> None:
        """Empty config file raises ConfigError."""
        with pytest.raises(ConfigError, match="empty"):
            load_config(write_config(config_dir, ""))

    def test_raises_error_for_invalid_yaml(self, config_dir: Path) -> None:
        """Invalid YAML raises ConfigError."""
        with pytest.raises(ConfigError, match="Failed to parse YAML"):
            load_config(write_config(config_dir, "store: [unclosed"))

    def test_raises_error_when_config_is_not_dict(self, config_dir: Path) -> None:
        """Non-dict config raises ConfigError."""
        with pytest.raises(ConfigError, match="must be a YAML dictionary"):
            load_config(write_config(config_dir, "- a\n- b\n"))

    def test_raises_error_when_section_is_not_dict(self, config_dir: Path) -> None:
        """Sections must be mappings."""
        with pytest.raises(ConfigError, match="'chart' section must be a dictionary"):
            load_config(write_config(config_dir, "chart: wide\n"))

    def test_raises_error_for_unknown_range(self, config_dir: Path) -> None:
        """Unknown ranges are reported with the setting name."""
        with pytest.raises(ConfigError, match="chart.default_range"):
            load_config(write_config(config_dir, "chart:\n  default_range: 2h\n"))

    def test_raises_error_for_non_numeric_value(self, config_dir: Path) -> None:
        """Values that are not numbers are reported as invalid."""
        with pytest.raises(ConfigError, match="Invalid configuration value"):
            load_config(write_config(config_dir, "store:\n  timeout: soon\n"))

    def test_optional_sections_use_defaults(self, config_dir: Path) -> None:
        """Omitted sections fall back to defaults."""
        config = load_config(write_config(config_dir, "chart:\n  default_range: 6h\n"))
        assert config.chart.default_range is Range.H6
        assert config.store == StoreConfig()
        assert config.refresh == RefreshConfig()


class TestEnvironmentVariableOverrides:
    """Tests for environment variable overrides."""

    def test_overrides_store_url(self, config_dir: Path, valid_config_content: str, monkeypatch) -> None:
        """MONITORCHART_STORE_URL overrides store.base_url."""
        monkeypatch.setenv("MONITORCHART_STORE_URL", "http://other.test/api/")
        config = load_config(write_config(config_dir, valid_config_content))
        assert config.store.base_url == "http://other.test/api"

    def test_overrides_token_and_timeout(self, monkeypatch) -> None:
        """Token and timeout overrides apply without a config file."""
        monkeypatch.setenv("MONITORCHART_STORE_TOKEN", "xyz")
        monkeypatch.setenv("MONITORCHART_STORE_TIMEOUT", "3")
        config = load_config(None)
        assert config.store.token == "xyz"
        assert config.store.timeout == 3

    def test_rejects_non_integer_timeout(self, monkeypatch) -> None:
        """A non-numeric timeout override is an error."""
        monkeypatch.setenv("MONITORCHART_STORE_TIMEOUT", "fast")
        with pytest.raises(ConfigError, match="MONITORCHART_STORE_TIMEOUT"):
            load_config(None)

    def test_overrides_default_range(self, config_dir: Path, valid_config_content: str, monkeypatch) -> None:
        """MONITORCHART_DEFAULT_RANGE overrides chart.default_range."""
        monkeypatch.setenv("MONITORCHART_DEFAULT_RANGE", "30d")
        config = load_config(write_config(config_dir, valid_config_content))
        assert config.chart.default_range is Range.D30
        assert config.chart.events_range is Range.D7
