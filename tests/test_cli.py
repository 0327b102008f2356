"""Tests for the command line entry point."""

import sys
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from conftest import make_snapshot

from monitorchart import main
from monitorchart.client import FetchError, MonitorNotFoundError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    """Keep environment overrides out of CLI runs."""
    for name in ("MONITORCHART_STORE_URL", "MONITORCHART_DEFAULT_RANGE"):
        monkeypatch.delenv(name, raising=False)


def run_cli(args: list[str]) -> None:
    with patch.object(sys, "argv", ["monitorchart", *args]):
        main()


class TestRenderCommand:
    """Tests for `monitorchart render`."""

    def test_writes_svg_and_prints_summary(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """A successful fetch writes the chart and prints the stats."""
        output = tmp_path / "chart.svg"
        client = MagicMock()
        client.fetch_detail.return_value = make_snapshot()

        with patch("monitorchart.client.SampleStoreClient", return_value=client):
            run_cli(["render", "1", "-o", str(output)])

        assert output.read_text(encoding="utf-8").startswith("<svg")
        out = capsys.readouterr().out
        assert "monitor-1 [https://example.com]" in out
        assert "Uptime 24h: 99.50%" in out
        client.close.assert_called_once()

    def test_prints_tags_and_maintenance(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Tags and an active maintenance window are listed under the title."""
        snapshot = make_snapshot()
        snapshot = replace(
            snapshot,
            monitor=replace(snapshot.monitor, tags=("prod", "api")),
            state=replace(snapshot.state, maintenance_active=True),
        )
        client = MagicMock()
        client.fetch_detail.return_value = snapshot

        with patch("monitorchart.client.SampleStoreClient", return_value=client):
            run_cli(["render", "1", "-o", str(tmp_path / "c.svg")])

        out = capsys.readouterr().out
        assert "tags: prod, api" in out
        assert "Maintenance active" in out

    def test_range_option_is_used(self, tmp_path: Path) -> None:
        """The --range option selects the metrics range."""
        client = MagicMock()
        client.fetch_detail.return_value = make_snapshot(hours=24)

        with patch("monitorchart.client.SampleStoreClient", return_value=client):
            run_cli(["render", "1", "-r", "24h", "-o", str(tmp_path / "c.svg")])

        assert client.fetch_detail.call_args.args[1].value == "24h"

    @pytest.mark.parametrize("error", [MonitorNotFoundError(1), FetchError("refused")])
    def test_fetch_failure_exits_nonzero(self, tmp_path: Path, error: Exception) -> None:
        """Store errors exit with status 1."""
        client = MagicMock()
        client.fetch_detail.side_effect = error

        with patch("monitorchart.client.SampleStoreClient", return_value=client):
            with pytest.raises(SystemExit) as exc_info:
                run_cli(["render", "1", "-o", str(tmp_path / "c.svg")])
        assert exc_info.value.code == 1

    def test_missing_config_exits_nonzero(self, tmp_path: Path) -> None:
        """An unreadable config file exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli(["render", "1", "-c", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 1

    def test_command_is_required(self) -> None:
        """Running without a subcommand is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli([])
        assert exc_info.value.code == 2


class TestWatchCommand:
    """Tests for `monitorchart watch`."""

    def test_deleted_monitor_exits_nonzero(self, tmp_path: Path) -> None:
        """Watching a monitor that no longer exists stops with status 1."""
        client = MagicMock()
        client.fetch_detail.side_effect = MonitorNotFoundError(1)

        with patch("monitorchart.client.SampleStoreClient", return_value=client):
            with pytest.raises(SystemExit) as exc_info:
                run_cli(["watch", "1", "-o", str(tmp_path / "c.svg")])

        assert exc_info.value.code == 1
        assert client.fetch_detail.call_args.args[0] == 1
        client.close.assert_called_once()
        assert not (tmp_path / "c.svg").exists()

    def test_missing_config_exits_nonzero(self, tmp_path: Path) -> None:
        """An unreadable config file exits with status 1 before connecting."""
        with patch("monitorchart.client.SampleStoreClient") as client_cls:
            with pytest.raises(SystemExit) as exc_info:
                run_cli(["watch", "1", "-c", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        client_cls.assert_not_called()
