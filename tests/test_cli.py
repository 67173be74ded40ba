"""Unit tests for CLI (overrides, summary table, main exit codes)."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from loadfeed.cli import build_summary_table, main
from loadfeed.models import RequestOutcome
from loadfeed.runner import ScenarioSummary


def test_main_version_exits_zero() -> None:
    with patch.object(sys, "argv", ["loadfeed", "--version"]):
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 0


def test_main_help_exits_zero() -> None:
    with patch.object(sys, "argv", ["loadfeed", "--help"]):
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 0


def test_main_missing_config_exits_one() -> None:
    with patch.object(sys, "argv", ["loadfeed", "-f", "/nonexistent/scenarios.yaml"]):
        assert main() == 1


def test_main_missing_data_file_exits_one(tmp_path: Path) -> None:
    config = tmp_path / "scenarios.yaml"
    config.write_text(
        "scenarios:\n"
        "  - name: s\n"
        "    request:\n"
        "      url: https://x/{Id}\n"
        "      data_source: {type: csv, file_path: missing.csv}\n"
    )
    with patch.object(sys, "argv", ["loadfeed", "-f", str(config), "--no-http2"]):
        assert main() == 1


def test_main_invalid_override_exits_one(scenario_config_path: Path) -> None:
    with patch.object(sys, "argv", ["loadfeed", "-f", str(scenario_config_path), "--users", "0"]):
        assert main() == 1


def test_main_runs_and_passes_overrides(scenario_config_path: Path) -> None:
    captured = {}

    async def fake_run_test(config_path, config_override=None, http2=True):
        captured.update(path=config_path, override=config_override, http2=http2)
        return [ScenarioSummary(name="get_post", step="get_post")]

    argv = ["loadfeed", "-f", str(scenario_config_path), "-u", "7", "--no-http2"]
    with patch.object(sys, "argv", argv), patch("loadfeed.cli.run_test", side_effect=fake_run_test):
        assert main() == 0
    assert captured["override"].users == 7
    assert captured["override"].iterations == 3
    assert captured["http2"] is False


def test_build_summary_table_rows() -> None:
    s = ScenarioSummary(name="get_post", step="GET https://x/{Id}")
    s.add(RequestOutcome(True, "200"))
    s.add(RequestOutcome(False, "TIMEOUT"))
    table = build_summary_table([s])
    assert table.row_count == 1
    console = Console(record=True, width=200)
    console.print(table)
    text = console.export_text()
    assert "get_post" in text
    assert "TIMEOUT: 1" in text
