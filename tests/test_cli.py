"""CLI tests for replaying recorded streams."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest
from typer.testing import CliRunner

from cli import app as cli_app
from cli.common import console

from tests.conftest import get_test_logger
from tests.helpers import build_bulk_payload, build_update, write_stream

logger = get_test_logger(__name__)
logger.info("Starting tests for CLI module")

runner = CliRunner()


@pytest.fixture
def recorded_stream(tmp_path: Path) -> Path:
    return write_stream(
        tmp_path / "stream.jsonl",
        [
            {"event": "mount", "payload": build_bulk_payload(states=[(1, True)])},
            {"event": "update", "payload": build_update(2, 20.0, state={"timestamp": 1, "value": True})},
            '{"event": "update", "payload": {"id": "zone-1"',
            {"event": "update", "payload": build_update(2, 20.0)},
            {"event": "update", "payload": build_update(3, 20.2, expected_value=21.0)},
            {"event": "update", "payload": build_update(4, 20.2, chart_id="ghost")},
            {"event": "update", "payload": {"id": "zone-1", "timestamp": 5}},
        ],
    )


def test_replay_summarises_and_exports(recorded_stream: Path, tmp_path: Path) -> None:
    out = tmp_path / "exports" / "zone.csv"
    result = runner.invoke(cli_app.app, ["replay", str(recorded_stream), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert "mounts=1 updates=3 malformed=1 unknown=1 invalid=1" in result.output

    frame = pd.read_csv(out)
    assert frame["timestamp"].tolist() == [1, 2, 3]
    assert frame["value"].dropna().tolist() == [20.0, 20.2]
    assert frame["state"].dropna().tolist() == [1, 1]


def test_replay_strict_fails_on_dropped_entries(recorded_stream: Path) -> None:
    result = runner.invoke(cli_app.app, ["replay", str(recorded_stream), "--strict"])

    assert result.exit_code == 1


def test_replay_rejects_unknown_variant(recorded_stream: Path) -> None:
    result = runner.invoke(cli_app.app, ["replay", str(recorded_stream), "--variant", "nope"])

    assert result.exit_code != 0


def test_variants_command_lists_builtins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(console(), "width", 200)
    result = runner.invoke(cli_app.app, ["variants"])

    assert result.exit_code == 0, result.output
    assert "heating_carry_forward" in result.output


def test_serve_delegates_to_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {}

    def _fake_start(host: str, port: int, *, open_browser: bool = False, config=None) -> None:
        calls["start"] = (host, port, open_browser)

    monkeypatch.setattr("ui.server.start_ui", _fake_start)
    result = runner.invoke(cli_app.app, ["serve", "--port", "9001"])

    assert result.exit_code == 0, result.output
    assert calls["start"] == ("127.0.0.1", 9001, False)


def test_variants_command_rejects_bad_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "charts.yaml"
    cfg_path.write_text("variants:\n  boiler:\n    extends: heating_pipein\n", encoding="utf-8")

    result = runner.invoke(cli_app.app, ["variants", "--config", str(cfg_path)])

    assert result.exit_code != 0


def test_replay_export_names_stay_inside_out_dir(tmp_path: Path) -> None:
    stream = write_stream(
        tmp_path / "stream.jsonl",
        [
            {"event": "mount", "payload": build_bulk_payload(chart_id="a", values=[(1, 20.0)])},
            {"event": "mount", "payload": build_bulk_payload(chart_id="../escape", values=[(1, 21.0)])},
        ],
    )
    out = tmp_path / "exports" / "zone.csv"

    result = runner.invoke(cli_app.app, ["replay", str(stream), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert sorted(path.name for path in out.parent.iterdir()) == ["zone__escape.csv", "zone_a.csv"]
    assert not (tmp_path / "escape.csv").exists()
