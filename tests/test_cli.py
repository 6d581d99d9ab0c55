from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from circadian_clock.cli import app

WORKSPACE = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG = WORKSPACE / "configs" / "default.yaml"


def _write_dataset(path: Path) -> Path:
    records = [
        {
            "mouseId": "F1",
            "gender": "female",
            "time": f"2024-03-01T{hour:02d}:30:00",
            "activity": float(hour),
            "temp": 18.5,
        }
        for hour in range(24)
    ]
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("aggregate", "plot", "report", "run-all", "show"):
        assert command in result.stdout


def test_run_all_command(tmp_path: Path) -> None:
    dataset = _write_dataset(tmp_path / "mice.json")
    out_dir = tmp_path / "out"

    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "run-all",
            "--data",
            str(dataset),
            "--out",
            str(out_dir),
            "--config",
            str(DEFAULT_CONFIG),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Run complete. Subjects: 1" in result.stdout
    assert (out_dir / "report.html").exists()
    assert (out_dir / "figures" / "clock_female_activity.png").exists()


def test_aggregate_command_with_overrides(tmp_path: Path) -> None:
    dataset = _write_dataset(tmp_path / "mice.json")
    out_dir = tmp_path / "out"

    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "aggregate",
            "--data",
            str(dataset),
            "--out",
            str(out_dir),
            "--config",
            str(DEFAULT_CONFIG),
            "--subject-class",
            "female",
            "--metric",
            "temperature",
        ],
    )

    assert result.exit_code == 0, result.output
    assert (out_dir / "tables" / "hourly_female_temperature.parquet").exists()
    assert (out_dir / "summary" / "summary_female_temperature.json").exists()


def test_plot_and_report_commands(tmp_path: Path) -> None:
    dataset = _write_dataset(tmp_path / "mice.json")
    out_dir = tmp_path / "out"
    runner = CliRunner()
    common = ["--data", str(dataset), "--out", str(out_dir), "--config", str(DEFAULT_CONFIG)]

    plot_result = runner.invoke(app, ["plot", *common])
    report_result = runner.invoke(app, ["report", *common, "--subject-class", "male"])

    assert plot_result.exit_code == 0, plot_result.output
    assert (out_dir / "figures" / "clock_female_activity.png").exists()
    assert report_result.exit_code == 0, report_result.output
    html = (out_dir / "report.html").read_text(encoding="utf-8")
    assert "No subjects match this filter." in html


def test_missing_dataset_is_rejected(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("CIRCADIAN_CLOCK_DATASET", raising=False)

    runner = CliRunner()
    result = runner.invoke(
        app,
        ["aggregate", "--out", str(tmp_path / "out"), "--config", str(DEFAULT_CONFIG)],
    )

    assert result.exit_code != 0
