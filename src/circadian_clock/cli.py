from __future__ import annotations

from pathlib import Path

import typer

from circadian_clock.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from circadian_clock.features.hourly import aggregate
from circadian_clock.io.read import load_store
from circadian_clock.logging import configure_logging
from circadian_clock.models import Metric, RenderRequest, SubjectClass
from circadian_clock.pipeline.run_all import run_all, write_aggregates, write_figure
from circadian_clock.report.render import render_report
from circadian_clock.viz.clock import build_chart
from circadian_clock.viz.interactive import ClockView

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _require_dataset(data: Path | None, cfg: AppConfig) -> Path:
    if data is not None:
        return data
    if cfg.input.path:
        candidate = Path(cfg.input.path)
        if not candidate.exists():
            raise typer.BadParameter(f"Configured input.path does not exist: {candidate}")
        return candidate
    raise typer.BadParameter(
        "Missing --data. Provide a dataset path, set input.path in the config, "
        "or export CIRCADIAN_CLOCK_DATASET."
    )


def _build_request(
    cfg: AppConfig,
    subject_class: SubjectClass | None,
    metric: Metric | None,
) -> RenderRequest:
    return RenderRequest(
        subject_class=subject_class or cfg.render.subject_class,
        metric=metric or cfg.render.metric,
    )


DATA_OPTION = typer.Option(
    None,
    exists=True,
    readable=True,
    resolve_path=True,
    help="Observation dataset (.json records or .csv).",
)
OUT_OPTION = typer.Option(Path("out"), resolve_path=True)
CONFIG_OPTION = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True)
SUBJECT_CLASS_OPTION = typer.Option(None, help="Subject class filter. Defaults to config.")
METRIC_OPTION = typer.Option(None, help="Metric to chart. Defaults to config.")


@app.command("aggregate")
def aggregate_command(
    data: Path | None = DATA_OPTION,
    out: Path = OUT_OPTION,
    config: Path = CONFIG_OPTION,
    subject_class: SubjectClass | None = SUBJECT_CLASS_OPTION,
    metric: Metric | None = METRIC_OPTION,
) -> None:
    """Write the hourly mean table and summary for one class/metric."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset = _require_dataset(data, cfg)
    request = _build_request(cfg, subject_class, metric)
    store, report = load_store(dataset, cfg)
    series = aggregate(store, request.subject_class, request.metric)
    table_path, summary_path = write_aggregates(series, out, cfg, request, report)
    typer.echo(f"Aggregated {len(series)} subjects")
    typer.echo(f"- table: {table_path}")
    typer.echo(f"- summary: {summary_path}")


@app.command()
def plot(
    data: Path | None = DATA_OPTION,
    out: Path = OUT_OPTION,
    config: Path = CONFIG_OPTION,
    subject_class: SubjectClass | None = SUBJECT_CLASS_OPTION,
    metric: Metric | None = METRIC_OPTION,
) -> None:
    """Render the 24-hour clock chart as a static figure."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset = _require_dataset(data, cfg)
    request = _build_request(cfg, subject_class, metric)
    store, _ = load_store(dataset, cfg)
    chart = build_chart(aggregate(store, request.subject_class, request.metric), cfg)
    figure_path = write_figure(chart, out, cfg, request)
    typer.echo(f"Figure written to: {figure_path}")


@app.command()
def report(
    data: Path | None = DATA_OPTION,
    out: Path = OUT_OPTION,
    config: Path = CONFIG_OPTION,
    subject_class: SubjectClass | None = SUBJECT_CLASS_OPTION,
    metric: Metric | None = METRIC_OPTION,
) -> None:
    """Render the HTML report with an inline SVG clock chart."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset = _require_dataset(data, cfg)
    request = _build_request(cfg, subject_class, metric)
    store, load_report = load_store(dataset, cfg)
    series = aggregate(store, request.subject_class, request.metric)
    report_path = render_report(
        build_chart(series, cfg),
        out,
        series=series,
        load_report=load_report.to_dict(),
        fill_opacity=cfg.render.fill_opacity,
    )
    typer.echo(f"Report written to: {report_path}")


@app.command("run-all")
def run_all_command(
    data: Path | None = DATA_OPTION,
    out: Path = OUT_OPTION,
    config: Path = CONFIG_OPTION,
    subject_class: SubjectClass | None = SUBJECT_CLASS_OPTION,
    metric: Metric | None = METRIC_OPTION,
) -> None:
    """Aggregate, plot, and report in one command."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset = _require_dataset(data, cfg)
    request = _build_request(cfg, subject_class, metric)
    outputs = run_all(dataset_path=dataset, out_dir=out, config=cfg, request=request)
    typer.echo(f"Run complete. Subjects: {len(outputs.series)}")
    typer.echo(f"- table: {outputs.table_path}")
    typer.echo(f"- figure: {outputs.figure_path}")
    typer.echo(f"- report: {outputs.report_path}")


@app.command()
def show(
    data: Path | None = DATA_OPTION,
    config: Path = CONFIG_OPTION,
    subject_class: SubjectClass | None = SUBJECT_CLASS_OPTION,
    metric: Metric | None = METRIC_OPTION,
) -> None:
    """Open the interactive clock view (press g to toggle class, m to toggle metric)."""
    configure_logging()
    cfg = _load_app_config(config)
    dataset = _require_dataset(data, cfg)
    store, _ = load_store(dataset, cfg)
    view = ClockView(store, cfg, request=_build_request(cfg, subject_class, metric))
    view.bind_toggle_keys()
    view.show()


if __name__ == "__main__":
    app()
