from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from circadian_clock.config import AppConfig
from circadian_clock.features.hourly import HourlySeries, aggregate, hourly_series_to_frame
from circadian_clock.io.read import LoadReport, load_store
from circadian_clock.io.write import write_summary, write_table
from circadian_clock.models import ObservationStore, RenderRequest
from circadian_clock.paths import build_output_paths
from circadian_clock.report.render import render_report
from circadian_clock.viz.clock import ClockChart, build_chart, plot_clock_chart

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunOutputs:
    series: HourlySeries
    chart: ClockChart
    table_path: Path | None = None
    summary_path: Path | None = None
    figure_path: Path | None = None
    report_path: Path | None = None


def output_stem(request: RenderRequest) -> str:
    return f"{request.subject_class.value}_{request.metric.value}"


def default_request(config: AppConfig) -> RenderRequest:
    return RenderRequest(subject_class=config.render.subject_class, metric=config.render.metric)


def build_summary(series: HourlySeries, report: LoadReport | None) -> dict[str, object]:
    return {
        "subject_class": series.subject_class,
        "metric": series.metric.value,
        "n_subjects": len(series),
        "subjects": {
            subject_id: {
                "hours_present": sum(1 for _, value in hours.items() if value is not None),
                "n_observations": int(sum(hours.counts.values())),
            }
            for subject_id, hours in series.subjects.items()
        },
        "load_report": report.to_dict() if report is not None else None,
    }


def write_aggregates(
    series: HourlySeries,
    out_dir: Path,
    config: AppConfig,
    request: RenderRequest,
    report: LoadReport | None = None,
) -> tuple[Path, Path]:
    paths = build_output_paths(out_dir)
    extension = "parquet" if config.outputs.tables_format == "parquet" else "csv"
    table_path = write_table(
        hourly_series_to_frame(series),
        paths.tables / f"hourly_{output_stem(request)}.{extension}",
        fmt=config.outputs.tables_format,
    )
    summary_path = write_summary(
        build_summary(series, report),
        paths.summary / f"summary_{output_stem(request)}.json",
    )
    return table_path, summary_path


def write_figure(
    chart: ClockChart,
    out_dir: Path,
    config: AppConfig,
    request: RenderRequest,
) -> Path:
    paths = build_output_paths(out_dir)
    suffix = str(config.outputs.figures_format or "png").strip().lstrip(".") or "png"
    return plot_clock_chart(
        chart,
        paths.figures / f"clock_{output_stem(request)}.{suffix}",
        render=config.render,
    )


def run_store(
    store: ObservationStore,
    out_dir: Path,
    config: AppConfig,
    request: RenderRequest | None = None,
    report: LoadReport | None = None,
) -> RunOutputs:
    request = request or default_request(config)
    series = aggregate(store, request.subject_class, request.metric)
    if series.is_empty:
        LOGGER.info(
            "No %s observations for subject class %s; rendering an empty chart",
            request.metric.value,
            request.subject_class.value,
        )
    chart = build_chart(series, config)
    table_path, summary_path = write_aggregates(series, out_dir, config, request, report)

    figure_path: Path | None = None
    try:
        figure_path = write_figure(chart, out_dir, config, request)
    except Exception:  # pragma: no cover
        LOGGER.exception("Failed rendering clock figure")

    report_path = render_report(
        chart,
        out_dir,
        series=series,
        load_report=report.to_dict() if report is not None else None,
        fill_opacity=config.render.fill_opacity,
    )
    return RunOutputs(
        series=series,
        chart=chart,
        table_path=table_path,
        summary_path=summary_path,
        figure_path=figure_path,
        report_path=report_path,
    )


def run_all(
    dataset_path: Path,
    out_dir: Path,
    config: AppConfig,
    request: RenderRequest | None = None,
) -> RunOutputs:
    store, report = load_store(dataset_path, config)
    return run_store(store, out_dir, config, request=request, report=report)
