from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from circadian_clock.features.hourly import HourlySeries
from circadian_clock.geometry.labels import format_hour_label, format_metric_value
from circadian_clock.io.write import json_safe
from circadian_clock.viz.clock import ClockChart

REPORT_FILENAME = "report.html"


def _template_env() -> Environment:
    templates_path = Path(__file__).resolve().parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_path)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _round(value: float) -> float:
    return round(float(value), 2)


def _curve_rows(chart: ClockChart) -> list[dict[str, Any]]:
    rows = []
    for item in chart.curves:
        peak_hour = max(range(len(item.values)), key=lambda hour: item.values[hour])
        rows.append(
            {
                "subject_id": item.subject_id,
                "label": item.label,
                "color": item.color,
                "path": item.curve.svg_path(),
                "tooltip": (
                    f"Mouse ID: {item.subject_id}\n"
                    f"Peak: {format_hour_label(peak_hour)} "
                    f"({format_metric_value(chart.metric, item.values[peak_hour])})"
                ),
            }
        )
    return rows


def _summary_rows(series: HourlySeries | None, chart: ClockChart) -> list[dict[str, Any]]:
    if series is None:
        return []
    rows = []
    for subject_id, hours in series.subjects.items():
        present = {hour: value for hour, value in hours.items() if value is not None}
        mean_of_means = sum(present.values()) / len(present)
        peak_hour = max(present, key=lambda hour: present[hour])
        rows.append(
            {
                "label": chart.curve_for(subject_id).label,
                "hours_present": len(present),
                "n_observations": int(sum(hours.counts.values())),
                "mean_text": format_metric_value(chart.metric, mean_of_means),
                "peak_hour": format_hour_label(peak_hour),
            }
        )
    return rows


def render_report(
    chart: ClockChart,
    out_dir: Path,
    *,
    series: HourlySeries | None = None,
    load_report: dict[str, Any] | None = None,
    fill_opacity: float = 0.2,
) -> Path:
    """Write a static HTML page for ``chart``.

    The page holds no selection state, so every curve is drawn with the normal
    highlight. Hovering a curve only shows its peak-hour title.
    """
    env = _template_env()
    template = env.get_template("report.html.j2")

    size = int(round((chart.outer_radius + chart.label_offset * 2.5) * 2))
    rings = [{"radius": _round(ring.radius), "label": ring.label} for ring in chart.rings]
    ticks = [
        {
            "label": tick.label,
            "x2": _round(tick.line_end[0]),
            "y2": _round(tick.line_end[1]),
            "lx": _round(tick.label_position[0]),
            "ly": _round(tick.label_position[1]),
        }
        for tick in chart.ticks
    ]
    rendered = template.render(
        generated_at=datetime.now(timezone.utc).isoformat(),
        chart=chart,
        size=size,
        rings=rings,
        ticks=ticks,
        curves=_curve_rows(chart),
        summary_rows=_summary_rows(series, chart),
        load_report=json_safe(load_report) if load_report else None,
        fill_opacity=fill_opacity,
    )

    report_path = out_dir / REPORT_FILENAME
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(rendered, encoding="utf-8")
    return report_path
