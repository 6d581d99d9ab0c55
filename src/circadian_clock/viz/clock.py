from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.colors import to_hex
from matplotlib.patches import Circle, PathPatch
from matplotlib.path import Path as MplPath

from circadian_clock.config import AppConfig, RenderConfig
from circadian_clock.features.hourly import HourlySeries, aggregate
from circadian_clock.geometry.labels import chart_title, legend_label
from circadian_clock.geometry.radial import (
    AxisRing,
    HourTick,
    RadialCurve,
    axis_rings,
    hour_ticks,
    project,
)
from circadian_clock.geometry.scale import LinearScale, metric_scale
from circadian_clock.interaction.selection import HighlightClass
from circadian_clock.models import Metric, ObservationStore, RenderRequest
from circadian_clock.viz.common import save_figure


@dataclass(frozen=True)
class SubjectCurve:
    subject_id: str
    label: str
    color: str
    curve: RadialCurve
    values: tuple[float, ...]


@dataclass(frozen=True)
class ClockChart:
    title: str
    subject_class: str
    metric: Metric
    scale: LinearScale
    outer_radius: float
    label_offset: float
    curves: list[SubjectCurve] = field(default_factory=list)
    rings: list[AxisRing] = field(default_factory=list)
    ticks: list[HourTick] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.curves

    def curve_for(self, subject_id: str) -> SubjectCurve:
        for item in self.curves:
            if item.subject_id == subject_id:
                return item
        raise KeyError(subject_id)


def subject_colors(subject_ids: list[str], palette: str = "tab10") -> dict[str, str]:
    cmap = matplotlib.colormaps[palette]
    size = getattr(cmap, "N", 10) or 10
    return {subject_id: to_hex(cmap(index % size)) for index, subject_id in enumerate(subject_ids)}


def build_chart(series: HourlySeries, config: AppConfig) -> ClockChart:
    geometry = config.geometry
    scale = metric_scale(series.metric, config)
    colors = subject_colors(series.subject_ids, palette=config.render.palette)
    curves = []
    for subject_id, hours in series.subjects.items():
        values = hours.filled(0.0)
        curves.append(
            SubjectCurve(
                subject_id=subject_id,
                label=legend_label(subject_id),
                color=colors[subject_id],
                curve=project(values, scale, tension=geometry.curve_tension),
                values=tuple(values),
            )
        )
    return ClockChart(
        title=chart_title(series.metric, series.subject_class),
        subject_class=series.subject_class,
        metric=series.metric,
        scale=scale,
        outer_radius=geometry.outer_radius,
        label_offset=geometry.label_offset,
        curves=curves,
        rings=axis_rings(scale, geometry.outer_radius, geometry.axis_fractions, series.metric),
        ticks=hour_ticks(geometry.outer_radius, geometry.label_offset),
    )


def render_chart(
    store: ObservationStore,
    request: RenderRequest,
    config: AppConfig,
) -> ClockChart:
    """Rebuild the hourly series and every curve from scratch for ``request``."""
    series = aggregate(store, request.subject_class, request.metric)
    return build_chart(series, config)


def curve_to_path(curve: RadialCurve) -> MplPath:
    segments = curve.bezier_segments()
    vertices = [segments[0][0]]
    codes = [MplPath.MOVETO]
    for _, c1, c2, end in segments:
        vertices.extend([c1, c2, end])
        codes.extend([MplPath.CURVE4] * 3)
    vertices.append(segments[0][0])
    codes.append(MplPath.CLOSEPOLY)
    return MplPath(vertices, codes)


def highlight_style(highlight: HighlightClass, render: RenderConfig) -> dict[str, float]:
    if highlight is HighlightClass.emphasized:
        return {
            "fill_alpha": min(1.0, render.fill_opacity * 2.0),
            "line_alpha": 1.0,
            "linewidth": 3.0,
            "zorder": 4.0,
        }
    if highlight is HighlightClass.dimmed:
        return {
            "fill_alpha": min(render.fill_opacity, render.dimmed_opacity),
            "line_alpha": render.dimmed_opacity,
            "linewidth": 1.0,
            "zorder": 2.0,
        }
    return {"fill_alpha": render.fill_opacity, "line_alpha": 1.0, "linewidth": 2.0, "zorder": 3.0}


def apply_highlight(
    patches: Mapping[str, tuple[PathPatch, PathPatch]],
    highlights: Mapping[str, HighlightClass],
    render: RenderConfig,
) -> None:
    for subject_id, (fill_patch, line_patch) in patches.items():
        style = highlight_style(highlights.get(subject_id, HighlightClass.normal), render)
        fill_patch.set_alpha(style["fill_alpha"])
        fill_patch.set_zorder(style["zorder"])
        line_patch.set_alpha(style["line_alpha"])
        line_patch.set_linewidth(style["linewidth"])
        line_patch.set_zorder(style["zorder"])


def draw_axes_frame(ax: Axes, chart: ClockChart) -> None:
    limit = chart.outer_radius + chart.label_offset * 2.5
    ax.set_xlim(-limit, limit)
    # Screen orientation: y grows downward so hours advance clockwise.
    ax.set_ylim(limit, -limit)
    ax.set_aspect("equal")
    ax.axis("off")
    ax.set_title(chart.title, fontsize=14, fontweight="bold")

    for ring in chart.rings:
        ax.add_patch(
            Circle(
                (0.0, 0.0),
                ring.radius,
                fill=False,
                edgecolor="#dddddd",
                linestyle=(0, (2, 2)),
                linewidth=1.0,
                zorder=1,
            )
        )
        ax.text(5.0, -ring.radius, ring.label, color="#666666", fontsize=8, va="center", ha="left")

    for tick in chart.ticks:
        ax.plot(
            [0.0, tick.line_end[0]],
            [0.0, tick.line_end[1]],
            color="#eeeeee",
            linewidth=0.8,
            zorder=0,
        )
        ax.text(
            tick.label_position[0],
            tick.label_position[1],
            tick.label,
            ha="center",
            va="center",
            fontsize=8,
        )


def draw_curves(
    ax: Axes,
    chart: ClockChart,
    render: RenderConfig,
) -> dict[str, tuple[PathPatch, PathPatch]]:
    patches: dict[str, tuple[PathPatch, PathPatch]] = {}
    for item in chart.curves:
        path = curve_to_path(item.curve)
        fill_patch = PathPatch(path, facecolor=item.color, edgecolor="none")
        line_patch = PathPatch(path, facecolor="none", edgecolor=item.color, label=item.label)
        ax.add_patch(fill_patch)
        ax.add_patch(line_patch)
        patches[item.subject_id] = (fill_patch, line_patch)
    apply_highlight(patches, {}, render)
    return patches


def plot_clock_chart(
    chart: ClockChart,
    output_path: Path,
    render: RenderConfig,
    highlights: Mapping[str, HighlightClass] | None = None,
) -> Path:
    fig, ax = plt.subplots(figsize=(render.figure_size, render.figure_size))
    draw_axes_frame(ax, chart)
    patches = draw_curves(ax, chart, render)
    if highlights:
        apply_highlight(patches, highlights, render)
    if patches:
        ax.legend(
            handles=[line for _, line in patches.values()],
            title="Mouse ID",
            loc="upper left",
            bbox_to_anchor=(1.0, 1.0),
            fontsize=8,
            frameon=False,
        )
    return save_figure(output_path, fig=fig)
