from __future__ import annotations

import logging
import math

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.backend_bases import KeyEvent, MouseEvent
from matplotlib.figure import Figure
from matplotlib.patches import PathPatch
from matplotlib.text import Annotation, Text

from circadian_clock.config import AppConfig
from circadian_clock.geometry.labels import format_hour_label, format_metric_value
from circadian_clock.geometry.radial import hour_for_angle
from circadian_clock.interaction.selection import HighlightUpdate, SelectionState
from circadian_clock.models import ObservationStore, RenderRequest
from circadian_clock.viz.clock import (
    ClockChart,
    apply_highlight,
    draw_axes_frame,
    draw_curves,
    render_chart,
)

LOGGER = logging.getLogger(__name__)

# Pointer distance, in chart units, still counted as touching a curve outline.
HIT_TOLERANCE = 6.0


class ClockView:
    """Matplotlib driver: owns the render request and routes pointer events.

    Each toggle issues a fresh ``RenderRequest`` and rebuilds the chart from
    the store. Pointer events are resolved to a subject (curve or legend
    entry) or to the background and forwarded to the selection machine,
    whose updates restyle the artists and move the tooltip.
    """

    def __init__(
        self,
        store: ObservationStore,
        config: AppConfig,
        request: RenderRequest | None = None,
        figure: Figure | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.request = request or RenderRequest(
            subject_class=config.render.subject_class,
            metric=config.render.metric,
        )
        size = config.render.figure_size
        self.figure = figure if figure is not None else plt.figure(figsize=(size * 1.3, size))
        self.ax = self.figure.add_subplot(111)
        self.selection = SelectionState()
        self.selection.subscribe(self._on_highlight_update)
        self.chart: ClockChart | None = None
        self._patches: dict[str, tuple[PathPatch, PathPatch]] = {}
        self._legend_texts: dict[str, Text] = {}
        self._outline_radii: dict[str, np.ndarray] = {}
        self._outline_hours = np.zeros(0)
        self._tooltip: Annotation | None = None
        self._last_pointer: tuple[float, float] = (0.0, 0.0)
        self._connections = [
            self.figure.canvas.mpl_connect("motion_notify_event", self.on_motion),
            self.figure.canvas.mpl_connect("button_press_event", self.on_click),
            self.figure.canvas.mpl_connect("axes_leave_event", self.on_leave),
        ]
        self.render()

    def render(self) -> ClockChart:
        self.chart = render_chart(self.store, self.request, self.config)
        self.ax.clear()
        draw_axes_frame(self.ax, self.chart)
        self._patches = draw_curves(self.ax, self.chart, self.config.render)
        samples_per_hour = self.config.geometry.samples_per_hour
        self._outline_hours = np.linspace(0.0, 24.0, 24 * samples_per_hour + 1)
        self._outline_radii = {
            item.subject_id: np.hypot(*item.curve.sample(samples_per_hour).T)
            for item in self.chart.curves
        }
        self._legend_texts = {}
        if self._patches:
            legend = self.ax.legend(
                handles=[line for _, line in self._patches.values()],
                title="Mouse ID Legend (click to highlight, hover to focus)",
                loc="upper left",
                bbox_to_anchor=(1.0, 1.0),
                fontsize=8,
                frameon=False,
            )
            self._legend_texts = dict(zip(self._patches, legend.get_texts()))
        self._tooltip = self.ax.annotate(
            "",
            xy=(0.0, 0.0),
            xytext=(10, -10),
            textcoords="offset points",
            fontsize=8,
            bbox={"boxstyle": "round", "fc": "white", "ec": "#999999", "alpha": 0.95},
            zorder=10,
        )
        self._tooltip.set_visible(False)
        LOGGER.info(
            "Rendered %s for %s subjects (%d curves)",
            self.request.metric.value,
            self.request.subject_class.value,
            len(self.chart.curves),
        )
        self.selection.bind_subjects(self._patches.keys())
        return self.chart

    def toggle_subject_class(self) -> RenderRequest:
        self.request = self.request.with_toggled_subject_class()
        self.render()
        return self.request

    def toggle_metric(self) -> RenderRequest:
        self.request = self.request.with_toggled_metric()
        self.render()
        return self.request

    def subject_at(self, x: float, y: float) -> str | None:
        """Subject whose sampled curve outline lies closest outside the pointer, if any."""
        if self.chart is None or not self.chart.curves:
            return None
        pointer_radius = math.hypot(x, y)
        hour = hour_for_angle(math.atan2(y, x))
        best: tuple[float, str] | None = None
        for subject_id, radii in self._outline_radii.items():
            gap = float(np.interp(hour, self._outline_hours, radii)) - pointer_radius
            if gap < -HIT_TOLERANCE:
                continue
            if best is None or abs(gap) < best[0]:
                best = (abs(gap), subject_id)
        return best[1] if best is not None else None

    def legend_subject_at(self, event: MouseEvent) -> str | None:
        for subject_id, text in self._legend_texts.items():
            hit, _ = text.contains(event)
            if hit:
                return subject_id
        return None

    def on_motion(self, event: MouseEvent) -> None:
        legend_subject = self.legend_subject_at(event)
        if legend_subject is not None:
            if self.selection.hovered_subject_id != legend_subject:
                self.selection.pointer_enter(legend_subject)
            return
        if event.inaxes is not self.ax or event.xdata is None or event.ydata is None:
            self._clear_hover()
            return
        subject_id = self.subject_at(event.xdata, event.ydata)
        if subject_id is None or self.chart is None:
            self._clear_hover()
            return
        previous = self.selection.hovered_subject_id
        if previous is not None and previous != subject_id:
            self.selection.pointer_leave(previous)
        self._last_pointer = (float(event.xdata), float(event.ydata))
        self.selection.pointer_move(
            subject_id,
            event.xdata,
            event.ydata,
            self.chart.curve_for(subject_id).values,
        )

    def on_leave(self, event: MouseEvent) -> None:
        self._clear_hover()

    def on_click(self, event: MouseEvent) -> None:
        subject_id = self.legend_subject_at(event)
        if subject_id is None and event.inaxes is self.ax and event.xdata is not None:
            subject_id = self.subject_at(event.xdata, event.ydata)
        if subject_id is None:
            self.selection.click_background()
        else:
            self.selection.click(subject_id)

    def _clear_hover(self) -> None:
        hovered = self.selection.hovered_subject_id
        if hovered is not None:
            self.selection.pointer_leave(hovered)

    def _on_highlight_update(self, update: HighlightUpdate) -> None:
        apply_highlight(self._patches, update.highlights, self.config.render)
        for subject_id, text in self._legend_texts.items():
            text.set_fontweight("bold" if subject_id == update.selected_subject_id else "normal")
        if self._tooltip is not None:
            payload = update.tooltip
            if payload is None or self.chart is None:
                self._tooltip.set_visible(False)
            else:
                self._tooltip.xy = self._last_pointer
                self._tooltip.set_text(
                    f"Mouse ID: {payload.subject_id}\n"
                    f"Time: {format_hour_label(payload.hour)}\n"
                    f"{self.chart.metric.display_name}: "
                    f"{format_metric_value(self.chart.metric, payload.value)}"
                )
                self._tooltip.set_visible(True)
        self.figure.canvas.draw_idle()

    def on_key(self, event: KeyEvent) -> None:
        if event.key == "g":
            self.toggle_subject_class()
        elif event.key == "m":
            self.toggle_metric()
        else:
            return
        self.figure.canvas.draw_idle()

    def bind_toggle_keys(self) -> None:
        self._connections.append(self.figure.canvas.mpl_connect("key_press_event", self.on_key))

    def disconnect(self) -> None:
        for connection in self._connections:
            self.figure.canvas.mpl_disconnect(connection)
        self._connections = []

    def show(self) -> None:
        plt.show()
