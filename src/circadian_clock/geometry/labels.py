from __future__ import annotations

import math

from circadian_clock.models import Metric


def format_hour_label(hour: int) -> str:
    hour = int(hour) % 24
    return f"{hour % 12 or 12}{'AM' if hour < 12 else 'PM'}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_metric_value(metric: Metric | str, value: float) -> str:
    metric = Metric.parse(metric)
    if metric is Metric.activity:
        return f"{_round_half_up(value)} counts"
    return f"{value:.2f}°C"


def chart_title(metric: Metric | str, subject_class: str) -> str:
    metric = Metric.parse(metric)
    metric_label = "Activity Count" if metric is Metric.activity else "Temperature (°C)"
    return f"{metric_label} Over 24 Hours - {str(subject_class).capitalize()} Mice"


def legend_label(subject_id: str) -> str:
    return f"Mouse {subject_id}"
