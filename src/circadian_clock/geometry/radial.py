from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from circadian_clock.errors import InvariantViolation
from circadian_clock.features.hourly import HOURS, SubjectHours
from circadian_clock.geometry.labels import format_hour_label, format_metric_value
from circadian_clock.geometry.scale import LinearScale
from circadian_clock.models import HOURS_PER_DAY, Metric

DEGREES_PER_HOUR = 360.0 / HOURS_PER_DAY

# Screen coordinates: x to the right, y downward. Hour 0 sits straight up and
# hours advance clockwise.


def angle_for_hour(hour: float) -> float:
    return math.radians(float(hour) * DEGREES_PER_HOUR - 90.0)


def hour_for_angle(angle: float) -> float:
    """Inverse of ``angle_for_hour`` wrapped into [0, 24)."""
    hour = ((math.degrees(angle) + 90.0) % 360.0) / DEGREES_PER_HOUR
    return 0.0 if hour >= HOURS_PER_DAY else hour


def nearest_hour(x: float, y: float) -> int:
    hour = hour_for_angle(math.atan2(y, x))
    return int(math.floor(hour + 0.5)) % HOURS_PER_DAY


def polar_to_xy(angle: float, radius: float) -> tuple[float, float]:
    return radius * math.cos(angle), radius * math.sin(angle)


HourlyInput = SubjectHours | Mapping[int, "float | None"] | Sequence["float | None"]


def _hour_values(hourly: HourlyInput) -> list[float]:
    """24 drawable values. Absent or non-finite hours are drawn at value 0."""
    if isinstance(hourly, SubjectHours):
        return hourly.filled(0.0)
    if isinstance(hourly, Mapping):
        unknown = [hour for hour in hourly if hour not in HOURS]
        if unknown:
            raise InvariantViolation(f"hour buckets outside 0-23: {unknown}")
        values = [hourly.get(hour) for hour in HOURS]
    else:
        values = list(hourly)
    if len(values) != HOURS_PER_DAY:
        raise InvariantViolation(f"expected {HOURS_PER_DAY} hourly values, got {len(values)}")
    return [
        float(value) if value is not None and math.isfinite(value) else 0.0 for value in values
    ]


@dataclass(frozen=True, eq=False)
class RadialCurve:
    """Closed cardinal spline through one control point per hour.

    Segment ``i`` runs from hour ``i`` to hour ``i + 1`` and uses neighbours
    ``i - 1`` and ``i + 2`` taken modulo 24, so the seam between hour 23 and
    hour 0 is smoothed exactly like any interior segment.
    """

    points: np.ndarray
    tension: float = 0.0
    values: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        points = np.asarray(self.points, dtype=float)
        if points.shape != (HOURS_PER_DAY, 2):
            raise InvariantViolation(
                f"expected ({HOURS_PER_DAY}, 2) control points, got {points.shape}"
            )
        points.setflags(write=False)
        object.__setattr__(self, "points", points)

    def bezier_segments(self) -> np.ndarray:
        """(24, 4, 2) array of cubic Bezier (start, control1, control2, end) per segment."""
        k = (1.0 - self.tension) / 6.0
        idx = np.arange(HOURS_PER_DAY)
        p0 = self.points[(idx - 1) % HOURS_PER_DAY]
        p1 = self.points[idx]
        p2 = self.points[(idx + 1) % HOURS_PER_DAY]
        p3 = self.points[(idx + 2) % HOURS_PER_DAY]
        c1 = p1 + k * (p2 - p0)
        c2 = p2 - k * (p3 - p1)
        return np.stack([p1, c1, c2, p2], axis=1)

    def at(self, hour: float) -> tuple[float, float]:
        wrapped = float(hour) % HOURS_PER_DAY
        segment = int(math.floor(wrapped)) % HOURS_PER_DAY
        s = wrapped - math.floor(wrapped)
        start, c1, c2, end = self.bezier_segments()[segment]
        u = 1.0 - s
        point = (u**3) * start + 3 * (u**2) * s * c1 + 3 * u * (s**2) * c2 + (s**3) * end
        return float(point[0]), float(point[1])

    def sample(self, samples_per_hour: int = 16) -> np.ndarray:
        """Closed polyline with ``24 * samples_per_hour + 1`` rows; last row repeats the first."""
        samples_per_hour = max(1, int(samples_per_hour))
        segments = self.bezier_segments()
        s = np.linspace(0.0, 1.0, samples_per_hour, endpoint=False)[:, None]
        u = 1.0 - s
        chunks = [
            (u**3) * start + 3 * (u**2) * s * c1 + 3 * u * (s**2) * c2 + (s**3) * end
            for start, c1, c2, end in segments
        ]
        polyline = np.vstack(chunks)
        return np.vstack([polyline, polyline[:1]])

    def svg_path(self, precision: int = 2) -> str:
        segments = self.bezier_segments()
        fmt = f"{{:.{precision}f}}"

        def pair(point: np.ndarray) -> str:
            return f"{fmt.format(point[0])},{fmt.format(point[1])}"

        parts = [f"M{pair(segments[0][0])}"]
        for _, c1, c2, end in segments:
            parts.append(f"C{pair(c1)} {pair(c2)} {pair(end)}")
        parts.append("Z")
        return "".join(parts)


def project(
    hourly: HourlyInput,
    value_scale: LinearScale,
    angle_for_hour: Callable[[float], float] = angle_for_hour,
    tension: float = 0.0,
) -> RadialCurve:
    values = _hour_values(hourly)
    points = np.array(
        [
            polar_to_xy(angle_for_hour(hour), value_scale(value))
            for hour, value in zip(HOURS, values)
        ],
        dtype=float,
    )
    return RadialCurve(points=points, tension=tension, values=tuple(values))


@dataclass(frozen=True)
class AxisRing:
    fraction: float
    radius: float
    value: float
    label: str
    curve: RadialCurve


def axis_rings(
    value_scale: LinearScale,
    outer_radius: float,
    fractions: Sequence[float],
    metric: Metric | str,
) -> list[AxisRing]:
    rings: list[AxisRing] = []
    ticks = value_scale.ticks_at_fractions(fractions, outer_radius)
    for fraction, (radius, value) in zip(fractions, ticks):
        rings.append(
            AxisRing(
                fraction=float(fraction),
                radius=radius,
                value=value,
                label=format_metric_value(metric, value),
                curve=project([value] * HOURS_PER_DAY, value_scale),
            )
        )
    return rings


@dataclass(frozen=True)
class HourTick:
    hour: int
    angle: float
    label: str
    label_position: tuple[float, float]
    line_end: tuple[float, float]


def hour_ticks(outer_radius: float, label_offset: float) -> list[HourTick]:
    ticks: list[HourTick] = []
    for hour in HOURS:
        angle = angle_for_hour(hour)
        ticks.append(
            HourTick(
                hour=hour,
                angle=angle,
                label=format_hour_label(hour),
                label_position=polar_to_xy(angle, float(outer_radius) + float(label_offset)),
                line_end=polar_to_xy(angle, float(outer_radius)),
            )
        )
    return ticks
