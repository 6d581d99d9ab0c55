from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from circadian_clock.config import AppConfig
from circadian_clock.models import Metric


@dataclass(frozen=True)
class LinearScale:
    """Unclamped linear map from a value domain onto a radius range."""

    domain: tuple[float, float]
    range: tuple[float, float]

    def __post_init__(self) -> None:
        d0, d1 = self.domain
        if d0 == d1:
            raise ValueError(f"LinearScale domain must not be degenerate, got {self.domain!r}")
        object.__setattr__(self, "domain", (float(d0), float(d1)))
        object.__setattr__(self, "range", (float(self.range[0]), float(self.range[1])))

    @property
    def slope(self) -> float:
        return (self.range[1] - self.range[0]) / (self.domain[1] - self.domain[0])

    def __call__(self, value: float | np.ndarray) -> float | np.ndarray:
        if isinstance(value, np.ndarray):
            return self.range[0] + (value.astype(float) - self.domain[0]) * self.slope
        return self.range[0] + (float(value) - self.domain[0]) * self.slope

    def invert(self, radius: float) -> float:
        return self.domain[0] + (float(radius) - self.range[0]) / self.slope

    def ticks_at_fractions(
        self,
        fractions: Sequence[float],
        outer_radius: float | None = None,
    ) -> list[tuple[float, float]]:
        """(radius, value) pairs for radii taken as fractions of the outer radius.

        ``outer_radius`` defaults to the upper end of the range.
        """
        outer = self.range[1] if outer_radius is None else float(outer_radius)
        radii = [outer * float(fraction) for fraction in fractions]
        return [(radius, self.invert(radius)) for radius in radii]


def metric_scale(metric: Metric | str, config: AppConfig) -> LinearScale:
    metric = Metric.parse(metric)
    return LinearScale(
        domain=config.scales.domain_for(metric),
        range=(config.geometry.inner_radius, config.geometry.outer_radius),
    )
