from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import numpy as np
import pandas as pd

from circadian_clock.errors import InvariantViolation
from circadian_clock.models import (
    HOURS_PER_DAY,
    Metric,
    Observation,
    ObservationStore,
    SubjectClass,
)

HOURS = tuple(range(HOURS_PER_DAY))


@dataclass(frozen=True)
class SubjectHours:
    """Mean metric value per hour for one subject. Hours without data are absent."""

    subject_id: str
    means: Mapping[int, float] = field(default_factory=dict)
    counts: Mapping[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        bad_hours = [hour for hour in self.means if hour not in HOURS]
        if bad_hours:
            raise InvariantViolation(
                f"hour buckets outside 0-23 for {self.subject_id}: {bad_hours}"
            )
        object.__setattr__(self, "means", MappingProxyType(dict(sorted(self.means.items()))))
        object.__setattr__(self, "counts", MappingProxyType(dict(sorted(self.counts.items()))))

    def value(self, hour: int) -> float | None:
        return self.means.get(int(hour))

    def is_absent(self, hour: int) -> bool:
        return int(hour) not in self.means

    def items(self) -> Iterator[tuple[int, float | None]]:
        for hour in HOURS:
            yield hour, self.means.get(hour)

    def filled(self, fill: float = 0.0) -> list[float]:
        """24 values in hour order, absent hours replaced by ``fill`` for drawing."""
        return [self.means.get(hour, fill) for hour in HOURS]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubjectHours):
            return NotImplemented
        return (
            self.subject_id == other.subject_id
            and dict(self.means) == dict(other.means)
            and dict(self.counts) == dict(other.counts)
        )

    def __hash__(self) -> int:
        return hash((self.subject_id, tuple(self.means.items())))


@dataclass(frozen=True)
class HourlySeries:
    subject_class: str
    metric: Metric
    subjects: Mapping[str, SubjectHours] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "subjects", MappingProxyType(dict(self.subjects)))

    def __getitem__(self, subject_id: str) -> SubjectHours:
        return self.subjects[subject_id]

    def __contains__(self, subject_id: object) -> bool:
        return subject_id in self.subjects

    def __iter__(self) -> Iterator[str]:
        return iter(self.subjects)

    def __len__(self) -> int:
        return len(self.subjects)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HourlySeries):
            return NotImplemented
        return (
            self.subject_class == other.subject_class
            and self.metric == other.metric
            and list(self.subjects.items()) == list(other.subjects.items())
        )

    def __hash__(self) -> int:
        return hash((self.subject_class, self.metric, tuple(self.subjects)))

    @property
    def subject_ids(self) -> list[str]:
        return list(self.subjects)

    @property
    def is_empty(self) -> bool:
        return not self.subjects


def _observation_frame(observations: ObservationStore | Iterable[Observation]) -> pd.DataFrame:
    if isinstance(observations, ObservationStore):
        return observations.frame
    return ObservationStore.from_observations(observations).frame


def aggregate(
    observations: ObservationStore | Iterable[Observation],
    subject_class: SubjectClass | str,
    metric: Metric | str,
) -> HourlySeries:
    """Mean of ``metric`` per (subject, hour) over observations of ``subject_class``.

    Observations with a missing or non-finite value are dropped rather than
    counted as zero. Hours with no surviving observation stay absent. Subjects
    keep the order in which they first appear in the input.
    """
    metric = Metric.parse(metric)
    class_value = (
        subject_class.value
        if isinstance(subject_class, SubjectClass)
        else str(subject_class).strip().lower()
    )
    frame = _observation_frame(observations)

    values = frame[metric.value].astype("float64")
    qualifying = frame.loc[
        frame["subject_class"].eq(class_value) & np.isfinite(values),
        ["subject_id", "minute_of_day", metric.value],
    ].copy()
    if qualifying.empty:
        return HourlySeries(subject_class=class_value, metric=metric)

    qualifying["hour"] = qualifying["minute_of_day"].astype(int) // 60
    grouped = qualifying.groupby(["subject_id", "hour"], sort=False)[metric.value].agg(
        ["mean", "count"]
    )

    order = [str(subject_id) for subject_id in pd.unique(qualifying["subject_id"])]
    means: dict[str, dict[int, float]] = {subject_id: {} for subject_id in order}
    counts: dict[str, dict[int, int]] = {subject_id: {} for subject_id in order}
    for (subject_id, hour), row in grouped.iterrows():
        means[str(subject_id)][int(hour)] = float(row["mean"])
        counts[str(subject_id)][int(hour)] = int(row["count"])

    subjects = {
        subject_id: SubjectHours(
            subject_id=subject_id,
            means=means[subject_id],
            counts=counts[subject_id],
        )
        for subject_id in order
    }
    return HourlySeries(subject_class=class_value, metric=metric, subjects=subjects)


def hourly_series_to_frame(series: HourlySeries) -> pd.DataFrame:
    rows = [
        {
            "subject_class": series.subject_class,
            "metric": series.metric.value,
            "subject_id": subject_id,
            "hour": hour,
            "mean_value": hours.value(hour),
            "n_observations": int(hours.counts.get(hour, 0)),
            "is_absent": hours.is_absent(hour),
        }
        for subject_id, hours in series.subjects.items()
        for hour in HOURS
    ]
    columns = [
        "subject_class",
        "metric",
        "subject_id",
        "hour",
        "mean_value",
        "n_observations",
        "is_absent",
    ]
    frame = pd.DataFrame(rows, columns=columns)
    frame["mean_value"] = frame["mean_value"].astype("float64")
    return frame
