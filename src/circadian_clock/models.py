from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum

import pandas as pd

MINUTES_PER_DAY = 24 * 60
HOURS_PER_DAY = 24

STORE_COLUMNS = ["subject_id", "subject_class", "minute_of_day", "activity", "temperature"]


class Metric(str, Enum):
    activity = "activity"
    temperature = "temperature"

    @classmethod
    def parse(cls, value: str | Metric) -> Metric:
        if isinstance(value, Metric):
            return value
        normalized = str(value or "").strip().lower()
        if normalized == "temp":
            return cls.temperature
        return cls(normalized)

    def toggle(self) -> Metric:
        return Metric.temperature if self is Metric.activity else Metric.activity

    @property
    def display_name(self) -> str:
        return "Activity" if self is Metric.activity else "Temperature"


class SubjectClass(str, Enum):
    female = "female"
    male = "male"

    @classmethod
    def parse(cls, value: str | SubjectClass) -> SubjectClass:
        if isinstance(value, SubjectClass):
            return value
        return cls(str(value or "").strip().lower())

    def toggle(self) -> SubjectClass:
        return SubjectClass.male if self is SubjectClass.female else SubjectClass.female

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


def finite_or_none(value: object) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class Observation:
    subject_id: str
    subject_class: str
    minute_of_day: int
    metric_values: Mapping[Metric, float | None] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= int(self.minute_of_day) < MINUTES_PER_DAY:
            raise ValueError(
                f"minute_of_day must be in [0, {MINUTES_PER_DAY - 1}], got {self.minute_of_day!r}."
            )

    @property
    def hour(self) -> int:
        return int(self.minute_of_day) // 60

    def value(self, metric: Metric) -> float | None:
        return finite_or_none(self.metric_values.get(metric))


@dataclass(frozen=True)
class RenderRequest:
    """Filter and metric for one render pass. Toggling returns a new request."""

    subject_class: SubjectClass = SubjectClass.female
    metric: Metric = Metric.activity

    def with_toggled_subject_class(self) -> RenderRequest:
        return replace(self, subject_class=self.subject_class.toggle())

    def with_toggled_metric(self) -> RenderRequest:
        return replace(self, metric=self.metric.toggle())


class ObservationStore:
    """Typed observations held as a canonical frame, one row per raw sample."""

    def __init__(self, frame: pd.DataFrame) -> None:
        missing = [column for column in STORE_COLUMNS if column not in frame.columns]
        if missing:
            raise ValueError(f"Observation frame missing columns: {', '.join(missing)}")
        working = frame.loc[:, STORE_COLUMNS].copy()
        working["subject_id"] = working["subject_id"].astype(str)
        working["subject_class"] = working["subject_class"].astype(str).str.strip().str.lower()
        working["minute_of_day"] = working["minute_of_day"].astype(int)
        for metric in Metric:
            working[metric.value] = pd.to_numeric(working[metric.value], errors="coerce").astype(
                "float64"
            )
        self._frame = working.reset_index(drop=True)

    @classmethod
    def from_observations(cls, observations: Iterable[Observation]) -> ObservationStore:
        rows = [
            {
                "subject_id": str(item.subject_id),
                "subject_class": str(item.subject_class),
                "minute_of_day": int(item.minute_of_day),
                "activity": item.value(Metric.activity),
                "temperature": item.value(Metric.temperature),
            }
            for item in observations
        ]
        return cls(pd.DataFrame(rows, columns=STORE_COLUMNS))

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def __len__(self) -> int:
        return len(self._frame)

    def subject_classes(self) -> list[str]:
        return sorted(self._frame["subject_class"].dropna().unique().tolist())
