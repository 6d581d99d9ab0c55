from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from circadian_clock.models import Metric, SubjectClass

DEFAULT_AXIS_FRACTIONS = [0.25, 0.5, 0.75, 1.0]


class ColumnsConfig(BaseModel):
    subject_id: str = "mouseId"
    subject_class: str = "gender"
    time: str = "time"
    minute: str | None = "minute"
    activity: str = "activity"
    temperature: str = "temp"


class TimeConfig(BaseModel):
    timestamp_format: str = "%Y-%m-%dT%H:%M:%S"


class ScalesConfig(BaseModel):
    activity: tuple[float, float] = (0.0, 34.0)
    temperature: tuple[float, float] = (18.0, 19.5)

    @field_validator("activity", "temperature")
    @classmethod
    def _ordered_domain(cls, value: tuple[float, float]) -> tuple[float, float]:
        low, high = value
        if not low < high:
            raise ValueError(f"scale domain must satisfy min < max, got {value!r}")
        return value

    def domain_for(self, metric: Metric) -> tuple[float, float]:
        return self.activity if metric is Metric.activity else self.temperature


class GeometryConfig(BaseModel):
    inner_radius: float = Field(default=50.0, ge=0.0)
    outer_radius: float = Field(default=300.0, gt=0.0)
    label_offset: float = Field(default=20.0, ge=0.0)
    axis_fractions: list[float] = Field(default_factory=lambda: list(DEFAULT_AXIS_FRACTIONS))
    curve_tension: float = Field(default=0.0, ge=0.0, le=1.0)
    samples_per_hour: int = Field(default=16, ge=1)

    @model_validator(mode="after")
    def _radii_ordered(self) -> GeometryConfig:
        if not self.inner_radius < self.outer_radius:
            raise ValueError("geometry.inner_radius must be smaller than geometry.outer_radius")
        return self


class RenderConfig(BaseModel):
    subject_class: SubjectClass = SubjectClass.female
    metric: Metric = Metric.activity
    figure_size: float = Field(default=8.0, gt=0.0)
    fill_opacity: float = Field(default=0.2, ge=0.0, le=1.0)
    dimmed_opacity: float = Field(default=0.1, ge=0.0, le=1.0)
    palette: str = "tab10"

    @field_validator("metric", mode="before")
    @classmethod
    def _parse_metric(cls, value: object) -> Metric:
        return Metric.parse(value)  # type: ignore[arg-type]


class InputConfig(BaseModel):
    path: str | None = None


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "parquet"
    figures_format: str = "png"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    time: TimeConfig = Field(default_factory=TimeConfig)
    scales: ScalesConfig = Field(default_factory=ScalesConfig)
    geometry: GeometryConfig = Field(default_factory=GeometryConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.input.path = _resolve_optional_path(config.input.path, base_dir) or os.getenv(
        "CIRCADIAN_CLOCK_DATASET"
    )
    return config
