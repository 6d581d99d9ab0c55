from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pandas as pd

from circadian_clock.config import AppConfig
from circadian_clock.errors import DataIntegrityWarning
from circadian_clock.io.schema import normalize_columns
from circadian_clock.models import Metric, ObservationStore
from circadian_clock.preprocess.time import add_minute_of_day

LOGGER = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["subject_id", "subject_class", "time", "activity", "temperature"]


@dataclass(frozen=True)
class LoadReport:
    source_file: str
    rows_read: int
    rows_kept: int
    rows_missing_subject: int
    rows_invalid_timestamp: int
    missing_metric_values: dict[str, int] = field(default_factory=dict)

    @property
    def rows_skipped(self) -> int:
        return self.rows_read - self.rows_kept

    def to_dict(self) -> dict[str, object]:
        return {
            "source_file": self.source_file,
            "rows_read": self.rows_read,
            "rows_kept": self.rows_kept,
            "rows_skipped": self.rows_skipped,
            "rows_missing_subject": self.rows_missing_subject,
            "rows_invalid_timestamp": self.rows_invalid_timestamp,
            "missing_metric_values": dict(self.missing_metric_values),
        }


def _validate_required_columns(df: pd.DataFrame) -> pd.DataFrame:
    for column in REQUIRED_COLUMNS:
        if column not in df.columns:
            raise ValueError(f"Normalized data missing column: {column}")
    return df


def load_records(path: Path, config: AppConfig) -> pd.DataFrame:
    """Read JSON records or CSV and return canonical column names."""
    if path.suffix == ".json":
        df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    elif path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers from spreadsheet exports.
        df = pd.read_csv(path, encoding="utf-8-sig", dtype={config.columns.subject_id: str})
    else:
        raise ValueError(f"Unsupported dataset file type: {path.suffix}")
    normalized = normalize_columns(df=df, columns=config.columns)
    return _validate_required_columns(normalized)


def _coerce_metric(values: pd.Series) -> pd.Series:
    numeric = pd.to_numeric(values, errors="coerce").astype("float64")
    return numeric.where(np.isfinite(numeric))


def build_store(
    df: pd.DataFrame,
    config: AppConfig,
    source_file: str = "",
) -> tuple[ObservationStore, LoadReport]:
    working = add_minute_of_day(_validate_required_columns(df), config.time)
    rows_read = int(len(working))

    subject = working["subject_id"]
    missing_subject = subject.isna() | (subject.astype(str).str.strip() == "")
    invalid_timestamp = working["minute_of_day"].isna() & ~missing_subject

    working["subject_id"] = subject.astype(str).str.strip()
    for metric in Metric:
        working[metric.value] = _coerce_metric(working[metric.value])

    kept = working.loc[~(missing_subject | invalid_timestamp)].copy()
    kept["minute_of_day"] = kept["minute_of_day"].astype(int)
    missing_metric_values = {
        metric.value: int(kept[metric.value].isna().sum()) for metric in Metric
    }

    report = LoadReport(
        source_file=source_file,
        rows_read=rows_read,
        rows_kept=int(len(kept)),
        rows_missing_subject=int(missing_subject.sum()),
        rows_invalid_timestamp=int(invalid_timestamp.sum()),
        missing_metric_values=missing_metric_values,
    )
    if report.rows_skipped or any(missing_metric_values.values()):
        message = (
            f"Skipped {report.rows_skipped} of {rows_read} records "
            f"(missing subject: {report.rows_missing_subject}, "
            f"invalid timestamp: {report.rows_invalid_timestamp}); "
            f"missing metric values: {missing_metric_values}"
        )
        LOGGER.warning(message)
        warnings.warn(message, DataIntegrityWarning, stacklevel=2)
    return ObservationStore(kept), report


def load_store(path: Path, config: AppConfig) -> tuple[ObservationStore, LoadReport]:
    df = load_records(path=path, config=config)
    store, report = build_store(df, config=config, source_file=path.name)
    LOGGER.info("Loaded %d observations from %s", len(store), path)
    return store, report
