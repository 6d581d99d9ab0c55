from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from circadian_clock.config import ColumnsConfig


@dataclass(frozen=True)
class CanonicalColumns:
    subject_id: str = "subject_id"
    subject_class: str = "subject_class"
    time: str = "time"
    minute: str = "minute"
    activity: str = "activity"
    temperature: str = "temperature"


def normalize_columns(df: pd.DataFrame, columns: ColumnsConfig) -> pd.DataFrame:
    """Rename source columns to the canonical names used by the store."""
    rename_map = {
        columns.subject_id: CanonicalColumns.subject_id,
        columns.subject_class: CanonicalColumns.subject_class,
        columns.time: CanonicalColumns.time,
        columns.activity: CanonicalColumns.activity,
        columns.temperature: CanonicalColumns.temperature,
    }
    missing = [source for source in rename_map if source not in df.columns]
    if missing:
        missing_str = ", ".join(missing)
        raise ValueError(f"Missing required columns in dataset: {missing_str}")
    # Minute-of-day is optional; it is derived from the timestamp when absent.
    if columns.minute and columns.minute in df.columns:
        rename_map[columns.minute] = CanonicalColumns.minute
    return df.rename(columns=rename_map)
