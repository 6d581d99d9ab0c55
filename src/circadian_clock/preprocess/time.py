from __future__ import annotations

import pandas as pd

from circadian_clock.config import TimeConfig
from circadian_clock.models import MINUTES_PER_DAY


def parse_timestamps(values: pd.Series, config: TimeConfig) -> pd.Series:
    timestamps = pd.to_datetime(values, format=config.timestamp_format, errors="coerce")
    if len(values) and timestamps.isna().all():
        timestamps = pd.to_datetime(values, errors="coerce")
    return timestamps


def add_minute_of_day(df: pd.DataFrame, config: TimeConfig) -> pd.DataFrame:
    """Attach ``timestamp`` and ``minute_of_day``; unusable rows get NaN minutes."""
    working = df.copy()
    timestamps = parse_timestamps(working["time"], config)
    working["timestamp"] = timestamps
    derived = (timestamps.dt.hour * 60 + timestamps.dt.minute).astype("float64")

    if "minute" in working.columns:
        # A precomputed minute column wins where it is numeric; timestamps fill its gaps.
        supplied = pd.to_numeric(working["minute"], errors="coerce").astype("float64")
        minute_of_day = supplied.where(supplied.notna(), derived)
    else:
        minute_of_day = derived

    in_range = minute_of_day.ge(0) & minute_of_day.lt(MINUTES_PER_DAY)
    working["minute_of_day"] = minute_of_day.floordiv(1).where(in_range)
    return working
