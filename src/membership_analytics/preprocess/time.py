from __future__ import annotations

import logging

import pandas as pd

from membership_analytics.config import TimeConfig

LOGGER = logging.getLogger(__name__)

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def parse_submitted_at(values: pd.Series, timezone: str = "UTC") -> pd.Series:
    timestamps = pd.to_datetime(values, errors="coerce", utc=True, format="mixed")
    return timestamps.dt.tz_convert(timezone)


def add_time_features(df: pd.DataFrame, config: TimeConfig) -> pd.DataFrame:
    working = df.copy()
    timestamps = parse_submitted_at(working["submitted_at"], config.timezone)
    invalid = int(timestamps.isna().sum() - working["submitted_at"].isna().sum())
    if invalid > 0:
        LOGGER.info("%d record(s) with unparseable submitted_at values", invalid)

    working["timestamp"] = timestamps
    # Zero-based month index on the fixed Jan..Dec axis.
    working["month"] = (timestamps.dt.month - 1).astype("Int64")
    working["year"] = timestamps.dt.year.astype("Int64")
    return working
