from __future__ import annotations

from typing import Any, Callable, Sequence

import numpy as np
import pandas as pd

from membership_analytics.features.window import trim
from membership_analytics.preprocess.country import UNKNOWN_COUNTRY
from membership_analytics.preprocess.device import UNKNOWN_DEVICE_TOKEN
from membership_analytics.preprocess.status import CandidateStatus
from membership_analytics.preprocess.tier import (
    DEFAULT_ADMIN_TIER,
    is_user_facing_tier,
    tier_number,
)
from membership_analytics.preprocess.time import MONTH_LABELS

N_PERIODS = len(MONTH_LABELS)

COLOR_TIER_THRESHOLDS = [
    (20, "20+"),
    (10, "11-20"),
    (5, "6-10"),
    (3, "4-5"),
    (0, "1-3"),
]
COLOR_TIER_EMPTY = "none"


def color_scale_bucket(count: int) -> str:
    for threshold, tier in COLOR_TIER_THRESHOLDS:
        if count > threshold:
            return tier
    return COLOR_TIER_EMPTY


def color_scale_series(counts: pd.Series | Sequence[int]) -> np.ndarray:
    values = pd.to_numeric(pd.Series(counts), errors="coerce").fillna(0).to_numpy(dtype=float)
    return np.select(
        [values > threshold for threshold, _ in COLOR_TIER_THRESHOLDS],
        [tier for _, tier in COLOR_TIER_THRESHOLDS],
        default=COLOR_TIER_EMPTY,
    )


def _present(values: pd.Series) -> pd.Series:
    return values.notna() & (values.astype(str).str.strip() != "")


def _as_timestamps(values: pd.Series) -> pd.Series:
    if pd.api.types.is_datetime64_any_dtype(values):
        return values
    return pd.to_datetime(values, errors="coerce", utc=True, format="mixed")


def group_by(
    df: pd.DataFrame,
    column: str,
    dimension_fn: Callable[[Any], Any] | None = None,
) -> dict[str, int]:
    """Count rows per dimension key; rows with an absent raw value are skipped.

    ``dimension_fn`` maps a raw value to its key. A key of ``None`` excludes
    the row from this dimension.
    """
    if df.empty or column not in df.columns:
        return {}
    values = df.loc[_present(df[column]), column]
    keys = values.map(dimension_fn) if dimension_fn is not None else values
    counts = keys.dropna().astype(str).value_counts()
    return {key: int(counts[key]) for key in sorted(counts.index)}


def group_by_time(
    df: pd.DataFrame,
    dimension_column: str,
    timestamp_column: str = "timestamp",
    year: int | None = None,
) -> list[dict[str, int]]:
    buckets: list[dict[str, int]] = [{} for _ in range(N_PERIODS)]
    if df.empty or dimension_column not in df.columns or timestamp_column not in df.columns:
        return buckets

    timestamps = _as_timestamps(df[timestamp_column])
    working = pd.DataFrame(
        {
            "month": timestamps.dt.month - 1,
            "year": timestamps.dt.year,
            "key": df[dimension_column],
        }
    )
    working = working[timestamps.notna() & _present(df[dimension_column])]
    if year is not None:
        working = working[working["year"] == int(year)]
    if working.empty:
        return buckets

    working["key"] = working["key"].astype(str)
    grouped = working.groupby(["month", "key"]).size()
    for (month, key), count in grouped.items():
        buckets[int(month)][key] = int(count)
    return [dict(sorted(bucket.items())) for bucket in buckets]


def monthly_totals(buckets: Sequence[dict[str, int]]) -> list[int]:
    return [int(sum(bucket.values())) for bucket in buckets]


def tier_options(df: pd.DataFrame, admin_tier: str = DEFAULT_ADMIN_TIER) -> list[str]:
    if "tier_name" not in df.columns:
        return ["all"]
    names = [
        name
        for name in df["tier_name"].dropna().astype(str)
        if is_user_facing_tier(name, admin_tier)
    ]
    unique = list(dict.fromkeys(names))
    return ["all", *sorted(unique, key=tier_number)]


def opening_options(df: pd.DataFrame) -> list[str]:
    if "opening" not in df.columns:
        return ["all"]
    openings = df.loc[_present(df["opening"]), "opening"].astype(str)
    return ["all", *dict.fromkeys(openings)]


def status_options() -> list[str]:
    return ["all", *(status.value for status in CandidateStatus)]


def build_country_counts(df: pd.DataFrame) -> pd.DataFrame:
    counts = group_by(df, "country_code")
    names = (
        df.dropna(subset=["country_code"])
        .drop_duplicates(subset=["country_code"])
        .set_index("country_code")["country_name"]
        .to_dict()
        if counts
        else {}
    )
    table = pd.DataFrame(
        {
            "country_code": list(counts),
            "country_name": [names.get(code, code) for code in counts],
            "n": list(counts.values()),
        },
        columns=["country_code", "country_name", "n"],
    )
    table["n"] = table["n"].astype(int)
    table["color_tier"] = color_scale_series(table["n"])
    return table.sort_values(["n", "country_code"], ascending=[False, True]).reset_index(
        drop=True
    )


def build_device_counts(df: pd.DataFrame, detailed: bool = False) -> pd.DataFrame:
    column = "device_normalized" if detailed else "device_class"
    counts = group_by(df, column)
    table = pd.DataFrame({"device": list(counts), "n": list(counts.values())}, columns=["device", "n"])
    table["n"] = table["n"].astype(int)
    return table.sort_values(["n", "device"], ascending=[False, True]).reset_index(drop=True)


def build_status_counts(df: pd.DataFrame) -> pd.DataFrame:
    counts = group_by(df, "status_normalized")
    known = [status.value for status in CandidateStatus]
    extras = sorted(key for key in counts if key not in known)
    labels = known + extras
    return pd.DataFrame(
        {"status": labels, "n": [int(counts.get(label, 0)) for label in labels]},
    )


def build_tier_counts(df: pd.DataFrame, admin_tier: str = DEFAULT_ADMIN_TIER) -> pd.DataFrame:
    counts = group_by(
        df,
        "tier_name",
        lambda name: name if is_user_facing_tier(name, admin_tier) else None,
    )
    labels = tier_options(df, admin_tier)[1:]
    return pd.DataFrame(
        {"tier": labels, "n": [int(counts.get(label, 0)) for label in labels]},
    )


def build_monthly_status_counts(
    df: pd.DataFrame,
    tier: str | None = None,
    year: int | None = None,
) -> pd.DataFrame:
    working = df
    if tier is not None and "tier_name" in df.columns:
        working = df[df["tier_name"] == tier]
    buckets = group_by_time(working, "status_normalized", year=year)
    totals = monthly_totals(buckets)
    window = trim(totals)

    statuses = [status.value for status in CandidateStatus]
    extras = sorted({key for bucket in buckets for key in bucket} - set(statuses))
    table = pd.DataFrame(
        {
            "month": list(range(N_PERIODS)),
            "month_label": MONTH_LABELS,
            **{
                label: [int(bucket.get(label, 0)) for bucket in buckets]
                for label in statuses + extras
            },
            "n_total": totals,
        }
    )
    if window is None:
        table["in_window"] = True
    else:
        table["in_window"] = table["month"].between(window.first, window.last)
    return table


def build_data_quality(df: pd.DataFrame, admin_tier: str = DEFAULT_ADMIN_TIER) -> pd.DataFrame:
    def _missing(column: str) -> int:
        if column not in df.columns:
            return int(len(df))
        return int((~_present(df[column])).sum())

    unknown_country = 0
    if "country_code" in df.columns:
        unknown_country = int((df["country_code"] == UNKNOWN_COUNTRY).sum())
    unknown_device = 0
    if "device_normalized" in df.columns:
        unknown_device = int((df["device_normalized"] == UNKNOWN_DEVICE_TOKEN).sum())
    invalid_timestamp = 0
    if "timestamp" in df.columns:
        invalid_timestamp = int((df["timestamp"].isna() & _present(df["submitted_at"])).sum())
    admin_rows = 0
    if "tier_name" in df.columns:
        admin_rows = int((df["tier_name"] == admin_tier).sum())
    duplicate_ids = int(df["id"].duplicated(keep=False).sum()) if "id" in df.columns else 0

    metrics = [
        ("rows_total", int(len(df))),
        ("missing_name", _missing("name")),
        ("missing_email", _missing("email")),
        ("missing_country", _missing("country")),
        ("unknown_country", unknown_country),
        ("unknown_device", unknown_device),
        ("missing_status", _missing("status")),
        ("missing_tier", _missing("selected_tier")),
        ("admin_tier", admin_rows),
        ("missing_submitted_at", _missing("submitted_at")),
        ("invalid_timestamp", invalid_timestamp),
        ("duplicate_ids", duplicate_ids),
    ]
    return pd.DataFrame(metrics, columns=["metric", "value"])
