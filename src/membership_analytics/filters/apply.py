from __future__ import annotations

import logging

import pandas as pd

from membership_analytics.filters.state import ALL, FilterState, SORT_OPTIONS

LOGGER = logging.getLogger(__name__)

REQUIRED_STRING_FIELDS = ("name", "email")


def validate_collection(df: pd.DataFrame) -> bool:
    """Structural sanity check gating filter initialization.

    A required field is structurally missing when the column is absent or no
    record carries a string value for it.
    """
    for column in REQUIRED_STRING_FIELDS:
        if column not in df.columns:
            LOGGER.warning("Record collection has no %s column", column)
            return False
        if len(df) and not df[column].map(lambda value: isinstance(value, str)).any():
            LOGGER.warning("No record in the collection carries a string %s", column)
            return False
    return True


def _lowered(values: pd.Series) -> pd.Series:
    return values.fillna("").astype(str).str.lower()


def apply_filters(df: pd.DataFrame, state: FilterState) -> pd.DataFrame:
    """Filter a canonicalized record frame down to rows matching ``state``."""
    mask = pd.Series(True, index=df.index)

    query = state.search_query.strip().lower()
    if query:
        mask &= _lowered(df["name"]).str.contains(query, regex=False) | _lowered(
            df["email"]
        ).str.contains(query, regex=False)
    if state.opening != ALL:
        mask &= df["opening"].astype(str) == state.opening
    if state.status != ALL:
        mask &= df["status_normalized"] == state.status
    if state.tier != ALL:
        mask &= df["tier_name"] == state.tier
    if state.country != ALL:
        mask &= (_lowered(df["country_name"]) == state.country.lower()) | (
            df["country_code"].fillna("").astype(str).str.upper() == state.country.upper()
        )
    if state.device:
        wanted = {token.strip().upper() for token in state.device}
        mask &= df["device_normalized"].isin(wanted)

    return df[mask]


def sort_records(df: pd.DataFrame, sort_by: str) -> pd.DataFrame:
    if sort_by not in SORT_OPTIONS:
        LOGGER.warning("Unknown sort option %r; keeping current order", sort_by)
        return df
    if df.empty:
        return df

    if sort_by in ("latest", "oldest"):
        return df.sort_values(
            "timestamp",
            ascending=sort_by == "oldest",
            na_position="last",
            kind="mergesort",
        )
    if sort_by in ("name-asc", "name-desc"):
        return df.sort_values(
            "name",
            ascending=sort_by == "name-asc",
            key=_lowered,
            kind="mergesort",
        )
    column = {"status": "status_normalized", "tier": "tier_name", "reference": "id"}[sort_by]
    return df.sort_values(column, key=_lowered, na_position="last", kind="mergesort")
