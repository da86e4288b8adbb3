from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from membership_analytics.config import ColumnsConfig


@dataclass(frozen=True)
class CanonicalColumns:
    id: str = "id"
    name: str = "name"
    email: str = "email"
    country: str = "country"
    device: str = "device"
    status: str = "status"
    selected_tier: str = "selected_tier"
    job_type: str = "job_type"
    submitted_at: str = "submitted_at"
    opening: str = "opening"


CANONICAL_COLUMNS = [
    CanonicalColumns.id,
    CanonicalColumns.name,
    CanonicalColumns.email,
    CanonicalColumns.country,
    CanonicalColumns.device,
    CanonicalColumns.status,
    CanonicalColumns.selected_tier,
    CanonicalColumns.job_type,
    CanonicalColumns.submitted_at,
    CanonicalColumns.opening,
]

# Optional attributes may be absent from an export; they are added as empty columns.
REQUIRED_SOURCE_FIELDS = ("id",)


def normalize_columns(df: pd.DataFrame, columns: ColumnsConfig) -> pd.DataFrame:
    """Rename source columns to the canonical names used by the engine."""
    rename_map = {
        getattr(columns, field_name): getattr(CanonicalColumns, field_name)
        for field_name in CANONICAL_COLUMNS
    }
    missing = [
        getattr(columns, field_name)
        for field_name in REQUIRED_SOURCE_FIELDS
        if getattr(columns, field_name) not in df.columns
    ]
    if missing:
        missing_str = ", ".join(missing)
        raise ValueError(f"Missing required columns in records file: {missing_str}")

    renamed = df.rename(columns=rename_map)
    for column in CANONICAL_COLUMNS:
        if column not in renamed.columns:
            renamed[column] = None
    return renamed
