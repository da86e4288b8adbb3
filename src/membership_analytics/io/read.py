from __future__ import annotations

from pathlib import Path

import pandas as pd

from membership_analytics.config import AppConfig
from membership_analytics.io.schema import CANONICAL_COLUMNS, normalize_columns


def _validate_required_columns(df: pd.DataFrame) -> pd.DataFrame:
    for column in CANONICAL_COLUMNS:
        if column not in df.columns:
            raise ValueError(f"Normalized data missing column: {column}")
    return df


def _read_source(path: Path) -> pd.DataFrame:
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(
            path, encoding="utf-8-sig", dtype=str, keep_default_na=False, na_values=[""]
        )
    if path.suffix == ".json":
        return pd.read_json(path, orient="records", dtype=False)
    raise ValueError(f"Unsupported records file type: {path.suffix}")


def load_records(path: Path, config: AppConfig) -> pd.DataFrame:
    """Load applicant records from CSV or JSON and return canonical columns."""
    df = _read_source(path)
    normalized = normalize_columns(df=df, columns=config.columns)
    normalized["id"] = normalized["id"].astype(str)
    return _validate_required_columns(normalized)


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        return pd.read_csv(path)
    raise ValueError(f"Unsupported table file type: {path.suffix}")
