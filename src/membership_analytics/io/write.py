from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

TABLE_SUFFIXES = {"csv": ".csv", "parquet": ".parquet"}


def write_table(df: pd.DataFrame, path: Path, fmt: str = "csv") -> Path:
    if fmt not in TABLE_SUFFIXES:
        raise ValueError(f"Unsupported table format: {fmt}")
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, index=False)
    return path


def write_tables(
    tables: Mapping[str, pd.DataFrame],
    directory: Path,
    fmt: str = "csv",
) -> dict[str, Path]:
    suffix = TABLE_SUFFIXES.get(fmt)
    if suffix is None:
        raise ValueError(f"Unsupported table format: {fmt}")
    return {
        name: write_table(table, directory / f"{name}{suffix}", fmt=fmt)
        for name, table in tables.items()
    }


def write_summary(data: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True, default=str), encoding="utf-8")
    return path
