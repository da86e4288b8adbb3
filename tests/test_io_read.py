from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from membership_analytics.config import AppConfig
from membership_analytics.io.read import load_records, load_table
from membership_analytics.io.schema import CANONICAL_COLUMNS
from membership_analytics.io.write import write_table
from membership_analytics.records import CandidateRecord, records_to_frame


def test_load_records_renames_configured_columns(tmp_path: Path) -> None:
    csv_path = tmp_path / "records.csv"
    csv_path.write_text(
        "\ufeffid,primaryContactName,primaryContactEmail,country,status\n"
        "7,Nangula Shikongo,nangula@example.org,NA,accepted\n"
        "8,,,,\n",
        encoding="utf-8",
    )

    df = load_records(csv_path, AppConfig())

    assert set(CANONICAL_COLUMNS) <= set(df.columns)
    assert df["id"].tolist() == ["7", "8"]
    assert df.loc[0, "name"] == "Nangula Shikongo"
    assert df.loc[0, "country"] == "NA"
    assert pd.isna(df.loc[1, "country"])
    assert df["device"].isna().all()


def test_load_records_reads_json(tmp_path: Path) -> None:
    json_path = tmp_path / "records.json"
    json_path.write_text(
        json.dumps(
            [
                {
                    "id": 1,
                    "primaryContactName": "Amina",
                    "primaryContactEmail": "amina@example.org",
                    "device": "Android",
                }
            ]
        ),
        encoding="utf-8",
    )

    df = load_records(json_path, AppConfig())

    assert df["id"].tolist() == ["1"]
    assert df.loc[0, "device"] == "Android"


def test_load_records_requires_id_column(tmp_path: Path) -> None:
    csv_path = tmp_path / "records.csv"
    csv_path.write_text("name,email\nA,a@example.org\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Missing required columns"):
        load_records(csv_path, AppConfig())

    with pytest.raises(ValueError, match="Unsupported records file type"):
        load_records(tmp_path / "records.xlsx", AppConfig())


def test_records_to_frame_uses_canonical_columns() -> None:
    df = records_to_frame(
        [CandidateRecord(id="1", country_raw="KE", opening_id="op-1", name="A")]
    )

    assert list(df.columns) == CANONICAL_COLUMNS
    assert df.loc[0, "country"] == "KE"
    assert df.loc[0, "opening"] == "op-1"
    assert records_to_frame([]).empty


def test_write_table_round_trips_parquet(tmp_path: Path) -> None:
    table = pd.DataFrame({"country_code": ["KE"], "n": [2]})
    path = write_table(table, tmp_path / "tables" / "country_counts.parquet", fmt="parquet")

    assert load_table(path).to_dict(orient="list") == {"country_code": ["KE"], "n": [2]}
    with pytest.raises(ValueError):
        write_table(table, tmp_path / "x.xlsx", fmt="xlsx")
