from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable

import pandas as pd

from membership_analytics.io.schema import CANONICAL_COLUMNS


@dataclass(frozen=True)
class CandidateRecord:
    id: str
    country_raw: str | None = None
    device_raw: str | None = None
    status: str | None = None
    selected_tier: str | None = None
    job_type: str | None = None
    submitted_at: datetime | str | None = None
    opening_id: str | None = None
    name: str | None = None
    email: str | None = None

    def to_row(self) -> dict[str, object]:
        row = asdict(self)
        return {
            "id": row["id"],
            "name": row["name"],
            "email": row["email"],
            "country": row["country_raw"],
            "device": row["device_raw"],
            "status": row["status"],
            "selected_tier": row["selected_tier"],
            "job_type": row["job_type"],
            "submitted_at": row["submitted_at"],
            "opening": row["opening_id"],
        }


def records_to_frame(records: Iterable[CandidateRecord]) -> pd.DataFrame:
    rows = [record.to_row() for record in records]
    return pd.DataFrame(rows, columns=CANONICAL_COLUMNS)
