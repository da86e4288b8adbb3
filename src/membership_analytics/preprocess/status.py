from __future__ import annotations

from enum import Enum
from typing import Any

import pandas as pd


class CandidateStatus(str, Enum):
    PENDING = "Pending"
    REVIEWED = "Reviewed"
    SHORTLISTED = "Shortlisted"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


DEFAULT_STATUS = CandidateStatus.PENDING.value
STATUS_MAP = {status.value.upper(): status.value for status in CandidateStatus}


def normalize_status(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        return DEFAULT_STATUS
    value = raw.strip()
    return STATUS_MAP.get(value.upper(), value)


def add_status_features(df: pd.DataFrame) -> pd.DataFrame:
    working = df.copy()
    working["status_normalized"] = working["status"].map(normalize_status)
    return working
