from __future__ import annotations

import math
import re
from typing import Any

import pandas as pd

DEFAULT_TIER_DELIMITER = " - "
DEFAULT_ADMIN_TIER = "Admin"

TIER_NUMBER_RE = re.compile(r"Tier (\d+)")


def extract_tier_name(raw: Any, delimiter: str = DEFAULT_TIER_DELIMITER) -> str | None:
    """Return the tier name in front of the first delimiter, e.g. ``"Tier 1 - Req: X"``."""
    if not isinstance(raw, str):
        return None
    name = raw.split(delimiter, 1)[0].strip()
    return name or None


def is_user_facing_tier(name: str | None, admin_tier: str = DEFAULT_ADMIN_TIER) -> bool:
    return bool(name) and name != admin_tier


def tier_number(name: str) -> float:
    match = TIER_NUMBER_RE.search(name or "")
    return float(match.group(1)) if match else math.inf


def add_tier_features(df: pd.DataFrame, delimiter: str = DEFAULT_TIER_DELIMITER) -> pd.DataFrame:
    working = df.copy()
    working["tier_name"] = working["selected_tier"].map(
        lambda value: extract_tier_name(value, delimiter)
    )
    return working
