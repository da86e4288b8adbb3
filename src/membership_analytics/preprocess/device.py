from __future__ import annotations

from typing import Any, Sequence

import pandas as pd

from membership_analytics.config import DEFAULT_MOBILE_KEYWORDS

UNKNOWN_DEVICE_TOKEN = "UNKNOWN"

DEVICE_MOBILE = "Mobile"
DEVICE_DESKTOP = "Desktop"
DEVICE_OTHER = "Other"
DEVICE_CLASSES = (DEVICE_MOBILE, DEVICE_DESKTOP, DEVICE_OTHER)


def normalize_device(raw: Any) -> str:
    if not isinstance(raw, str):
        return UNKNOWN_DEVICE_TOKEN
    value = raw.strip().upper()
    return value or UNKNOWN_DEVICE_TOKEN


def classify_device_token(
    token: str,
    mobile_keywords: Sequence[str] = DEFAULT_MOBILE_KEYWORDS,
) -> str:
    if token == UNKNOWN_DEVICE_TOKEN:
        return DEVICE_OTHER
    if any(keyword.upper() in token for keyword in mobile_keywords):
        return DEVICE_MOBILE
    return DEVICE_DESKTOP


def canonicalize_device(
    raw: Any,
    mobile_keywords: Sequence[str] = DEFAULT_MOBILE_KEYWORDS,
) -> str:
    return classify_device_token(normalize_device(raw), mobile_keywords)


def add_device_features(
    df: pd.DataFrame,
    mobile_keywords: Sequence[str] = DEFAULT_MOBILE_KEYWORDS,
) -> pd.DataFrame:
    working = df.copy()
    working["device_normalized"] = working["device"].map(normalize_device)
    working["device_class"] = working["device_normalized"].map(
        lambda token: classify_device_token(token, mobile_keywords)
    )
    return working
