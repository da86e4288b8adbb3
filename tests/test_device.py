from __future__ import annotations

import pandas as pd
import pytest

from membership_analytics.features.aggregates import group_by
from membership_analytics.preprocess.device import (
    DEVICE_CLASSES,
    UNKNOWN_DEVICE_TOKEN,
    add_device_features,
    canonicalize_device,
    classify_device_token,
    normalize_device,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Android", "Mobile"),
        ("ios-safari", "Mobile"),
        ("Mobile Chrome", "Mobile"),
        ("iPhone", "Mobile"),
        ("Windows", "Desktop"),
        ("macOS", "Desktop"),
        ("", "Other"),
        (None, "Other"),
        (12, "Other"),
    ],
)
def test_canonicalize_device(raw: object, expected: str) -> None:
    assert canonicalize_device(raw) == expected


def test_normalize_device_trims_and_uppercases() -> None:
    assert normalize_device("  ios-safari ") == "IOS-SAFARI"
    assert normalize_device("   ") == UNKNOWN_DEVICE_TOKEN
    assert normalize_device(float("nan")) == UNKNOWN_DEVICE_TOKEN


def test_classify_device_token_uses_configured_keywords() -> None:
    assert classify_device_token("TABLET", ["TABLET"]) == "Mobile"
    assert classify_device_token("ANDROID", ["TABLET"]) == "Desktop"
    assert classify_device_token(UNKNOWN_DEVICE_TOKEN, ["UNKNOWN"]) == "Other"


def test_add_device_features_classifies_every_row() -> None:
    df = pd.DataFrame({"device": ["Android", "iOS-Safari", "Windows", None, "android"]})
    out = add_device_features(df)

    assert out["device_normalized"].tolist() == [
        "ANDROID",
        "IOS-SAFARI",
        "WINDOWS",
        "UNKNOWN",
        "ANDROID",
    ]
    assert set(out["device_class"]) <= set(DEVICE_CLASSES)
    assert group_by(out, "device_class") == {"Desktop": 1, "Mobile": 3, "Other": 1}
