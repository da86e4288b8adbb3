from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from membership_analytics.features.aggregates import build_country_counts, group_by
from membership_analytics.io.reference import (
    CountryReference,
    build_country_reference,
    load_country_reference,
)
from membership_analytics.preprocess.country import (
    UNKNOWN_COUNTRY,
    add_country_features,
    canonicalize_country,
    country_display_name,
)

COUNTRIES_PATH = Path(__file__).resolve().parents[1] / "configs/countries.csv"


def _reference() -> CountryReference:
    return load_country_reference(COUNTRIES_PATH)


def test_canonicalize_country_resolves_codes_and_names() -> None:
    reference = _reference()

    assert canonicalize_country("KE", reference) == "KE"
    assert canonicalize_country(" ke ", reference) == "KE"
    assert canonicalize_country("Kenya", reference) == "KE"
    assert canonicalize_country("UNITED KINGDOM", reference) == "GB"
    assert canonicalize_country("uk", reference) == "GB"
    assert country_display_name("UK", reference) == "United Kingdom"


def test_canonicalize_country_substring_match_for_longer_inputs() -> None:
    reference = _reference()

    assert canonicalize_country("Republic of Kenya", reference) == "KE"
    assert canonicalize_country("United States", reference) == "US"
    # Inputs of three characters or fewer never fall back to substring matching.
    assert canonicalize_country("Ken", reference) == UNKNOWN_COUNTRY


def test_canonicalize_country_first_substring_match_wins() -> None:
    reference = build_country_reference(
        [
            {"code": "NE", "name": "Niger"},
            {"code": "NG", "name": "Nigeria"},
        ]
    )

    assert canonicalize_country("Nigeria", reference) == "NG"
    assert canonicalize_country("Nigeria, Lagos", reference) == "NE"


@pytest.mark.parametrize(
    "raw",
    ["", "   ", None, float("nan"), 42, "Zz-not-a-country", "x" * 10_000, "🙂", ["KE"]],
)
def test_canonicalize_country_is_total(raw: object) -> None:
    assert canonicalize_country(raw, _reference()) == UNKNOWN_COUNTRY


def test_canonicalize_country_with_empty_reference_returns_unknown() -> None:
    assert canonicalize_country("Kenya", CountryReference()) == UNKNOWN_COUNTRY


def test_country_display_name_falls_back_to_code() -> None:
    reference = _reference()

    assert country_display_name("KE", reference) == "Kenya"
    assert country_display_name(UNKNOWN_COUNTRY, reference) == UNKNOWN_COUNTRY


def test_country_scenario_counts() -> None:
    df = pd.DataFrame({"country": ["KE", "Kenya", "Zz-not-a-country"]})
    out = add_country_features(df=df, reference=_reference())

    assert group_by(out, "country_code") == {"KE": 2, "Unknown": 1}


def test_add_country_features_skips_absent_values() -> None:
    df = pd.DataFrame({"country": ["KE", None, "  ", "Ghana"]})
    out = add_country_features(df=df, reference=_reference())

    assert out.loc[0, "country_name"] == "Kenya"
    assert pd.isna(out.loc[1, "country_code"])
    assert pd.isna(out.loc[2, "country_code"])
    assert out.loc[3, "country_code"] == "GH"
    assert group_by(out, "country_code") == {"GH": 1, "KE": 1}


def test_reference_is_immutable_and_keeps_postal_aliases() -> None:
    reference = build_country_reference(
        [{"code": "gb", "name": "United Kingdom", "postal": "UK"}, {"code": "", "name": "X"}]
    )

    assert dict(reference.code_to_name) == {"GB": "United Kingdom"}
    assert dict(reference.alias_to_code) == {"UK": "GB"}
    assert reference.code_for("uk") == "GB"
    assert dict(reference.name_to_code) == {"UNITED KINGDOM": "GB"}
    with pytest.raises(TypeError):
        reference.code_to_name["FR"] = "France"  # type: ignore[index]


def test_build_reference_rejects_conflicting_names() -> None:
    with pytest.raises(ValueError, match="maps to both"):
        build_country_reference(
            [{"code": "KE", "name": "Kenya"}, {"code": "KE", "name": "Kenia"}]
        )


def test_load_country_reference_validates_file(tmp_path: Path) -> None:
    bad = tmp_path / "bad.csv"
    bad.write_text("iso,label\nKE,Kenya\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing columns"):
        load_country_reference(bad)
    with pytest.raises(ValueError, match="not found"):
        load_country_reference(tmp_path / "missing.csv")
    assert len(load_country_reference(None)) == 0


def test_postal_aliases_share_the_iso_bucket() -> None:
    df = pd.DataFrame({"country": ["USA", "US", "United States of America", "uae"]})
    out = add_country_features(df=df, reference=_reference())

    assert group_by(out, "country_code") == {"AE": 1, "US": 3}
    table = build_country_counts(out)
    assert table.loc[0].to_dict() == {
        "country_code": "US",
        "country_name": "United States of America",
        "n": 3,
        "color_tier": "1-3",
    }
