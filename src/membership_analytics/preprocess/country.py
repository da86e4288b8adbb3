from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from membership_analytics.io.reference import CountryReference

LOGGER = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "Unknown"
SUBSTRING_MIN_LENGTH = 3


def _substring_matches(value: str, reference: CountryReference) -> list[str]:
    return [
        name for name in reference.name_to_code if name in value or value in name
    ]


def canonicalize_country(raw: Any, reference: CountryReference) -> str:
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        LOGGER.debug("Unresolved country input: %r", raw)
        return UNKNOWN_COUNTRY
    value = str(raw).strip().upper()
    if not value:
        LOGGER.debug("Unresolved country input: %r", raw)
        return UNKNOWN_COUNTRY

    code = reference.code_for(value)
    if code is not None:
        return code
    if value in reference.name_to_code:
        return reference.name_to_code[value]

    if len(value) > SUBSTRING_MIN_LENGTH:
        matches = _substring_matches(value, reference)
        if len(matches) > 1:
            # First match in reference-table order wins; ambiguity is reported only.
            LOGGER.debug("Ambiguous country input %r matched %s", raw, ", ".join(matches))
        if matches:
            return reference.name_to_code[matches[0]]

    LOGGER.debug("Unresolved country input: %r", raw)
    return UNKNOWN_COUNTRY


def country_display_name(code: str, reference: CountryReference) -> str:
    return reference.name_for(code) or code


def add_country_features(df: pd.DataFrame, reference: CountryReference) -> pd.DataFrame:
    working = df.copy()
    raw = working["country"]
    present = raw.notna() & (raw.astype(str).str.strip() != "")
    codes = raw.map(lambda value: canonicalize_country(value, reference))
    working["country_code"] = codes.where(present)
    working["country_name"] = working["country_code"].map(
        lambda code: country_display_name(code, reference) if isinstance(code, str) else None
    )
    unresolved = int((working["country_code"] == UNKNOWN_COUNTRY).sum())
    if unresolved:
        LOGGER.info("%d record(s) with unresolved country values", unresolved)
    return working
