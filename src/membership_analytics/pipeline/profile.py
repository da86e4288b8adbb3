from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import pandas as pd

from membership_analytics.config import AppConfig
from membership_analytics.features.aggregates import (
    build_country_counts,
    build_data_quality,
    build_device_counts,
    build_monthly_status_counts,
    build_status_counts,
    build_tier_counts,
    group_by_time,
    monthly_totals,
    opening_options,
    tier_options,
)
from membership_analytics.features.window import trim
from membership_analytics.io.read import load_records
from membership_analytics.io.reference import CountryReference, load_country_reference
from membership_analytics.io.write import write_summary, write_tables
from membership_analytics.paths import build_output_paths
from membership_analytics.preprocess.country import add_country_features
from membership_analytics.preprocess.device import add_device_features
from membership_analytics.preprocess.status import add_status_features
from membership_analytics.preprocess.tier import add_tier_features
from membership_analytics.preprocess.time import add_time_features

LOGGER = logging.getLogger(__name__)

SLUG_RE = re.compile(r"[^a-z0-9]+")


def canonicalize_records(
    df: pd.DataFrame,
    reference: CountryReference,
    config: AppConfig,
) -> pd.DataFrame:
    df = add_country_features(df=df, reference=reference)
    df = add_device_features(df=df, mobile_keywords=config.devices.mobile_keywords)
    df = add_tier_features(df=df, delimiter=config.tiers.delimiter)
    df = add_status_features(df=df)
    df = add_time_features(df=df, config=config.time)
    return df


def prepare_base_dataframe(
    records_path: Path,
    config: AppConfig,
    reference: CountryReference | None = None,
) -> pd.DataFrame:
    if reference is None:
        reference = load_country_reference(config.reference.countries_path)
    df = load_records(path=records_path, config=config)
    return canonicalize_records(df=df, reference=reference, config=config)


def build_profile_artifacts(df: pd.DataFrame, config: AppConfig) -> dict[str, pd.DataFrame]:
    admin_tier = config.tiers.admin_tier
    artifacts: dict[str, pd.DataFrame] = {
        "country_counts": build_country_counts(df),
        "device_counts": build_device_counts(df),
        "device_counts_detailed": build_device_counts(df, detailed=True),
        "status_counts": build_status_counts(df),
        "tier_counts": build_tier_counts(df, admin_tier=admin_tier),
        "monthly_status_counts": build_monthly_status_counts(df, year=config.time.year),
        "data_quality": build_data_quality(df, admin_tier=admin_tier),
    }
    for tier in tier_options(df, admin_tier=admin_tier)[1:]:
        key = "monthly_status_counts__" + SLUG_RE.sub("_", tier.lower()).strip("_")
        artifacts[key] = build_monthly_status_counts(df, tier=tier, year=config.time.year)
    return artifacts


def build_profile_summary(df: pd.DataFrame, config: AppConfig) -> dict[str, Any]:
    totals = monthly_totals(group_by_time(df, "status_normalized", year=config.time.year))
    window = trim(totals)
    return {
        "rows_total": int(len(df)),
        "year": config.time.year,
        "monthly_totals": totals,
        "time_window": list(window.as_tuple()) if window else None,
        "tier_options": tier_options(df, admin_tier=config.tiers.admin_tier),
        "opening_options": opening_options(df),
    }


def run_profile(records_path: Path, out_dir: Path, config: AppConfig) -> dict[str, Path]:
    paths = build_output_paths(out_dir)
    df = prepare_base_dataframe(records_path=records_path, config=config)
    artifacts = build_profile_artifacts(df, config)

    written = write_tables(artifacts, paths.tables, fmt=config.outputs.tables_format)
    written["summary"] = write_summary(
        build_profile_summary(df, config),
        paths.summary / "profile.json",
    )
    LOGGER.info("Wrote %d profile artifact(s) to %s", len(written), paths.root)
    return written
