from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from membership_analytics.config import AppConfig, load_config
from membership_analytics.logging import resolve_log_level


def test_default_config_file_loads_and_resolves_reference_path() -> None:
    cfg_path = Path(__file__).resolve().parents[1] / "configs/default.yaml"
    cfg = load_config(cfg_path)

    assert Path(cfg.reference.countries_path).is_absolute()
    assert Path(cfg.reference.countries_path).exists()
    assert cfg.filters.debounce_ms == 300
    assert cfg.tiers.admin_tier == "Admin"
    assert cfg.tiers.delimiter == " - "
    assert cfg.devices.mobile_keywords == ["MOBILE", "PHONE", "ANDROID", "IOS"]
    assert cfg.filters.storage_path is None


def test_load_config_resolves_relative_paths(tmp_path: Path) -> None:
    (tmp_path / "countries.csv").write_text("code,name\nKE,Kenya\n", encoding="utf-8")
    config_data = {
        "reference": {"countries_path": "countries.csv"},
        "filters": {"storage_path": "state/filters.json"},
    }
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(config_data), encoding="utf-8")

    cfg = load_config(config_path)

    assert cfg.reference.countries_path == str((tmp_path / "countries.csv").resolve())
    assert cfg.filters.storage_path == str((tmp_path / "state/filters.json").resolve())


def test_load_config_uses_env_storage_path(monkeypatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("{}", encoding="utf-8")
    storage_path = tmp_path / "env-filters.json"

    monkeypatch.setenv("MEMBERSHIP_ANALYTICS_STORAGE_PATH", str(storage_path))
    cfg = load_config(config_path)

    assert cfg.filters.storage_path == str(storage_path)


def test_load_config_rejects_unknown_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"charts": {"theme": "dark"}}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_config(config_path)


def test_app_config_overrides_columns_and_debounce() -> None:
    cfg = AppConfig.model_validate(
        {
            "columns": {"name": "Full Name", "country": "Country"},
            "filters": {"debounce_ms": 50},
            "outputs": {"tables_format": "parquet"},
        }
    )

    assert cfg.columns.name == "Full Name"
    assert cfg.columns.country == "Country"
    assert cfg.columns.email == "primaryContactEmail"
    assert cfg.filters.debounce_ms == 50
    assert cfg.outputs.tables_format == "parquet"


def test_app_config_rejects_negative_debounce() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"filters": {"debounce_ms": -1}})


def test_resolve_log_level_prefers_argument_then_env(monkeypatch) -> None:
    monkeypatch.setenv("MEMBERSHIP_ANALYTICS_LOG_LEVEL", "debug")

    assert resolve_log_level() == "DEBUG"
    assert resolve_log_level("warning") == "WARNING"
    monkeypatch.delenv("MEMBERSHIP_ANALYTICS_LOG_LEVEL")
    assert resolve_log_level() == "INFO"
