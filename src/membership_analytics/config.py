from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MOBILE_KEYWORDS = ["MOBILE", "PHONE", "ANDROID", "IOS"]


class ColumnsConfig(BaseModel):
    id: str = "id"
    name: str = "primaryContactName"
    email: str = "primaryContactEmail"
    country: str = "country"
    device: str = "device"
    status: str = "status"
    selected_tier: str = "selected_tier"
    job_type: str = "job_type"
    submitted_at: str = "submitted_at"
    opening: str = "opening"


class ReferenceConfig(BaseModel):
    countries_path: str = "countries.csv"


class TimeConfig(BaseModel):
    timezone: str = "UTC"
    year: int | None = Field(default=None, ge=1970)


class TiersConfig(BaseModel):
    delimiter: str = Field(default=" - ", min_length=1)
    admin_tier: str = "Admin"


class DevicesConfig(BaseModel):
    mobile_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_MOBILE_KEYWORDS))


class FiltersConfig(BaseModel):
    debounce_ms: int = Field(default=300, ge=0)
    storage_path: str | None = None


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    reference: ReferenceConfig = Field(default_factory=ReferenceConfig)
    time: TimeConfig = Field(default_factory=TimeConfig)
    tiers: TiersConfig = Field(default_factory=TiersConfig)
    devices: DevicesConfig = Field(default_factory=DevicesConfig)
    filters: FiltersConfig = Field(default_factory=FiltersConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.reference.countries_path = (
        _resolve_optional_path(config.reference.countries_path, base_dir) or ""
    )
    config.filters.storage_path = _resolve_optional_path(
        os.getenv("MEMBERSHIP_ANALYTICS_STORAGE_PATH") or config.filters.storage_path,
        base_dir,
    )
    return config
