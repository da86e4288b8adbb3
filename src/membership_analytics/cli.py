from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
import typer
import yaml

from membership_analytics.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from membership_analytics.filters.apply import apply_filters, sort_records
from membership_analytics.filters.events import FilterEventBus, connect_store
from membership_analytics.filters.scheduler import VirtualClock
from membership_analytics.filters.state import FilterState
from membership_analytics.filters.store import FilterStateStore
from membership_analytics.io.reference import load_country_reference
from membership_analytics.io.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from membership_analytics.logging import configure_logging
from membership_analytics.pipeline.profile import prepare_base_dataframe, run_profile

app = typer.Typer(no_args_is_help=True, add_completion=False)

DISPLAY_COLUMNS = ["id", "name", "country_name", "device_class", "status_normalized", "tier_name"]

STORE_ACTIONS = {
    "search": "set_search_query",
    "opening": "set_opening",
    "status": "set_status",
    "tier": "set_tier",
    "country": "set_country",
    "device": "set_device",
    "sort": "set_sort_by",
}


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _build_storage(cfg: AppConfig) -> KeyValueStorage:
    if cfg.filters.storage_path:
        return JsonFileStorage(Path(cfg.filters.storage_path))
    return MemoryStorage()


def _render_records(df: pd.DataFrame, limit: int) -> str:
    columns = [column for column in DISPLAY_COLUMNS if column in df.columns]
    if df.empty:
        return "No matching records."
    return df.loc[:, columns].head(limit).to_string(index=False)


@app.command()
def profile(
    records: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Build country/device/status/tier/monthly aggregate tables for a records file."""
    configure_logging()
    cfg = _load_app_config(config)
    written = run_profile(records_path=records, out_dir=out, config=cfg)
    typer.echo(f"Profile complete. Artifacts: {', '.join(sorted(written))}")


@app.command("filter")
def filter_command(
    records: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    search: str | None = typer.Option(None, help="Case-insensitive name/email search."),
    opening: str | None = typer.Option(None),
    status: str | None = typer.Option(None),
    tier: str | None = typer.Option(None),
    country: str | None = typer.Option(None),
    device: list[str] | None = typer.Option(None, help="Raw device value; repeatable."),
    sort_by: str | None = typer.Option(None),
    limit: int = typer.Option(50, min=1),
) -> None:
    """Apply the persisted filter selection plus any overrides and list matches."""
    configure_logging()
    cfg = _load_app_config(config)
    df = prepare_base_dataframe(records_path=records, config=cfg)

    clock = VirtualClock()
    propagated: list[FilterState] = []
    store = FilterStateStore(
        propagated.append,
        storage=_build_storage(cfg),
        scheduler=clock,
        debounce_seconds=cfg.filters.debounce_ms / 1000.0,
    )
    if not store.activate(df):
        raise typer.BadParameter("Records failed validation; filtering skipped.")

    overrides = {
        "set_search_query": search,
        "set_opening": opening,
        "set_status": status,
        "set_tier": tier,
        "set_country": country,
        "set_device": device or None,
        "set_sort_by": sort_by,
    }
    for setter_name, value in overrides.items():
        if value is not None:
            getattr(store, setter_name)(value)
    store.flush()
    store.deactivate()

    state = store.state
    result = sort_records(apply_filters(df, state), state.sort_by)
    typer.echo(f"Filters: {state.as_dict()}")
    typer.echo(f"Matched {len(result)} of {len(df)} record(s).")
    typer.echo(_render_records(result, limit))


def _load_events(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or []
    if isinstance(payload, dict):
        payload = payload.get("events") or []
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise typer.BadParameter("Events file must contain a list of mappings.")
    return sorted(payload, key=lambda item: float(item.get("at_ms", 0)))


@app.command()
def replay(
    records: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    events: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    initial_opening: str | None = typer.Option(None),
) -> None:
    """Replay timed filter and drill-down events and print each propagated state."""
    configure_logging()
    cfg = _load_app_config(config)
    reference = load_country_reference(cfg.reference.countries_path)
    df = prepare_base_dataframe(records_path=records, config=cfg, reference=reference)

    clock = VirtualClock()

    def _on_filter_change(state: FilterState) -> None:
        matched = len(apply_filters(df, state))
        typer.echo(f"[{clock.now * 1000:.0f}ms] {state.as_dict()} -> {matched} record(s)")

    store = FilterStateStore(
        _on_filter_change,
        storage=MemoryStorage(),
        scheduler=clock,
        debounce_seconds=cfg.filters.debounce_ms / 1000.0,
        initial_opening=initial_opening,
    )
    bus = FilterEventBus(reference, mobile_keywords=cfg.devices.mobile_keywords)
    connect_store(bus, store)
    store.activate(df)

    for event in _load_events(events):
        at_seconds = float(event.get("at_ms", 0)) / 1000.0
        clock.advance(max(0.0, at_seconds - clock.now))
        action = str(event.get("action", ""))
        value = event.get("value")
        if action == "reset":
            store.reset()
        elif action == "drill_down":
            bus.drill_down(str(event.get("dimension")), str(value), int(event.get("count", 1)))
        elif action == "drill_down_group":
            bus.drill_down_group(
                str(event.get("dimension")), str(value), df, int(event.get("count", 1))
            )
        elif action in STORE_ACTIONS:
            getattr(store, STORE_ACTIONS[action])(value)
        else:
            raise typer.BadParameter(f"Unknown replay action: {action!r}")

    clock.advance(cfg.filters.debounce_ms / 1000.0)
    store.deactivate()


@app.command("clear-filters")
def clear_filters(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Remove every persisted filter selection."""
    configure_logging()
    cfg = _load_app_config(config)
    store = FilterStateStore(lambda _state: None, storage=_build_storage(cfg), scheduler=VirtualClock())
    store.reset()
    typer.echo("Persisted filters cleared.")
