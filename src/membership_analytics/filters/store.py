from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable

import pandas as pd

from membership_analytics.features.aggregates import status_options
from membership_analytics.filters.apply import validate_collection
from membership_analytics.filters.scheduler import AsyncioScheduler, Debouncer, Scheduler
from membership_analytics.filters.state import (
    ALL,
    DEFAULT_SORT,
    PERSISTED_KEYS,
    SORT_OPTIONS,
    FilterState,
)
from membership_analytics.io.storage import KeyValueStorage, MemoryStorage
from membership_analytics.preprocess.device import normalize_device

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

FilterChangeCallback = Callable[[FilterState], None]


class FilterStateStore:
    """Single owner of the dashboard's filter/sort selection.

    Filtering changes reach ``on_filter_change`` through a trailing debounce;
    sort changes, activation and reset propagate immediately. Nothing is
    propagated until ``activate`` has accepted a structurally valid record
    collection, and nothing after ``deactivate``.
    """

    def __init__(
        self,
        on_filter_change: FilterChangeCallback,
        *,
        storage: KeyValueStorage | None = None,
        scheduler: Scheduler | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        initial_opening: str | None = None,
    ) -> None:
        self._on_filter_change = on_filter_change
        self._storage = storage if storage is not None else MemoryStorage()
        self._debouncer = Debouncer(scheduler or AsyncioScheduler())
        self._debounce_seconds = max(0.0, float(debounce_seconds))
        self._initial_opening = initial_opening
        self._state = FilterState()
        self._initialized = False
        self._collection_valid = False
        self._deactivated = False

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    @property
    def active_filter_count(self) -> int:
        return self._state.active_filter_count

    def activate(self, records: pd.DataFrame) -> bool:
        if self._deactivated:
            LOGGER.warning("Ignoring activation of a deactivated filter store")
            return False
        if not validate_collection(records):
            LOGGER.warning("Skipping filtering: record collection failed validation")
            self._collection_valid = False
            self._debouncer.cancel_pending()
            return False
        self._collection_valid = True
        if self._initialized:
            return True
        if records.empty:
            LOGGER.debug("Deferring filter initialization until records are loaded")
            return False

        self._state = self._load_persisted_state()
        self._initialized = True
        LOGGER.info("Filter state initialized: %s", self._state.as_dict())
        self._propagate()
        return True

    def deactivate(self) -> None:
        if self._debouncer.cancel_pending():
            LOGGER.debug("Cancelled pending filter propagation on deactivation")
        self._deactivated = True

    def set_search_query(self, value: str) -> None:
        self._update(search_query=value or "")

    def set_opening(self, value: str) -> None:
        self._update(opening=value or ALL)

    def set_status(self, value: str) -> None:
        self._update(status=value or ALL)

    def set_tier(self, value: str) -> None:
        self._update(tier=value or ALL)

    def set_country(self, value: str) -> None:
        self._update(country=value or ALL)

    def set_device(self, value: str | Iterable[str] | None) -> None:
        if value is None or value == ALL:
            tokens: tuple[str, ...] = ()
        elif isinstance(value, str):
            tokens = (normalize_device(value),)
        else:
            tokens = tuple(dict.fromkeys(normalize_device(item) for item in value))
        self._update(device=tokens)

    def set_sort_by(self, value: str) -> None:
        sort_by = value or DEFAULT_SORT
        self._state = replace(self._state, sort_by=sort_by)
        self._persist("sort_by", sort_by)
        # Re-ordering needs no re-filter, so it is not debounced.
        self._propagate()

    def reset(self) -> None:
        self._debouncer.cancel_pending()
        self._state = FilterState()
        for key in PERSISTED_KEYS.values():
            try:
                self._storage.remove(key)
            except Exception:
                LOGGER.warning("Failed removing persisted filter key %s", key, exc_info=True)
        self._propagate()

    def flush(self) -> bool:
        """Propagate a pending change now instead of waiting for the debounce."""
        if not self._debouncer.cancel_pending():
            return False
        self._propagate()
        return True

    def _update(self, **changes: object) -> None:
        self._state = replace(self._state, **changes)
        for field_name, value in changes.items():
            if field_name in PERSISTED_KEYS:
                self._persist(field_name, str(value))
        self._schedule_propagation()

    def _persist(self, field_name: str, value: str) -> None:
        try:
            self._storage.set(PERSISTED_KEYS[field_name], value)
        except Exception:
            LOGGER.warning("Failed persisting filter field %s", field_name, exc_info=True)

    def _read_persisted(self, field_name: str, default: str) -> str:
        try:
            value = self._storage.get(PERSISTED_KEYS[field_name])
        except Exception:
            LOGGER.warning("Failed reading filter field %s", field_name, exc_info=True)
            return default
        return value if isinstance(value, str) and value else default

    def _load_persisted_state(self) -> FilterState:
        if self._initial_opening and self._initial_opening != ALL:
            opening = self._initial_opening
        else:
            opening = self._read_persisted("opening", ALL)

        status = self._read_persisted("status", ALL)
        if status not in status_options():
            LOGGER.warning("Ignoring persisted status %r", status)
            status = ALL
        sort_by = self._read_persisted("sort_by", DEFAULT_SORT)
        if sort_by not in SORT_OPTIONS:
            LOGGER.warning("Ignoring persisted sort option %r", sort_by)
            sort_by = DEFAULT_SORT

        # Search and device are memory-only; keep values set before activation.
        return FilterState(
            search_query=self._state.search_query,
            opening=opening,
            status=status,
            tier=self._read_persisted("tier", ALL),
            country=self._read_persisted("country", ALL),
            sort_by=sort_by,
            device=self._state.device,
        )

    def _can_propagate(self) -> bool:
        return self._initialized and self._collection_valid and not self._deactivated

    def _schedule_propagation(self) -> None:
        if not self._can_propagate():
            LOGGER.debug("Filter change recorded without propagation")
            return
        self._debouncer.schedule(self._propagate, self._debounce_seconds)

    def _propagate(self) -> None:
        if not self._can_propagate():
            return
        self._on_filter_change(self._state)
