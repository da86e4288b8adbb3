from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

import pandas as pd

from membership_analytics.config import DEFAULT_MOBILE_KEYWORDS
from membership_analytics.filters.store import FilterStateStore
from membership_analytics.io.reference import CountryReference
from membership_analytics.preprocess.country import country_display_name
from membership_analytics.preprocess.device import classify_device_token, normalize_device
from membership_analytics.records import CandidateRecord, records_to_frame

LOGGER = logging.getLogger(__name__)

FilterValue = str | list[str]
FilterHandler = Callable[[str, FilterValue], None]

GROUPED_DIMENSIONS = ("device",)


class FilterEventBus:
    """Routes drill-down clicks on visualization segments to one subscriber."""

    def __init__(
        self,
        reference: CountryReference,
        mobile_keywords: Sequence[str] = DEFAULT_MOBILE_KEYWORDS,
    ) -> None:
        self._reference = reference
        self._mobile_keywords = list(mobile_keywords)
        self._handler: FilterHandler | None = None

    @property
    def has_subscriber(self) -> bool:
        return self._handler is not None

    def subscribe(self, handler: FilterHandler) -> Callable[[], None]:
        if self._handler is not None:
            raise RuntimeError("FilterEventBus already has a subscriber")
        self._handler = handler

        def unsubscribe() -> None:
            if self._handler is handler:
                self._handler = None

        return unsubscribe

    def drill_down(self, dimension: str, value: str, count: int) -> bool:
        if count <= 0:
            LOGGER.debug("Ignoring drill-down into empty %s bucket %r", dimension, value)
            return False
        if dimension == "country":
            value = country_display_name(value, self._reference)
        return self._emit(dimension, value)

    def drill_down_group(
        self,
        dimension: str,
        group_label: str,
        records: pd.DataFrame | Iterable[CandidateRecord],
        count: int,
    ) -> bool:
        if count <= 0:
            LOGGER.debug("Ignoring drill-down into empty %s group %r", dimension, group_label)
            return False
        values = self.resolve_group(dimension, group_label, records)
        if not values:
            LOGGER.warning("No %s values found for group %r", dimension, group_label)
            return False
        return self._emit(dimension, values)

    def resolve_group(
        self,
        dimension: str,
        group_label: str,
        records: pd.DataFrame | Iterable[CandidateRecord],
    ) -> list[str]:
        """Unique normalized device tokens (trimmed, upper-cased) in ``group_label``.

        Tokens, not raw values, are emitted; ``apply_filters`` matches them
        against ``device_normalized``. Order is first appearance.
        """
        if dimension not in GROUPED_DIMENSIONS:
            LOGGER.warning("Dimension %r has no grouped view", dimension)
            return []
        frame = records if isinstance(records, pd.DataFrame) else records_to_frame(records)
        if frame.empty or "device" not in frame.columns:
            return []
        tokens = frame["device"].map(normalize_device)
        classes = tokens.map(lambda token: classify_device_token(token, self._mobile_keywords))
        return list(dict.fromkeys(tokens[classes == group_label]))

    def _emit(self, dimension: str, value: FilterValue) -> bool:
        if self._handler is None:
            LOGGER.debug("Drill-down %s=%r dropped: no subscriber", dimension, value)
            return False
        self._handler(dimension, value)
        return True


def connect_store(bus: FilterEventBus, store: FilterStateStore) -> Callable[[], None]:
    setters: dict[str, Callable[[str], None]] = {
        "opening": store.set_opening,
        "status": store.set_status,
        "tier": store.set_tier,
        "country": store.set_country,
    }

    def _dispatch(dimension: str, value: FilterValue) -> None:
        if dimension == "device":
            store.set_device(value)
            return
        setter = setters.get(dimension)
        if setter is None:
            LOGGER.warning("No filter field for drill-down dimension %r", dimension)
            return
        if not isinstance(value, str):
            LOGGER.warning("Drill-down %s expects a single value, got %r", dimension, value)
            return
        setter(value)

    return bus.subscribe(_dispatch)
