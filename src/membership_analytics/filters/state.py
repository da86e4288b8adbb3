from __future__ import annotations

from dataclasses import dataclass, fields

ALL = "all"
DEFAULT_SORT = "latest"
SORT_OPTIONS = ["latest", "oldest", "name-asc", "name-desc", "status", "tier", "reference"]

# FilterState field -> persisted storage key.
PERSISTED_KEYS = {
    "opening": "filterOpening",
    "status": "filterStatus",
    "tier": "filterTier",
    "country": "filterCountry",
    "sort_by": "sortBy",
}


@dataclass(frozen=True)
class FilterState:
    search_query: str = ""
    opening: str = ALL
    status: str = ALL
    tier: str = ALL
    country: str = ALL
    sort_by: str = DEFAULT_SORT
    device: tuple[str, ...] = ()

    @property
    def active_filter_count(self) -> int:
        defaults = FilterState()
        return sum(
            1
            for item in fields(self)
            if getattr(self, item.name) != getattr(defaults, item.name)
        )

    def is_default(self) -> bool:
        return self == FilterState()

    def as_dict(self) -> dict[str, object]:
        return {
            "search_query": self.search_query,
            "opening": self.opening,
            "status": self.status,
            "tier": self.tier,
            "country": self.country,
            "sort_by": self.sort_by,
            "device": list(self.device),
        }
