from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class TimeWindow:
    first: int
    last: int

    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and self.first <= index <= self.last

    def as_tuple(self) -> tuple[int, int]:
        return self.first, self.last


def trim(totals: Sequence[float]) -> TimeWindow | None:
    """Return the smallest index range holding every non-zero total.

    ``None`` means no period has data and the caller should not restrict the
    displayed range.
    """
    first = -1
    last = -1
    for index, total in enumerate(totals):
        if total > 0:
            if first == -1:
                first = index
            last = index
    if first == -1:
        return None
    return TimeWindow(first=first, last=last)
