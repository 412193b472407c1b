"""Per-holder position series and the request-scoped position book.

A ``PositionSeries`` is the date-ordered list of resolved positions for one
holder. Predecessor lookups use binary search over the date column, so each
query is O(log n).

A ``PositionBook`` is built once per analytics request and indexes every
series by holder id, together with holder identities for display.
"""

from __future__ import annotations

import bisect
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType

from shareholder_tracker.positions.models import Holder, ResolvedPosition


@dataclass(frozen=True)
class PositionSeries:
    """Date-ordered resolved positions for a single holder."""

    holder_id: int
    positions: tuple[ResolvedPosition, ...]
    _dates: tuple[date, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.positions, key=lambda p: p.date))
        for p in ordered:
            if p.holder_id != self.holder_id:
                raise ValueError(f"position for holder {p.holder_id} in series of holder {self.holder_id}")
        dates = tuple(p.date for p in ordered)
        if len(set(dates)) != len(dates):
            raise ValueError(f"duplicate dates in series of holder {self.holder_id}; resolve snapshots first")
        object.__setattr__(self, "positions", ordered)
        object.__setattr__(self, "_dates", dates)

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self) -> Iterator[ResolvedPosition]:
        return iter(self.positions)

    @property
    def first(self) -> ResolvedPosition | None:
        return self.positions[0] if self.positions else None

    @property
    def last(self) -> ResolvedPosition | None:
        return self.positions[-1] if self.positions else None

    def position_before(self, on: date) -> ResolvedPosition | None:
        """Return the latest position strictly before ``on``."""
        idx = bisect.bisect_left(self._dates, on)
        return self.positions[idx - 1] if idx > 0 else None

    def position_at_or_before(self, on: date) -> ResolvedPosition | None:
        """Return the latest position on or before ``on``."""
        idx = bisect.bisect_right(self._dates, on)
        return self.positions[idx - 1] if idx > 0 else None

    def position_on(self, on: date) -> ResolvedPosition | None:
        idx = bisect.bisect_left(self._dates, on)
        if idx < len(self._dates) and self._dates[idx] == on:
            return self.positions[idx]
        return None

    def between(self, start: date, end: date) -> tuple[ResolvedPosition, ...]:
        """Positions with ``start <= date <= end``."""
        lo = bisect.bisect_left(self._dates, start)
        hi = bisect.bisect_right(self._dates, end)
        return self.positions[lo:hi]


@dataclass(frozen=True)
class PositionBook:
    """Immutable holder-id keyed index of position series for one request."""

    series: Mapping[int, PositionSeries]
    holders: Mapping[int, Holder]

    def __iter__(self) -> Iterator[PositionSeries]:
        for holder_id in sorted(self.series):
            yield self.series[holder_id]

    def __len__(self) -> int:
        return len(self.series)

    def get(self, holder_id: int) -> PositionSeries | None:
        return self.series.get(holder_id)

    def holder_name(self, holder_id: int) -> str:
        holder = self.holders.get(holder_id)
        return holder.name if holder is not None else f"holder-{holder_id}"

    def holder(self, holder_id: int) -> Holder:
        return self.holders.get(holder_id) or Holder(holder_id=holder_id, name=self.holder_name(holder_id))


def build_position_book(
    positions: Iterable[ResolvedPosition],
    holders: Iterable[Holder] = (),
) -> PositionBook:
    """Group resolved positions into per-holder series.

    Args:
        positions: Resolved positions (at most one per holder and date).
        holders: Holder identities used for display names.

    Returns:
        A read-only PositionBook.
    """
    grouped: dict[int, list[ResolvedPosition]] = defaultdict(list)
    for position in positions:
        grouped[position.holder_id].append(position)

    series = {
        holder_id: PositionSeries(holder_id=holder_id, positions=tuple(items))
        for holder_id, items in grouped.items()
    }
    return PositionBook(
        series=MappingProxyType(series),
        holders=MappingProxyType({h.holder_id: h for h in holders}),
    )
