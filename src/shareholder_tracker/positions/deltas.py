"""Delta computation over position series.

Every resolved position inside the requested window is compared with the
latest resolved position before it, however far back that is. Reporting gaps
are never read as zero change. A position with no predecessor at all is an
entry against an implicit zero baseline.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType

from shareholder_tracker.positions.models import Delta, ResolvedPosition
from shareholder_tracker.positions.series import PositionBook, PositionSeries
from shareholder_tracker.workers import map_holders

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HolderActivity:
    """One holder's positions and deltas for a request window.

    Attributes:
        holder_id: The holder.
        series: Full resolved series, including history before the window.
        positions: Resolved positions inside the window.
        deltas: One delta per position inside the window.
        opening: Latest resolved position before the window, if any.
    """

    holder_id: int
    series: PositionSeries
    positions: tuple[ResolvedPosition, ...]
    deltas: tuple[Delta, ...]
    opening: ResolvedPosition | None

    @property
    def buy_events(self) -> tuple[Delta, ...]:
        return tuple(d for d in self.deltas if d.is_buy)

    @property
    def sell_events(self) -> tuple[Delta, ...]:
        return tuple(d for d in self.deltas if d.is_sell)

    @property
    def referenced_deltas(self) -> tuple[Delta, ...]:
        """Deltas against a real predecessor (entries excluded)."""
        return tuple(d for d in self.deltas if not d.is_entry)

    @property
    def first(self) -> ResolvedPosition | None:
        return self.positions[0] if self.positions else None

    @property
    def last(self) -> ResolvedPosition | None:
        return self.positions[-1] if self.positions else None

    @property
    def baseline(self) -> ResolvedPosition | None:
        """Opening position if the holder existed before, else the first in range."""
        return self.opening if self.opening is not None else self.first

    def span(self) -> tuple[ResolvedPosition, ResolvedPosition]:
        """First and last position in the window.

        Raises:
            ValueError: If the holder has no position in the window.
        """
        if not self.positions:
            raise ValueError(f"holder {self.holder_id} has no position in the window")
        return self.positions[0], self.positions[-1]


def compute_deltas(series: PositionSeries, start: date, end: date) -> tuple[Delta, ...]:
    """Compute deltas for the positions of ``series`` within ``[start, end]``."""
    deltas: list[Delta] = []
    for position in series.between(start, end):
        reference = series.position_before(position.date)
        deltas.append(
            Delta(
                holder_id=series.holder_id,
                date=position.date,
                reference_date=reference.date if reference is not None else None,
                reference_shares=reference.shares if reference is not None else 0,
                shares=position.shares,
                percentage=position.percentage,
            )
        )
    return tuple(deltas)


class DeltaEngine:
    """Builds per-holder activity for a request window.

    Attributes:
        max_workers: Thread pool size for per-holder work (1 = inline).
    """

    def __init__(self, *, max_workers: int = 1) -> None:
        self.max_workers = max_workers

    def activity_for(self, series: PositionSeries, start: date, end: date) -> HolderActivity:
        return HolderActivity(
            holder_id=series.holder_id,
            series=series,
            positions=series.between(start, end),
            deltas=compute_deltas(series, start, end),
            opening=series.position_before(start),
        )

    def compute(self, book: PositionBook, start: date, end: date) -> Mapping[int, HolderActivity]:
        """Compute activity for every holder in ``book``.

        Holders with no position in the window are included with empty deltas,
        so callers can still inspect their history (e.g. disappearances).
        """
        if end < start:
            raise ValueError("end must not be before start")

        activities = map_holders(
            lambda s: self.activity_for(s, start, end),
            list(book),
            max_workers=self.max_workers,
        )
        result = {a.holder_id: a for a in activities}
        logger.debug(
            "Delta engine: window=%s..%s holders=%d deltas=%d",
            start.isoformat(),
            end.isoformat(),
            len(result),
            sum(len(a.deltas) for a in activities),
        )
        return MappingProxyType(result)
