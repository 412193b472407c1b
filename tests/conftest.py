"""Pytest configuration and shared builders."""

from collections.abc import Mapping, Sequence
from datetime import date

from shareholder_tracker.positions.models import Holder, ResolvedPosition
from shareholder_tracker.positions.series import PositionBook, build_position_book

# A holding is (date, shares) or (date, shares, percentage).
Holding = tuple


def jan(day: int) -> date:
    return date(2024, 1, day)


def make_book(holdings: Mapping[int, Sequence[Holding]], names: Mapping[int, str] | None = None) -> PositionBook:
    """Build a PositionBook from per-holder (date, shares[, percentage]) tuples.

    Percentage defaults to shares / 1,000 so it moves with the shares.
    """
    positions = []
    for holder_id, rows in holdings.items():
        for row in rows:
            on, shares = row[0], row[1]
            percentage = row[2] if len(row) > 2 else shares / 1000
            positions.append(ResolvedPosition(holder_id=holder_id, date=on, shares=shares, percentage=percentage))
    names = names or {}
    holders = [Holder(holder_id=h, name=names.get(h, f"Holder {h}")) for h in holdings]
    return build_position_book(positions, holders)
