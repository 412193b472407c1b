"""Tests for position series and the position book."""

from datetime import date

import pytest

from conftest import jan, make_book
from shareholder_tracker.positions.models import ResolvedPosition
from shareholder_tracker.positions.series import PositionSeries


def create_series(*rows: tuple[date, int], holder_id: int = 1) -> PositionSeries:
    return PositionSeries(
        holder_id=holder_id,
        positions=tuple(
            ResolvedPosition(holder_id=holder_id, date=on, shares=shares, percentage=shares / 1000)
            for on, shares in rows
        ),
    )


class TestPositionSeries:
    """Tests for PositionSeries lookups."""

    def test_positions_sorted_by_date(self) -> None:
        series = create_series((jan(5), 50), (jan(1), 10), (jan(3), 30))
        assert [p.date for p in series] == [jan(1), jan(3), jan(5)]
        assert series.first.shares == 10
        assert series.last.shares == 50

    def test_position_before_skips_gaps(self) -> None:
        series = create_series((jan(1), 10), (jan(10), 100))
        assert series.position_before(jan(10)).date == jan(1)
        assert series.position_before(jan(9)).date == jan(1)
        assert series.position_before(jan(1)) is None

    def test_position_at_or_before(self) -> None:
        series = create_series((jan(1), 10), (jan(10), 100))
        assert series.position_at_or_before(jan(10)).shares == 100
        assert series.position_at_or_before(jan(9)).shares == 10
        assert series.position_at_or_before(date(2023, 12, 31)) is None

    def test_position_on(self) -> None:
        series = create_series((jan(1), 10), (jan(10), 100))
        assert series.position_on(jan(10)).shares == 100
        assert series.position_on(jan(5)) is None

    def test_between_is_inclusive(self) -> None:
        series = create_series((jan(1), 10), (jan(2), 20), (jan(3), 30), (jan(4), 40))
        assert [p.shares for p in series.between(jan(2), jan(3))] == [20, 30]
        assert series.between(jan(5), jan(9)) == ()

    def test_duplicate_dates_rejected(self) -> None:
        with pytest.raises(ValueError, match="duplicate dates"):
            create_series((jan(1), 10), (jan(1), 20))

    def test_foreign_holder_rejected(self) -> None:
        with pytest.raises(ValueError):
            PositionSeries(
                holder_id=1,
                positions=(ResolvedPosition(holder_id=2, date=jan(1), shares=1, percentage=0.0),),
            )


class TestPositionBook:
    """Tests for PositionBook."""

    def test_iterates_in_holder_order(self) -> None:
        book = make_book({3: [(jan(1), 1)], 1: [(jan(1), 1)], 2: [(jan(2), 1)]})
        assert [s.holder_id for s in book] == [1, 2, 3]
        assert len(book) == 3

    def test_holder_name_fallback(self) -> None:
        book = make_book({1: [(jan(1), 1)]}, names={1: "Alice Pty Ltd"})
        assert book.holder_name(1) == "Alice Pty Ltd"
        assert book.holder_name(99) == "holder-99"
        assert book.holder(99).name == "holder-99"

    def test_book_is_read_only(self) -> None:
        book = make_book({1: [(jan(1), 1)]})
        with pytest.raises(TypeError):
            book.series[2] = book.series[1]  # type: ignore[index]
