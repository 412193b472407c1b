"""Tests for the delta engine."""

from datetime import date, timedelta

import pytest

from conftest import jan, make_book
from shareholder_tracker.positions.deltas import DeltaEngine, compute_deltas


class TestComputeDeltas:
    """Tests for compute_deltas."""

    def test_reference_is_latest_prior_position_across_gaps(self) -> None:
        book = make_book({1: [(jan(1), 100), (jan(10), 150)]})
        (delta,) = compute_deltas(book.get(1), jan(2), jan(31))
        assert delta.reference_date == jan(1)
        assert delta.reference_shares == 100
        assert delta.change == 50
        assert delta.is_buy

    def test_first_position_is_entry_not_buy(self) -> None:
        book = make_book({1: [(jan(5), 500)]})
        (delta,) = compute_deltas(book.get(1), jan(1), jan(31))
        assert delta.is_entry
        assert delta.reference_shares == 0
        assert delta.change == 500
        assert not delta.is_buy
        assert not delta.is_sell

    def test_zero_change_is_neither_buy_nor_sell(self) -> None:
        book = make_book({1: [(jan(1), 100), (jan(2), 100)]})
        deltas = compute_deltas(book.get(1), jan(2), jan(2))
        assert [(d.change, d.is_buy, d.is_sell) for d in deltas] == [(0, False, False)]

    def test_sell_event(self) -> None:
        book = make_book({1: [(jan(1), 100), (jan(2), 40)]})
        (delta,) = compute_deltas(book.get(1), jan(2), jan(2))
        assert delta.change == -60
        assert delta.is_sell

    @pytest.mark.parametrize(
        "shares",
        [
            [100, 120, 90, 90, 300],
            [0, 50, 0, 75],
            [500],
        ],
    )
    def test_sum_of_deltas_matches_final_minus_opening(self, shares: list[int]) -> None:
        rows = [(date(2023, 12, 31), 40)] + [(jan(i + 1), s) for i, s in enumerate(shares)]
        book = make_book({1: rows})
        deltas = compute_deltas(book.get(1), jan(1), jan(31))
        assert sum(d.change for d in deltas) == shares[-1] - 40

    def test_sum_of_deltas_without_history_starts_from_zero(self) -> None:
        book = make_book({1: [(jan(3), 70), (jan(4), 20), (jan(9), 95)]})
        deltas = compute_deltas(book.get(1), jan(1), jan(31))
        assert sum(d.change for d in deltas) == 95


class TestDeltaEngine:
    """Tests for DeltaEngine."""

    def test_opening_position_and_window(self) -> None:
        book = make_book({1: [(date(2023, 12, 1), 10), (jan(2), 20), (jan(3), 30), (jan(20), 40)]})
        activity = DeltaEngine().compute(book, jan(1), jan(10))[1]
        assert activity.opening.shares == 10
        assert [p.shares for p in activity.positions] == [20, 30]
        assert activity.baseline.shares == 10
        assert [d.change for d in activity.buy_events] == [10, 10]

    def test_baseline_falls_back_to_first_in_range(self) -> None:
        book = make_book({1: [(jan(2), 20), (jan(3), 30)]})
        activity = DeltaEngine().compute(book, jan(1), jan(10))[1]
        assert activity.opening is None
        assert activity.baseline.shares == 20
        assert len(activity.referenced_deltas) == 1

    def test_holders_without_positions_in_range_are_included(self) -> None:
        book = make_book({1: [(date(2023, 12, 1), 10)], 2: [(jan(2), 5)]})
        activities = DeltaEngine().compute(book, jan(1), jan(10))
        assert set(activities) == {1, 2}
        assert activities[1].deltas == ()
        assert activities[1].opening.shares == 10

    def test_span_needs_a_position_in_window(self) -> None:
        book = make_book({1: [(date(2023, 12, 1), 10)], 2: [(jan(2), 5), (jan(4), 7)]})
        activities = DeltaEngine().compute(book, jan(1), jan(10))
        first, last = activities[2].span()
        assert (first.shares, last.shares) == (5, 7)
        with pytest.raises(ValueError, match="no position in the window"):
            activities[1].span()

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValueError):
            DeltaEngine().compute(make_book({}), jan(10), jan(1))

    def test_parallel_matches_inline(self) -> None:
        holdings = {
            h: [(jan(1) + timedelta(days=i), (h * 7 + i * 13) % 50) for i in range(6)] for h in range(1, 101)
        }
        book = make_book(holdings)
        inline = DeltaEngine().compute(book, jan(2), jan(5))
        parallel = DeltaEngine(max_workers=4).compute(book, jan(2), jan(5))
        assert dict(parallel) == dict(inline)
