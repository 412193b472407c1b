"""Tests for ownership trends, date comparison and holder growth."""

from datetime import date

import pytest

from conftest import jan, make_book
from shareholder_tracker.analytics.ownership import (
    compare_dates,
    distribution_label,
    holder_growth,
    ownership_stats,
    ownership_trends,
)

FEB_1 = date(2024, 2, 1)

BOOK_ROWS = {
    1: [(jan(1), 100, 0.05), (jan(15), 120, 0.06), (FEB_1, 500, 2.5)],
    2: [(jan(1), 300, 0.2), (FEB_1, 300, 0.2)],
    3: [(jan(15), 0, 0.0), (FEB_1, 2000, 12.0)],
}


class TestOwnershipTrends:
    """Tests for ownership_trends."""

    def test_per_date_totals(self) -> None:
        result = ownership_trends(make_book(BOOK_ROWS))
        assert [(t.bucket, t.total_holders, t.total_shares, t.average_shares) for t in result.trends] == [
            ("2024-01-01", 2, 400, 200),
            ("2024-01-15", 2, 120, 60),
            ("2024-02-01", 3, 2800, 933),
        ]

    def test_monthly_average_over_rows(self) -> None:
        result = ownership_trends(make_book(BOOK_ROWS))
        (january, february) = result.monthly
        assert january.bucket == "2024-01"
        assert january.total_holders == 3
        assert january.total_shares == 520
        # 520 over four rows, rounded half up.
        assert january.average_shares == 130
        assert february.total_shares == 2800

    def test_top_holders_on_latest_date(self) -> None:
        result = ownership_trends(make_book(BOOK_ROWS), top_holders_limit=2)
        assert result.latest_date == FEB_1
        assert [(h.holder_id, h.shares) for h in result.top_holders] == [(3, 2000), (1, 500)]

    def test_distribution_skips_empty_buckets(self) -> None:
        result = ownership_trends(make_book(BOOK_ROWS))
        assert [(b.range, b.count, b.total_shares) for b in result.distribution] == [
            ("0.1% - 0.5%", 1, 300),
            ("1% - 5%", 1, 500),
            ("> 10%", 1, 2000),
        ]

    def test_empty_book(self) -> None:
        result = ownership_trends(make_book({}))
        assert result.trends == ()
        assert result.latest_date is None

    @pytest.mark.parametrize(
        ("percentage", "label"),
        [
            (0.0, "< 0.1%"),
            (0.1, "0.1% - 0.5%"),
            (0.99, "0.5% - 1%"),
            (5.0, "5% - 10%"),
            (10.0, "> 10%"),
        ],
    )
    def test_distribution_label(self, percentage: float, label: str) -> None:
        assert distribution_label(percentage) == label


class TestCompareDates:
    """Tests for compare_dates."""

    def test_categories(self) -> None:
        book = make_book(
            {
                1: [(jan(1), 100), (jan(2), 150)],
                2: [(jan(1), 200), (jan(2), 200)],
                3: [(jan(1), 50)],
                4: [(jan(2), 75)],
            }
        )
        result = compare_dates(book, jan(1), jan(2))

        assert [p.holder_id for p in result.new] == [4]
        assert [p.holder_id for p in result.removed] == [3]
        assert [p.holder_id for p in result.unchanged] == [2]
        (changed,) = result.changed
        assert (changed.previous_shares, changed.shares, changed.shares_change) == (100, 150, 50)
        assert result.first.total_holders == 3
        assert result.second.total_shares == 425
        assert result.shares_change == 75
        assert result.holders_change == 0

    def test_date_without_positions(self) -> None:
        book = make_book({1: [(jan(1), 100)]})
        result = compare_dates(book, jan(1), jan(9))
        assert [p.status for p in result.removed] == ["removed"]
        assert result.second.total_holders == 0


class TestOwnershipStats:
    """Tests for latest-against-previous date stats."""

    def test_changes_against_previous_date(self) -> None:
        book = make_book({1: [(jan(1), 100), (jan(2), 50)], 2: [(jan(2), 150)]})
        stats = ownership_stats(book, jan(2), jan(1), total_holders=5)

        assert stats.total_holders == 5
        assert (stats.previous.total_holders, stats.previous.total_shares) == (1, 100)
        assert (stats.latest.total_holders, stats.latest.total_shares) == (2, 200)
        assert stats.holders_change == 1
        assert stats.holders_change_percent == "100.00"
        assert stats.shares_change_percent == "100.00"

    def test_zero_previous_total_uses_sentinel(self) -> None:
        book = make_book({1: [(jan(1), 0), (jan(2), 40)]})
        stats = ownership_stats(book, jan(2), jan(1), total_holders=1)
        assert stats.shares_change == 40
        assert stats.shares_change_percent == "100"

    def test_no_dates(self) -> None:
        stats = ownership_stats(make_book({}), None, None, total_holders=3)
        assert stats.latest is None
        assert stats.previous is None


class TestHolderGrowth:
    """Tests for holder_growth."""

    def test_metrics(self) -> None:
        result = holder_growth(make_book(BOOK_ROWS), 1)
        assert [p.shares for p in result.positions] == [100, 120, 500]
        metrics = result.metrics
        assert metrics.shares_change == 400
        assert metrics.shares_change_percent == "400.00"
        assert metrics.percentage_change == pytest.approx(2.45)
        assert (metrics.start, metrics.end) == (jan(1), FEB_1)

    def test_range_filter(self) -> None:
        result = holder_growth(make_book(BOOK_ROWS), 1, start=jan(2), end=jan(31))
        assert [p.shares for p in result.positions] == [120]
        assert result.metrics is None

    def test_zero_start_shares(self) -> None:
        result = holder_growth(make_book(BOOK_ROWS), 3)
        assert result.metrics.shares_change_percent == "100"

    def test_unknown_holder(self) -> None:
        result = holder_growth(make_book(BOOK_ROWS), 99)
        assert result.positions == ()
        assert result.metrics is None
