"""Tests for behavior classification and suspicious patterns."""

import pytest

from conftest import jan, make_book
from shareholder_tracker.analytics.behavior import DEFAULT_VOLATILITY_THRESHOLD, BehaviorClassifier
from shareholder_tracker.analytics.models import BehaviorLabel
from shareholder_tracker.positions.deltas import DeltaEngine


def classify(holdings, classifier: BehaviorClassifier | None = None, start=jan(1), end=jan(31)):
    book = make_book(holdings)
    activities = DeltaEngine().compute(book, start, end)
    return (classifier or BehaviorClassifier()).classify(book, activities)


class TestLabels:
    """Tests for label precedence."""

    @pytest.mark.parametrize(
        ("buys", "sells", "volatility", "expected"),
        [
            (1, 0, 0.0, BehaviorLabel.PURE_ACCUMULATOR),
            (0, 1, 0.0, BehaviorLabel.PURE_SELLER),
            (3, 1, 0.0, BehaviorLabel.NET_ACCUMULATOR),
            (1, 3, 0.0, BehaviorLabel.NET_SELLER),
            (2, 2, 20_000.0, BehaviorLabel.HIGH_VOLATILITY_TRADER),
            (2, 2, 5.0, BehaviorLabel.BALANCED_TRADER),
            (2, 1, 99_999.0, BehaviorLabel.HIGH_VOLATILITY_TRADER),
            (0, 0, 0.0, BehaviorLabel.BALANCED_TRADER),
        ],
    )
    def test_precedence(self, buys: int, sells: int, volatility: float, expected: BehaviorLabel) -> None:
        assert BehaviorClassifier().label(buys, sells, volatility) is expected

    def test_one_sided_label_wins_over_volatility(self) -> None:
        assert BehaviorClassifier().label(5, 0, 1e9) is BehaviorLabel.PURE_ACCUMULATOR

    def test_volatility_threshold_is_configurable(self) -> None:
        classifier = BehaviorClassifier(volatility_threshold=10.0)
        assert classifier.label(2, 2, 11.0) is BehaviorLabel.HIGH_VOLATILITY_TRADER
        assert BehaviorClassifier().label(2, 2, 11.0) is BehaviorLabel.BALANCED_TRADER
        assert DEFAULT_VOLATILITY_THRESHOLD == 10_000.0


class TestClassify:
    """Tests for BehaviorClassifier.classify."""

    def test_pure_accumulator_scenario(self) -> None:
        (profile,) = classify({1: [(jan(1), 100), (jan(2), 100), (jan(3), 150)]})
        assert profile.label is BehaviorLabel.PURE_ACCUMULATOR
        assert profile.buy_dates == (jan(3),)
        assert profile.sell_dates == ()
        assert profile.total_accumulated == 50
        assert profile.net_change == 50

    def test_volatility_is_population_std(self) -> None:
        (profile,) = classify({1: [(jan(1), 100), (jan(2), 200), (jan(3), 100)]})
        # Deltas +100 and -100: population std 100 (sample std would be ~141).
        assert profile.volatility == pytest.approx(100.0)

    def test_zero_changes_count_toward_volatility(self) -> None:
        (profile,) = classify({1: [(jan(1), 100), (jan(2), 100), (jan(3), 200)]})
        assert profile.volatility == pytest.approx(50.0)

    def test_entry_delta_excluded_from_volatility(self) -> None:
        (profile,) = classify({1: [(jan(1), 1_000_000), (jan(2), 1_000_000)]})
        assert profile.volatility == 0.0

    def test_insufficient_positions_excluded(self) -> None:
        profiles = classify(
            {
                1: [(jan(1), 100)],
                2: [(jan(1), 100), (jan(2), 120)],
            }
        )
        assert [p.holder_id for p in profiles] == [2]

    def test_every_eligible_holder_gets_one_label(self) -> None:
        holdings = {
            1: [(jan(1), 10), (jan(2), 20)],
            2: [(jan(1), 10), (jan(2), 5)],
            3: [(jan(1), 10), (jan(2), 10)],
            4: [(jan(1), 10), (jan(2), 20), (jan(3), 10), (jan(4), 20), (jan(5), 10)],
        }
        profiles = classify(holdings)
        assert sorted(p.holder_id for p in profiles) == [1, 2, 3, 4]
        assert all(isinstance(p.label, BehaviorLabel) for p in profiles)

    def test_counts_cover_every_label(self) -> None:
        profiles = classify({1: [(jan(1), 10), (jan(2), 20)], 2: [(jan(1), 10), (jan(2), 20)]})
        counts = BehaviorClassifier.counts(profiles)
        assert counts["pure_accumulator"] == 2
        assert set(counts) == {label.value for label in BehaviorLabel}


class TestSuspiciousPatterns:
    """Tests for accumulate_then_dump detection."""

    def test_accumulate_then_dump(self) -> None:
        classifier = BehaviorClassifier()
        profiles = classify(
            {1: [(jan(1), 100), (jan(2), 200), (jan(3), 300), (jan(4), 120)]},
            classifier,
        )
        (pattern,) = classifier.suspicious_patterns(profiles)
        assert pattern.accumulation == 200
        assert pattern.reduction == 180
        assert pattern.accumulation_start == jan(2)
        assert pattern.accumulation_end == jan(3)
        assert pattern.sell_off_start == jan(4)
        assert pattern.pattern == "accumulate_then_dump"

    def test_partial_sell_off_not_flagged(self) -> None:
        classifier = BehaviorClassifier()
        profiles = classify({1: [(jan(1), 100), (jan(2), 200), (jan(3), 300), (jan(4), 200)]}, classifier)
        assert classifier.suspicious_patterns(profiles) == []

    def test_interleaved_trades_not_flagged(self) -> None:
        classifier = BehaviorClassifier()
        profiles = classify({1: [(jan(1), 100), (jan(2), 300), (jan(3), 100), (jan(4), 200), (jan(5), 0)]}, classifier)
        assert classifier.suspicious_patterns(profiles) == []

    def test_ratio_is_configurable(self) -> None:
        classifier = BehaviorClassifier(dump_reduction_ratio=0.5)
        profiles = classify({1: [(jan(1), 100), (jan(2), 200), (jan(3), 300), (jan(4), 200)]}, classifier)
        assert len(classifier.suspicious_patterns(profiles)) == 1
