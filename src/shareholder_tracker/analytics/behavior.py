"""Holder behavior classification.

This module provides the BehaviorClassifier class that labels each holder's
trading style over a period and flags accumulate-then-dump sequences.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import numpy as np

from shareholder_tracker.analytics.models import BehaviorLabel, BehaviorProfile, SuspiciousPattern
from shareholder_tracker.positions.deltas import HolderActivity
from shareholder_tracker.positions.series import PositionBook
from shareholder_tracker.workers import map_holders

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_VOLATILITY_THRESHOLD = 10_000.0  # absolute share units
DEFAULT_DUMP_REDUCTION_RATIO = 0.8  # reduced / accumulated for a dump
DEFAULT_MIN_POSITIONS = 2  # resolved positions in range to classify

# A one-sided holder dominates when its event count exceeds the other side by this factor.
DOMINANCE_FACTOR = 2


class BehaviorClassifier:
    """Classifier for holder-level trading behavior.

    Labels are evaluated in precedence order:
    1. Only buys -> pure_accumulator
    2. Only sells -> pure_seller
    3. Buys more than twice the sells -> net_accumulator
    4. Sells more than twice the buys -> net_seller
    5. Volatility above the threshold -> high_volatility_trader
    6. Otherwise -> balanced_trader

    Volatility is the population standard deviation of the holder's deltas
    against a real predecessor, zero changes included.

    Example:
        ```python
        classifier = BehaviorClassifier(volatility_threshold=5_000)
        profiles = classifier.classify(book, activities)
        ```
    """

    def __init__(
        self,
        *,
        volatility_threshold: float = DEFAULT_VOLATILITY_THRESHOLD,
        dump_reduction_ratio: float = DEFAULT_DUMP_REDUCTION_RATIO,
        min_positions: int = DEFAULT_MIN_POSITIONS,
        max_workers: int = 1,
    ) -> None:
        """Initialize the behavior classifier.

        Args:
            volatility_threshold: Volatility above which a mixed trader is
                labelled high volatility (default 10,000 units).
            dump_reduction_ratio: Share of the accumulation that must be sold
                off to flag accumulate_then_dump (default 0.8).
            min_positions: Minimum resolved positions in range (default 2).
            max_workers: Thread pool size for per-holder work.
        """
        self._volatility_threshold = volatility_threshold
        self._dump_reduction_ratio = dump_reduction_ratio
        self._min_positions = min_positions
        self._max_workers = max_workers

    def classify(
        self,
        book: PositionBook,
        activities: Mapping[int, HolderActivity],
    ) -> list[BehaviorProfile]:
        """Build a profile for every holder with enough data in range.

        Returns:
            Profiles sorted by event count (descending), then holder id.
        """
        eligible = [a for a in activities.values() if len(a.positions) >= self._min_positions]
        profiles = map_holders(
            lambda a: self.profile(a, book.holder_name(a.holder_id)),
            eligible,
            max_workers=self._max_workers,
        )
        profiles.sort(key=lambda p: (-p.event_count, p.holder_id))
        logger.debug(
            "Behavior: classified=%d skipped=%d",
            len(profiles),
            len(activities) - len(eligible),
        )
        return profiles

    def profile(self, activity: HolderActivity, name: str) -> BehaviorProfile:
        buys = activity.buy_events
        sells = activity.sell_events
        total_accumulated = sum(d.change for d in buys)
        total_reduced = sum(-d.change for d in sells)
        volatility = self._volatility([d.change for d in activity.referenced_deltas])
        buy_dates = tuple(d.date for d in buys)
        sell_dates = tuple(d.date for d in sells)
        return BehaviorProfile(
            holder_id=activity.holder_id,
            name=name,
            buy_dates=buy_dates,
            sell_dates=sell_dates,
            total_accumulated=total_accumulated,
            total_reduced=total_reduced,
            net_change=total_accumulated - total_reduced,
            volatility=volatility,
            label=self.label(len(buy_dates), len(sell_dates), volatility),
        )

    def label(self, buy_count: int, sell_count: int, volatility: float) -> BehaviorLabel:
        if buy_count > 0 and sell_count == 0:
            return BehaviorLabel.PURE_ACCUMULATOR
        if sell_count > 0 and buy_count == 0:
            return BehaviorLabel.PURE_SELLER
        if buy_count > DOMINANCE_FACTOR * sell_count:
            return BehaviorLabel.NET_ACCUMULATOR
        if sell_count > DOMINANCE_FACTOR * buy_count:
            return BehaviorLabel.NET_SELLER
        if volatility > self._volatility_threshold:
            return BehaviorLabel.HIGH_VOLATILITY_TRADER
        return BehaviorLabel.BALANCED_TRADER

    def suspicious_patterns(self, profiles: list[BehaviorProfile]) -> list[SuspiciousPattern]:
        """Flag holders that sold off most of what they accumulated.

        A pattern requires every sell to come after the last buy and a
        reduction of at least ``dump_reduction_ratio`` of the accumulation.
        """
        patterns: list[SuspiciousPattern] = []
        for p in profiles:
            if not p.buy_dates or not p.sell_dates:
                continue
            if p.sell_dates[0] <= p.buy_dates[-1]:
                continue
            if p.total_reduced < self._dump_reduction_ratio * p.total_accumulated:
                continue
            patterns.append(
                SuspiciousPattern(
                    holder_id=p.holder_id,
                    name=p.name,
                    accumulation=p.total_accumulated,
                    reduction=p.total_reduced,
                    accumulation_start=p.buy_dates[0],
                    accumulation_end=p.buy_dates[-1],
                    sell_off_start=p.sell_dates[0],
                    sell_off_end=p.sell_dates[-1],
                )
            )
        if patterns:
            logger.info("Flagged %d accumulate_then_dump patterns", len(patterns))
        return patterns

    @staticmethod
    def counts(profiles: list[BehaviorProfile]) -> dict[str, int]:
        counts = {label.value: 0 for label in BehaviorLabel}
        for p in profiles:
            counts[p.label.value] += 1
        return counts

    @staticmethod
    def _volatility(changes: list[int]) -> float:
        if not changes:
            return 0.0
        return float(np.std(np.asarray(changes, dtype=np.float64)))
