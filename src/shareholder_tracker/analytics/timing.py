"""Trade timing heuristics.

The TimingScorer classifies how a holder sequences its buys and sells and
assigns a 0-100 timing score. The score is a heuristic rating of how well the
sequence lines up with the holder's own ownership peak; it is not a measure
of realised profit. Its constants are constructor parameters so they can be
reviewed and tested on their own.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from datetime import date

from shareholder_tracker.analytics.common import bucket_key, mean_int
from shareholder_tracker.analytics.models import (
    MarketSentiment,
    MovePoint,
    Period,
    SentimentPoint,
    SmartMoneyGroup,
    SmartMoneyMember,
    TimingProfile,
    TimingSummary,
    TraderType,
)
from shareholder_tracker.positions.deltas import HolderActivity
from shareholder_tracker.positions.models import Delta
from shareholder_tracker.positions.series import PositionBook
from shareholder_tracker.workers import map_holders

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_SIGNIFICANT_MOVE_PERCENT = 10.0  # single-period change marking an entry/exit point
DEFAULT_SMART_PEAK_MULTIPLIER = 1.5  # peak ownership vs initial
DEFAULT_SMART_EXIT_RATIO = 0.5  # final ownership vs peak
DEFAULT_DIRECTIONAL_MIN_EVENTS = 3  # one-sided events beyond which a holder is directional
DEFAULT_SMART_MONEY_MIN_SCORE = 70
DEFAULT_MIN_POSITIONS = 2

# Groups larger than this are reported as coordinated.
COORDINATED_GROUP_SIZE = 3

SCORES: dict[TraderType, int] = {
    TraderType.SMART_TRADER: 80,
    TraderType.ACCUMULATOR: 60,
    TraderType.SWING_TRADER: 50,
    TraderType.DISTRIBUTOR: 40,
    TraderType.CONTRARIAN: 30,
    TraderType.HOLDER: 0,
}


def _mean_ordinal(dates: list[date]) -> float:
    return sum(d.toordinal() for d in dates) / len(dates)


class TimingScorer:
    """Scorer for buy/sell sequencing.

    Holders with both buys and sells:
    - sells on average after buys, ownership peak above
      ``smart_peak_multiplier`` x initial and final below
      ``smart_exit_ratio`` x peak -> smart_trader (80)
    - sells on average after buys otherwise -> swing_trader (50)
    - sells on average on or before buys -> contrarian (30)

    One-sided holders with more than ``directional_min_events`` events are
    accumulators (60) or distributors (40); everyone else is a holder (0).

    Example:
        ```python
        scorer = TimingScorer()
        profiles = scorer.score(book, activities)
        smart = scorer.smart_money(profiles)
        ```
    """

    def __init__(
        self,
        *,
        significant_move_percent: float = DEFAULT_SIGNIFICANT_MOVE_PERCENT,
        smart_peak_multiplier: float = DEFAULT_SMART_PEAK_MULTIPLIER,
        smart_exit_ratio: float = DEFAULT_SMART_EXIT_RATIO,
        directional_min_events: int = DEFAULT_DIRECTIONAL_MIN_EVENTS,
        smart_money_min_score: int = DEFAULT_SMART_MONEY_MIN_SCORE,
        min_positions: int = DEFAULT_MIN_POSITIONS,
        max_workers: int = 1,
    ) -> None:
        """Initialize the timing scorer.

        Args:
            significant_move_percent: Percent change against the reference
                above which a buy/sell is an entry/exit point (default 10).
            smart_peak_multiplier: Peak-to-initial ownership ratio required for
                smart_trader (default 1.5).
            smart_exit_ratio: Final-to-peak ownership ratio below which the
                exit counts as near the peak (default 0.5).
            directional_min_events: Event count a one-sided holder must exceed
                to be an accumulator or distributor (default 3).
            smart_money_min_score: Minimum score counted as smart money (default 70).
            min_positions: Minimum resolved positions in range (default 2).
            max_workers: Thread pool size for per-holder work.
        """
        self._significant_move_percent = significant_move_percent
        self._smart_peak_multiplier = smart_peak_multiplier
        self._smart_exit_ratio = smart_exit_ratio
        self._directional_min_events = directional_min_events
        self._smart_money_min_score = smart_money_min_score
        self._min_positions = min_positions
        self._max_workers = max_workers

    def score(self, book: PositionBook, activities: Mapping[int, HolderActivity]) -> list[TimingProfile]:
        """Profile every holder with enough data in range.

        Returns:
            Profiles sorted by timing score (descending), then holder id.
        """
        eligible = [a for a in activities.values() if a.positions and len(a.positions) >= self._min_positions]
        profiles = map_holders(
            lambda a: self.profile(a, book.holder_name(a.holder_id)),
            eligible,
            max_workers=self._max_workers,
        )
        profiles.sort(key=lambda p: (-p.timing_score, p.holder_id))
        return profiles

    def profile(self, activity: HolderActivity, name: str) -> TimingProfile:
        buys = activity.buy_events
        sells = activity.sell_events
        trader_type = self.classify(activity)
        total_bought = sum(d.change for d in buys)
        total_sold = sum(-d.change for d in sells)
        first, last = activity.span()
        return TimingProfile(
            holder_id=activity.holder_id,
            name=name,
            trader_type=trader_type,
            timing_score=SCORES[trader_type],
            buy_count=len(buys),
            sell_count=len(sells),
            total_bought=total_bought,
            total_sold=total_sold,
            net_position=total_bought - total_sold,
            entry_points=tuple(self._move_point(d) for d in buys if self._is_significant(d)),
            exit_points=tuple(self._move_point(d) for d in sells if self._is_significant(d)),
            average_buy_size=mean_int(total_bought, len(buys)),
            average_sell_size=mean_int(total_sold, len(sells)),
            first_date=first.date,
            last_date=last.date,
        )

    def classify(self, activity: HolderActivity) -> TraderType:
        buys = activity.buy_events
        sells = activity.sell_events
        if buys and sells:
            mean_buy = _mean_ordinal([d.date for d in buys])
            mean_sell = _mean_ordinal([d.date for d in sells])
            if mean_sell <= mean_buy:
                return TraderType.CONTRARIAN

            percentages = [p.percentage for p in activity.positions]
            initial = percentages[0]
            final = percentages[-1]
            peak = max(percentages)
            if peak > self._smart_peak_multiplier * initial and final < self._smart_exit_ratio * peak:
                return TraderType.SMART_TRADER
            return TraderType.SWING_TRADER
        if len(buys) > self._directional_min_events:
            return TraderType.ACCUMULATOR
        if len(sells) > self._directional_min_events:
            return TraderType.DISTRIBUTOR
        return TraderType.HOLDER

    def smart_money(self, profiles: list[TimingProfile]) -> list[TimingProfile]:
        return [p for p in profiles if p.timing_score >= self._smart_money_min_score]

    def smart_money_groups(self, profiles: list[TimingProfile]) -> list[SmartMoneyGroup]:
        """Group smart-money holders by their entry/exit point counts."""
        grouped: dict[str, list[SmartMoneyMember]] = {}
        for p in self.smart_money(profiles):
            key = f"{len(p.entry_points)}-{len(p.exit_points)}"
            grouped.setdefault(key, []).append(
                SmartMoneyMember(holder_id=p.holder_id, name=p.name, score=p.timing_score)
            )
        return [
            SmartMoneyGroup(
                pattern=key,
                members=tuple(members),
                group_type="coordinated_group" if len(members) > COORDINATED_GROUP_SIZE else "independent_traders",
            )
            for key, members in grouped.items()
        ]

    def summarize(self, profiles: list[TimingProfile], period: Period) -> TimingSummary:
        distribution = {t.value: 0 for t in TraderType}
        for p in profiles:
            distribution[p.trader_type.value] += 1
        summary = TimingSummary(
            total_analyzed=len(profiles),
            smart_traders_count=len(self.smart_money(profiles)),
            average_timing_score=mean_int(sum(p.timing_score for p in profiles), len(profiles)),
            trader_type_distribution=distribution,
            top_timer=profiles[0] if profiles else None,
            period=period,
        )
        logger.info(
            "Timing: window=%s..%s analyzed=%d smart=%d avg_score=%d",
            period.start.isoformat(),
            period.end.isoformat(),
            summary.total_analyzed,
            summary.smart_traders_count,
            summary.average_timing_score,
        )
        return summary

    def _is_significant(self, delta: Delta) -> bool:
        if delta.reference_shares <= 0:
            return False
        return abs(delta.change) / delta.reference_shares * 100 > self._significant_move_percent

    @staticmethod
    def _move_point(delta: Delta) -> MovePoint:
        return MovePoint(date=delta.date, shares=abs(delta.change), total_after=delta.shares)


def market_sentiment(book: PositionBook, period: Period) -> list[SentimentPoint]:
    """Market-wide total shares per bucket with the change against the previous total.

    Each holder's latest resolved position is carried forward across gaps, so
    a holder that did not report on a date still counts toward its total. The
    last date of a bucket carries the bucket's total. The first bucket is
    reported only when a total is known before the period.
    """
    reported: dict[date, list[tuple[int, int]]] = defaultdict(list)
    for series in book:
        for position in series:
            if position.date <= period.end:
                reported[position.date].append((position.holder_id, position.shares))

    current: dict[int, int] = {}
    total = 0
    previous_total: int | None = None
    totals: dict[str, int] = {}
    reporters: dict[str, set[int]] = defaultdict(set)
    for on in sorted(reported):
        for holder_id, shares in reported[on]:
            total += shares - current.get(holder_id, 0)
            current[holder_id] = shares
        if on < period.start:
            previous_total = total
            continue
        key = bucket_key(on, period.granularity)
        totals[key] = total
        reporters[key].update(holder_id for holder_id, _ in reported[on])

    points: list[SentimentPoint] = []
    for key, bucket_total in totals.items():
        if previous_total is not None:
            change = bucket_total - previous_total
            if change > 0:
                sentiment = MarketSentiment.BULLISH
            elif change < 0:
                sentiment = MarketSentiment.BEARISH
            else:
                sentiment = MarketSentiment.NEUTRAL
            points.append(
                SentimentPoint(
                    bucket=key,
                    total_shares=bucket_total,
                    net_change=change,
                    active_traders=len(reporters[key]),
                    sentiment=sentiment,
                )
            )
        previous_total = bucket_total
    logger.debug("Market sentiment: buckets=%d granularity=%s", len(points), period.granularity.value)
    return points
