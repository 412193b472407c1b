"""Pure analytics entry points.

PositionAnalytics wires the resolver, delta engine and classifiers together.
Each method is a pure function of the snapshots (or position book) and the
request it is given; nothing is cached between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING

from shareholder_tracker.analytics.behavior import BehaviorClassifier
from shareholder_tracker.analytics.correlation import CorrelationDetector
from shareholder_tracker.analytics.events import EventClassifier
from shareholder_tracker.analytics.models import (
    BehaviorResult,
    BehaviorSummary,
    BuyersResult,
    DateComparisonResult,
    HolderGrowthResult,
    NewEntrantsResult,
    OwnershipStats,
    OwnershipTrendsResult,
    Period,
    SellersResult,
    TimingResult,
)
from shareholder_tracker.analytics.ownership import (
    DEFAULT_TOP_HOLDERS_LIMIT,
    compare_dates,
    holder_growth,
    ownership_stats,
    ownership_trends,
)
from shareholder_tracker.analytics.requests import AnalyticsRequest
from shareholder_tracker.analytics.timing import TimingScorer, market_sentiment
from shareholder_tracker.positions.deltas import DeltaEngine
from shareholder_tracker.positions.models import Holder, PositionSnapshot
from shareholder_tracker.positions.resolver import resolve_positions
from shareholder_tracker.positions.series import PositionBook, build_position_book

if TYPE_CHECKING:
    from shareholder_tracker.config import AnalyticsSettings

logger = logging.getLogger(__name__)


def _period(request: AnalyticsRequest) -> Period:
    return Period(start=request.start_date, end=request.end_date, granularity=request.granularity)


class PositionAnalytics:
    """Facade over the analytics components.

    Example:
        ```python
        analytics = PositionAnalytics.from_settings(get_settings().analytics)
        book = analytics.build_book(snapshots, holders)
        result = analytics.active_buyers(book, request)
        ```
    """

    def __init__(
        self,
        *,
        delta_engine: DeltaEngine | None = None,
        behavior: BehaviorClassifier | None = None,
        correlation: CorrelationDetector | None = None,
        timing: TimingScorer | None = None,
        top_holders_limit: int = DEFAULT_TOP_HOLDERS_LIMIT,
    ) -> None:
        self._deltas = delta_engine or DeltaEngine()
        self._behavior = behavior or BehaviorClassifier()
        self._correlation = correlation or CorrelationDetector()
        self._timing = timing or TimingScorer()
        self._top_holders_limit = top_holders_limit

    @classmethod
    def from_settings(cls, settings: AnalyticsSettings) -> PositionAnalytics:
        return cls(
            delta_engine=DeltaEngine(max_workers=settings.max_workers),
            behavior=BehaviorClassifier(
                volatility_threshold=settings.volatility_threshold,
                dump_reduction_ratio=settings.dump_reduction_ratio,
                max_workers=settings.max_workers,
            ),
            correlation=CorrelationDetector(
                correlation_threshold=settings.correlation_threshold,
                min_participants=settings.coordination_min_participants,
            ),
            timing=TimingScorer(
                significant_move_percent=settings.significant_move_percent,
                smart_peak_multiplier=settings.smart_peak_multiplier,
                smart_exit_ratio=settings.smart_exit_ratio,
                directional_min_events=settings.directional_min_events,
                smart_money_min_score=settings.smart_money_min_score,
                max_workers=settings.max_workers,
            ),
            top_holders_limit=settings.top_holders_limit,
        )

    @staticmethod
    def build_book(snapshots: Iterable[PositionSnapshot], holders: Iterable[Holder] = ()) -> PositionBook:
        """Resolve snapshots and index them per holder."""
        return build_position_book(resolve_positions(snapshots), holders)

    def _events(self, book: PositionBook, request: AnalyticsRequest) -> EventClassifier:
        activities = self._deltas.compute(book, request.start_date, request.end_date)
        return EventClassifier(book, activities)

    def active_buyers(self, book: PositionBook, request: AnalyticsRequest) -> BuyersResult:
        return self._events(book, request).active_buyers(
            _period(request), single_date_filter=request.single_date_filter
        )

    def active_sellers(self, book: PositionBook, request: AnalyticsRequest) -> SellersResult:
        return self._events(book, request).active_sellers(
            _period(request), single_date_filter=request.single_date_filter
        )

    def new_entrants(self, book: PositionBook, request: AnalyticsRequest) -> NewEntrantsResult:
        return self._events(book, request).new_entrants(_period(request))

    def behavior_patterns(self, book: PositionBook, request: AnalyticsRequest) -> BehaviorResult:
        """Behavior profiles with correlated pairs, coordination and suspicious patterns."""
        period = _period(request)
        activities = self._deltas.compute(book, request.start_date, request.end_date)
        profiles = self._behavior.classify(book, activities)
        pairs = self._correlation.correlated_pairs(profiles, threshold=request.correlation_threshold)
        coordinated = self._correlation.coordinated_activities(book, activities)
        suspicious = self._behavior.suspicious_patterns(profiles)

        summary = BehaviorSummary(
            total_analyzed=len(profiles),
            behavior_counts=self._behavior.counts(profiles),
            correlated_pairs_found=len(pairs),
            coordinated_activities_found=len(coordinated),
            suspicious_patterns_found=len(suspicious),
            period=period,
        )
        logger.info(
            "Behavior patterns: window=%s..%s profiles=%d pairs=%d coordinated=%d suspicious=%d",
            period.start.isoformat(),
            period.end.isoformat(),
            len(profiles),
            len(pairs),
            len(coordinated),
            len(suspicious),
        )
        return BehaviorResult(
            summary=summary,
            profiles=tuple(profiles),
            correlated_pairs=tuple(pairs),
            coordinated_activities=tuple(coordinated),
            suspicious_patterns=tuple(suspicious),
        )

    def timing_analysis(self, book: PositionBook, request: AnalyticsRequest) -> TimingResult:
        period = _period(request)
        activities = self._deltas.compute(book, request.start_date, request.end_date)
        profiles = self._timing.score(book, activities)
        return TimingResult(
            summary=self._timing.summarize(profiles, period),
            profiles=tuple(profiles),
            smart_money=tuple(self._timing.smart_money(profiles)),
            market_sentiment=tuple(market_sentiment(book, period)),
            smart_money_groups=tuple(self._timing.smart_money_groups(profiles)),
        )

    def ownership_trends(self, book: PositionBook) -> OwnershipTrendsResult:
        return ownership_trends(book, top_holders_limit=self._top_holders_limit)

    def compare_dates(self, book: PositionBook, first: date, second: date) -> DateComparisonResult:
        return compare_dates(book, first, second)

    def ownership_stats(
        self,
        book: PositionBook,
        latest: date | None,
        previous: date | None,
        *,
        total_holders: int,
    ) -> OwnershipStats:
        return ownership_stats(book, latest, previous, total_holders=total_holders)

    def holder_growth(
        self,
        book: PositionBook,
        holder_id: int,
        *,
        start: date | None = None,
        end: date | None = None,
    ) -> HolderGrowthResult:
        return holder_growth(book, holder_id, start=start, end=end)
