"""Analytics over resolved positions: events, behavior, correlation, timing and ownership."""

from shareholder_tracker.analytics.behavior import BehaviorClassifier
from shareholder_tracker.analytics.common import Granularity, percent_change
from shareholder_tracker.analytics.correlation import CorrelationDetector, pair_correlation
from shareholder_tracker.analytics.engine import PositionAnalytics
from shareholder_tracker.analytics.events import EventClassifier
from shareholder_tracker.analytics.models import (
    BehaviorLabel,
    BehaviorProfile,
    BehaviorResult,
    BuyersResult,
    CoordinatedActivity,
    CorrelatedPair,
    DateComparisonResult,
    ExitStatus,
    HolderGrowthResult,
    NewEntrantsResult,
    OwnershipTrendsResult,
    Period,
    SellersResult,
    TimingProfile,
    TimingResult,
    TraderType,
)
from shareholder_tracker.analytics.ownership import compare_dates, holder_growth, ownership_trends
from shareholder_tracker.analytics.requests import AnalyticsRequest, AnalyticsValidationError
from shareholder_tracker.analytics.timing import TimingScorer, market_sentiment

__all__ = [
    "AnalyticsRequest",
    "AnalyticsValidationError",
    "BehaviorClassifier",
    "BehaviorLabel",
    "BehaviorProfile",
    "BehaviorResult",
    "BuyersResult",
    "CoordinatedActivity",
    "CorrelatedPair",
    "CorrelationDetector",
    "DateComparisonResult",
    "EventClassifier",
    "ExitStatus",
    "Granularity",
    "HolderGrowthResult",
    "NewEntrantsResult",
    "OwnershipTrendsResult",
    "Period",
    "PositionAnalytics",
    "SellersResult",
    "TimingProfile",
    "TimingResult",
    "TimingScorer",
    "TraderType",
    "compare_dates",
    "holder_growth",
    "market_sentiment",
    "ownership_trends",
    "pair_correlation",
]
