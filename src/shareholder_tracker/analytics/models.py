"""Result models for the analytics module.

All results are immutable and derived per request. ``to_dict`` renders them
into JSON-compatible dictionaries for the CLI and for callers that export.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum

from shareholder_tracker.analytics.common import Granularity, to_jsonable
from shareholder_tracker.positions.models import ResolvedPosition


class _Serializable:
    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dictionary."""
        return {f.name: to_jsonable(getattr(self, f.name)) for f in fields(self) if f.repr}


class ExitStatus(str, Enum):
    """How a seller's position ended within the period."""

    FULL_EXIT = "Full Exit"
    PARTIAL_EXIT = "Partial Exit"
    COMPLETE_DISAPPEARANCE = "Complete Disappearance"


class Trajectory(str, Enum):
    """Direction of a new entrant since its entry."""

    ACCUMULATING = "Accumulating"
    REDUCING = "Reducing"
    STABLE = "Stable"


class BehaviorLabel(str, Enum):
    """Holder-level trading style over a period."""

    PURE_ACCUMULATOR = "pure_accumulator"
    PURE_SELLER = "pure_seller"
    NET_ACCUMULATOR = "net_accumulator"
    NET_SELLER = "net_seller"
    HIGH_VOLATILITY_TRADER = "high_volatility_trader"
    BALANCED_TRADER = "balanced_trader"


class CoordinationKind(str, Enum):
    BUYING = "buying"
    SELLING = "selling"


class TraderType(str, Enum):
    """Trade sequencing classes assigned by the timing scorer."""

    SMART_TRADER = "smart_trader"
    SWING_TRADER = "swing_trader"
    ACCUMULATOR = "accumulator"
    DISTRIBUTOR = "distributor"
    CONTRARIAN = "contrarian"
    HOLDER = "holder"


class MarketSentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class Period(_Serializable):
    start: date
    end: date
    granularity: Granularity = Granularity.DAILY


# ============================================================================
# Buyers / sellers / entrants
# ============================================================================


@dataclass(frozen=True)
class ActivityPoint(_Serializable):
    """A single buy or sell event: absolute size and the position after it."""

    date: date
    amount: int
    new_total: int


@dataclass(frozen=True)
class BuyerSummary(_Serializable):
    holder_id: int
    name: str
    initial_shares: int
    final_shares: int
    total_increase: int
    increase_percent: str
    initial_ownership: float
    final_ownership: float
    ownership_change: float
    buying_days: int
    average_increase_per_buy: int
    first_date: date
    last_date: date
    buying_activity: tuple[ActivityPoint, ...]


@dataclass(frozen=True)
class SellerSummary(_Serializable):
    holder_id: int
    name: str
    initial_shares: int
    final_shares: int
    total_decrease: int
    decrease_percent: str
    initial_ownership: float
    final_ownership: float
    ownership_change: float
    exit_status: ExitStatus
    selling_days: int
    average_decrease_per_sell: int
    first_date: date
    last_date: date
    selling_activity: tuple[ActivityPoint, ...]


@dataclass(frozen=True)
class NewEntrant(_Serializable):
    holder_id: int
    name: str
    entry_date: date
    initial_shares: int
    entry_shares: int
    current_shares: int
    growth_since_entry: int
    growth_percent: str
    initial_ownership: float
    current_ownership: float
    ownership_change: float
    days_active: int
    trajectory: Trajectory


@dataclass(frozen=True)
class BuyerTrendPoint(_Serializable):
    bucket: str
    active_buyers: int
    shares_accumulated: int


@dataclass(frozen=True)
class SellerTrendPoint(_Serializable):
    bucket: str
    active_sellers: int
    shares_sold: int
    full_exits: int
    partial_exits: int


@dataclass(frozen=True)
class EntryTrendPoint(_Serializable):
    bucket: str
    new_entrants: int
    total_entry_shares: int
    total_current_shares: int
    average_entry: int
    entrant_names: tuple[str, ...]


@dataclass(frozen=True)
class BuyersSummary(_Serializable):
    total_active_buyers: int
    total_shares_accumulated: int
    average_increase: int
    top_accumulator: BuyerSummary | None
    period: Period


@dataclass(frozen=True)
class SellersSummary(_Serializable):
    total_active_sellers: int
    full_exits: int
    partial_exits: int
    total_shares_sold: int
    average_decrease: int
    top_seller: SellerSummary | None
    period: Period


@dataclass(frozen=True)
class NewEntrantsSummary(_Serializable):
    total_new_entrants: int
    total_initial_investment: int
    total_current_holdings: int
    net_change: int
    average_entry_size: int
    trajectories: dict[str, int]
    top_new_entrant: NewEntrant | None
    period: Period


@dataclass(frozen=True)
class BuyersResult(_Serializable):
    summary: BuyersSummary
    buyers: tuple[BuyerSummary, ...]
    trend: tuple[BuyerTrendPoint, ...]


@dataclass(frozen=True)
class SellersResult(_Serializable):
    summary: SellersSummary
    sellers: tuple[SellerSummary, ...]
    trend: tuple[SellerTrendPoint, ...]


@dataclass(frozen=True)
class NewEntrantsResult(_Serializable):
    summary: NewEntrantsSummary
    new_entrants: tuple[NewEntrant, ...]
    trend: tuple[EntryTrendPoint, ...]


# ============================================================================
# Behavior, correlation, coordination
# ============================================================================


@dataclass(frozen=True)
class BehaviorProfile(_Serializable):
    """Holder-level activity over a period.

    Attributes:
        buy_dates: Dates of buy events, ascending.
        sell_dates: Dates of sell events, ascending.
        total_accumulated: Sum of buy event sizes.
        total_reduced: Sum of sell event sizes (absolute).
        net_change: total_accumulated - total_reduced.
        volatility: Population standard deviation of referenced deltas.
        label: Behavior classification.
    """

    holder_id: int
    name: str
    buy_dates: tuple[date, ...]
    sell_dates: tuple[date, ...]
    total_accumulated: int
    total_reduced: int
    net_change: int
    volatility: float
    label: BehaviorLabel

    @property
    def event_count(self) -> int:
        return len(self.buy_dates) + len(self.sell_dates)


@dataclass(frozen=True)
class CorrelatedPair(_Serializable):
    """Two holders whose buy/sell dates overlap; holder_a < holder_b."""

    holder_a: int
    holder_b: int
    name_a: str
    name_b: str
    correlation: float
    overlapping_buy_dates: tuple[date, ...]
    overlapping_sell_dates: tuple[date, ...]

    @property
    def total_overlap_events(self) -> int:
        return len(self.overlapping_buy_dates) + len(self.overlapping_sell_dates)


@dataclass(frozen=True)
class Participant(_Serializable):
    holder_id: int
    name: str
    account_holder: str | None
    shares: int
    percentage: float


@dataclass(frozen=True)
class CoordinatedActivity(_Serializable):
    date: date
    kind: CoordinationKind
    participants: tuple[Participant, ...]

    @property
    def count(self) -> int:
        return len(self.participants)


@dataclass(frozen=True)
class SuspiciousPattern(_Serializable):
    """Accumulation followed by a near-complete sell-off."""

    holder_id: int
    name: str
    accumulation: int
    reduction: int
    accumulation_start: date
    accumulation_end: date
    sell_off_start: date
    sell_off_end: date
    pattern: str = "accumulate_then_dump"


@dataclass(frozen=True)
class BehaviorSummary(_Serializable):
    total_analyzed: int
    behavior_counts: dict[str, int]
    correlated_pairs_found: int
    coordinated_activities_found: int
    suspicious_patterns_found: int
    period: Period


@dataclass(frozen=True)
class BehaviorResult(_Serializable):
    summary: BehaviorSummary
    profiles: tuple[BehaviorProfile, ...]
    correlated_pairs: tuple[CorrelatedPair, ...]
    coordinated_activities: tuple[CoordinatedActivity, ...]
    suspicious_patterns: tuple[SuspiciousPattern, ...]


# ============================================================================
# Timing
# ============================================================================


@dataclass(frozen=True)
class MovePoint(_Serializable):
    """A significant single-period move marking an entry or exit point."""

    date: date
    shares: int
    total_after: int


@dataclass(frozen=True)
class TimingProfile(_Serializable):
    holder_id: int
    name: str
    trader_type: TraderType
    timing_score: int
    buy_count: int
    sell_count: int
    total_bought: int
    total_sold: int
    net_position: int
    entry_points: tuple[MovePoint, ...]
    exit_points: tuple[MovePoint, ...]
    average_buy_size: int
    average_sell_size: int
    first_date: date
    last_date: date


@dataclass(frozen=True)
class SentimentPoint(_Serializable):
    bucket: str
    total_shares: int
    net_change: int
    active_traders: int
    sentiment: MarketSentiment


@dataclass(frozen=True)
class SmartMoneyMember(_Serializable):
    holder_id: int
    name: str
    score: int


@dataclass(frozen=True)
class SmartMoneyGroup(_Serializable):
    pattern: str
    members: tuple[SmartMoneyMember, ...]
    group_type: str

    @property
    def count(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class TimingSummary(_Serializable):
    total_analyzed: int
    smart_traders_count: int
    average_timing_score: int
    trader_type_distribution: dict[str, int]
    top_timer: TimingProfile | None
    period: Period


@dataclass(frozen=True)
class TimingResult(_Serializable):
    summary: TimingSummary
    profiles: tuple[TimingProfile, ...]
    smart_money: tuple[TimingProfile, ...]
    market_sentiment: tuple[SentimentPoint, ...]
    smart_money_groups: tuple[SmartMoneyGroup, ...]


# ============================================================================
# Ownership
# ============================================================================


@dataclass(frozen=True)
class DateTotals(_Serializable):
    bucket: str
    total_holders: int
    total_shares: int
    average_shares: int


@dataclass(frozen=True)
class TopHolder(_Serializable):
    holder_id: int
    name: str
    account_holder: str | None
    shares: int
    percentage: float


@dataclass(frozen=True)
class DistributionBucket(_Serializable):
    range: str
    count: int
    total_shares: int


@dataclass(frozen=True)
class OwnershipTrendsResult(_Serializable):
    trends: tuple[DateTotals, ...]
    monthly: tuple[DateTotals, ...]
    top_holders: tuple[TopHolder, ...]
    distribution: tuple[DistributionBucket, ...]
    latest_date: date | None


@dataclass(frozen=True)
class ComparedPosition(_Serializable):
    holder_id: int
    name: str
    status: str
    shares: int
    percentage: float
    previous_shares: int | None = None
    previous_percentage: float | None = None
    shares_change: int = 0
    percentage_change: float = 0.0


@dataclass(frozen=True)
class DateSide(_Serializable):
    date: date
    total_holders: int
    total_shares: int


@dataclass(frozen=True)
class DateComparisonResult(_Serializable):
    first: DateSide
    second: DateSide
    holders_change: int
    shares_change: int
    new: tuple[ComparedPosition, ...]
    removed: tuple[ComparedPosition, ...]
    changed: tuple[ComparedPosition, ...]
    unchanged: tuple[ComparedPosition, ...]


@dataclass(frozen=True)
class OwnershipStats(_Serializable):
    """Latest reporting date against the one before it.

    The change fields are None when there is no previous date.
    """

    total_holders: int
    latest: DateSide | None
    previous: DateSide | None = None
    holders_change: int | None = None
    shares_change: int | None = None
    holders_change_percent: str | None = None
    shares_change_percent: str | None = None


@dataclass(frozen=True)
class GrowthMetrics(_Serializable):
    initial_shares: int
    final_shares: int
    shares_change: int
    shares_change_percent: str
    initial_percentage: float
    final_percentage: float
    percentage_change: float
    start: date
    end: date


@dataclass(frozen=True)
class HolderGrowthResult(_Serializable):
    holder_id: int
    name: str
    positions: tuple[ResolvedPosition, ...] = field(default_factory=tuple)
    metrics: GrowthMetrics | None = None
