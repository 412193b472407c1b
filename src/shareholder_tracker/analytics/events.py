"""Period-level event classification: buyers, sellers and new entrants.

All three analytics read the same per-holder deltas, so a holder's buys and
sells are counted exactly once however sparse its reporting is. Lists are
returned fully sorted by total change (descending); pagination is left to the
caller.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from datetime import date

from shareholder_tracker.analytics.common import (
    bucket_key,
    mean_int,
    percent_change,
)
from shareholder_tracker.analytics.models import (
    ActivityPoint,
    BuyersResult,
    BuyersSummary,
    BuyerSummary,
    BuyerTrendPoint,
    EntryTrendPoint,
    ExitStatus,
    NewEntrant,
    NewEntrantsResult,
    NewEntrantsSummary,
    Period,
    SellersResult,
    SellersSummary,
    SellerSummary,
    SellerTrendPoint,
    Trajectory,
)
from shareholder_tracker.positions.deltas import HolderActivity
from shareholder_tracker.positions.models import Delta
from shareholder_tracker.positions.series import PositionBook

logger = logging.getLogger(__name__)

# Entrant names kept per trend bucket.
TREND_NAMES_LIMIT = 5


class EventClassifier:
    """Aggregates deltas into buyer, seller and new-entrant summaries."""

    def __init__(self, book: PositionBook, activities: Mapping[int, HolderActivity]) -> None:
        self._book = book
        self._activities = activities

    # ------------------------------------------------------------------
    # Buyers
    # ------------------------------------------------------------------

    def active_buyers(self, period: Period, *, single_date_filter: date | None = None) -> BuyersResult:
        """Holders with at least one buy event in the period."""
        buyers = sorted(
            (
                self._buyer_summary(activity)
                for activity in self._activities.values()
                if activity.buy_events
            ),
            key=lambda b: (-b.total_increase, b.holder_id),
        )

        listed = buyers
        if single_date_filter is not None:
            listed = self._restate_on(
                buyers, single_date_filter, lambda holder_id, d: self._buyer_on_date(holder_id, d), is_buy=True
            )

        total = sum(b.total_increase for b in buyers)
        summary = BuyersSummary(
            total_active_buyers=len(buyers),
            total_shares_accumulated=total,
            average_increase=mean_int(total, len(buyers)),
            top_accumulator=buyers[0] if buyers else None,
            period=period,
        )
        logger.info(
            "Active buyers: window=%s..%s buyers=%d listed=%d shares=%d",
            period.start.isoformat(),
            period.end.isoformat(),
            len(buyers),
            len(listed),
            total,
        )
        return BuyersResult(summary=summary, buyers=tuple(listed), trend=self._buyer_trend(buyers, period))

    def _buyer_summary(self, activity: HolderActivity) -> BuyerSummary:
        buys = activity.buy_events
        first, last = activity.span()
        baseline = activity.opening if activity.opening is not None else first
        total_increase = sum(d.change for d in buys)
        return BuyerSummary(
            holder_id=activity.holder_id,
            name=self._book.holder_name(activity.holder_id),
            initial_shares=baseline.shares,
            final_shares=last.shares,
            total_increase=total_increase,
            increase_percent=percent_change(baseline.shares, total_increase),
            initial_ownership=baseline.percentage,
            final_ownership=last.percentage,
            ownership_change=last.percentage - baseline.percentage,
            buying_days=len(buys),
            average_increase_per_buy=mean_int(total_increase, len(buys)),
            first_date=baseline.date,
            last_date=last.date,
            buying_activity=tuple(ActivityPoint(date=d.date, amount=d.change, new_total=d.shares) for d in buys),
        )

    def _buyer_on_date(self, holder_id: int, delta: Delta) -> BuyerSummary:
        reference_pct = self._reference_percentage(holder_id, delta)
        return BuyerSummary(
            holder_id=holder_id,
            name=self._book.holder_name(holder_id),
            initial_shares=delta.reference_shares,
            final_shares=delta.shares,
            total_increase=delta.change,
            increase_percent=percent_change(delta.reference_shares, delta.change),
            initial_ownership=reference_pct,
            final_ownership=delta.percentage,
            ownership_change=delta.percentage - reference_pct,
            buying_days=1,
            average_increase_per_buy=delta.change,
            first_date=delta.date,
            last_date=delta.date,
            buying_activity=(ActivityPoint(date=delta.date, amount=delta.change, new_total=delta.shares),),
        )

    def _buyer_trend(self, buyers: list[BuyerSummary], period: Period) -> tuple[BuyerTrendPoint, ...]:
        holders: dict[str, set[int]] = defaultdict(set)
        amounts: dict[str, int] = defaultdict(int)
        for buyer in buyers:
            for point in buyer.buying_activity:
                key = bucket_key(point.date, period.granularity)
                holders[key].add(buyer.holder_id)
                amounts[key] += point.amount
        return tuple(
            BuyerTrendPoint(bucket=key, active_buyers=len(holders[key]), shares_accumulated=amounts[key])
            for key in sorted(holders)
        )

    # ------------------------------------------------------------------
    # Sellers
    # ------------------------------------------------------------------

    def active_sellers(self, period: Period, *, single_date_filter: date | None = None) -> SellersResult:
        """Holders with at least one sell event, plus complete disappearances."""
        sellers: list[SellerSummary] = []
        for activity in self._activities.values():
            if activity.sell_events:
                sellers.append(self._seller_summary(activity))
            elif not activity.positions:
                disappearance = self._disappearance(activity)
                if disappearance is not None:
                    sellers.append(disappearance)
        sellers.sort(key=lambda s: (-s.total_decrease, s.holder_id))

        listed = sellers
        if single_date_filter is not None:
            listed = self._restate_on(
                sellers, single_date_filter, lambda holder_id, d: self._seller_on_date(holder_id, d), is_buy=False
            )

        total = sum(s.total_decrease for s in sellers)
        full_exits = sum(
            1 for s in sellers if s.exit_status in (ExitStatus.FULL_EXIT, ExitStatus.COMPLETE_DISAPPEARANCE)
        )
        summary = SellersSummary(
            total_active_sellers=len(sellers),
            full_exits=full_exits,
            partial_exits=sum(1 for s in sellers if s.exit_status is ExitStatus.PARTIAL_EXIT),
            total_shares_sold=total,
            average_decrease=mean_int(total, len(sellers)),
            top_seller=sellers[0] if sellers else None,
            period=period,
        )
        logger.info(
            "Active sellers: window=%s..%s sellers=%d full_exits=%d listed=%d",
            period.start.isoformat(),
            period.end.isoformat(),
            len(sellers),
            full_exits,
            len(listed),
        )
        return SellersResult(summary=summary, sellers=tuple(listed), trend=self._seller_trend(sellers, period))

    def _seller_summary(self, activity: HolderActivity) -> SellerSummary:
        sells = activity.sell_events
        first, last = activity.span()
        baseline = activity.opening if activity.opening is not None else first
        total_decrease = sum(-d.change for d in sells)
        return SellerSummary(
            holder_id=activity.holder_id,
            name=self._book.holder_name(activity.holder_id),
            initial_shares=baseline.shares,
            final_shares=last.shares,
            total_decrease=total_decrease,
            decrease_percent=percent_change(baseline.shares, total_decrease),
            initial_ownership=baseline.percentage,
            final_ownership=last.percentage,
            ownership_change=last.percentage - baseline.percentage,
            exit_status=ExitStatus.FULL_EXIT if last.shares == 0 else ExitStatus.PARTIAL_EXIT,
            selling_days=len(sells),
            average_decrease_per_sell=mean_int(total_decrease, len(sells)),
            first_date=baseline.date,
            last_date=last.date,
            selling_activity=tuple(ActivityPoint(date=d.date, amount=-d.change, new_total=d.shares) for d in sells),
        )

    def _disappearance(self, activity: HolderActivity) -> SellerSummary | None:
        """A holder that went from a holding to zero before the period and is absent inside it."""
        exit_position = activity.opening
        if exit_position is None or exit_position.shares != 0:
            return None
        prior = activity.series.position_before(exit_position.date)
        if prior is None or prior.shares <= 0:
            return None
        initial_shares = prior.shares
        initial_pct = prior.percentage
        return SellerSummary(
            holder_id=activity.holder_id,
            name=self._book.holder_name(activity.holder_id),
            initial_shares=initial_shares,
            final_shares=0,
            total_decrease=initial_shares,
            decrease_percent=percent_change(initial_shares, initial_shares),
            initial_ownership=initial_pct,
            final_ownership=0.0,
            ownership_change=-initial_pct,
            exit_status=ExitStatus.COMPLETE_DISAPPEARANCE,
            selling_days=1,
            average_decrease_per_sell=initial_shares,
            first_date=exit_position.date,
            last_date=exit_position.date,
            selling_activity=(ActivityPoint(date=exit_position.date, amount=initial_shares, new_total=0),),
        )

    def _seller_on_date(self, holder_id: int, delta: Delta) -> SellerSummary:
        reference_pct = self._reference_percentage(holder_id, delta)
        decrease = -delta.change
        return SellerSummary(
            holder_id=holder_id,
            name=self._book.holder_name(holder_id),
            initial_shares=delta.reference_shares,
            final_shares=delta.shares,
            total_decrease=decrease,
            decrease_percent=percent_change(delta.reference_shares, decrease),
            initial_ownership=reference_pct,
            final_ownership=delta.percentage,
            ownership_change=delta.percentage - reference_pct,
            exit_status=ExitStatus.FULL_EXIT if delta.shares == 0 else ExitStatus.PARTIAL_EXIT,
            selling_days=1,
            average_decrease_per_sell=decrease,
            first_date=delta.date,
            last_date=delta.date,
            selling_activity=(ActivityPoint(date=delta.date, amount=decrease, new_total=delta.shares),),
        )

    def _seller_trend(self, sellers: list[SellerSummary], period: Period) -> tuple[SellerTrendPoint, ...]:
        holders: dict[str, set[int]] = defaultdict(set)
        amounts: dict[str, int] = defaultdict(int)
        full: dict[str, int] = defaultdict(int)
        partial: dict[str, int] = defaultdict(int)
        for seller in sellers:
            for point in seller.selling_activity:
                # Disappearance exits are dated before the period.
                if not period.start <= point.date <= period.end:
                    continue
                key = bucket_key(point.date, period.granularity)
                holders[key].add(seller.holder_id)
                amounts[key] += point.amount
                if point.new_total == 0:
                    full[key] += 1
                else:
                    partial[key] += 1
        return tuple(
            SellerTrendPoint(
                bucket=key,
                active_sellers=len(holders[key]),
                shares_sold=amounts[key],
                full_exits=full[key],
                partial_exits=partial[key],
            )
            for key in sorted(holders)
        )

    # ------------------------------------------------------------------
    # New entrants
    # ------------------------------------------------------------------

    def new_entrants(self, period: Period) -> NewEntrantsResult:
        """Holders first seen inside the period, entering from a zero baseline."""
        entrants: list[NewEntrant] = []
        for activity in self._activities.values():
            first = activity.first
            last = activity.last
            if first is None or last is None or activity.opening is not None:
                continue
            if first.shares <= 0:
                continue
            growth = last.shares
            if last.shares > first.shares:
                trajectory = Trajectory.ACCUMULATING
            elif last.shares < first.shares:
                trajectory = Trajectory.REDUCING
            else:
                trajectory = Trajectory.STABLE
            entrants.append(
                NewEntrant(
                    holder_id=activity.holder_id,
                    name=self._book.holder_name(activity.holder_id),
                    entry_date=first.date,
                    initial_shares=0,
                    entry_shares=first.shares,
                    current_shares=last.shares,
                    growth_since_entry=growth,
                    growth_percent=percent_change(0, growth),
                    initial_ownership=0.0,
                    current_ownership=last.percentage,
                    ownership_change=last.percentage,
                    days_active=len(activity.positions),
                    trajectory=trajectory,
                )
            )
        entrants.sort(key=lambda e: (-e.growth_since_entry, -e.entry_date.toordinal(), e.holder_id))

        total_entry = sum(e.entry_shares for e in entrants)
        total_current = sum(e.current_shares for e in entrants)
        trajectories = {t.value: 0 for t in Trajectory}
        for e in entrants:
            trajectories[e.trajectory.value] += 1

        summary = NewEntrantsSummary(
            total_new_entrants=len(entrants),
            total_initial_investment=total_entry,
            total_current_holdings=total_current,
            net_change=total_current - total_entry,
            average_entry_size=mean_int(total_entry, len(entrants)),
            trajectories=trajectories,
            top_new_entrant=entrants[0] if entrants else None,
            period=period,
        )
        logger.info(
            "New entrants: window=%s..%s entrants=%d",
            period.start.isoformat(),
            period.end.isoformat(),
            len(entrants),
        )
        return NewEntrantsResult(summary=summary, new_entrants=tuple(entrants), trend=self._entry_trend(entrants, period))

    def _entry_trend(self, entrants: list[NewEntrant], period: Period) -> tuple[EntryTrendPoint, ...]:
        grouped: dict[str, list[NewEntrant]] = defaultdict(list)
        for e in sorted(entrants, key=lambda e: (e.entry_date, e.holder_id)):
            grouped[bucket_key(e.entry_date, period.granularity)].append(e)
        points = []
        for key in sorted(grouped):
            members = grouped[key]
            total_entry = sum(e.entry_shares for e in members)
            points.append(
                EntryTrendPoint(
                    bucket=key,
                    new_entrants=len(members),
                    total_entry_shares=total_entry,
                    total_current_shares=sum(e.current_shares for e in members),
                    average_entry=mean_int(total_entry, len(members)),
                    entrant_names=tuple(e.name for e in members[:TREND_NAMES_LIMIT]),
                )
            )
        return tuple(points)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _restate_on(self, summaries, on: date, restate, *, is_buy: bool) -> list:
        """Keep holders with an event on ``on`` and restate them for that event."""
        restated = []
        for summary in summaries:
            activity = self._activities.get(summary.holder_id)
            if activity is None:
                continue
            for delta in activity.deltas:
                if delta.date == on and (delta.is_buy if is_buy else delta.is_sell):
                    restated.append(restate(summary.holder_id, delta))
                    break
        if is_buy:
            restated.sort(key=lambda s: (-s.total_increase, s.holder_id))
        else:
            restated.sort(key=lambda s: (-s.total_decrease, s.holder_id))
        return restated

    def _reference_percentage(self, holder_id: int, delta: Delta) -> float:
        if delta.reference_date is None:
            return 0.0
        series = self._book.get(holder_id)
        reference = series.position_on(delta.reference_date) if series is not None else None
        return reference.percentage if reference is not None else 0.0
