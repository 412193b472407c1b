"""Ownership snapshots over time: totals, distribution, comparisons and growth.

These work directly on resolved positions, one per holder and date, so the
totals never double count revised uploads.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date

from shareholder_tracker.analytics.common import mean_int, percent_change
from shareholder_tracker.analytics.models import (
    ComparedPosition,
    DateComparisonResult,
    DateSide,
    DateTotals,
    DistributionBucket,
    GrowthMetrics,
    HolderGrowthResult,
    OwnershipStats,
    OwnershipTrendsResult,
    TopHolder,
)
from shareholder_tracker.positions.models import ResolvedPosition
from shareholder_tracker.positions.series import PositionBook

logger = logging.getLogger(__name__)

DEFAULT_TOP_HOLDERS_LIMIT = 10

# (upper bound exclusive, label); the last bucket is open-ended.
DISTRIBUTION_BUCKETS: tuple[tuple[float, str], ...] = (
    (0.1, "< 0.1%"),
    (0.5, "0.1% - 0.5%"),
    (1.0, "0.5% - 1%"),
    (5.0, "1% - 5%"),
    (10.0, "5% - 10%"),
    (float("inf"), "> 10%"),
)


def distribution_label(percentage: float) -> str:
    for upper, label in DISTRIBUTION_BUCKETS:
        if percentage < upper:
            return label
    return DISTRIBUTION_BUCKETS[-1][1]


def _positions_by_date(book: PositionBook) -> dict[date, list[ResolvedPosition]]:
    by_date: dict[date, list[ResolvedPosition]] = defaultdict(list)
    for series in book:
        for position in series:
            by_date[position.date].append(position)
    return by_date


def _totals(bucket: str, positions: list[ResolvedPosition]) -> DateTotals:
    total = sum(p.shares for p in positions)
    return DateTotals(
        bucket=bucket,
        total_holders=len({p.holder_id for p in positions}),
        total_shares=total,
        average_shares=mean_int(total, len(positions)),
    )


def ownership_trends(book: PositionBook, *, top_holders_limit: int = DEFAULT_TOP_HOLDERS_LIMIT) -> OwnershipTrendsResult:
    """Per-date and per-month totals plus the latest date's top holders and distribution."""
    by_date = _positions_by_date(book)
    if not by_date:
        return OwnershipTrendsResult(trends=(), monthly=(), top_holders=(), distribution=(), latest_date=None)

    dates = sorted(by_date)
    trends = tuple(_totals(d.isoformat(), by_date[d]) for d in dates)

    by_month: dict[str, list[ResolvedPosition]] = defaultdict(list)
    for d in dates:
        by_month[d.strftime("%Y-%m")].extend(by_date[d])
    monthly = tuple(_totals(month, by_month[month]) for month in sorted(by_month))

    latest = dates[-1]
    latest_positions = sorted(by_date[latest], key=lambda p: (-p.shares, p.holder_id))
    top = []
    for p in latest_positions[:top_holders_limit]:
        holder = book.holder(p.holder_id)
        top.append(
            TopHolder(
                holder_id=p.holder_id,
                name=holder.name,
                account_holder=holder.account_holder,
                shares=p.shares,
                percentage=p.percentage,
            )
        )

    counts: dict[str, int] = defaultdict(int)
    shares: dict[str, int] = defaultdict(int)
    for p in latest_positions:
        label = distribution_label(p.percentage)
        counts[label] += 1
        shares[label] += p.shares
    distribution = tuple(
        DistributionBucket(range=label, count=counts[label], total_shares=shares[label])
        for _, label in DISTRIBUTION_BUCKETS
        if counts[label]
    )

    logger.info("Ownership trends: dates=%d months=%d latest=%s", len(trends), len(monthly), latest.isoformat())
    return OwnershipTrendsResult(
        trends=trends,
        monthly=monthly,
        top_holders=tuple(top),
        distribution=distribution,
        latest_date=latest,
    )


def compare_dates(book: PositionBook, first: date, second: date) -> DateComparisonResult:
    """Classify holders as new, removed, changed or unchanged between two dates."""
    before = {s.holder_id: p for s in book if (p := s.position_on(first)) is not None}
    after = {s.holder_id: p for s in book if (p := s.position_on(second)) is not None}

    new: list[ComparedPosition] = []
    removed: list[ComparedPosition] = []
    changed: list[ComparedPosition] = []
    unchanged: list[ComparedPosition] = []

    for holder_id, old in sorted(before.items()):
        name = book.holder_name(holder_id)
        current = after.get(holder_id)
        if current is None:
            removed.append(
                ComparedPosition(
                    holder_id=holder_id,
                    name=name,
                    status="removed",
                    shares=old.shares,
                    percentage=old.percentage,
                )
            )
            continue
        shares_change = current.shares - old.shares
        percentage_change = current.percentage - old.percentage
        if shares_change != 0 or percentage_change != 0:
            changed.append(
                ComparedPosition(
                    holder_id=holder_id,
                    name=name,
                    status="changed",
                    shares=current.shares,
                    percentage=current.percentage,
                    previous_shares=old.shares,
                    previous_percentage=old.percentage,
                    shares_change=shares_change,
                    percentage_change=percentage_change,
                )
            )
        else:
            unchanged.append(
                ComparedPosition(
                    holder_id=holder_id,
                    name=name,
                    status="unchanged",
                    shares=current.shares,
                    percentage=current.percentage,
                )
            )

    for holder_id, current in sorted(after.items()):
        if holder_id not in before:
            new.append(
                ComparedPosition(
                    holder_id=holder_id,
                    name=book.holder_name(holder_id),
                    status="new",
                    shares=current.shares,
                    percentage=current.percentage,
                )
            )

    first_total = sum(p.shares for p in before.values())
    second_total = sum(p.shares for p in after.values())
    logger.info(
        "Compared %s and %s: new=%d removed=%d changed=%d unchanged=%d",
        first.isoformat(),
        second.isoformat(),
        len(new),
        len(removed),
        len(changed),
        len(unchanged),
    )
    return DateComparisonResult(
        first=DateSide(date=first, total_holders=len(before), total_shares=first_total),
        second=DateSide(date=second, total_holders=len(after), total_shares=second_total),
        holders_change=len(after) - len(before),
        shares_change=second_total - first_total,
        new=tuple(new),
        removed=tuple(removed),
        changed=tuple(changed),
        unchanged=tuple(unchanged),
    )


def ownership_stats(
    book: PositionBook,
    latest: date | None,
    previous: date | None,
    *,
    total_holders: int,
) -> OwnershipStats:
    """Totals on the latest reporting date against the date before it.

    Args:
        book: Resolved positions for (at least) ``latest`` and ``previous``.
        latest: Most recent snapshot date, None for an empty store.
        previous: Snapshot date before ``latest``, if any.
        total_holders: Every registered holder, reporting or not.
    """
    if latest is None:
        return OwnershipStats(total_holders=total_holders, latest=None)
    if previous is None:
        positions = [p for s in book if (p := s.position_on(latest)) is not None]
        side = DateSide(date=latest, total_holders=len(positions), total_shares=sum(p.shares for p in positions))
        return OwnershipStats(total_holders=total_holders, latest=side)

    comparison = compare_dates(book, previous, latest)
    before = comparison.first
    return OwnershipStats(
        total_holders=total_holders,
        latest=comparison.second,
        previous=before,
        holders_change=comparison.holders_change,
        shares_change=comparison.shares_change,
        holders_change_percent=percent_change(before.total_holders, comparison.holders_change),
        shares_change_percent=percent_change(before.total_shares, comparison.shares_change),
    )


def holder_growth(
    book: PositionBook,
    holder_id: int,
    *,
    start: date | None = None,
    end: date | None = None,
) -> HolderGrowthResult:
    """One holder's resolved series within an optional range, with growth metrics.

    Metrics need at least two positions; otherwise ``metrics`` is None.
    """
    name = book.holder_name(holder_id)
    series = book.get(holder_id)
    if series is None:
        return HolderGrowthResult(holder_id=holder_id, name=name)

    positions = series.between(start or date.min, end or date.max)
    metrics = None
    if len(positions) > 1:
        first, last = positions[0], positions[-1]
        change = last.shares - first.shares
        metrics = GrowthMetrics(
            initial_shares=first.shares,
            final_shares=last.shares,
            shares_change=change,
            shares_change_percent=percent_change(first.shares, change),
            initial_percentage=first.percentage,
            final_percentage=last.percentage,
            percentage_change=round(last.percentage - first.percentage, 4),
            start=first.date,
            end=last.date,
        )
    return HolderGrowthResult(holder_id=holder_id, name=name, positions=positions, metrics=metrics)
