"""Correlated and coordinated activity detection.

Pairs are scored only when they share at least one event date: an inverted
index from date to the holders active that day yields the candidate pairs, so
holders that never act on the same day are never compared. Pairs without any
shared date have correlation 0 and are never reported, whatever the threshold.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date

from shareholder_tracker.analytics.models import (
    BehaviorProfile,
    CoordinatedActivity,
    CoordinationKind,
    CorrelatedPair,
    Participant,
)
from shareholder_tracker.positions.deltas import HolderActivity
from shareholder_tracker.positions.series import PositionBook

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CORRELATION_THRESHOLD = 0.2
DEFAULT_MIN_PARTICIPANTS = 3


def pair_correlation(a: BehaviorProfile, b: BehaviorProfile) -> float:
    """Date-overlap correlation of two profiles, in [0, 1].

    ``2 * (shared buy dates + shared sell dates) / (events_a + events_b)``;
    0.0 when either side has no events.
    """
    events_a = a.event_count
    events_b = b.event_count
    if events_a == 0 or events_b == 0:
        return 0.0
    shared = len(set(a.buy_dates) & set(b.buy_dates)) + len(set(a.sell_dates) & set(b.sell_dates))
    return 2 * shared / (events_a + events_b)


class CorrelationDetector:
    """Detector for holders that buy or sell on the same dates.

    Example:
        ```python
        detector = CorrelationDetector(correlation_threshold=0.5)
        pairs = detector.correlated_pairs(profiles)
        activities = detector.coordinated_activities(book, holder_activities)
        ```
    """

    def __init__(
        self,
        *,
        correlation_threshold: float = DEFAULT_CORRELATION_THRESHOLD,
        min_participants: int = DEFAULT_MIN_PARTICIPANTS,
    ) -> None:
        """Initialize the detector.

        Args:
            correlation_threshold: Minimum correlation to report a pair (default 0.2).
            min_participants: Distinct holders acting on one date to report a
                coordinated activity (default 3).
        """
        if not 0.0 <= correlation_threshold <= 1.0:
            raise ValueError("correlation_threshold must be within [0, 1]")
        self._threshold = correlation_threshold
        self._min_participants = min_participants

    def correlated_pairs(
        self,
        profiles: Iterable[BehaviorProfile],
        *,
        threshold: float | None = None,
    ) -> list[CorrelatedPair]:
        """Score candidate pairs and keep those at or above the threshold.

        Returns:
            Pairs with ``holder_a < holder_b``, sorted by correlation
            (descending), then by holder ids.
        """
        min_correlation = self._threshold if threshold is None else threshold
        by_id = {p.holder_id: p for p in profiles}

        index: dict[date, set[int]] = defaultdict(set)
        for p in by_id.values():
            for d in p.buy_dates:
                index[d].add(p.holder_id)
            for d in p.sell_dates:
                index[d].add(p.holder_id)

        candidates: set[tuple[int, int]] = set()
        for holder_ids in index.values():
            ordered = sorted(holder_ids)
            for i, a in enumerate(ordered):
                for b in ordered[i + 1 :]:
                    candidates.add((a, b))

        pairs: list[CorrelatedPair] = []
        for a_id, b_id in candidates:
            a = by_id[a_id]
            b = by_id[b_id]
            correlation = pair_correlation(a, b)
            if correlation <= 0.0 or correlation < min_correlation:
                continue
            pairs.append(
                CorrelatedPair(
                    holder_a=a_id,
                    holder_b=b_id,
                    name_a=a.name,
                    name_b=b.name,
                    correlation=correlation,
                    overlapping_buy_dates=tuple(sorted(set(a.buy_dates) & set(b.buy_dates))),
                    overlapping_sell_dates=tuple(sorted(set(a.sell_dates) & set(b.sell_dates))),
                )
            )
        pairs.sort(key=lambda p: (-p.correlation, p.holder_a, p.holder_b))
        logger.debug(
            "Correlation: holders=%d candidates=%d pairs=%d threshold=%.2f",
            len(by_id),
            len(candidates),
            len(pairs),
            min_correlation,
        )
        return pairs

    def coordinated_activities(
        self,
        book: PositionBook,
        activities: Mapping[int, HolderActivity],
    ) -> list[CoordinatedActivity]:
        """Report dates on which enough distinct holders bought or sold.

        Participants carry their resolved position on that date.

        Returns:
            Activities with the most participants first, then by date with
            buying before selling.
        """
        buyers: dict[date, list[Participant]] = defaultdict(list)
        sellers: dict[date, list[Participant]] = defaultdict(list)
        for activity in activities.values():
            holder = book.holder(activity.holder_id)
            for delta in activity.deltas:
                if not (delta.is_buy or delta.is_sell):
                    continue
                participant = Participant(
                    holder_id=holder.holder_id,
                    name=holder.name,
                    account_holder=holder.account_holder,
                    shares=delta.shares,
                    percentage=delta.percentage,
                )
                (buyers if delta.is_buy else sellers)[delta.date].append(participant)

        found: list[CoordinatedActivity] = []
        for kind, index in ((CoordinationKind.BUYING, buyers), (CoordinationKind.SELLING, sellers)):
            for on, participants in index.items():
                if len(participants) < self._min_participants:
                    continue
                found.append(
                    CoordinatedActivity(
                        date=on,
                        kind=kind,
                        participants=tuple(sorted(participants, key=lambda p: p.holder_id)),
                    )
                )
        found.sort(key=lambda c: (-c.count, c.date, c.kind is CoordinationKind.SELLING))
        if found:
            logger.info("Coordination: %d dates with %d+ participants", len(found), self._min_participants)
        return found
