"""Canonical daily position resolution.

Raw snapshot rows may contain several observations for the same holder and
date. Resolution keeps exactly one per (holder_id, date): the snapshot with the
latest ``recorded_at``, ties broken by the highest ``sequence_id``. The rule is
total, so the result does not depend on input order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from shareholder_tracker.positions.models import PositionSnapshot, ResolvedPosition

logger = logging.getLogger(__name__)


def resolve_positions(snapshots: Iterable[PositionSnapshot]) -> list[ResolvedPosition]:
    """Resolve snapshots to one position per (holder_id, date).

    Args:
        snapshots: Snapshot rows in any order, possibly duplicated.

    Returns:
        Resolved positions sorted by (holder_id, date).
    """
    winners: dict[tuple[int, date], PositionSnapshot] = {}
    total = 0
    for snapshot in snapshots:
        total += 1
        key = (snapshot.holder_id, snapshot.date)
        current = winners.get(key)
        if current is None or snapshot.resolution_key > current.resolution_key:
            winners[key] = snapshot

    resolved = [
        ResolvedPosition(
            holder_id=s.holder_id,
            date=s.date,
            shares=s.shares,
            percentage=s.percentage,
        )
        for _, s in sorted(winners.items(), key=lambda item: item[0])
    ]
    logger.debug("Resolved %d snapshots into %d positions", total, len(resolved))
    return resolved
