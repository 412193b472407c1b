"""Position layer - snapshot resolution, series and deltas."""

from shareholder_tracker.positions.deltas import DeltaEngine, HolderActivity, compute_deltas
from shareholder_tracker.positions.models import Delta, Holder, PositionSnapshot, ResolvedPosition
from shareholder_tracker.positions.resolver import resolve_positions
from shareholder_tracker.positions.series import PositionBook, PositionSeries, build_position_book

__all__ = [
    "Delta",
    "DeltaEngine",
    "Holder",
    "HolderActivity",
    "PositionBook",
    "PositionSeries",
    "PositionSnapshot",
    "ResolvedPosition",
    "build_position_book",
    "compute_deltas",
    "resolve_positions",
]
