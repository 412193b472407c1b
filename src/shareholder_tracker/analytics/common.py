"""Helpers shared by the analytics components."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from datetime import date
from enum import Enum

# Percent change reported for any positive change from a zero base.
ZERO_BASE_PERCENT = "100"


class Granularity(str, Enum):
    """Trend bucketing granularity."""

    DAILY = "daily"
    MONTHLY = "monthly"


def percent_change(base: int | float, change: int | float) -> str:
    """Percent of ``change`` relative to ``base`` as a two-decimal string.

    A zero base has no meaningful ratio: any positive change from it yields
    the ``ZERO_BASE_PERCENT`` sentinel and no change yields ``"0.00"``.
    """
    if base <= 0:
        return ZERO_BASE_PERCENT if change > 0 else "0.00"
    return f"{(change / base) * 100:.2f}"


def bucket_key(on: date, granularity: Granularity) -> str:
    """Trend bucket label: ``YYYY-MM-DD`` (daily) or ``YYYY-MM`` (monthly)."""
    if granularity is Granularity.MONTHLY:
        return on.strftime("%Y-%m")
    return on.isoformat()


def round_half_up(value: float) -> int:
    """Round like a spreadsheet would (0.5 goes up), not banker's rounding."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def mean_int(total: int | float, count: int) -> int:
    return round_half_up(total / count) if count > 0 else 0


def to_jsonable(value: object) -> object:
    """Convert result dataclasses into JSON-compatible structures."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value) if f.repr}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k.value if isinstance(k, Enum) else k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value
