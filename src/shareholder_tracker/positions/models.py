"""Data models for the positions module."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class Holder:
    """A shareholder identity.

    Attributes:
        holder_id: Stable identifier assigned at ingestion.
        name: Display name.
        holder_no: Registry number from the source file, if any.
        account_holder: Custodian/account holder name, if any.
    """

    holder_id: int
    name: str
    holder_no: int | None = None
    account_holder: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "holder_id": self.holder_id,
            "name": self.name,
            "holder_no": self.holder_no,
            "account_holder": self.account_holder,
        }


@dataclass(frozen=True)
class PositionSnapshot:
    """One recorded observation of a holder's position on a date.

    Several snapshots may exist for the same (holder_id, date), e.g. intra-day
    revisions uploaded more than once.

    Attributes:
        holder_id: The holder the observation belongs to.
        date: Business date the position is reported for.
        shares: Units held.
        percentage: Ownership percentage of the outstanding units.
        recorded_at: When the observation was recorded (timezone-aware).
        sequence_id: Monotonic row id; breaks ties on recorded_at.
    """

    holder_id: int
    date: date
    shares: int
    percentage: float
    recorded_at: datetime
    sequence_id: int

    @property
    def resolution_key(self) -> tuple[datetime, int]:
        """Ordering key; the greatest key wins for its (holder_id, date)."""
        return (self.recorded_at, self.sequence_id)


@dataclass(frozen=True)
class ResolvedPosition:
    """The canonical position for one holder on one date."""

    holder_id: int
    date: date
    shares: int
    percentage: float

    def to_dict(self) -> dict[str, object]:
        return {
            "holder_id": self.holder_id,
            "date": self.date.isoformat(),
            "shares": self.shares,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class Delta:
    """Signed change between a resolved position and its predecessor.

    The reference is the most recent prior resolved position for the holder,
    whatever the gap. A position without any predecessor is an entry: its
    reference is an implicit zero and ``reference_date`` is None.
    """

    holder_id: int
    date: date
    reference_date: date | None
    reference_shares: int
    shares: int
    percentage: float

    @property
    def change(self) -> int:
        return self.shares - self.reference_shares

    @property
    def is_entry(self) -> bool:
        return self.reference_date is None

    @property
    def is_buy(self) -> bool:
        """True for a positive change against a real predecessor."""
        return not self.is_entry and self.change > 0

    @property
    def is_sell(self) -> bool:
        """True for a negative change against a real predecessor."""
        return not self.is_entry and self.change < 0

    def to_dict(self) -> dict[str, object]:
        return {
            "holder_id": self.holder_id,
            "date": self.date.isoformat(),
            "reference_date": self.reference_date.isoformat() if self.reference_date else None,
            "reference_shares": self.reference_shares,
            "shares": self.shares,
            "change": self.change,
        }
