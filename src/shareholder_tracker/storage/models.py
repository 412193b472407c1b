"""SQLAlchemy models for persistent storage.

This module defines the database schema for holders and the position
snapshots recorded for them.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import BigInteger, Date, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class HolderModel(Base):
    """SQLAlchemy model for holder identities."""

    __tablename__ = "holders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    holder_no: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_holder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("idx_holders_name", "name"),)


class PositionSnapshotModel(Base):
    """SQLAlchemy model for recorded position snapshots.

    Rows are append-only; several rows may exist for one (holder, date).
    The autoincrement ``id`` doubles as the sequence used to break ties on
    ``recorded_at``.
    """

    __tablename__ = "position_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    holder_id: Mapped[int] = mapped_column(Integer, ForeignKey("holders.id"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    shares: Mapped[int] = mapped_column(BigInteger, nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (
        Index("idx_position_snapshots_date", "date"),
        Index("idx_position_snapshots_holder_date", "holder_id", "date"),
    )
