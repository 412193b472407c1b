"""Repository pattern implementations for data access.

This module provides data access abstractions for holders and position
snapshots. Reads return DTOs that convert into the position-layer models the
analytics consume.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import select

from shareholder_tracker.positions.models import Holder, PositionSnapshot
from shareholder_tracker.storage.models import HolderModel, PositionSnapshotModel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Holders returned by a name search.
DEFAULT_SEARCH_LIMIT = 10


@dataclass
class HolderDTO:
    """Data transfer object for holders."""

    name: str
    holder_no: int | None = None
    account_holder: str | None = None
    id: int | None = None

    @classmethod
    def from_model(cls, model: HolderModel) -> HolderDTO:
        return cls(
            id=model.id,
            name=model.name,
            holder_no=model.holder_no,
            account_holder=model.account_holder,
        )

    def to_holder(self) -> Holder:
        if self.id is None:
            raise ValueError("holder has not been persisted")
        return Holder(
            holder_id=self.id,
            name=self.name,
            holder_no=self.holder_no,
            account_holder=self.account_holder,
        )


@dataclass
class PositionSnapshotDTO:
    """Data transfer object for position snapshots."""

    holder_id: int
    date: date
    shares: int
    percentage: float
    recorded_at: datetime | None = None
    id: int | None = None

    @classmethod
    def from_model(cls, model: PositionSnapshotModel) -> PositionSnapshotDTO:
        return cls(
            id=model.id,
            holder_id=model.holder_id,
            date=model.date,
            shares=model.shares,
            percentage=model.percentage,
            recorded_at=model.recorded_at,
        )

    def to_snapshot(self) -> PositionSnapshot:
        if self.id is None or self.recorded_at is None:
            raise ValueError("snapshot has not been persisted")
        return PositionSnapshot(
            holder_id=self.holder_id,
            date=self.date,
            shares=self.shares,
            percentage=self.percentage,
            recorded_at=self.recorded_at,
            sequence_id=self.id,
        )


class HolderRepository:
    """Repository for holder identities."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, holder_id: int) -> HolderDTO | None:
        result = await self.session.execute(select(HolderModel).where(HolderModel.id == holder_id))
        model = result.scalar_one_or_none()
        return HolderDTO.from_model(model) if model else None

    async def get_by_name(self, name: str) -> HolderDTO | None:
        result = await self.session.execute(
            select(HolderModel).where(HolderModel.name == name).order_by(HolderModel.id.asc()).limit(1)
        )
        model = result.scalar_one_or_none()
        return HolderDTO.from_model(model) if model else None

    async def search(self, text: str, *, limit: int = DEFAULT_SEARCH_LIMIT) -> list[HolderDTO]:
        """Holders whose name contains ``text`` (case-insensitive)."""
        result = await self.session.execute(
            select(HolderModel)
            .where(HolderModel.name.ilike(f"%{text}%"))
            .order_by(HolderModel.name.asc(), HolderModel.id.asc())
            .limit(limit)
        )
        return [HolderDTO.from_model(m) for m in result.scalars().all()]

    async def list_by_ids(self, holder_ids: Collection[int] | None = None) -> list[HolderDTO]:
        """Holders with the given ids, or every holder when ``holder_ids`` is None."""
        stmt = select(HolderModel).order_by(HolderModel.id.asc())
        if holder_ids is not None:
            if not holder_ids:
                return []
            stmt = stmt.where(HolderModel.id.in_(list(holder_ids)))
        result = await self.session.execute(stmt)
        return [HolderDTO.from_model(m) for m in result.scalars().all()]

    async def count(self) -> int:
        result = await self.session.execute(select(sa.func.count()).select_from(HolderModel))
        return int(result.scalar_one() or 0)

    async def insert(self, dto: HolderDTO) -> HolderDTO:
        model = HolderModel(
            name=dto.name.strip(),
            holder_no=dto.holder_no,
            account_holder=dto.account_holder,
        )
        self.session.add(model)
        await self.session.flush()
        return HolderDTO.from_model(model)

    async def get_or_create(self, dto: HolderDTO) -> HolderDTO:
        """Look a holder up by name, creating it on first sight."""
        existing = await self.get_by_name(dto.name.strip())
        if existing is not None:
            return existing
        return await self.insert(dto)


class PositionSnapshotRepository:
    """Repository for recorded position snapshots.

    Reads are ordered by (date, holder_id, recorded_at, id); resolution never
    depends on that order.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, dto: PositionSnapshotDTO) -> PositionSnapshotDTO:
        model = PositionSnapshotModel(
            holder_id=dto.holder_id,
            date=dto.date,
            shares=dto.shares,
            percentage=dto.percentage,
        )
        if dto.recorded_at is not None:
            model.recorded_at = dto.recorded_at
        self.session.add(model)
        await self.session.flush()
        return PositionSnapshotDTO.from_model(model)

    async def insert_many(self, dtos: Sequence[PositionSnapshotDTO]) -> int:
        for dto in dtos:
            await self.insert(dto)
        return len(dtos)

    async def list_in_range(
        self,
        start: date,
        end: date,
        *,
        holder_ids: Collection[int] | None = None,
    ) -> list[PositionSnapshot]:
        """Snapshots with ``start <= date <= end`` for a holder set (None = all)."""
        stmt = select(PositionSnapshotModel).where(
            (PositionSnapshotModel.date >= start) & (PositionSnapshotModel.date <= end)
        )
        stmt = self._filter_holders(stmt, holder_ids)
        if stmt is None:
            return []
        return await self._fetch(stmt)

    async def list_latest_before(
        self,
        cutoff: date,
        *,
        holder_ids: Collection[int] | None = None,
    ) -> list[PositionSnapshot]:
        """Snapshots on each holder's latest date strictly before ``cutoff``.

        Every snapshot recorded for that date is returned, so the resolver
        still picks the canonical one.
        """
        latest = select(
            PositionSnapshotModel.holder_id.label("holder_id"),
            sa.func.max(PositionSnapshotModel.date).label("max_date"),
        ).where(PositionSnapshotModel.date < cutoff)
        latest = self._filter_holders(latest, holder_ids)
        if latest is None:
            return []
        latest_sq = latest.group_by(PositionSnapshotModel.holder_id).subquery()

        stmt = select(PositionSnapshotModel).join(
            latest_sq,
            (PositionSnapshotModel.holder_id == latest_sq.c.holder_id)
            & (PositionSnapshotModel.date == latest_sq.c.max_date),
        )
        return await self._fetch(stmt)

    async def list_on_date(self, on: date) -> list[PositionSnapshot]:
        return await self._fetch(select(PositionSnapshotModel).where(PositionSnapshotModel.date == on))

    async def list_for_holder(
        self,
        holder_id: int,
        *,
        start: date | None = None,
        end: date | None = None,
    ) -> list[PositionSnapshot]:
        stmt = select(PositionSnapshotModel).where(PositionSnapshotModel.holder_id == holder_id)
        if start is not None:
            stmt = stmt.where(PositionSnapshotModel.date >= start)
        if end is not None:
            stmt = stmt.where(PositionSnapshotModel.date <= end)
        return await self._fetch(stmt)

    async def list_dates(self) -> list[date]:
        """Distinct snapshot dates, newest first."""
        result = await self.session.execute(
            select(PositionSnapshotModel.date).distinct().order_by(PositionSnapshotModel.date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    def _filter_holders(stmt, holder_ids: Collection[int] | None):
        if holder_ids is None:
            return stmt
        if not holder_ids:
            return None
        return stmt.where(PositionSnapshotModel.holder_id.in_(list(holder_ids)))

    async def _fetch(self, stmt) -> list[PositionSnapshot]:
        stmt = stmt.order_by(
            PositionSnapshotModel.date.asc(),
            PositionSnapshotModel.holder_id.asc(),
            PositionSnapshotModel.recorded_at.asc(),
            PositionSnapshotModel.id.asc(),
        )
        result = await self.session.execute(stmt)
        snapshots: list[PositionSnapshot] = []
        naive = 0
        for model in result.scalars().all():
            dto = PositionSnapshotDTO.from_model(model)
            if dto.recorded_at is not None and dto.recorded_at.tzinfo is None:
                dto.recorded_at = dto.recorded_at.replace(tzinfo=UTC)
                naive += 1
            snapshots.append(dto.to_snapshot())
        if naive:
            # SQLite stores no offset, so every row reads back naive there.
            level = logging.DEBUG if self.session.get_bind().dialect.name == "sqlite" else logging.WARNING
            logger.log(level, "Coerced %d naive snapshot timestamps to UTC", naive)
        return snapshots
