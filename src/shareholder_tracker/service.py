"""Analytics service: validated requests, one bounded read, pure compute.

The service is the only place that touches the database. For a request
window ``[start, end]`` it reads the snapshots in ``[start - lookback, end]``
plus, for every holder, the snapshots on its latest date before that slice,
so a reference position is found however long a holder went without
reporting. All computation after the read is delegated to PositionAnalytics.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import date, timedelta

from sqlalchemy.exc import SQLAlchemyError

from shareholder_tracker.analytics.engine import PositionAnalytics
from shareholder_tracker.analytics.models import (
    BehaviorResult,
    BuyersResult,
    DateComparisonResult,
    HolderGrowthResult,
    NewEntrantsResult,
    OwnershipStats,
    OwnershipTrendsResult,
    SellersResult,
    TimingResult,
)
from shareholder_tracker.analytics.requests import (
    AnalyticsRequest,
    AnalyticsValidationError,
    parse_date,
    parse_optional_date,
)
from shareholder_tracker.config import AnalyticsSettings
from shareholder_tracker.positions.models import Holder, PositionSnapshot
from shareholder_tracker.positions.series import PositionBook
from shareholder_tracker.storage.database import DatabaseManager
from shareholder_tracker.storage.repos import HolderDTO, HolderRepository, PositionSnapshotRepository

logger = logging.getLogger(__name__)


class SnapshotReadError(RuntimeError):
    """Raised when position snapshots or holders cannot be read from the store."""


class HolderNotFoundError(LookupError):
    """Raised when a requested holder does not exist."""


class AnalyticsService:
    """Runs analytics requests against the snapshot store.

    Example:
        ```python
        db = DatabaseManager.from_settings(settings.database)
        service = AnalyticsService(db, settings.analytics)
        request = AnalyticsRequest.from_params(start_date="2024-01-01", end_date="2024-03-31")
        result = await service.active_buyers(request)
        ```
    """

    def __init__(
        self,
        db: DatabaseManager,
        settings: AnalyticsSettings | None = None,
        *,
        analytics: PositionAnalytics | None = None,
    ) -> None:
        self._db = db
        self._settings = settings or AnalyticsSettings()
        self._analytics = analytics or PositionAnalytics.from_settings(self._settings)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_book(
        self,
        start: date,
        end: date,
        *,
        holder_ids: Collection[int] | None = None,
    ) -> PositionBook:
        """Read and resolve everything a request window needs.

        Raises:
            SnapshotReadError: If the store cannot be read.
        """
        window_start = start - timedelta(days=self._settings.lookback_days)
        try:
            async with self._db.read_session() as session:
                snapshots = PositionSnapshotRepository(session)
                rows = await snapshots.list_in_range(window_start, end, holder_ids=holder_ids)
                anchors = await snapshots.list_latest_before(window_start, holder_ids=holder_ids)
                holders = await self._holders(session, {s.holder_id for s in rows} | {s.holder_id for s in anchors})
        except SQLAlchemyError as exc:
            logger.error("Failed to read snapshots for %s..%s: %s", window_start.isoformat(), end.isoformat(), exc)
            raise SnapshotReadError(f"failed to read snapshots for {start.isoformat()}..{end.isoformat()}") from exc

        logger.debug(
            "Loaded snapshots: window=%s..%s rows=%d anchors=%d holders=%d",
            window_start.isoformat(),
            end.isoformat(),
            len(rows),
            len(anchors),
            len(holders),
        )
        return self._analytics.build_book([*anchors, *rows], holders)

    async def _load_all(self, read) -> PositionBook:
        try:
            async with self._db.read_session() as session:
                rows: list[PositionSnapshot] = await read(PositionSnapshotRepository(session))
                holders = await self._holders(session, {s.holder_id for s in rows})
        except SQLAlchemyError as exc:
            logger.error("Failed to read snapshots: %s", exc)
            raise SnapshotReadError("failed to read snapshots") from exc
        return self._analytics.build_book(rows, holders)

    @staticmethod
    async def _holders(session, holder_ids: set[int]) -> list[Holder]:
        dtos = await HolderRepository(session).list_by_ids(holder_ids)
        return [dto.to_holder() for dto in dtos]

    # ------------------------------------------------------------------
    # Period analytics
    # ------------------------------------------------------------------

    async def active_buyers(self, request: AnalyticsRequest) -> BuyersResult:
        book = await self.load_book(request.start_date, request.end_date)
        return self._analytics.active_buyers(book, request)

    async def active_sellers(self, request: AnalyticsRequest) -> SellersResult:
        book = await self.load_book(request.start_date, request.end_date)
        return self._analytics.active_sellers(book, request)

    async def new_entrants(self, request: AnalyticsRequest) -> NewEntrantsResult:
        book = await self.load_book(request.start_date, request.end_date)
        return self._analytics.new_entrants(book, request)

    async def behavior_patterns(self, request: AnalyticsRequest) -> BehaviorResult:
        book = await self.load_book(request.start_date, request.end_date)
        return self._analytics.behavior_patterns(book, request)

    async def timing_analysis(self, request: AnalyticsRequest) -> TimingResult:
        book = await self.load_book(request.start_date, request.end_date)
        return self._analytics.timing_analysis(book, request)

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    async def ownership_trends(self) -> OwnershipTrendsResult:
        book = await self._load_all(lambda repo: repo.list_in_range(date.min, date.max))
        return self._analytics.ownership_trends(book)

    async def compare_dates(self, first: str | date, second: str | date) -> DateComparisonResult:
        first_date = parse_date(first, field_name="date1")
        second_date = parse_date(second, field_name="date2")

        async def read(repo: PositionSnapshotRepository) -> list[PositionSnapshot]:
            return [*await repo.list_on_date(first_date), *await repo.list_on_date(second_date)]

        book = await self._load_all(read)
        return self._analytics.compare_dates(book, first_date, second_date)

    async def list_dates(self) -> list[date]:
        """Distinct snapshot dates, newest first."""
        try:
            async with self._db.read_session() as session:
                return await PositionSnapshotRepository(session).list_dates()
        except SQLAlchemyError as exc:
            logger.error("Failed to read snapshot dates: %s", exc)
            raise SnapshotReadError("failed to read snapshot dates") from exc

    async def ownership_stats(self) -> OwnershipStats:
        """Latest reporting date against the previous one, plus the holder count."""
        try:
            async with self._db.read_session() as session:
                snapshots = PositionSnapshotRepository(session)
                dates = await snapshots.list_dates()
                latest = dates[0] if dates else None
                previous = dates[1] if len(dates) > 1 else None
                rows: list[PositionSnapshot] = []
                for on in (latest, previous):
                    if on is not None:
                        rows.extend(await snapshots.list_on_date(on))
                holders = await self._holders(session, {s.holder_id for s in rows})
                total_holders = await HolderRepository(session).count()
        except SQLAlchemyError as exc:
            logger.error("Failed to read ownership stats: %s", exc)
            raise SnapshotReadError("failed to read ownership stats") from exc

        book = self._analytics.build_book(rows, holders)
        return self._analytics.ownership_stats(book, latest, previous, total_holders=total_holders)

    async def holder_growth(
        self,
        holder_id: int,
        *,
        start: str | date | None = None,
        end: str | date | None = None,
    ) -> HolderGrowthResult:
        """One holder's resolved series and growth metrics.

        Raises:
            HolderNotFoundError: If the holder does not exist.
        """
        start_date = parse_optional_date(start, field_name="start_date")
        end_date = parse_optional_date(end, field_name="end_date")
        if start_date is not None and end_date is not None and end_date < start_date:
            raise AnalyticsValidationError("end_date must not be before start_date")

        try:
            async with self._db.read_session() as session:
                holder = await HolderRepository(session).get_by_id(holder_id)
                if holder is None:
                    raise HolderNotFoundError(f"holder {holder_id} not found")
                rows = await PositionSnapshotRepository(session).list_for_holder(
                    holder_id, start=start_date, end=end_date
                )
        except SQLAlchemyError as exc:
            logger.error("Failed to read snapshots for holder %d: %s", holder_id, exc)
            raise SnapshotReadError(f"failed to read snapshots for holder {holder_id}") from exc

        book = self._analytics.build_book(rows, [holder.to_holder()])
        return self._analytics.holder_growth(book, holder_id, start=start_date, end=end_date)

    async def search_holders(self, text: str) -> list[HolderDTO]:
        try:
            async with self._db.read_session() as session:
                return await HolderRepository(session).search(text)
        except SQLAlchemyError as exc:
            raise SnapshotReadError("failed to search holders") from exc
