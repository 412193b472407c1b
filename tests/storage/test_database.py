"""Tests for engine and session handling."""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from shareholder_tracker.storage.database import DatabaseManager, normalize_database_url
from shareholder_tracker.storage.repos import HolderDTO, HolderRepository, PositionSnapshotDTO, PositionSnapshotRepository


@pytest.fixture
async def db(tmp_path):
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await manager.init_schema_async()
    yield manager
    await manager.dispose_async()


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgresql://u:p@db/holdings", "postgresql+asyncpg://u:p@db/holdings"),
        ("sqlite:///./tracker.db", "sqlite+aiosqlite:///./tracker.db"),
        ("postgresql+asyncpg://db/holdings", "postgresql+asyncpg://db/holdings"),
    ],
)
def test_normalize_database_url(url: str, expected: str) -> None:
    assert normalize_database_url(url) == expected


class TestDatabaseManager:
    """Tests for DatabaseManager sessions."""

    async def test_write_session_commits(self, db) -> None:
        async with db.get_async_session() as session:
            await HolderRepository(session).insert(HolderDTO(name="Alpha"))
        async with db.read_session() as session:
            assert await HolderRepository(session).get_by_name("Alpha") is not None

    async def test_read_session_never_commits(self, db) -> None:
        async with db.read_session() as session:
            await HolderRepository(session).insert(HolderDTO(name="Scratch"))
        async with db.read_session() as session:
            assert await HolderRepository(session).get_by_name("Scratch") is None

    async def test_write_session_rolls_back_on_error(self, db) -> None:
        with pytest.raises(RuntimeError):
            async with db.get_async_session() as session:
                await HolderRepository(session).insert(HolderDTO(name="Doomed"))
                raise RuntimeError("abort")
        async with db.read_session() as session:
            assert await HolderRepository(session).get_by_name("Doomed") is None

    async def test_sqlite_enforces_holder_foreign_key(self, db) -> None:
        with pytest.raises(IntegrityError):
            async with db.get_async_session() as session:
                await PositionSnapshotRepository(session).insert(
                    PositionSnapshotDTO(holder_id=999, date=date(2024, 1, 1), shares=1, percentage=0.0)
                )
