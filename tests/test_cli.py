"""Tests for the command-line entry point."""

import asyncio
import json
from datetime import UTC, date, datetime

import pytest

from shareholder_tracker.__main__ import build_parser, main
from shareholder_tracker.config import clear_settings_cache
from shareholder_tracker.storage.database import DatabaseManager
from shareholder_tracker.storage.repos import HolderDTO, HolderRepository, PositionSnapshotDTO, PositionSnapshotRepository


@pytest.fixture
def database_url(monkeypatch, tmp_path) -> str:
    monkeypatch.chdir(tmp_path)
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    clear_settings_cache()
    yield url
    clear_settings_cache()


def seed(url: str) -> None:
    async def insert() -> None:
        db = DatabaseManager(url)
        try:
            async with db.get_async_session() as session:
                holder = await HolderRepository(session).insert(HolderDTO(name="Alpha Fund"))
                await PositionSnapshotRepository(session).insert_many(
                    [
                        PositionSnapshotDTO(
                            holder_id=holder.id,
                            date=on,
                            shares=shares,
                            percentage=shares / 1000,
                            recorded_at=datetime(2024, 2, 1, tzinfo=UTC),
                        )
                        for on, shares in ((date(2024, 1, 1), 100), (date(2024, 1, 3), 150))
                    ]
                )
        finally:
            await db.dispose_async()

    asyncio.run(insert())


class TestParser:
    """Tests for argument parsing."""

    def test_period_command(self) -> None:
        args = build_parser().parse_args(["buyers", "--start", "2024-01-01", "--end", "2024-01-31", "--date", "2024-01-03"])
        assert args.command == "buyers"
        assert args.single_date == "2024-01-03"
        assert args.granularity == "daily"

    def test_rejects_unknown_granularity(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["timing", "--start", "2024-01-01", "--end", "2024-01-31", "--granularity", "weekly"])


class TestMain:
    """Tests for main()."""

    def test_buyers_json(self, database_url, capsys) -> None:
        assert main(["init-db"]) == 0
        seed(database_url)
        capsys.readouterr()

        assert main(["buyers", "--start", "2024-01-02", "--end", "2024-01-31"]) == 0
        output = json.loads(capsys.readouterr().out)
        (buyer,) = output["buyers"]
        assert buyer["name"] == "Alpha Fund"
        assert buyer["total_increase"] == 50
        assert buyer["increase_percent"] == "50.00"
        assert buyer["first_date"] == "2024-01-01"
        assert output["summary"]["period"] == {"start": "2024-01-02", "end": "2024-01-31", "granularity": "daily"}

    def test_invalid_request_exit_code(self, database_url, capsys) -> None:
        assert main(["sellers", "--start", "2024-02-01", "--end", "2024-01-01"]) == 2
        assert "invalid request" in capsys.readouterr().err

    def test_unknown_holder_exit_code(self, database_url) -> None:
        assert main(["init-db"]) == 0
        assert main(["growth", "--holder-id", "42"]) == 1

    def test_read_error_exit_code(self, database_url) -> None:
        assert main(["trends"]) == 1

    def test_dates_json(self, database_url, capsys) -> None:
        assert main(["init-db"]) == 0
        seed(database_url)
        capsys.readouterr()

        assert main(["dates"]) == 0
        assert json.loads(capsys.readouterr().out) == {"dates": ["2024-01-03", "2024-01-01"]}

    def test_stats_json(self, database_url, capsys) -> None:
        assert main(["init-db"]) == 0
        seed(database_url)
        capsys.readouterr()

        assert main(["stats"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["total_holders"] == 1
        assert output["latest"] == {"date": "2024-01-03", "total_holders": 1, "total_shares": 150}
        assert output["previous"] == {"date": "2024-01-01", "total_holders": 1, "total_shares": 100}
        assert output["shares_change"] == 50
        assert output["shares_change_percent"] == "50.00"
        assert output["holders_change_percent"] == "0.00"
