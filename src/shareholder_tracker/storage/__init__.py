"""Storage layer - snapshot store schema, sessions and repositories."""

from shareholder_tracker.storage.database import (
    DatabaseManager,
    create_async_db_engine,
    create_async_session_factory,
    init_async_db,
    normalize_database_url,
)
from shareholder_tracker.storage.models import Base, HolderModel, PositionSnapshotModel
from shareholder_tracker.storage.repos import (
    HolderDTO,
    HolderRepository,
    PositionSnapshotDTO,
    PositionSnapshotRepository,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "HolderDTO",
    "HolderModel",
    "HolderRepository",
    "PositionSnapshotDTO",
    "PositionSnapshotModel",
    "PositionSnapshotRepository",
    "create_async_db_engine",
    "create_async_session_factory",
    "init_async_db",
    "normalize_database_url",
]
