"""Async engine, declarative base and schema upkeep for the entry store."""

from __future__ import annotations

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}

# Columns added to watch_entries after the first release, with their DDL type.
ADDED_ENTRY_COLUMNS: dict[str, str] = {
    "review": "TEXT",
    "time_played": "FLOAT",
    "platform": "VARCHAR(120)",
    "igdb_id": "INTEGER",
}


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Database:
    """Owns the async engine and hands out sessions to the entry store."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_all(self) -> None:
        """Create missing tables, then add columns older tables lack."""

        # registers WatchEntryRecord on Base.metadata
        from . import db_models  # noqa: F401

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
            await connection.run_sync(self._add_missing_entry_columns)

    @staticmethod
    def _add_missing_entry_columns(sync_connection: Connection) -> None:
        inspector = inspect(sync_connection)
        if "watch_entries" not in inspector.get_table_names():
            return

        existing = {column["name"] for column in inspector.get_columns("watch_entries")}
        for name, ddl_type in ADDED_ENTRY_COLUMNS.items():
            if name not in existing:
                sync_connection.execute(
                    text(f"ALTER TABLE watch_entries ADD COLUMN {name} {ddl_type}")
                )

    async def dispose(self) -> None:
        await self._engine.dispose()
