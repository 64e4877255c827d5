"""Remote entry store backed by SQLAlchemy."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import WatchEntryRecord
from ..errors import AuthRequiredError, PersistenceError
from ..models import Entry

logger = logging.getLogger(__name__)

# Entry attribute -> watch_entries column
COLUMN_MAP: dict[str, str] = {
    "id": "id",
    "title": "title",
    "kind": "type",
    "rating": "rating",
    "watched_at": "date_watched",
    "genres": "genre",
    "year": "year",
    "creator": "director_or_creator",
    "platform": "platform",
    "summary": "summary",
    "review": "review",
    "image_url": "image_url",
    "tmdb_id": "tmdb_id",
    "igdb_id": "igdb_id",
    "time_played": "time_played",
}


def entry_to_row(entry: Entry, identity: str) -> dict[str, Any]:
    """Translate an entry into ``watch_entries`` column values."""

    row: dict[str, Any] = {"user_id": identity}
    for attribute, column in COLUMN_MAP.items():
        row[column] = getattr(entry, attribute)
    row["type"] = entry.kind.value
    row["genre"] = list(entry.genres)
    return row


def entry_from_row(record: WatchEntryRecord) -> Entry:
    """Translate a stored row back into an entry."""

    values = {
        attribute: getattr(record, column) for attribute, column in COLUMN_MAP.items()
    }
    return Entry.model_validate(values)


class EntryStore:
    """CRUD façade over the per-identity ``watch_entries`` table.

    Entries are immutable once stored, so only fetch, insert and delete are
    offered. Every write is scoped to the identity passed in.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def fetch_all(self, identity: str | None) -> list[Entry]:
        """Return every entry owned by ``identity``, most recent first."""

        if not identity:
            return []
        stmt = (
            select(WatchEntryRecord)
            .where(WatchEntryRecord.user_id == identity)
            .order_by(WatchEntryRecord.date_watched.desc().nulls_last())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch entries for %s: %s", identity, exc)
            raise PersistenceError("Could not load your library") from exc
        return [entry_from_row(record) for record in records]

    async def insert(self, entry: Entry, identity: str | None) -> None:
        """Store ``entry`` under ``identity`` using its client-generated id."""

        if not identity:
            raise AuthRequiredError()
        record = WatchEntryRecord(**entry_to_row(entry, identity))
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
        except IntegrityError as exc:
            logger.error("Entry %s violates a store constraint: %s", entry.id, exc)
            raise PersistenceError(f"Entry {entry.id} could not be saved") from exc
        except SQLAlchemyError as exc:
            logger.error("Failed to save entry %s: %s", entry.id, exc)
            raise PersistenceError("Could not save to the cloud") from exc

    async def delete(self, entry_id: str, identity: str | None) -> None:
        """Delete ``entry_id`` if ``identity`` owns it; missing rows are ignored."""

        if not identity:
            raise AuthRequiredError()
        stmt = delete(WatchEntryRecord).where(
            WatchEntryRecord.id == entry_id,
            WatchEntryRecord.user_id == identity,
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to delete entry %s: %s", entry_id, exc)
            raise PersistenceError("Could not delete from the cloud") from exc
