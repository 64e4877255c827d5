"""Tests for the SQLAlchemy-backed entry store."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from cinelog.database import Database
from cinelog.db_models import WatchEntryRecord
from cinelog.errors import AuthRequiredError, PersistenceError
from cinelog.models import Entry, MediaKind
from cinelog.services.entry_store import EntryStore

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _entry(entry_id: str, title: str, *, days: int = 0, **extra) -> Entry:
    return Entry(
        id=entry_id,
        title=title,
        kind=extra.pop("kind", MediaKind.MOVIE),
        watched_at=T0 + timedelta(days=days),
        **extra,
    )


def _run(tmp_path, scenario) -> None:
    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'entries.db'}")
        await database.create_all()
        try:
            await scenario(EntryStore(database.session_factory), database)
        finally:
            await database.dispose()

    asyncio.run(runner())


def test_fetch_all_orders_by_date_watched_descending(tmp_path) -> None:
    async def scenario(store: EntryStore, _: Database) -> None:
        await store.insert(_entry("a", "Arrival", days=0), "alice")
        await store.insert(_entry("b", "Dune", days=2, rating=5, tmdb_id=438631), "alice")
        await store.insert(_entry("c", "Sicario", days=1), "alice")
        await store.insert(_entry("d", "Enemy", days=5), "bob")

        entries = await store.fetch_all("alice")

        assert [entry.id for entry in entries] == ["b", "c", "a"]
        assert entries[0].rating == 5
        assert entries[0].tmdb_id == 438631
        assert entries[0].watched_at == T0 + timedelta(days=2)

    _run(tmp_path, scenario)


def test_rows_use_underscore_column_names(tmp_path) -> None:
    async def scenario(store: EntryStore, database: Database) -> None:
        entry = _entry(
            "g",
            "Hades",
            kind=MediaKind.GAME,
            creator="Supergiant Games",
            genres=["Roguelike", "Action"],
            igdb_id=113112,
            platform="PC",
            image_url="https://images.igdb.com/cover.jpg",
        )
        await store.insert(entry, "alice")

        async with database.session_factory() as session:
            record = await session.get(WatchEntryRecord, "g")

        assert record is not None
        assert record.user_id == "alice"
        assert record.type == "Game"
        assert record.director_or_creator == "Supergiant Games"
        assert record.genre == ["Roguelike", "Action"]
        assert record.igdb_id == 113112
        assert record.image_url == "https://images.igdb.com/cover.jpg"

        (loaded,) = await store.fetch_all("alice")
        assert loaded == entry

    _run(tmp_path, scenario)


def test_operations_without_identity(tmp_path) -> None:
    async def scenario(store: EntryStore, _: Database) -> None:
        assert await store.fetch_all(None) == []
        with pytest.raises(AuthRequiredError):
            await store.insert(_entry("a", "Arrival"), None)
        with pytest.raises(PersistenceError):
            await store.delete("a", "")

    _run(tmp_path, scenario)


def test_duplicate_row_id_is_a_persistence_error(tmp_path) -> None:
    async def scenario(store: EntryStore, _: Database) -> None:
        await store.insert(_entry("same", "Arrival"), "alice")
        with pytest.raises(PersistenceError):
            await store.insert(_entry("same", "Arrival again"), "alice")

    _run(tmp_path, scenario)


def test_delete_is_idempotent_and_scoped_to_identity(tmp_path) -> None:
    async def scenario(store: EntryStore, _: Database) -> None:
        await store.insert(_entry("a", "Arrival"), "alice")

        await store.delete("does-not-exist", "alice")
        await store.delete("a", "mallory")
        assert [entry.id for entry in await store.fetch_all("alice")] == ["a"]

        await store.delete("a", "alice")
        await store.delete("a", "alice")
        assert await store.fetch_all("alice") == []

    _run(tmp_path, scenario)


def test_store_failures_are_wrapped(tmp_path) -> None:
    async def scenario(store: EntryStore, database: Database) -> None:
        async with database.engine.begin() as connection:
            await connection.run_sync(WatchEntryRecord.__table__.drop)

        with pytest.raises(PersistenceError):
            await store.fetch_all("alice")
        with pytest.raises(PersistenceError):
            await store.insert(_entry("a", "Arrival"), "alice")
        with pytest.raises(PersistenceError):
            await store.delete("a", "alice")

    _run(tmp_path, scenario)
