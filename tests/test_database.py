from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect, text

from cinelog.database import Database


def _initialise_first_release_schema(database_path: str) -> None:
    """Create a watch_entries table from before reviews and play time were tracked."""

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    """
                    CREATE TABLE watch_entries (
                        id VARCHAR(64) PRIMARY KEY,
                        user_id VARCHAR(128) NOT NULL,
                        title VARCHAR(300) NOT NULL,
                        type VARCHAR(16) NOT NULL,
                        rating INTEGER,
                        date_watched DATETIME,
                        genre JSON,
                        year INTEGER,
                        director_or_creator VARCHAR(300),
                        summary TEXT,
                        image_url VARCHAR(512),
                        tmdb_id INTEGER,
                        created_at DATETIME
                    )
                    """
                )
            )
            connection.execute(
                text(
                    "INSERT INTO watch_entries (id, user_id, title, type) "
                    "VALUES ('old', 'alice', 'Arrival', 'Movie')"
                )
            )
    finally:
        engine.dispose()


def test_create_all_adds_columns_missing_from_older_tables(tmp_path) -> None:
    database_path = tmp_path / "legacy.db"
    _initialise_first_release_schema(str(database_path))

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        columns = {column["name"] for column in inspector.get_columns("watch_entries")}
        with inspector_engine.connect() as connection:
            titles = connection.execute(text("SELECT title FROM watch_entries")).scalars().all()
    finally:
        inspector_engine.dispose()

    assert {"review", "time_played", "platform", "igdb_id"} <= columns
    assert titles == ["Arrival"]


def test_create_all_is_repeatable(tmp_path) -> None:
    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}")
        try:
            await database.create_all()
            await database.create_all()
        finally:
            await database.dispose()

    asyncio.run(runner())
