"""Tests for the list view projection and library statistics."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cinelog.library import SORT_OPTIONS, project, summarize
from cinelog.models import Entry, MediaKind

T1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T2 = T1 + timedelta(days=30)


def _entry(entry_id: str, title: str, kind: MediaKind = MediaKind.MOVIE, **extra) -> Entry:
    return Entry(id=entry_id, title=title, kind=kind, **extra)


@pytest.fixture
def library() -> list[Entry]:
    return [
        _entry("1", "Dune", rating=5, watched_at=T2, creator="Denis Villeneuve"),
        _entry("2", "arrival", watched_at=T1, creator="Denis Villeneuve"),
        _entry("3", "Élite", MediaKind.SERIES, rating=3, watched_at=T1 + timedelta(days=3)),
        _entry("4", "Frieren", MediaKind.ANIME, rating=5),
        _entry("5", "Hades", MediaKind.GAME, rating=4, watched_at=T2, creator="Supergiant Games"),
        _entry("6", "Celeste", MediaKind.GAME, watched_at=T1),
    ]


def test_rating_sort_places_unrated_entries_last() -> None:
    entries = [
        _entry("dune", "Dune", rating=5, watched_at=T2),
        _entry("arrival", "Arrival", watched_at=T1),
    ]

    result = project(entries, "cine", sort="ratingDesc")

    assert [entry.title for entry in result] == ["Dune", "Arrival"]


def test_rating_sort_is_stable_for_ties(library: list[Entry]) -> None:
    result = project(library, "cine", sort="ratingDesc")

    assert [entry.id for entry in result] == ["1", "4", "3", "2"]


def test_game_mode_only_shows_games() -> None:
    entries = [
        _entry("m", "Blade Runner", MediaKind.MOVIE),
        _entry("g", "Hades", MediaKind.GAME),
    ]

    assert [entry.id for entry in project(entries, "game")] == ["g"]
    assert [entry.id for entry in project(entries, "cine")] == ["m"]


def test_text_filter_matches_title_or_creator(library: list[Entry]) -> None:
    by_creator = project(library, "cine", search_term="VILLENEUVE")
    by_title = project(library, "cine", search_term="rriv")
    no_creator = project(library, "cine", search_term="supergiant")

    assert {entry.id for entry in by_creator} == {"1", "2"}
    assert [entry.id for entry in by_title] == ["2"]
    assert no_creator == []


def test_type_filter(library: list[Entry]) -> None:
    assert [entry.id for entry in project(library, "cine", type_filter=MediaKind.ANIME)] == ["4"]
    assert len(project(library, "cine", type_filter="ALL")) == 4


def test_recent_and_oldest_put_missing_timestamps_first_or_last(library: list[Entry]) -> None:
    recent = project(library, "cine", sort="recent")
    oldest = project(library, "cine", sort="oldest")

    assert [entry.id for entry in recent] == ["1", "3", "2", "4"]
    assert [entry.id for entry in oldest] == ["4", "2", "3", "1"]


def test_title_sort_ignores_case_and_accents(library: list[Entry]) -> None:
    ascending = project(library, "cine", sort="titleAsc")
    descending = project(library, "cine", sort="titleDesc")

    assert [entry.title for entry in ascending] == ["arrival", "Dune", "Élite", "Frieren"]
    assert [entry.title for entry in descending] == ["Frieren", "Élite", "Dune", "arrival"]


@pytest.mark.parametrize("sort", SORT_OPTIONS)
@pytest.mark.parametrize("mode", ["cine", "game"])
def test_projection_is_idempotent(library: list[Entry], sort: str, mode: str) -> None:
    once = project(library, mode, "e", "ALL", sort)  # type: ignore[arg-type]
    twice = project(once, mode, "e", "ALL", sort)  # type: ignore[arg-type]

    assert twice == once


def test_unknown_sort_option_raises(library: list[Entry]) -> None:
    with pytest.raises(ValueError):
        project(library, "cine", sort="random")  # type: ignore[arg-type]


def test_summarize_counts_and_average(library: list[Entry]) -> None:
    stats = summarize(library)

    assert stats.total == 6
    assert (stats.movies, stats.series, stats.anime, stats.games) == (2, 1, 1, 2)
    assert stats.average_rating == 4.2
    assert stats.rating_histogram == [0, 0, 1, 1, 2]
    assert stats.by_kind == {"Movie": 2, "Series": 1, "Anime": 1, "Game": 2}


def test_summarize_empty_library() -> None:
    stats = summarize([])

    assert stats.total == 0
    assert stats.average_rating == 0.0
    assert stats.rating_histogram == [0, 0, 0, 0, 0]
