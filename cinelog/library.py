"""Filtered, sorted and aggregated views over the local library."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Literal, Union

from pydantic import BaseModel, Field

from .models import Entry, MediaKind
from .utils import fold_text

LibraryMode = Literal["cine", "game"]
SortOption = Literal["recent", "oldest", "titleAsc", "titleDesc", "ratingDesc"]
TypeFilter = Union[MediaKind, Literal["ALL"]]

SORT_OPTIONS: tuple[str, ...] = ("recent", "oldest", "titleAsc", "titleDesc", "ratingDesc")
_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)
UNRATED_SORT_KEY = -1


def _in_mode(entry: Entry, mode: LibraryMode) -> bool:
    if mode == "game":
        return entry.kind is MediaKind.GAME
    return entry.kind is not MediaKind.GAME


def _matches_text(entry: Entry, needle: str) -> bool:
    if needle in entry.title.casefold():
        return True
    return bool(entry.creator) and needle in entry.creator.casefold()  # type: ignore[union-attr]


def _timestamp(entry: Entry) -> datetime:
    return entry.watched_at or _EARLIEST


def _title_key(entry: Entry) -> tuple[str, str]:
    return (fold_text(entry.title), entry.title)


def _rating_key(entry: Entry) -> int:
    return entry.rating if entry.rating is not None else UNRATED_SORT_KEY


def project(
    entries: Iterable[Entry],
    mode: LibraryMode,
    search_term: str = "",
    type_filter: TypeFilter = "ALL",
    sort: SortOption = "recent",
) -> list[Entry]:
    """Return the entries visible for the given filters, in display order.

    Sorting is stable, so entries with equal keys keep their relative order,
    which makes the projection idempotent.
    """

    needle = (search_term or "").casefold()
    visible = [
        entry
        for entry in entries
        if _in_mode(entry, mode)
        and _matches_text(entry, needle)
        and (type_filter == "ALL" or entry.kind == type_filter)
    ]

    if sort == "recent":
        return sorted(visible, key=_timestamp, reverse=True)
    if sort == "oldest":
        return sorted(visible, key=_timestamp)
    if sort == "titleAsc":
        return sorted(visible, key=_title_key)
    if sort == "titleDesc":
        return sorted(visible, key=_title_key, reverse=True)
    if sort == "ratingDesc":
        return sorted(visible, key=_rating_key, reverse=True)
    raise ValueError(f"Unknown sort option: {sort}")


class LibraryStats(BaseModel):
    """Aggregate numbers shown on the statistics screen."""

    total: int = 0
    movies: int = 0
    series: int = 0
    anime: int = 0
    games: int = 0
    average_rating: float = 0.0
    by_kind: dict[str, int] = Field(default_factory=dict)
    rating_histogram: list[int] = Field(default_factory=lambda: [0, 0, 0, 0, 0])


def summarize(entries: Iterable[Entry]) -> LibraryStats:
    """Return counts, the average rating and the rating histogram."""

    entries = list(entries)
    by_kind: dict[str, int] = {}
    histogram = [0, 0, 0, 0, 0]
    ratings: list[int] = []
    for entry in entries:
        by_kind[entry.kind.value] = by_kind.get(entry.kind.value, 0) + 1
        if entry.rating is not None and 1 <= entry.rating <= 5:
            ratings.append(entry.rating)
            histogram[entry.rating - 1] += 1

    average = round(sum(ratings) / len(ratings), 1) if ratings else 0.0
    return LibraryStats(
        total=len(entries),
        movies=by_kind.get(MediaKind.MOVIE.value, 0),
        series=by_kind.get(MediaKind.SERIES.value, 0),
        anime=by_kind.get(MediaKind.ANIME.value, 0),
        games=by_kind.get(MediaKind.GAME.value, 0),
        average_rating=average,
        by_kind=by_kind,
        rating_histogram=histogram,
    )
