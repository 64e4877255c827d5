"""Pydantic models describing library entries and catalog candidates."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

TMDB_POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
UNKNOWN_DEVELOPER = "Unknown"

TMDB_GENRE_MAP: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
    10759: "Action & Adventure",
    10762: "Kids",
    10763: "News",
    10764: "Reality",
    10765: "Sci-Fi & Fantasy",
    10766: "Soap",
    10767: "Talk",
    10768: "War & Politics",
}


class MediaKind(str, Enum):
    """Kinds of media a library entry can describe."""

    MOVIE = "Movie"
    SERIES = "Series"
    ANIME = "Anime"
    GAME = "Game"


ForeignKey = tuple[Literal["tmdb", "igdb"], int]


def cover_big_url(url: str | None) -> str:
    """Return the large cover variant of an IGDB image reference."""

    if not url:
        return ""
    resized = url.replace("t_thumb", "t_cover_big")
    if resized.startswith("//"):
        return f"https:{resized}"
    return resized


class Entry(BaseModel):
    """One catalogued item the user has watched or played."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    kind: MediaKind = Field(alias="type")
    rating: int | None = Field(default=None, ge=1, le=5)
    watched_at: datetime | None = Field(default=None, alias="dateWatched")
    genres: list[str] = Field(default_factory=list, alias="genre")
    year: int | None = None
    creator: str | None = Field(default=None, alias="directorOrCreator")
    platform: str | None = None
    summary: str | None = None
    review: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    tmdb_id: int | None = Field(default=None, alias="tmdbId")
    igdb_id: int | None = Field(default=None, alias="igdbId")
    time_played: float | None = Field(default=None, alias="timePlayed", ge=0)

    @field_validator("rating", mode="before")
    @classmethod
    def _zero_rating_is_unrated(cls, value: object) -> object:
        if value == 0:
            return None
        return value

    @field_validator("genres", mode="before")
    @classmethod
    def _coerce_genres(cls, value: object) -> object:
        if value is None:
            return []
        return value

    @field_validator("watched_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def foreign_key(self) -> ForeignKey | None:
        """Return the upstream catalog identifier used to detect duplicates."""

        if self.tmdb_id is not None:
            return ("tmdb", self.tmdb_id)
        if self.igdb_id is not None:
            return ("igdb", self.igdb_id)
        return None

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase JSON representation used by clients and backups."""

        return self.model_dump(mode="json", by_alias=True)


def _year_from_date(value: str | None) -> int | None:
    if not isinstance(value, str) or len(value) < 4:
        return None
    try:
        return int(value[:4])
    except ValueError:
        return None


class MovieCandidate(BaseModel):
    """TMDB multi-search result for a movie or a tv series."""

    source: Literal["tmdb"] = "tmdb"
    id: int
    media_type: Literal["movie", "tv"]
    title: str | None = None
    name: str | None = None
    poster_path: str | None = None
    release_date: str | None = None
    first_air_date: str | None = None
    overview: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    vote_average: float | None = None
    director: str | None = None

    def foreign_key(self) -> ForeignKey:
        return ("tmdb", self.id)

    def display_title(self) -> str:
        if self.media_type == "movie":
            return self.title or self.name or ""
        return self.name or self.title or ""

    def image_url(self) -> str | None:
        if not self.poster_path:
            return None
        if self.poster_path.startswith("http"):
            return self.poster_path
        return f"{TMDB_POSTER_BASE_URL}{self.poster_path}"

    def entry_fields(self) -> dict[str, Any]:
        """Map the search result onto :class:`Entry` attributes."""

        is_movie = self.media_type == "movie"
        release = self.release_date if is_movie else self.first_air_date
        return {
            "title": self.display_title(),
            "kind": MediaKind.MOVIE if is_movie else MediaKind.SERIES,
            "year": _year_from_date(release),
            "summary": self.overview or None,
            "genres": [
                TMDB_GENRE_MAP[genre_id]
                for genre_id in self.genre_ids
                if genre_id in TMDB_GENRE_MAP
            ],
            "creator": self.director or None,
            "image_url": self.image_url(),
            "tmdb_id": self.id,
        }


class IGDBCover(BaseModel):
    url: str | None = None


class IGDBNamed(BaseModel):
    name: str | None = None


class IGDBInvolvedCompany(BaseModel):
    company: IGDBNamed | None = None
    developer: bool = False


class IGDBPlatform(BaseModel):
    name: str | None = None
    abbreviation: str | None = None


class GameCandidate(BaseModel):
    """IGDB game search result normalised by the search proxy."""

    source: Literal["igdb"] = "igdb"
    id: int
    name: str = ""
    cover: IGDBCover | None = None
    first_release_date: int | None = None
    summary: str | None = None
    genres: list[IGDBNamed] = Field(default_factory=list)
    involved_companies: list[IGDBInvolvedCompany] = Field(default_factory=list)
    platforms: list[IGDBPlatform] = Field(default_factory=list)
    total_rating: float | None = None
    category: int | None = None
    processed_image_url: str = ""

    def foreign_key(self) -> ForeignKey:
        return ("igdb", self.id)

    def developer(self) -> str:
        companies = [
            entry for entry in self.involved_companies if entry.company and entry.company.name
        ]
        for entry in companies:
            if entry.developer:
                return entry.company.name  # type: ignore[union-attr, return-value]
        if companies:
            return companies[0].company.name  # type: ignore[union-attr, return-value]
        return UNKNOWN_DEVELOPER

    def release_year(self) -> int | None:
        if self.first_release_date is None:
            return None
        return datetime.fromtimestamp(self.first_release_date, tz=timezone.utc).year

    def entry_fields(self) -> dict[str, Any]:
        """Map the search result onto :class:`Entry` attributes."""

        image_url = self.processed_image_url or cover_big_url(
            self.cover.url if self.cover else None
        )
        platform = None
        if self.platforms:
            first = self.platforms[0]
            platform = first.abbreviation or first.name
        return {
            "title": self.name,
            "kind": MediaKind.GAME,
            "year": self.release_year(),
            "summary": self.summary or None,
            "genres": [genre.name for genre in self.genres if genre.name],
            "creator": self.developer(),
            "platform": platform,
            "image_url": image_url or None,
            "igdb_id": self.id,
        }


CatalogCandidate = Annotated[
    Union[MovieCandidate, GameCandidate], Field(discriminator="source")
]


class TasteAnalysis(BaseModel):
    """Taste profile produced by the language model."""

    model_config = ConfigDict(populate_by_name=True)

    favorite_genre: str = Field(alias="favoriteGenre")
    total_hours_estimate: float = Field(alias="totalHoursEstimates", ge=0)
    personality_profile: str = Field(alias="personalityProfile")
    recommendations: list[str] = Field(default_factory=list)


class BackupDocument(BaseModel):
    """Portable snapshot of a library."""

    model_config = ConfigDict(populate_by_name=True)

    entries: list[Entry]
    analysis: TasteAnalysis | None = None
    last_backup: datetime = Field(alias="lastBackup")
