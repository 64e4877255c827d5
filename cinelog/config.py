"""Environment driven configuration for the CineLog service."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MAX_IGDB_RESULTS = 20


class Settings(BaseSettings):
    """Server, catalog credentials, store and OpenRouter options."""

    app_name: str = Field(default="CineLog", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3001, alias="PORT")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    tmdb_api_key: str | None = Field(
        default=None,
        alias="TMDB_API_KEY",
        validation_alias=AliasChoices("TMDB_API_KEY", "VITE_TMDB_API_KEY"),
    )
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_language: str = Field(default="en-US", alias="TMDB_LANGUAGE")

    igdb_client_id: str | None = Field(
        default=None,
        alias="IGDB_CLIENT_ID",
        validation_alias=AliasChoices("IGDB_CLIENT_ID", "VITE_IGDB_CLIENT_ID"),
    )
    igdb_client_secret: str | None = Field(
        default=None,
        alias="IGDB_CLIENT_SECRET",
        validation_alias=AliasChoices(
            "IGDB_CLIENT_SECRET", "VITE_IGDB_CLIENT_SECRET"
        ),
    )
    igdb_access_token: str | None = Field(
        default=None,
        alias="IGDB_ACCESS_TOKEN",
        validation_alias=AliasChoices("IGDB_ACCESS_TOKEN", "VITE_IGDB_ACCESS_TOKEN"),
    )
    igdb_api_url: HttpUrl = Field(
        default="https://api.igdb.com/v4", alias="IGDB_API_URL"
    )
    twitch_token_url: HttpUrl = Field(
        default="https://id.twitch.tv/oauth2/token", alias="TWITCH_TOKEN_URL"
    )
    igdb_token_margin_seconds: int = Field(
        default=60, alias="IGDB_TOKEN_MARGIN", ge=0, le=3_600
    )
    igdb_result_limit: int = Field(
        default=MAX_IGDB_RESULTS, alias="IGDB_RESULT_LIMIT", ge=1, le=MAX_IGDB_RESULTS
    )

    openrouter_api_key: str | None = Field(
        default=None, alias="OPENROUTER_API_KEY"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash", alias="OPENROUTER_MODEL"
    )
    openrouter_api_url: HttpUrl = Field(
        default="https://openrouter.ai/api/v1", alias="OPENROUTER_API_URL"
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./cinelog.db", alias="DATABASE_URL"
    )
    session_cache_size: int = Field(
        default=256, alias="SESSION_CACHE_SIZE", ge=1, le=100_000
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator(
        "tmdb_api_key",
        "igdb_client_id",
        "igdb_client_secret",
        "igdb_access_token",
        "openrouter_api_key",
        mode="before",
    )
    @classmethod
    def _blank_secret_is_unset(cls, value: object) -> object:
        """Treat empty ``KEY=`` lines in .env files as missing values."""

        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
