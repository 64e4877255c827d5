"""Utilities for searching The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import UpstreamError
from ..models import MovieCandidate

logger = logging.getLogger(__name__)


class TMDBClient:
    """Client for TMDB text search, keyed by a static API key."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def configured(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    async def search(self, query: str) -> list[MovieCandidate]:
        """Return movie and tv results with artwork for ``query``."""

        if not self.configured:
            logger.info("TMDB API key missing, returning no results for %s", query)
            return []

        params = {
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.tmdb_language,
            "query": query,
            "page": 1,
            "include_adult": "false",
        }
        try:
            response = await self._client.get("/search/multi", params=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"TMDB request failed: {exc}") from exc
        if response.status_code >= 400:
            raise UpstreamError(
                f"TMDB search failed: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("TMDB returned a non-JSON payload", body=response.text) from exc
        results = data.get("results", []) if isinstance(data, dict) else []
        candidates: list[MovieCandidate] = []
        for raw in results:
            if not isinstance(raw, dict):
                continue
            # people and posterless titles are not useful as library entries
            if raw.get("media_type") not in {"movie", "tv"} or not raw.get("poster_path"):
                continue
            try:
                candidates.append(MovieCandidate.model_validate({**raw, "source": "tmdb"}))
            except ValidationError:
                logger.debug("Skipping malformed TMDB result: %s", raw)
        return candidates

    async def fetch_director(
        self, tmdb_id: int, media_type: Literal["movie", "tv"]
    ) -> str | None:
        """Return the director of a movie, or ``None`` when unknown."""

        if not self.configured or media_type != "movie":
            # tv credits do not carry a creator; it lives on the show details
            return None

        params = {
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.tmdb_language,
        }
        try:
            response = await self._client.get(f"/movie/{tmdb_id}/credits", params=params)
        except httpx.HTTPError as exc:
            logger.debug("TMDB credits fetch failed for %s: %s", tmdb_id, exc)
            return None
        if response.status_code >= 400:
            logger.debug(
                "TMDB credits fetch failed for %s: %s", tmdb_id, response.text
            )
            return None

        try:
            payload: Any = response.json()
        except ValueError:
            return None
        crew = payload.get("crew", []) if isinstance(payload, dict) else []
        for member in crew:
            if isinstance(member, dict) and member.get("job") == "Director":
                name = member.get("name")
                if name:
                    return str(name)
        return None
