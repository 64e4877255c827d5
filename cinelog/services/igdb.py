"""Search proxy for the IGDB game catalog."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import UpstreamError
from ..models import GameCandidate, cover_big_url
from ..utils import escape_apicalypse
from .tokens import TwitchTokenProvider

logger = logging.getLogger(__name__)

SEARCH_FIELDS = (
    "name",
    "cover.url",
    "first_release_date",
    "summary",
    "genres.name",
    "involved_companies.company.name",
    "involved_companies.developer",
    "platforms.name",
    "platforms.abbreviation",
    "total_rating",
    "category",
)
# main games, remakes and remasters
SEARCH_CATEGORIES = (0, 8, 9)


class IGDBClient:
    """Forward free-text game searches to IGDB using a cached bearer token."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        tokens: TwitchTokenProvider,
    ):
        self._settings = settings
        self._client = http_client
        self._tokens = tokens

    def build_query(self, query: str) -> str:
        """Return the Apicalypse body for a title search."""

        categories = ", ".join(str(category) for category in SEARCH_CATEGORIES)
        return (
            f'search "{escape_apicalypse(query.strip())}"; '
            f"fields {', '.join(SEARCH_FIELDS)}; "
            f"where category = ({categories}); "
            f"limit {self._settings.igdb_result_limit};"
        )

    async def search(self, query: str) -> list[GameCandidate]:
        """Return at most ``IGDB_RESULT_LIMIT`` normalised game candidates."""

        token = await self._tokens.get_token()
        headers = {
            "Client-ID": self._tokens.client_id or "",
            "Authorization": f"Bearer {token}",
            "Content-Type": "text/plain",
        }
        url = f"{str(self._settings.igdb_api_url).rstrip('/')}/games"
        logger.debug("Searching IGDB for %s", query)
        try:
            response = await self._client.post(
                url, content=self.build_query(query), headers=headers
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"IGDB request failed: {exc}") from exc

        if response.status_code >= 400:
            if response.status_code == 401:
                self._tokens.invalidate()
            raise UpstreamError(
                f"IGDB Error: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("IGDB returned a non-JSON payload", body=response.text) from exc
        if not isinstance(payload, list):
            raise UpstreamError("Unexpected IGDB response structure", body=response.text)

        games: list[GameCandidate] = []
        for raw in payload[: self._settings.igdb_result_limit]:
            game = self._normalise(raw)
            if game is not None:
                games.append(game)
        return games

    @staticmethod
    def _normalise(raw: Any) -> GameCandidate | None:
        if not isinstance(raw, dict):
            return None
        try:
            game = GameCandidate.model_validate({**raw, "source": "igdb"})
        except ValidationError:
            logger.debug("Skipping malformed IGDB result: %s", raw)
            return None
        game.processed_image_url = cover_big_url(game.cover.url if game.cover else None)
        return game
