"""Catalog search used by the add-entry flow."""

from __future__ import annotations

import logging
from typing import Literal, Sequence, Union

from ..errors import UpstreamError
from ..models import GameCandidate, MovieCandidate
from .igdb import IGDBClient
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)

LibraryMode = Literal["cine", "game"]
MIN_QUERY_LENGTH = 3


class CatalogSearchService:
    """Route searches to the catalog matching the current library mode.

    Upstream failures degrade to an empty result set so the add screen keeps
    working; they are logged rather than raised.
    """

    def __init__(self, tmdb: TMDBClient, igdb: IGDBClient):
        self._tmdb = tmdb
        self._igdb = igdb

    async def search(
        self, mode: LibraryMode, query: str
    ) -> Sequence[Union[MovieCandidate, GameCandidate]]:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []
        try:
            if mode == "game":
                return await self._igdb.search(query)
            return await self._tmdb.search(query)
        except UpstreamError as exc:
            # UpstreamAuthError is a subclass and degrades the same way
            logger.warning("Catalog search for %r (%s) failed: %s", query, mode, exc)
            return []

    async def resolve(
        self, candidate: Union[MovieCandidate, GameCandidate]
    ) -> Union[MovieCandidate, GameCandidate]:
        """Fill in details the search listing omits before the entry is saved."""

        if not isinstance(candidate, MovieCandidate) or candidate.director:
            return candidate
        director = await self._tmdb.fetch_director(candidate.id, candidate.media_type)
        if not director:
            return candidate
        return candidate.model_copy(update={"director": director})
