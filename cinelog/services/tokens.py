"""Access token cache for the Twitch identity provider used by IGDB."""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from ..config import Settings
from ..errors import UpstreamAuthError

logger = logging.getLogger(__name__)


class TwitchTokenProvider:
    """Mint and cache client-credentials tokens for the IGDB API.

    A statically configured token always wins. Otherwise a minted token is
    reused until ``expires_in`` minus the configured safety margin has
    elapsed. Concurrent cache misses are not coalesced, so two callers racing
    on an empty cache may both mint a token.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._client = http_client
        self._clock = clock
        self._token: str | None = None
        self._expires_at: float = 0.0

    @property
    def client_id(self) -> str | None:
        return self._settings.igdb_client_id

    async def get_token(self) -> str:
        """Return a bearer token, minting a new one when the cache is stale."""

        static_token = self._settings.igdb_access_token
        if static_token:
            return static_token

        now = self._clock()
        if self._token and now < self._expires_at:
            return self._token

        token, expires_in = await self._mint()
        margin = self._settings.igdb_token_margin_seconds
        self._token = token
        self._expires_at = now + expires_in - margin
        return token

    def invalidate(self) -> None:
        """Forget the cached token so the next call mints a fresh one."""

        self._token = None
        self._expires_at = 0.0

    async def _mint(self) -> tuple[str, float]:
        client_id = self._settings.igdb_client_id
        client_secret = self._settings.igdb_client_secret
        if not (client_id and client_secret):
            raise UpstreamAuthError(
                "IGDB_CLIENT_ID and IGDB_CLIENT_SECRET are required to request a token"
            )

        logger.info("Requesting a new Twitch access token")
        params = {
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "client_credentials",
        }
        try:
            response = await self._client.post(
                str(self._settings.twitch_token_url), params=params
            )
        except httpx.HTTPError as exc:
            logger.warning("Token request failed: %s", exc)
            raise UpstreamAuthError(f"Failed to generate token: {exc}") from exc

        if response.status_code >= 400:
            logger.warning("Token request rejected: %s", response.text)
            raise UpstreamAuthError(
                "Failed to generate token",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamAuthError("Token response was not JSON", body=response.text) from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise UpstreamAuthError("Token response did not include an access token", body=response.text)

        try:
            expires_in = float(data.get("expires_in", 0))
        except (TypeError, ValueError):
            expires_in = 0.0
        return token, expires_in
