"""Taste profile generation through the OpenRouter chat completions API."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import UpstreamError
from ..models import Entry, TasteAnalysis
from ..utils import extract_json_object

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are CineLog, a film and games critic who writes playful taste profiles. "
    "You always respond with a single JSON object that matches the documented schema "
    "and never include commentary outside JSON."
)

ANALYSIS_REQUEST_TEMPLATE = """
Analyse the following viewing and playing history and build a taste profile.

History:
{history}

Rules:
1. "favoriteGenre" is the single genre that best describes the history.
2. "totalHoursEstimates" is a rough total of hours spent, based on typical runtimes.
3. "personalityProfile" is one fun paragraph describing the user's taste.
4. "recommendations" lists exactly 3 titles that are not in the history.

Respond strictly with JSON following this structure:
{{
  "favoriteGenre": "Drama",
  "totalHoursEstimates": 120,
  "personalityProfile": "paragraph",
  "recommendations": ["Title", "Title", "Title"]
}}
"""


def summarise_history(entries: Sequence[Entry]) -> str:
    """Return one ``title (kind) - rating`` line per entry."""

    lines = []
    for entry in entries:
        rating = f"Rating: {entry.rating}/5" if entry.rating else "Not rated"
        lines.append(f"{entry.title} ({entry.kind.value}) - {rating}")
    return "\n".join(lines)


class TasteProfileClient:
    """Client responsible for asking OpenRouter for a taste profile."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def analyze(
        self,
        entries: Sequence[Entry],
        *,
        api_key: str | None = None,
        model: str | None = None,
    ) -> TasteAnalysis:
        resolved_key = api_key or self._settings.openrouter_api_key
        if not resolved_key:
            raise RuntimeError("OpenRouter API key is required to analyse a profile")
        if not entries:
            raise ValueError("Add a few titles before asking for a taste profile")

        payload = {
            "model": model or self._settings.openrouter_model,
            "temperature": 0.7,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": ANALYSIS_REQUEST_TEMPLATE.format(
                        history=summarise_history(entries)
                    ),
                },
            ],
        }
        headers = {
            "Authorization": f"Bearer {resolved_key}",
            "Content-Type": "application/json",
            "X-Title": self._settings.app_name,
        }
        try:
            response = await self._client.post(
                "/chat/completions", json=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"OpenRouter request failed: {exc}") from exc
        if response.status_code >= 400:
            logger.warning("OpenRouter analysis failed: %s", response.text)
            raise UpstreamError(
                "OpenRouter analysis failed",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise ValueError("OpenRouter returned a non-JSON payload") from exc
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise ValueError("Model returned no choices")
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ValueError("Model returned an empty message")

        parsed = extract_json_object(content)
        try:
            return TasteAnalysis.model_validate(parsed)
        except ValidationError as exc:
            raise ValueError("Model returned an incomplete taste profile") from exc
