"""Text helpers shared by the catalog clients and the library views."""

from __future__ import annotations

import json
import re
import unicodedata
from typing import Any


FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
BARE_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)


def fold_text(value: str) -> str:
    """Return a case and accent insensitive form of ``value`` for matching."""

    value = unicodedata.normalize("NFKD", value)
    value = "".join(char for char in value if not unicodedata.combining(char))
    return value.casefold()


def extract_json_object(content: str) -> dict[str, Any]:
    """Return the JSON object embedded in a chat answer, fenced or bare."""

    fenced = FENCED_JSON_RE.search(content)
    if fenced:
        payload = fenced.group(1)
    else:
        bare = BARE_JSON_RE.search(content)
        if bare is None:
            raise ValueError("Answer does not contain a JSON object")
        payload = bare.group(0)

    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError("Answer contains malformed JSON") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Answer JSON is not an object")
    return parsed


def escape_apicalypse(value: str) -> str:
    """Escape a free-text value for use inside an Apicalypse string literal."""

    return value.replace("\\", "\\\\").replace('"', '\\"')
