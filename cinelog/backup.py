"""Backup export and import for a library."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import ValidationError

from .models import BackupDocument, Entry, TasteAnalysis


def export_backup(
    entries: Iterable[Entry],
    analysis: TasteAnalysis | None,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Return the JSON-ready backup document for ``entries``."""

    document = BackupDocument(
        entries=list(entries),
        analysis=analysis,
        last_backup=now or datetime.now(timezone.utc),
    )
    return document.model_dump(mode="json", by_alias=True)


def backup_filename(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"cinelog-backup-{moment.date().isoformat()}.json"


def parse_backup(content: str | bytes) -> BackupDocument:
    """Validate a previously exported backup."""

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValueError("Backup is not valid JSON") from exc
    if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
        raise ValueError("Invalid backup format: 'entries' must be a list")
    data.setdefault("lastBackup", datetime.now(timezone.utc).isoformat())
    try:
        return BackupDocument.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid backup entries: {exc.error_count()} problem(s)") from exc
