import json
from datetime import datetime, timezone

import pytest

from cinelog.backup import backup_filename, export_backup, parse_backup
from cinelog.models import Entry, MediaKind, TasteAnalysis

NOW = datetime(2024, 6, 2, 9, 30, tzinfo=timezone.utc)


def test_export_backup_uses_camel_case_document():
    entry = Entry(id="1", title="Dune", kind=MediaKind.MOVIE, rating=5, tmdb_id=438631)
    analysis = TasteAnalysis(
        favorite_genre="Science Fiction",
        total_hours_estimate=2.6,
        personality_profile="Likes sand.",
        recommendations=["Arrival", "Blade Runner 2049", "Sicario"],
    )

    document = export_backup([entry], analysis, now=NOW)

    assert set(document) == {"entries", "analysis", "lastBackup"}
    assert document["lastBackup"].startswith("2024-06-02T09:30:00")
    assert document["entries"][0]["tmdbId"] == 438631
    assert document["entries"][0]["type"] == "Movie"
    assert document["analysis"]["favoriteGenre"] == "Science Fiction"

    restored = parse_backup(json.dumps(document))
    assert restored.entries == [entry]
    assert restored.analysis == analysis


def test_export_backup_without_analysis():
    document = export_backup([], None, now=NOW)

    assert document["analysis"] is None
    assert document["entries"] == []


def test_backup_filename_contains_date():
    assert backup_filename(NOW) == "cinelog-backup-2024-06-02.json"


@pytest.mark.parametrize("content", ["not json", '{"entries": {}}', "[]"])
def test_parse_backup_rejects_invalid_documents(content):
    with pytest.raises(ValueError):
        parse_backup(content)
