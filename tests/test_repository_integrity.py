"""Repository-level integrity checks."""

from __future__ import annotations

import re
from pathlib import Path

CONFLICT_PATTERN = re.compile(r"^(<<<<<<<|=======|>>>>>>>)", re.MULTILINE)
CHECKED_SUFFIXES = {".py", ".md", ".toml", ".txt"}
IGNORED_PARTS = {".git", "__pycache__", ".mypy_cache", ".pytest_cache", ".venv", "build"}
REPO_ROOT = Path(__file__).resolve().parents[1]


def _source_files() -> list[Path]:
    return [
        path
        for path in REPO_ROOT.rglob("*")
        if path.is_file()
        and path.suffix in CHECKED_SUFFIXES
        and not any(part in IGNORED_PARTS for part in path.parts)
    ]


def test_repository_has_no_merge_conflict_markers() -> None:
    offending_files = [
        path.relative_to(REPO_ROOT)
        for path in _source_files()
        if CONFLICT_PATTERN.search(path.read_text(encoding="utf-8", errors="ignore"))
    ]

    assert not offending_files, (
        "The following files still contain git conflict markers: "
        + ", ".join(str(path) for path in offending_files)
    )


def test_every_package_directory_has_an_init_module() -> None:
    package_root = REPO_ROOT / "cinelog"
    missing = [
        directory.relative_to(REPO_ROOT)
        for directory in [package_root, *package_root.rglob("*")]
        if directory.is_dir()
        and directory.name != "__pycache__"
        and any(directory.glob("*.py"))
        and not (directory / "__init__.py").exists()
    ]

    assert not missing, f"Packages without __init__.py: {missing}"
