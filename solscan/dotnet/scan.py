"""Filesystem scans for project files."""

from __future__ import annotations

import os

from solscan.config import IGNORED_DIRECTORIES, PROJECT_EXTENSIONS


def is_project_file(filename: str) -> bool:
    """Check if a file name carries a recognised project extension."""
    return os.path.splitext(filename)[1].lower() in PROJECT_EXTENSIONS


def list_project_files(directory: str) -> list[str]:
    """Return project files directly inside ``directory`` (no recursion).

    Grouped by extension priority, then sorted by name.
    """
    try:
        entries = sorted(os.listdir(directory))
    except OSError:
        return []

    found = []
    for ext in PROJECT_EXTENSIONS:
        for name in entries:
            full_path = os.path.join(directory, name)
            if name.lower().endswith(ext) and os.path.isfile(full_path):
                found.append(full_path)
    return found


def walk_project_files(root: str, limit: int, stem: str | None = None) -> list[str]:
    """Recursively find project files under ``root``.

    Skips build output and VCS directories. When ``stem`` is given only
    files whose name without extension equals it (case-insensitive) are
    returned. Stops after ``limit`` matches.
    """
    wanted = stem.casefold() if stem is not None else None
    found: list[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        # Filter ignored directories in-place
        dirnames[:] = [
            d for d in sorted(dirnames)
            if d.lower() not in IGNORED_DIRECTORIES
        ]

        for filename in sorted(filenames):
            if not is_project_file(filename):
                continue
            if wanted is not None and os.path.splitext(filename)[0].casefold() != wanted:
                continue
            found.append(os.path.join(dirpath, filename))
            if len(found) >= limit:
                return found

    return found
