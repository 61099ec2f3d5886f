"""Resolve project locators from .slnx files to project file paths."""

from __future__ import annotations

import logging
import os

from solscan.config import PROJECT_EXTENSIONS, STEM_SEARCH_LIMIT
from solscan.dotnet.scan import list_project_files, walk_project_files

logger = logging.getLogger(__name__)


def candidate_path(solution_dir: str, locator: str) -> str:
    """Turn a raw locator into a normalised absolute path."""
    locator = locator.strip().replace("\\", "/")
    return os.path.normpath(os.path.join(solution_dir, locator))


def resolve_reference(
    solution_dir: str, locator: str, log: logging.Logger | None = None,
) -> list[str]:
    """Resolve a locator to zero or more existing project files.

    Tries, in order, stopping at the first step that finds anything:

    1. the locator names an existing file;
    2. it names a directory: every project file directly inside it;
    3. it has no project extension (so ``App.Desktop`` counts as
       extensionless): each project extension appended in turn;
    4. a recursive search of the solution directory for project files
       whose name matches the locator's last segment. This can match an
       unrelated project of the same name, and is capped.

    An empty list means the locator could not be resolved.
    """
    log = log or logger
    candidate = candidate_path(solution_dir, locator)

    if os.path.isfile(candidate):
        return [candidate]

    if os.path.isdir(candidate):
        found = list_project_files(candidate)
        if found:
            if len(found) > 1:
                log.debug(f"Directory reference {locator} matches {len(found)} projects")
            return found

    name = os.path.basename(candidate)
    has_project_ext = os.path.splitext(name)[1].lower() in PROJECT_EXTENSIONS

    if not has_project_ext:
        found = [candidate + ext for ext in PROJECT_EXTENSIONS if os.path.isfile(candidate + ext)]
        if found:
            return found

    stem = os.path.splitext(name)[0] if has_project_ext else name
    if not stem:
        return []
    try:
        found = walk_project_files(solution_dir, STEM_SEARCH_LIMIT, stem=stem)
    except OSError as e:
        log.debug(f"Search for {stem} under {solution_dir} failed: {e}")
        return []
    if found:
        log.debug(f"Resolved {locator} by name search: {', '.join(found)}")
    return found
